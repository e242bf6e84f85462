import logging
from datetime import datetime
from typing import Callable, Iterable, Optional
from gamification.core.clock import utcnow, to_utc_naive
from gamification.core.exceptions import DuplicateUnlock, InvalidAchievementRule, PersistenceError
from gamification.models.achievement import AchievementConfig, UnlockRecord
from gamification.models.season import Season
from gamification.models.xp import XpLedgerEntry, SOURCE_ACHIEVEMENT
from gamification.schemas.achievement import (
    BatchResult, RuleKind, UnlockError, UnlockRecordResponse, UnlockResult,
)
from gamification.services import criteria
from gamification.services.records import RecordSink, RecordSource, new_id

logger = logging.getLogger(__name__)

class UnlockOrchestrator:
    """Evaluates achievements for attendants within one season and persists new unlocks.

    The only concurrency control is the store's unique constraint on
    (attendant_id, achievement_id, season_id): a losing concurrent writer gets
    DuplicateUnlock from the sink, which is treated as an already-done unlock.
    """

    def __init__(self, source: RecordSource, sink: RecordSink, clock: Callable[[], datetime] = utcnow):
        self.source = source
        self.sink = sink
        self.clock = clock

    async def unlock(
        self,
        attendant_id: str,
        achievement: AchievementConfig,
        season: Season,
        unlocked_at: datetime,
        reason: Optional[str] = None,
    ) -> UnlockRecord:
        """Create the unlock and its compensating ledger entry as one unit."""
        record = UnlockRecord(
            id=new_id(),
            attendant_id=attendant_id,
            achievement_id=achievement.id,
            season_id=season.id,
            unlocked_at=unlocked_at,
            xp_gained=achievement.xp_reward,
        )
        entry = XpLedgerEntry(
            id=new_id(),
            attendant_id=attendant_id,
            base_points=achievement.xp_reward,
            multiplier=1.0,
            final_points=float(achievement.xp_reward),
            reason=reason or f"Achievement unlocked: {achievement.title}",
            source_type=SOURCE_ACHIEVEMENT,
            related_id=record.id,
            occurred_at=unlocked_at,
            season_id=season.id,
        )
        return await self.sink.insert_unlock(record, entry)

    async def process_attendant(self, attendant_id: str, season: Season) -> UnlockResult:
        result = UnlockResult(attendant_id=attendant_id, season_id=season.id)

        achievements = await self.source.active_achievements()
        # must be read before any eligibility check in this run
        unlocked = await self.source.unlocked_achievement_ids(attendant_id, season.id)
        pending = [a for a in achievements if a.id not in unlocked]
        if not pending:
            return result

        history = await self.source.season_history(attendant_id, season)
        # unlocks of a finished season are dated inside that season
        unlocked_at = min(to_utc_naive(self.clock()), to_utc_naive(season.end_date))

        for achievement in pending:
            try:
                if not criteria.is_eligible(achievement, history):
                    continue
            except InvalidAchievementRule as e:
                logger.warning("Skipping achievement %s: %s", achievement.id, e.detail)
                result.config_errors.append(UnlockError(achievement_id=achievement.id, message=str(e)))
                continue

            try:
                record = await self.unlock(attendant_id, achievement, season, unlocked_at)
            except DuplicateUnlock:
                logger.warning("Achievement %s already unlocked for %s in season %s by a concurrent run",
                               achievement.id, attendant_id, season.id)
                result.duplicates.append(achievement.id)
                continue
            except PersistenceError as e:
                logger.error("Unlock of %s for %s failed: %s", achievement.id, attendant_id, e)
                result.errors.append(UnlockError(achievement_id=achievement.id, message=str(e)))
                continue

            logger.info("Unlocked %s for %s in season %s (+%s XP)",
                        achievement.id, attendant_id, season.id, record.xp_gained)
            result.new_unlocks.append(UnlockRecordResponse.model_validate(record))
            result.xp_awarded += record.xp_gained

        return result

    async def process_batch(self, attendant_ids: Iterable[str], season: Season) -> BatchResult:
        batch = BatchResult(season_id=season.id)
        for attendant_id in attendant_ids:
            try:
                result = await self.process_attendant(attendant_id, season)
            except Exception as e:
                # one attendant's failure never aborts the batch
                logger.exception("Achievement processing failed for %s", attendant_id)
                result = UnlockResult(
                    attendant_id=attendant_id,
                    season_id=season.id,
                    errors=[UnlockError(message=str(e))],
                )
            batch.per_attendant.append(result)
            batch.total_unlocked += len(result.new_unlocks)
            batch.xp_awarded += result.xp_awarded
            for error in result.config_errors:
                batch.config_errors[error.achievement_id] = error.message
            if result.errors:
                batch.failed[attendant_id] = result.errors
            else:
                batch.succeeded.append(attendant_id)

        logger.info("Season %s batch: %d unlocked, %d attendants ok, %d failed",
                    season.id, batch.total_unlocked, len(batch.succeeded), len(batch.failed))
        return batch

    async def award_season_winner(self, season: Season) -> Optional[UnlockResult]:
        """Unlock the season-winner achievements for the top XP earner of a finished season."""
        if to_utc_naive(season.end_date) >= to_utc_naive(self.clock()):
            logger.info("Season %s has not finished yet, no winner to award", season.id)
            return None

        ranking = await self.source.season_ranking(season.id)
        if not ranking:
            logger.info("Season %s has no XP events, no winner to award", season.id)
            return None
        winner_id, winner_xp = ranking[0]

        result = UnlockResult(attendant_id=winner_id, season_id=season.id)
        configs = await self.source.achievements_by_rule(RuleKind.SEASON_WINNER.value)
        for achievement in configs:
            try:
                record = await self.unlock(
                    winner_id, achievement, season, to_utc_naive(season.end_date),
                    reason=f"Season winner: {season.name}",
                )
            except DuplicateUnlock:
                result.duplicates.append(achievement.id)
                continue
            except PersistenceError as e:
                logger.error("Season winner unlock %s for %s failed: %s", achievement.id, winner_id, e)
                result.errors.append(UnlockError(achievement_id=achievement.id, message=str(e)))
                continue
            logger.info("Season %s winner %s (%s XP) unlocked %s", season.id, winner_id, winner_xp, achievement.id)
            result.new_unlocks.append(UnlockRecordResponse.model_validate(record))
            result.xp_awarded += record.xp_gained
        return result
