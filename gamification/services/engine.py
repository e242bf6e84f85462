"""Operations the host application calls.

Each call resolves its season once, up front, and passes that Season value
down so one batch run never sees two different "current" seasons.
"""
import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple
from sqlalchemy.ext.asyncio import async_sessionmaker
from gamification.config import settings
from gamification.database import AsyncSessionLocal
from gamification.core.clock import utcnow, to_utc_naive
from gamification.core.exceptions import GamificationError, NoActiveSeason, UnknownSeason
from gamification.models.season import Season
from gamification.schemas.achievement import BatchResult, UnlockError, UnlockResult
from gamification.schemas.evaluation import EvaluationResponse
from gamification.schemas.xp import AttendantProgress, ManualXpGrant, XpLedgerEntryResponse
from gamification.services.levels import level_info
from gamification.services.records import RecordSink, RecordSource
from gamification.services.scoring import RatingScoreTable
from gamification.services.seasons import find_overlaps, resolve_season
from gamification.services.unlocks import UnlockOrchestrator
from gamification.services.xp import XpAccrualCalculator

logger = logging.getLogger(__name__)

class GamificationEngine:
    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        score_table: Optional[RatingScoreTable] = None,
        global_multiplier: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        session_factory = session_factory or AsyncSessionLocal
        self.source = RecordSource(session_factory)
        self.sink = RecordSink(session_factory)
        self.clock = clock
        # None means "read from the gamification_config row, else settings"
        self._score_table = score_table
        self._global_multiplier = global_multiplier
        self.orchestrator = UnlockOrchestrator(self.source, self.sink, clock=clock)

    async def calculator(self) -> XpAccrualCalculator:
        score_table, multiplier = self._score_table, self._global_multiplier
        if score_table is None or multiplier is None:
            row = await self.source.gamification_config()
            if score_table is None:
                score_table = RatingScoreTable(row.rating_scores if row else None)
            if multiplier is None:
                multiplier = row.global_xp_multiplier if row else settings.GLOBAL_XP_MULTIPLIER
        return XpAccrualCalculator(self.sink, score_table, global_multiplier=multiplier)

    async def resolve(self, season_id: Optional[str] = None) -> Season:
        """Explicit season by id, or the one active right now."""
        if season_id is not None:
            season = await self.source.get_season(season_id)
            if season is None:
                raise UnknownSeason(season_id)
            return season
        now = to_utc_naive(self.clock())
        season = resolve_season(await self.source.list_seasons(), now)
        if season is None:
            raise NoActiveSeason(now)
        return season

    async def season_overlaps(self) -> List[Tuple[str, str]]:
        return find_overlaps(await self.source.list_seasons())

    async def accrue_evaluation_xp(
        self, attendant_id: str, rating: int, occurred_at: datetime, evaluation_id: str
    ) -> XpLedgerEntryResponse:
        calculator = await self.calculator()
        seasons = await self.source.list_seasons()
        entry = await calculator.accrue(attendant_id, rating, occurred_at, evaluation_id, seasons)
        return XpLedgerEntryResponse.model_validate(entry)

    async def process_attendant_achievements(self, attendant_id: str, season_id: Optional[str] = None) -> UnlockResult:
        season = await self.resolve(season_id)
        return await self.orchestrator.process_attendant(attendant_id, season)

    async def process_batch_achievements(
        self, attendant_ids: Optional[Iterable[str]] = None, season_id: Optional[str] = None
    ) -> BatchResult:
        season = await self.resolve(season_id)
        if attendant_ids is None:
            attendant_ids = await self.source.active_attendant_ids()
        return await self.orchestrator.process_batch(list(attendant_ids), season)

    async def record_evaluation(
        self,
        attendant_id: str,
        rating: int,
        occurred_at: datetime,
        comment: Optional[str] = None,
        evaluation_id: Optional[str] = None,
    ):
        """Store an evaluation with its XP, then re-check achievements for its season.

        Achievement failures are reported in the returned UnlockResult and never
        undo the stored evaluation.
        """
        calculator = await self.calculator()
        seasons = await self.source.list_seasons()
        evaluation, entry = await calculator.record_evaluation(
            attendant_id, rating, occurred_at, seasons, comment=comment, evaluation_id=evaluation_id
        )

        unlocks = None
        if entry.season_id is not None:
            season = next(s for s in seasons if s.id == entry.season_id)
            try:
                unlocks = await self.orchestrator.process_attendant(attendant_id, season)
            except GamificationError as e:
                logger.error("Achievement check after evaluation %s failed: %s", evaluation.id, e)
                unlocks = UnlockResult(
                    attendant_id=attendant_id, season_id=season.id, errors=[UnlockError(message=str(e))]
                )
        return (
            EvaluationResponse.model_validate(evaluation),
            XpLedgerEntryResponse.model_validate(entry),
            unlocks,
        )

    async def grant_manual_xp(
        self, attendant_id: str, points: int, reason: str, granted_at: Optional[datetime] = None
    ) -> XpLedgerEntryResponse:
        grant = ManualXpGrant(points=points, reason=reason)
        calculator = await self.calculator()
        seasons = await self.source.list_seasons()
        entry = await calculator.grant_manual(
            attendant_id, grant.points, grant.reason, granted_at or self.clock(), seasons
        )
        return XpLedgerEntryResponse.model_validate(entry)

    async def award_season_winner(self, season_id: str) -> Optional[UnlockResult]:
        season = await self.resolve(season_id)
        return await self.orchestrator.award_season_winner(season)

    async def attendant_progress(self, attendant_id: str, season_id: Optional[str] = None) -> AttendantProgress:
        lifetime = await self.source.lifetime_xp(attendant_id)
        try:
            season = await self.resolve(season_id)
        except NoActiveSeason:
            season = None

        season_xp = 0.0
        unlocked: List[str] = []
        if season is not None:
            ledger = await self.source.ledger_between(attendant_id, season.start_date, season.end_date)
            season_xp = sum(e.final_points for e in ledger)
            unlocked = [u.achievement_id for u in await self.source.unlocks_for(attendant_id, season.id)]

        return AttendantProgress(
            attendant_id=attendant_id,
            season_id=season.id if season is not None else None,
            season_xp=season_xp,
            lifetime_xp=lifetime,
            level=level_info(lifetime),
            unlocked_achievement_ids=unlocked,
        )
