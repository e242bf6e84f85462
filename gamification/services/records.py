import logging
from datetime import datetime
from typing import List, Optional, Set, Tuple
from uuid import uuid4
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from gamification.core.exceptions import DuplicateUnlock, PersistenceError
from gamification.models.achievement import AchievementConfig, UnlockRecord
from gamification.models.attendant import Attendant
from gamification.models.evaluation import Evaluation
from gamification.models.gamification_config import GamificationConfig
from gamification.models.season import Season
from gamification.models.xp import XpLedgerEntry
from gamification.schemas.evaluation import EvaluationResponse, SeasonHistory
from gamification.schemas.xp import XpLedgerEntryResponse

logger = logging.getLogger(__name__)

def new_id() -> str:
    return uuid4().hex


class RecordSource:
    """Read side: simple filtered queries over the gamification tables."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def _all(self, stmt) -> list:
        try:
            async with self.session_factory() as db:
                result = await db.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Read failed: {e}") from e

    async def _one_or_none(self, stmt):
        try:
            async with self.session_factory() as db:
                result = await db.execute(stmt)
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Read failed: {e}") from e

    async def get_season(self, season_id: str) -> Optional[Season]:
        return await self._one_or_none(select(Season).where(Season.id == season_id))

    async def list_seasons(self, active_only: bool = True) -> List[Season]:
        stmt = select(Season).order_by(Season.start_date, Season.id)
        if active_only:
            stmt = stmt.where(Season.active.is_(True))
        return await self._all(stmt)

    async def active_achievements(self) -> List[AchievementConfig]:
        return await self._all(
            select(AchievementConfig)
            .where(AchievementConfig.active.is_(True))
            .order_by(AchievementConfig.xp_reward, AchievementConfig.id)
        )

    async def achievements_by_rule(self, rule_kind: str) -> List[AchievementConfig]:
        return await self._all(
            select(AchievementConfig)
            .where(AchievementConfig.active.is_(True))
            .where(AchievementConfig.rule_kind == rule_kind)
            .order_by(AchievementConfig.id)
        )

    async def unlocked_achievement_ids(self, attendant_id: str, season_id: str) -> Set[str]:
        rows = await self._all(
            select(UnlockRecord.achievement_id)
            .where(UnlockRecord.attendant_id == attendant_id)
            .where(UnlockRecord.season_id == season_id)
        )
        return set(rows)

    async def unlocks_for(self, attendant_id: str, season_id: Optional[str] = None) -> List[UnlockRecord]:
        stmt = select(UnlockRecord).where(UnlockRecord.attendant_id == attendant_id)
        if season_id is not None:
            stmt = stmt.where(UnlockRecord.season_id == season_id)
        return await self._all(stmt.order_by(UnlockRecord.unlocked_at, UnlockRecord.id))

    async def evaluations_between(self, attendant_id: str, start: datetime, end: datetime) -> List[Evaluation]:
        return await self._all(
            select(Evaluation)
            .where(Evaluation.attendant_id == attendant_id)
            .where(Evaluation.occurred_at >= start)
            .where(Evaluation.occurred_at <= end)
            .order_by(Evaluation.occurred_at, Evaluation.id)
        )

    async def ledger_between(self, attendant_id: str, start: datetime, end: datetime) -> List[XpLedgerEntry]:
        return await self._all(
            select(XpLedgerEntry)
            .where(XpLedgerEntry.attendant_id == attendant_id)
            .where(XpLedgerEntry.occurred_at >= start)
            .where(XpLedgerEntry.occurred_at <= end)
            .order_by(XpLedgerEntry.occurred_at, XpLedgerEntry.id)
        )

    async def season_history(self, attendant_id: str, season: Season) -> SeasonHistory:
        evaluations = await self.evaluations_between(attendant_id, season.start_date, season.end_date)
        ledger = await self.ledger_between(attendant_id, season.start_date, season.end_date)
        return SeasonHistory(
            attendant_id=attendant_id,
            evaluations=[EvaluationResponse.model_validate(e) for e in evaluations],
            ledger=[XpLedgerEntryResponse.model_validate(e) for e in ledger],
        )

    async def lifetime_xp(self, attendant_id: str) -> float:
        total = await self._one_or_none(
            select(func.sum(XpLedgerEntry.final_points))
            .where(XpLedgerEntry.attendant_id == attendant_id)
        )
        return float(total) if total is not None else 0.0

    async def active_attendant_ids(self) -> List[str]:
        return await self._all(
            select(Attendant.id).where(Attendant.status == "active").order_by(Attendant.id)
        )

    async def season_ranking(self, season_id: str) -> List[Tuple[str, float]]:
        """(attendant_id, season XP) pairs, highest first; ties broken by attendant id."""
        total = func.sum(XpLedgerEntry.final_points)
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(XpLedgerEntry.attendant_id, total)
                    .where(XpLedgerEntry.season_id == season_id)
                    .group_by(XpLedgerEntry.attendant_id)
                    .order_by(total.desc(), XpLedgerEntry.attendant_id)
                )
                return [(attendant_id, float(points or 0)) for attendant_id, points in result.all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Read failed: {e}") from e

    async def gamification_config(self) -> Optional[GamificationConfig]:
        return await self._one_or_none(select(GamificationConfig).where(GamificationConfig.id == "main"))

    async def ledger_entries_for(self, related_id: str) -> List[XpLedgerEntry]:
        return await self._all(
            select(XpLedgerEntry).where(XpLedgerEntry.related_id == related_id)
        )


class RecordSink:
    """Write side. Every method is one all-or-nothing transaction."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def append_ledger_entry(self, entry: XpLedgerEntry) -> XpLedgerEntry:
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    db.add(entry)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not append ledger entry for {entry.attendant_id}: {e}") from e
        return entry

    async def insert_evaluation(self, evaluation: Evaluation, entry: XpLedgerEntry) -> Tuple[Evaluation, XpLedgerEntry]:
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    db.add(evaluation)
                    await db.flush()
                    db.add(entry)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not store evaluation {evaluation.id}: {e}") from e
        return evaluation, entry

    async def insert_unlock(self, unlock: UnlockRecord, entry: XpLedgerEntry) -> UnlockRecord:
        """Insert-if-absent on (attendant, achievement, season) together with its ledger entry.

        Raises DuplicateUnlock when the tuple is already present.
        """
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    db.add(unlock)
                    await db.flush()
                    db.add(entry)
        except IntegrityError as e:
            # Confirm the conflict is the unlock tuple itself, not some other constraint
            if await self._unlock_exists(unlock.attendant_id, unlock.achievement_id, unlock.season_id):
                raise DuplicateUnlock(unlock.attendant_id, unlock.achievement_id, unlock.season_id) from e
            raise PersistenceError(f"Could not unlock {unlock.achievement_id} for {unlock.attendant_id}: {e}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not unlock {unlock.achievement_id} for {unlock.attendant_id}: {e}") from e
        return unlock

    async def _unlock_exists(self, attendant_id: str, achievement_id: str, season_id: str) -> bool:
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(func.count(UnlockRecord.id))
                    .where(UnlockRecord.attendant_id == attendant_id)
                    .where(UnlockRecord.achievement_id == achievement_id)
                    .where(UnlockRecord.season_id == season_id)
                )
                return result.scalar_one() > 0
        except SQLAlchemyError:
            logger.exception("Could not verify unlock %s/%s/%s after integrity error",
                             attendant_id, achievement_id, season_id)
            return False
