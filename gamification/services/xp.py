import logging
from datetime import datetime
from typing import Iterable, Optional
from gamification.core.clock import to_utc_naive
from gamification.models.evaluation import Evaluation
from gamification.models.season import Season
from gamification.models.xp import XpLedgerEntry, SOURCE_EVALUATION, SOURCE_MANUAL
from gamification.services.records import RecordSink, new_id
from gamification.services.scoring import RatingScoreTable
from gamification.services.seasons import resolve_season

logger = logging.getLogger(__name__)

class XpAccrualCalculator:
    """Turns rating events into ledger entries: base points x (global x season multiplier)."""

    def __init__(self, sink: RecordSink, score_table: RatingScoreTable, global_multiplier: float = 1.0):
        self.sink = sink
        self.score_table = score_table
        self.global_multiplier = global_multiplier

    def multiplier_for(self, season: Optional[Season]) -> float:
        season_multiplier = season.xp_multiplier if season is not None else 1
        return self.global_multiplier * season_multiplier

    def build_entry(
        self,
        attendant_id: str,
        rating: int,
        occurred_at: datetime,
        evaluation_id: str,
        seasons: Iterable[Season],
    ) -> XpLedgerEntry:
        """Compute the ledger entry for one rating without writing it."""
        base = self.score_table.score(rating)  # InvalidRating before anything else
        occurred_at = to_utc_naive(occurred_at)
        season = resolve_season(seasons, occurred_at)
        multiplier = self.multiplier_for(season)
        return XpLedgerEntry(
            id=new_id(),
            attendant_id=attendant_id,
            base_points=base,
            multiplier=multiplier,
            final_points=base * multiplier,
            reason=f"Evaluation {rating} stars",
            source_type=SOURCE_EVALUATION,
            related_id=evaluation_id,
            occurred_at=occurred_at,
            season_id=season.id if season is not None else None,
        )

    async def accrue(
        self,
        attendant_id: str,
        rating: int,
        occurred_at: datetime,
        evaluation_id: str,
        seasons: Iterable[Season],
    ) -> XpLedgerEntry:
        entry = self.build_entry(attendant_id, rating, occurred_at, evaluation_id, seasons)
        if entry.season_id is None:
            logger.info("Evaluation %s for %s falls outside every season, accruing without season multiplier",
                        evaluation_id, attendant_id)
        return await self.sink.append_ledger_entry(entry)

    async def record_evaluation(
        self,
        attendant_id: str,
        rating: int,
        occurred_at: datetime,
        seasons: Iterable[Season],
        comment: Optional[str] = None,
        evaluation_id: Optional[str] = None,
    ):
        """Store the evaluation and its ledger entry in one transaction."""
        evaluation_id = evaluation_id or new_id()
        entry = self.build_entry(attendant_id, rating, occurred_at, evaluation_id, seasons)
        evaluation = Evaluation(
            id=evaluation_id,
            attendant_id=attendant_id,
            rating=rating,
            comment=comment,
            occurred_at=entry.occurred_at,
            base_points=entry.base_points,
            final_points=entry.final_points,
        )
        return await self.sink.insert_evaluation(evaluation, entry)

    async def grant_manual(
        self,
        attendant_id: str,
        points: int,
        reason: str,
        granted_at: datetime,
        seasons: Iterable[Season],
    ) -> XpLedgerEntry:
        granted_at = to_utc_naive(granted_at)
        season = resolve_season(seasons, granted_at)
        entry = XpLedgerEntry(
            id=new_id(),
            attendant_id=attendant_id,
            base_points=points,
            multiplier=1.0,
            final_points=float(points),
            reason=reason,
            source_type=SOURCE_MANUAL,
            related_id=None,
            occurred_at=granted_at,
            season_id=season.id if season is not None else None,
        )
        return await self.sink.append_ledger_entry(entry)
