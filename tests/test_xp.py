"""Tests for XP accrual, evaluation recording and manual grants."""

from datetime import datetime

import pytest
from sqlalchemy import func, select

from conftest import NOW, add_rows, make_achievement, make_season
from gamification import database
from gamification.core.exceptions import InvalidRating, PersistenceError
from gamification.models.gamification_config import GamificationConfig
from gamification.models.xp import XpLedgerEntry
from gamification.services.engine import GamificationEngine
from gamification.services.scoring import RatingScoreTable


async def _ledger_count(session_factory):
    async with session_factory() as db:
        result = await db.execute(select(func.count(XpLedgerEntry.id)))
        return result.scalar_one()


@pytest.mark.asyncio
async def test_xp_composition(session_factory, attendants):
    await add_rows(session_factory, make_season("boost", multiplier=1.5))
    engine = GamificationEngine(session_factory, score_table=RatingScoreTable(), global_multiplier=2.0,
                                clock=lambda: NOW)

    entry = await engine.accrue_evaluation_xp("A", 5, datetime(2025, 6, 10, 10, 0), "ev-1")

    assert entry.base_points == 5
    assert entry.multiplier == pytest.approx(3.0)
    assert entry.final_points == pytest.approx(15)
    assert entry.season_id == "boost"
    assert entry.source_type == "evaluation"
    assert entry.related_id == "ev-1"


@pytest.mark.asyncio
async def test_outside_any_season_uses_global_multiplier_only(session_factory, attendants, season):
    engine = GamificationEngine(session_factory, score_table=RatingScoreTable(), global_multiplier=2.0,
                                clock=lambda: NOW)

    entry = await engine.accrue_evaluation_xp("A", 4, datetime(2025, 9, 1), "ev-2")

    assert entry.season_id is None
    assert entry.multiplier == pytest.approx(2.0)
    assert entry.final_points == pytest.approx(6)


@pytest.mark.asyncio
async def test_invalid_rating_writes_nothing(engine, session_factory, attendants, season):
    with pytest.raises(InvalidRating):
        await engine.accrue_evaluation_xp("A", 6, datetime(2025, 6, 10), "ev-3")
    assert await _ledger_count(session_factory) == 0


@pytest.mark.asyncio
async def test_negative_ratings_accrue_negative_xp(engine, attendants, season):
    entry = await engine.accrue_evaluation_xp("A", 1, datetime(2025, 6, 10), "ev-4")
    assert entry.final_points == pytest.approx(-5)


@pytest.mark.asyncio
async def test_config_row_overrides_settings(session_factory, attendants, season):
    await add_rows(session_factory, GamificationConfig(
        id="main", rating_scores={"1": 0, "2": 0, "3": 0, "4": 0, "5": 20}, global_xp_multiplier=3.0))
    engine = GamificationEngine(session_factory, clock=lambda: NOW)

    entry = await engine.accrue_evaluation_xp("A", 5, datetime(2025, 6, 10), "ev-5")

    assert entry.base_points == 20
    assert entry.final_points == pytest.approx(60)


@pytest.mark.asyncio
async def test_persistence_failure_surfaces(engine, attendants, season, monkeypatch):
    async def broken_append(*args, **kwargs):
        raise PersistenceError("disk full")

    monkeypatch.setattr(engine.sink, "append_ledger_entry", broken_append)
    with pytest.raises(PersistenceError):
        await engine.accrue_evaluation_xp("A", 5, datetime(2025, 6, 10), "ev-6")


@pytest.mark.asyncio
async def test_record_evaluation_stores_points_and_unlocks(engine, session_factory, attendants, season):
    await add_rows(session_factory, make_achievement("first", "countThreshold", {"count": 1}, xp_reward=10))

    evaluation, entry, unlocks = await engine.record_evaluation("A", 5, datetime(2025, 6, 10), comment="great")

    assert evaluation.base_points == 5
    assert evaluation.final_points == pytest.approx(5)
    assert entry.related_id == evaluation.id
    assert [u.achievement_id for u in unlocks.new_unlocks] == ["first"]
    assert unlocks.xp_awarded == 10
    # evaluation entry + achievement entry
    assert await _ledger_count(session_factory) == 2


@pytest.mark.asyncio
async def test_record_evaluation_outside_season_skips_achievements(engine, session_factory, attendants, season):
    await add_rows(session_factory, make_achievement("first", "countThreshold", {"count": 1}))

    evaluation, entry, unlocks = await engine.record_evaluation("A", 5, datetime(2025, 12, 1))

    assert entry.season_id is None
    assert unlocks is None


@pytest.mark.asyncio
async def test_manual_xp_counts_toward_xp_threshold(engine, session_factory, attendants, season):
    await add_rows(session_factory, make_achievement("xp-100", "xpThreshold", {"xp": 100}, xp_reward=25))

    grant = await engine.grant_manual_xp("A", 100, "Covered a double shift")
    assert grant.source_type == "manual"
    assert grant.multiplier == 1.0
    assert grant.season_id == "june"

    result = await engine.process_attendant_achievements("A")
    assert [u.achievement_id for u in result.new_unlocks] == ["xp-100"]


@pytest.mark.asyncio
async def test_attendant_progress(engine, session_factory, attendants, season):
    await engine.grant_manual_xp("A", 150, "Onboarding bonus")
    await engine.grant_manual_xp("A", 100, "Last year's bonus", granted_at=datetime(2024, 1, 1))

    progress = await engine.attendant_progress("A")

    assert progress.season_id == "june"
    assert progress.season_xp == pytest.approx(150)
    assert progress.lifetime_xp == pytest.approx(250)
    assert progress.level.level == 2


@pytest.mark.asyncio
async def test_get_db_yields_session(monkeypatch, session_factory):
    monkeypatch.setattr(database, "AsyncSessionLocal", session_factory)
    sessions = database.get_db()
    db = await sessions.__anext__()
    result = await db.execute(select(func.count(XpLedgerEntry.id)))
    assert result.scalar_one() == 0
    await sessions.aclose()
