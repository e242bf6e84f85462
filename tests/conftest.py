"""Shared fixtures: a throwaway SQLite database per test and row factories."""
from datetime import datetime, timedelta

import pytest
import pytest_asyncio

from gamification.database import init_models, make_engine, make_session_factory
from gamification.models.achievement import AchievementConfig
from gamification.models.attendant import Attendant
from gamification.models.evaluation import Evaluation
from gamification.models.season import Season
from gamification.services.engine import GamificationEngine
from gamification.services.records import new_id
from gamification.services.scoring import RatingScoreTable

NOW = datetime(2025, 6, 15, 12, 0, 0)
SEASON_START = datetime(2025, 6, 1)
SEASON_END = datetime(2025, 6, 30, 23, 59, 59)


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'gamification.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return make_session_factory(db_engine)


@pytest.fixture
def engine(session_factory):
    return GamificationEngine(
        session_factory,
        score_table=RatingScoreTable(),
        global_multiplier=1.0,
        clock=lambda: NOW,
    )


async def add_rows(session_factory, *rows):
    async with session_factory() as db:
        async with db.begin():
            db.add_all(rows)
    return rows


def make_season(season_id="june", start=SEASON_START, end=SEASON_END, multiplier=1.0, active=True):
    return Season(id=season_id, name=season_id.title(), start_date=start, end_date=end,
                  xp_multiplier=multiplier, active=active)


def make_achievement(achievement_id, rule_kind, rule_params, xp_reward=50, active=True):
    return AchievementConfig(id=achievement_id, title=achievement_id.replace("-", " ").title(),
                             xp_reward=xp_reward, active=active,
                             rule_kind=rule_kind, rule_params=rule_params)


def make_evaluations(attendant_id, ratings, start=SEASON_START + timedelta(days=1)):
    """One evaluation per rating, an hour apart, in the given order."""
    return [
        Evaluation(id=new_id(), attendant_id=attendant_id, rating=rating,
                   occurred_at=start + timedelta(hours=i), base_points=0, final_points=0.0)
        for i, rating in enumerate(ratings)
    ]


@pytest_asyncio.fixture
async def season(session_factory):
    season = make_season()
    await add_rows(session_factory, season)
    return season


@pytest_asyncio.fixture
async def attendants(session_factory):
    rows = [Attendant(id=i, name=f"Attendant {i}", status="active") for i in ("A", "B", "C")]
    await add_rows(session_factory, *rows)
    return rows
