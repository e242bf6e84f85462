# gamification/database.py
import logging
from typing import AsyncGenerator
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from gamification.config import settings

logger = logging.getLogger(__name__)


def normalize_database_url(db_url: str) -> str:
    # Ensure asyncpg is used
    if db_url and db_url.startswith("postgresql://") and "+asyncpg" not in db_url:
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return db_url


def make_engine(db_url: str, echo: bool = False) -> AsyncEngine:
    return create_async_engine(normalize_database_url(db_url), echo=echo)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=bind, expire_on_commit=False, class_=AsyncSession)


engine = make_engine(settings.effective_database_url, echo=settings.SQL_ECHO)

AsyncSessionLocal = make_session_factory(engine)
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create tables. Duplicate-object errors from previous partial runs are ignored."""
    # register every mapped class on Base.metadata
    from gamification.models import achievement, attendant, evaluation, gamification_config, season, xp  # noqa: F401

    async with bind.begin() as conn:
        try:
            await conn.run_sync(Base.metadata.create_all)
        except sa_exc.IntegrityError as e:
            msg = str(getattr(e, "orig", e))
            if "duplicate key value violates unique constraint" in msg or "already exists" in msg:
                logger.warning("Ignored duplicate DDL error during create_all: %s", msg)
            else:
                raise
