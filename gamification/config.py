# gamification/config.py
from pydantic_settings import BaseSettings
from typing import Dict, Optional
from pydantic import Field

DEFAULT_RATING_SCORES = {1: -5, 2: -2, 3: 1, 4: 3, 5: 5}

class Settings(BaseSettings):
    DATABASE_URL: Optional[str] = None
    SQLALCHEMY_DATABASE_URL: Optional[str] = None
    SQL_ECHO: bool = Field(False)

    # Admin-editable defaults, overridden by the gamification_config row when present.
    # RATING_SCORES is read from the environment as JSON, e.g. '{"1": -5, "5": 5}'
    GLOBAL_XP_MULTIPLIER: float = Field(1.0)
    RATING_SCORES: Dict[int, int] = Field(default_factory=lambda: dict(DEFAULT_RATING_SCORES))

    LEVEL_XP_STEP: int = Field(100)

    model_config = {
        "env_file": ".env",
        "extra": "allow",
    }

    @property
    def effective_database_url(self) -> str:
        return self.SQLALCHEMY_DATABASE_URL or self.DATABASE_URL or "sqlite+aiosqlite:///./gamification.db"

settings = Settings()
