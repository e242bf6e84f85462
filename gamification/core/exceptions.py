# gamification/core/exceptions.py
from datetime import datetime
from typing import Iterable, Optional


class GamificationError(Exception):
    """Base class for every error raised by the engine."""


class InvalidRating(GamificationError):
    def __init__(self, rating):
        self.rating = rating
        super().__init__(f"Rating {rating!r} is outside the 1-5 range")


class UnknownSeason(GamificationError):
    def __init__(self, season_id: str):
        self.season_id = season_id
        super().__init__(f"Season {season_id!r} not found")


class NoActiveSeason(GamificationError):
    def __init__(self, at: datetime):
        self.at = at
        super().__init__(f"No active season contains {at.isoformat()}")


class OverlappingSeasons(GamificationError):
    """Configuration error: more than one active season covers the same moment."""

    def __init__(self, season_ids: Iterable[str], at: Optional[datetime] = None):
        self.season_ids = sorted(season_ids)
        self.at = at
        where = f" at {at.isoformat()}" if at else ""
        super().__init__(f"Active seasons overlap{where}: {', '.join(self.season_ids)}")


class InvalidAchievementRule(GamificationError):
    def __init__(self, achievement_id: str, detail: str):
        self.achievement_id = achievement_id
        self.detail = detail
        super().__init__(f"Achievement {achievement_id!r} has an invalid rule: {detail}")


class DuplicateUnlock(GamificationError):
    """The (attendant, achievement, season) unlock already exists."""

    def __init__(self, attendant_id: str, achievement_id: str, season_id: str):
        self.attendant_id = attendant_id
        self.achievement_id = achievement_id
        self.season_id = season_id
        super().__init__(
            f"Achievement {achievement_id!r} already unlocked for attendant "
            f"{attendant_id!r} in season {season_id!r}"
        )


class PersistenceError(GamificationError):
    """Storage failure other than a duplicate unlock. Not retried internally."""
