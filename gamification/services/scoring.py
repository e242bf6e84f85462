from typing import Dict, Mapping, Optional
from gamification.config import settings
from gamification.core.exceptions import InvalidRating

class RatingScoreTable:
    """Maps a 1–5 star rating to the signed base points it is worth."""

    def __init__(self, scores: Optional[Mapping] = None):
        source = scores if scores is not None else settings.RATING_SCORES
        # JSON columns and env values come back with string keys
        self.scores: Dict[int, int] = {int(k): int(v) for k, v in source.items()}

    def score(self, rating: int) -> int:
        if isinstance(rating, bool) or not isinstance(rating, int) or not (1 <= rating <= 5):
            raise InvalidRating(rating)
        if rating not in self.scores:
            raise InvalidRating(rating)
        return self.scores[rating]
