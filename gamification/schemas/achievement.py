from enum import Enum
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict, List, Optional

class RuleKind(str, Enum):
    COUNT_THRESHOLD = "countThreshold"
    XP_THRESHOLD = "xpThreshold"
    FIVE_STAR_STREAK = "fiveStarStreak"
    HIGH_AVERAGE = "highAverage"
    FIVE_STAR_COUNT = "fiveStarCount"
    POSITIVE_RATIO = "positiveRatio"
    SEASON_WINNER = "seasonWinner"

# Rule parameter payloads, one per RuleKind
class CountThresholdParams(BaseModel):
    count: int = Field(..., ge=1)

class XpThresholdParams(BaseModel):
    xp: float

class FiveStarStreakParams(BaseModel):
    length: int = Field(..., ge=1)

class HighAverageParams(BaseModel):
    average: float = Field(..., ge=1, le=5)
    min_count: int = Field(1, ge=1)

class FiveStarCountParams(BaseModel):
    count: int = Field(..., ge=1)

class PositiveRatioParams(BaseModel):
    percent: float = Field(..., gt=0, le=100)
    min_count: int = Field(1, ge=1)
    min_rating: int = Field(4, ge=1, le=5)

class SeasonWinnerParams(BaseModel):
    pass

RULE_PARAMS = {
    RuleKind.COUNT_THRESHOLD: CountThresholdParams,
    RuleKind.XP_THRESHOLD: XpThresholdParams,
    RuleKind.FIVE_STAR_STREAK: FiveStarStreakParams,
    RuleKind.HIGH_AVERAGE: HighAverageParams,
    RuleKind.FIVE_STAR_COUNT: FiveStarCountParams,
    RuleKind.POSITIVE_RATIO: PositiveRatioParams,
    RuleKind.SEASON_WINNER: SeasonWinnerParams,
}

class AchievementConfigCreate(BaseModel):
    id: str = Field(..., min_length=1, max_length=100)
    title: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = None
    xp_reward: int = Field(..., ge=0)
    active: bool = True
    rule_kind: RuleKind
    rule_params: Dict = {}

class UnlockRecordResponse(BaseModel):
    id: str
    attendant_id: str
    achievement_id: str
    season_id: str
    unlocked_at: datetime
    xp_gained: int

    model_config = {"from_attributes": True}

class UnlockError(BaseModel):
    achievement_id: Optional[str] = None  # None when the whole attendant run failed
    message: str

class UnlockResult(BaseModel):
    attendant_id: str
    season_id: str
    new_unlocks: List[UnlockRecordResponse] = []
    xp_awarded: int = 0
    duplicates: List[str] = []  # achievement ids already unlocked by a concurrent writer
    errors: List[UnlockError] = []
    config_errors: List[UnlockError] = []  # misconfigured achievements, skipped

    @property
    def ok(self) -> bool:
        return not self.errors

class BatchResult(BaseModel):
    season_id: str
    total_unlocked: int = 0
    xp_awarded: int = 0
    per_attendant: List[UnlockResult] = []
    succeeded: List[str] = []
    failed: Dict[str, List[UnlockError]] = {}
    config_errors: Dict[str, str] = {}  # achievement id -> why its rule was skipped

    @property
    def partial_failure(self) -> bool:
        return bool(self.failed)
