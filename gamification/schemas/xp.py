from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

class XpLedgerEntryResponse(BaseModel):
    id: str
    attendant_id: str
    base_points: int
    multiplier: float
    final_points: float
    reason: str
    source_type: str  # "evaluation", "achievement", "manual"
    related_id: Optional[str]
    occurred_at: datetime
    season_id: Optional[str]

    model_config = {"from_attributes": True}

class ManualXpGrant(BaseModel):
    points: int
    reason: str = Field(..., min_length=3, max_length=200)

class LevelInfo(BaseModel):
    level: int
    xp_for_current_level: int
    xp_for_next_level: int
    progress_to_next: float  # 0–100

class AttendantProgress(BaseModel):
    attendant_id: str
    season_id: Optional[str]
    season_xp: float
    lifetime_xp: float
    level: LevelInfo
    unlocked_achievement_ids: List[str]
