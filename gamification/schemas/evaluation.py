from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional

from gamification.schemas.xp import XpLedgerEntryResponse

class EvaluationResponse(BaseModel):
    id: str
    attendant_id: str
    rating: int
    comment: Optional[str] = None
    occurred_at: datetime
    base_points: int = 0
    final_points: float = 0.0

    model_config = {"from_attributes": True}

class SeasonHistory(BaseModel):
    """Everything the criteria evaluator looks at for one attendant in one window."""
    attendant_id: str
    evaluations: List[EvaluationResponse] = []
    ledger: List[XpLedgerEntryResponse] = []
