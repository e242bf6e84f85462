from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from gamification.database import Base

SOURCE_EVALUATION = "evaluation"
SOURCE_ACHIEVEMENT = "achievement"
SOURCE_MANUAL = "manual"

class XpLedgerEntry(Base):
    """Append-only. Rows are never updated by the engine."""

    __tablename__ = "xp_ledger"

    id = Column(String, primary_key=True, index=True)
    attendant_id = Column(String, ForeignKey("attendants.id"), nullable=False, index=True)
    base_points = Column(Integer, nullable=False)
    multiplier = Column(Float, nullable=False, default=1.0)
    final_points = Column(Float, nullable=False)
    reason = Column(String, nullable=False)
    source_type = Column(String, nullable=False)  # evaluation, achievement, manual
    related_id = Column(String, nullable=True)    # evaluation id or unlock id
    occurred_at = Column(DateTime(timezone=True), nullable=False, index=True)
    season_id = Column(String, ForeignKey("seasons.id"), nullable=True)
