from sqlalchemy import Column, String, Float, JSON, DateTime, func
from gamification.database import Base

class GamificationConfig(Base):
    """Singleton row ("main") holding the admin-editable scoring setup."""

    __tablename__ = "gamification_config"

    id = Column(String, primary_key=True, default="main")
    rating_scores = Column(JSON, nullable=False)  # {"1": -5, ..., "5": 5}
    global_xp_multiplier = Column(Float, nullable=False, default=1.0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
