from datetime import datetime
from sqlalchemy import Column, String, Float, Boolean, DateTime
from gamification.core.clock import to_utc_naive
from gamification.database import Base

class Season(Base):
    __tablename__ = "seasons"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    xp_multiplier = Column(Float, nullable=False, default=1.0)
    active = Column(Boolean, nullable=False, default=True)

    def contains(self, moment: datetime) -> bool:
        # both ends inclusive
        return to_utc_naive(self.start_date) <= to_utc_naive(moment) <= to_utc_naive(self.end_date)
