from sqlalchemy import Column, Integer, String, Text, Float, DateTime, ForeignKey
from gamification.database import Base

class Evaluation(Base):
    __tablename__ = "evaluations"

    id = Column(String, primary_key=True, index=True)
    attendant_id = Column(String, ForeignKey("attendants.id"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)     # 1–5
    comment = Column(Text, nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False, index=True)
    base_points = Column(Integer, nullable=False, default=0)
    final_points = Column(Float, nullable=False, default=0.0)
