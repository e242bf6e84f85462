from sqlalchemy import Column, String, DateTime, func
from gamification.database import Base

class Attendant(Base):
    __tablename__ = "attendants"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    status = Column(String, nullable=False, default="active")  # "active", "inactive", ...
    created_at = Column(DateTime(timezone=True), server_default=func.now())
