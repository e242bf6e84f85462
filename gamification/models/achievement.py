from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from gamification.database import Base

class AchievementConfig(Base):
    __tablename__ = "achievement_configs"

    id = Column(String, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    xp_reward = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    rule_kind = Column(String, nullable=False)
    rule_params = Column(JSON, nullable=False, default=dict)

class UnlockRecord(Base):
    __tablename__ = "unlock_records"

    id = Column(String, primary_key=True, index=True)
    attendant_id = Column(String, ForeignKey("attendants.id"), nullable=False, index=True)
    achievement_id = Column(String, ForeignKey("achievement_configs.id"), nullable=False)
    season_id = Column(String, ForeignKey("seasons.id"), nullable=False)
    unlocked_at = Column(DateTime(timezone=True), nullable=False)
    xp_gained = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("attendant_id", "achievement_id", "season_id", name="uq_attendant_achievement_season"),
    )
