# gamification/seed.py
import logging
from typing import Dict, List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker
from gamification.models.achievement import AchievementConfig
from gamification.schemas.achievement import AchievementConfigCreate, RULE_PARAMS, RuleKind

logger = logging.getLogger(__name__)

DEFAULT_ACHIEVEMENTS: List[Dict] = [
    {"id": "first-impression", "title": "First Impression", "description": "Receive your first evaluation",
     "xp_reward": 10, "rule_kind": RuleKind.COUNT_THRESHOLD, "rule_params": {"count": 1}},
    {"id": "gaining-rhythm", "title": "Gaining Rhythm", "description": "Receive 10 evaluations",
     "xp_reward": 50, "rule_kind": RuleKind.COUNT_THRESHOLD, "rule_params": {"count": 10}},
    {"id": "perfect-trio", "title": "Perfect Trio", "description": "Receive 3 consecutive 5-star evaluations",
     "xp_reward": 100, "rule_kind": RuleKind.FIVE_STAR_STREAK, "rule_params": {"length": 3}},
    {"id": "veteran", "title": "Veteran", "description": "Receive 50 evaluations",
     "xp_reward": 150, "rule_kind": RuleKind.COUNT_THRESHOLD, "rule_params": {"count": 50}},
    {"id": "centurion", "title": "Centurion", "description": "Receive 100 evaluations",
     "xp_reward": 300, "rule_kind": RuleKind.COUNT_THRESHOLD, "rule_params": {"count": 100}},
    {"id": "satisfaction-guaranteed", "title": "Satisfaction Guaranteed",
     "description": "Reach 90% positive (4-5 star) evaluations with at least 20 evaluations",
     "xp_reward": 500, "rule_kind": RuleKind.POSITIVE_RATIO,
     "rule_params": {"percent": 90, "min_count": 20, "min_rating": 4}},
    {"id": "consistent-excellence", "title": "Consistent Excellence",
     "description": "Keep an average of 4.5 or more with 50+ evaluations",
     "xp_reward": 750, "rule_kind": RuleKind.HIGH_AVERAGE, "rule_params": {"average": 4.5, "min_count": 50}},
    {"id": "unstoppable", "title": "Unstoppable", "description": "Receive 250 evaluations",
     "xp_reward": 1000, "rule_kind": RuleKind.COUNT_THRESHOLD, "rule_params": {"count": 250}},
    {"id": "quality-master", "title": "Quality Master", "description": "Receive 50 5-star evaluations",
     "xp_reward": 1200, "rule_kind": RuleKind.FIVE_STAR_COUNT, "rule_params": {"count": 50}},
    {"id": "pursuit-of-perfection", "title": "Pursuit of Perfection",
     "description": "Keep a 5.0 average with at least 25 evaluations",
     "xp_reward": 1500, "rule_kind": RuleKind.HIGH_AVERAGE, "rule_params": {"average": 5.0, "min_count": 25}},
    {"id": "legend", "title": "Legend", "description": "Receive 500 evaluations",
     "xp_reward": 2000, "rule_kind": RuleKind.COUNT_THRESHOLD, "rule_params": {"count": 500}},
    {"id": "season-winner", "title": "Season Winner", "description": "Finish a season with the most XP",
     "xp_reward": 1000, "rule_kind": RuleKind.SEASON_WINNER, "rule_params": {}},
]

async def seed_default_achievements(session_factory: async_sessionmaker) -> int:
    """Insert the default catalogue. Existing rows (admin-edited or not) are left untouched."""
    created = 0
    async with session_factory() as db:
        async with db.begin():
            result = await db.execute(select(AchievementConfig.id))
            existing = set(result.scalars().all())
            for raw in DEFAULT_ACHIEVEMENTS:
                config = AchievementConfigCreate(**raw)
                RULE_PARAMS[config.rule_kind].model_validate(config.rule_params)
                if config.id in existing:
                    continue
                db.add(AchievementConfig(
                    id=config.id,
                    title=config.title,
                    description=config.description,
                    xp_reward=config.xp_reward,
                    active=config.active,
                    rule_kind=config.rule_kind.value,
                    rule_params=config.rule_params,
                ))
                created += 1
    logger.info("Seeded %d default achievements", created)
    return created
