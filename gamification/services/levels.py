import math
from gamification.config import settings
from gamification.schemas.xp import LevelInfo

def level_from_xp(total_xp: float, step: int = None) -> int:
    """level = floor(sqrt(xp / step)) + 1; negative totals stay at level 1."""
    step = step or settings.LEVEL_XP_STEP
    if total_xp < 0:
        return 1
    return math.floor(math.sqrt(total_xp / step)) + 1

def xp_required_for_level(level: int, step: int = None) -> int:
    step = step or settings.LEVEL_XP_STEP
    if level <= 1:
        return 0
    return (level - 1) ** 2 * step

def level_info(total_xp: float, step: int = None) -> LevelInfo:
    level = level_from_xp(total_xp, step)
    current = xp_required_for_level(level, step)
    nxt = xp_required_for_level(level + 1, step)
    needed = nxt - current
    progress = ((total_xp - current) / needed) * 100 if needed > 0 else 100.0
    return LevelInfo(
        level=level,
        xp_for_current_level=current,
        xp_for_next_level=nxt,
        progress_to_next=min(100.0, max(0.0, progress)),
    )
