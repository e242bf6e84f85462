from datetime import datetime
from itertools import combinations
from typing import Iterable, List, Optional, Tuple
from gamification.core.clock import to_utc_naive
from gamification.core.exceptions import OverlappingSeasons
from gamification.models.season import Season

def resolve_season(seasons: Iterable[Season], moment: datetime) -> Optional[Season]:
    """Return the single active season whose window contains `moment`, or None.

    Overlapping active windows are a configuration error, never resolved by order.
    """
    matches = [s for s in seasons if s.active and s.contains(moment)]
    if len(matches) > 1:
        raise OverlappingSeasons([s.id for s in matches], at=moment)
    return matches[0] if matches else None

def find_overlaps(seasons: Iterable[Season]) -> List[Tuple[str, str]]:
    """Every pair of active seasons whose windows intersect, sorted by id."""
    active = sorted((s for s in seasons if s.active), key=lambda s: s.id)
    overlaps = []
    for a, b in combinations(active, 2):
        if to_utc_naive(a.start_date) <= to_utc_naive(b.end_date) and to_utc_naive(b.start_date) <= to_utc_naive(a.end_date):
            overlaps.append((a.id, b.id))
    return overlaps
