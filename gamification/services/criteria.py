"""Achievement eligibility rules.

Every rule is a pure function of the rule parameters and one attendant's
season-scoped history. Unlock state is never consulted here: whether an
achievement still needs evaluating is the orchestrator's decision.
"""
from typing import Callable, Dict, List, Tuple
from pydantic import BaseModel, ValidationError
from gamification.core.clock import to_utc_naive
from gamification.core.exceptions import InvalidAchievementRule
from gamification.models.xp import SOURCE_ACHIEVEMENT
from gamification.schemas.achievement import (
    RULE_PARAMS, RuleKind,
    CountThresholdParams, XpThresholdParams, FiveStarStreakParams, HighAverageParams,
    FiveStarCountParams, PositiveRatioParams, SeasonWinnerParams,
)
from gamification.schemas.evaluation import EvaluationResponse, SeasonHistory

def chronological(evaluations: List[EvaluationResponse]) -> List[EvaluationResponse]:
    return sorted(evaluations, key=lambda e: to_utc_naive(e.occurred_at))

def max_five_star_streak(evaluations: List[EvaluationResponse]) -> int:
    """Longest run of consecutive 5-star ratings, in occurred_at order."""
    current = best = 0
    for ev in chronological(evaluations):
        if ev.rating == 5:
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best

def earned_xp(history: SeasonHistory) -> float:
    # Achievement XP never counts toward further XP thresholds
    return sum(e.final_points for e in history.ledger if e.source_type != SOURCE_ACHIEVEMENT)

def average_rating(evaluations: List[EvaluationResponse]) -> float:
    if not evaluations:
        return 0.0
    return sum(e.rating for e in evaluations) / len(evaluations)


def _count_threshold(params: CountThresholdParams, history: SeasonHistory) -> bool:
    return len(history.evaluations) >= params.count

def _xp_threshold(params: XpThresholdParams, history: SeasonHistory) -> bool:
    return earned_xp(history) >= params.xp

def _five_star_streak(params: FiveStarStreakParams, history: SeasonHistory) -> bool:
    return max_five_star_streak(history.evaluations) >= params.length

def _high_average(params: HighAverageParams, history: SeasonHistory) -> bool:
    evaluations = history.evaluations
    if len(evaluations) < params.min_count:
        return False
    return average_rating(evaluations) >= params.average

def _five_star_count(params: FiveStarCountParams, history: SeasonHistory) -> bool:
    return sum(1 for e in history.evaluations if e.rating == 5) >= params.count

def _positive_ratio(params: PositiveRatioParams, history: SeasonHistory) -> bool:
    evaluations = history.evaluations
    if len(evaluations) < params.min_count:
        return False
    positive = sum(1 for e in evaluations if e.rating >= params.min_rating)
    return (positive / len(evaluations)) * 100 >= params.percent

def _season_winner(params: SeasonWinnerParams, history: SeasonHistory) -> bool:
    # Awarded by ranking the whole season, see UnlockOrchestrator.award_season_winner
    return False


RULES: Dict[RuleKind, Callable[[BaseModel, SeasonHistory], bool]] = {
    RuleKind.COUNT_THRESHOLD: _count_threshold,
    RuleKind.XP_THRESHOLD: _xp_threshold,
    RuleKind.FIVE_STAR_STREAK: _five_star_streak,
    RuleKind.HIGH_AVERAGE: _high_average,
    RuleKind.FIVE_STAR_COUNT: _five_star_count,
    RuleKind.POSITIVE_RATIO: _positive_ratio,
    RuleKind.SEASON_WINNER: _season_winner,
}


def parse_rule(achievement) -> Tuple[RuleKind, BaseModel]:
    """Validate an achievement config's rule_kind/rule_params pair."""
    try:
        kind = RuleKind(achievement.rule_kind)
    except ValueError:
        raise InvalidAchievementRule(achievement.id, f"unknown rule kind {achievement.rule_kind!r}")
    try:
        params = RULE_PARAMS[kind].model_validate(achievement.rule_params or {})
    except ValidationError as e:
        raise InvalidAchievementRule(achievement.id, str(e))
    return kind, params

def is_eligible(achievement, history: SeasonHistory) -> bool:
    kind, params = parse_rule(achievement)
    return RULES[kind](params, history)
