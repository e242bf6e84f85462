"""Tests for achievement eligibility rules."""

from datetime import datetime, timedelta

import pytest

from conftest import make_achievement
from gamification.core.exceptions import InvalidAchievementRule
from gamification.schemas.evaluation import EvaluationResponse, SeasonHistory
from gamification.schemas.xp import XpLedgerEntryResponse
from gamification.services.criteria import is_eligible, max_five_star_streak

START = datetime(2025, 6, 2, 9, 0)


def _history(ratings=(), ledger=(), shuffle=False) -> SeasonHistory:
    evaluations = [
        EvaluationResponse(id=f"ev{i}", attendant_id="A", rating=r, occurred_at=START + timedelta(hours=i))
        for i, r in enumerate(ratings)
    ]
    if shuffle:
        evaluations = list(reversed(evaluations))
    entries = [
        XpLedgerEntryResponse(
            id=f"xp{i}", attendant_id="A", base_points=int(points), multiplier=1.0, final_points=points,
            reason="test", source_type=source, related_id=None,
            occurred_at=START + timedelta(hours=i), season_id="june",
        )
        for i, (points, source) in enumerate(ledger)
    ]
    return SeasonHistory(attendant_id="A", evaluations=evaluations, ledger=entries)


class TestFiveStarStreak:
    def test_max_run_not_total_and_not_trailing(self):
        ratings = [5, 5, 4, 5, 5, 5, 3, 5, 5]
        assert max_five_star_streak(_history(ratings).evaluations) == 3

    def test_orders_by_occurred_at(self):
        # stored newest-first, still scanned chronologically
        assert max_five_star_streak(_history([5, 5, 4, 5, 5, 5, 3, 5, 5], shuffle=True).evaluations) == 3

    def test_historical_run_qualifies_permanently(self):
        rule = make_achievement("trio", "fiveStarStreak", {"length": 3})
        assert is_eligible(rule, _history([5, 5, 5, 1, 2, 1]))
        assert not is_eligible(make_achievement("four", "fiveStarStreak", {"length": 4}),
                               _history([5, 5, 5, 1, 2, 1]))

    def test_empty_history(self):
        assert max_five_star_streak([]) == 0


class TestCountThreshold:
    @pytest.mark.parametrize("n", [1, 3, 10])
    def test_boundary(self, n):
        rule = make_achievement("count", "countThreshold", {"count": n})
        assert not is_eligible(rule, _history([3] * (n - 1)))
        assert is_eligible(rule, _history([3] * n))


class TestXpThreshold:
    def test_achievement_xp_excluded(self):
        rule = make_achievement("xp", "xpThreshold", {"xp": 100})
        history = _history(ledger=[(500.0, "achievement")])
        assert not is_eligible(rule, history)

    def test_evaluation_and_manual_xp_count(self):
        rule = make_achievement("xp", "xpThreshold", {"xp": 100})
        history = _history(ledger=[(60.0, "evaluation"), (40.0, "manual"), (1000.0, "achievement")])
        assert is_eligible(rule, history)

    def test_negative_points_reduce_total(self):
        rule = make_achievement("xp", "xpThreshold", {"xp": 10})
        assert not is_eligible(rule, _history(ledger=[(12.0, "evaluation"), (-5.0, "evaluation")]))


class TestHighAverage:
    def test_requires_min_count(self):
        rule = make_achievement("avg", "highAverage", {"average": 4.5, "min_count": 5})
        assert not is_eligible(rule, _history([5, 5, 5, 5]))
        assert is_eligible(rule, _history([5, 5, 5, 5, 4]))

    def test_average_boundary_inclusive(self):
        rule = make_achievement("avg", "highAverage", {"average": 4.5, "min_count": 2})
        assert is_eligible(rule, _history([4, 5]))
        assert not is_eligible(rule, _history([4, 4, 5]))

    def test_perfect_average(self):
        rule = make_achievement("perfect", "highAverage", {"average": 5.0, "min_count": 3})
        assert is_eligible(rule, _history([5, 5, 5]))
        assert not is_eligible(rule, _history([5, 5, 5, 4]))


class TestSupplementaryRules:
    def test_five_star_count_ignores_order(self):
        rule = make_achievement("fives", "fiveStarCount", {"count": 3})
        assert is_eligible(rule, _history([5, 1, 5, 2, 5]))
        assert not is_eligible(rule, _history([5, 1, 5]))

    def test_positive_ratio(self):
        rule = make_achievement("happy", "positiveRatio", {"percent": 90, "min_count": 10})
        assert is_eligible(rule, _history([5] * 9 + [1]))
        assert not is_eligible(rule, _history([5] * 8 + [3, 1]))
        assert not is_eligible(rule, _history([5] * 9))

    def test_season_winner_never_eligible_per_attendant(self):
        rule = make_achievement("winner", "seasonWinner", {})
        assert not is_eligible(rule, _history([5] * 50, ledger=[(10000.0, "evaluation")]))


class TestRuleValidation:
    def test_unknown_rule_kind(self):
        with pytest.raises(InvalidAchievementRule) as exc:
            is_eligible(make_achievement("odd", "moonPhase", {}), _history([5]))
        assert exc.value.achievement_id == "odd"

    def test_missing_params(self):
        with pytest.raises(InvalidAchievementRule):
            is_eligible(make_achievement("count", "countThreshold", {}), _history([5]))


def test_evaluation_is_deterministic():
    rule = make_achievement("trio", "fiveStarStreak", {"length": 3})
    history = _history([5, 5, 4, 5, 5, 5])
    assert [is_eligible(rule, history) for _ in range(3)] == [True, True, True]
