"""
Tests for insight and motivational message generation.
"""
import random

import pytest

from insights import (
    CONSISTENT_WEEK,
    FIRST_TEST_PROMPT,
    INACTIVE_WEEK,
    MOTIVATIONAL_MESSAGES,
    TRENDING_UP,
    generate_insights,
    get_motivational_message,
    strongest_test_type,
)
from models import Benchmark, TestType
from conftest import NOW, make_record


class TestGenerateInsights:
    """generate_insights"""

    def test_empty_history_prompts_first_test(self):
        assert generate_insights([], now=NOW) == [FIRST_TEST_PROMPT]

    def test_consistent_week_not_nudge(self):
        history = [make_record(score=s, days_ago=4 - i) for i, s in enumerate([40, 45, 50, 55, 60])]
        result = generate_insights(history, now=NOW)

        assert result[0] == CONSISTENT_WEEK
        assert INACTIVE_WEEK not in result

    def test_inactive_week_nudge(self):
        history = [make_record(days_ago=d) for d in (30, 20)]
        result = generate_insights(history, now=NOW)

        assert result[0] == INACTIVE_WEEK

    def test_one_or_two_recent_tests_no_consistency_message(self):
        history = [make_record(days_ago=d) for d in (20, 2)]
        result = generate_insights(history, now=NOW)

        assert CONSISTENT_WEEK not in result
        assert INACTIVE_WEEK not in result

    def test_upward_trend_uses_log_order(self):
        history = [make_record(score=s) for s in (10, 60, 50, 55)]
        # last three: 60, 50, 55 -> 55 is not above 60
        assert TRENDING_UP not in generate_insights(history, now=NOW)

        history.append(make_record(score=70))
        # last three: 50, 55, 70
        assert TRENDING_UP in generate_insights(history, now=NOW)

    def test_single_record_has_no_trend(self):
        result = generate_insights([make_record(score=99)], now=NOW)
        assert TRENDING_UP not in result

    def test_order_of_messages(self):
        history = [
            make_record(TestType.SIT_UPS, 40, days_ago=2),
            make_record(TestType.VERTICAL_JUMP, 60, days_ago=1),
            make_record(TestType.SIT_UPS, 50, days_ago=0),
        ]
        assert generate_insights(history, now=NOW) == [
            CONSISTENT_WEEK,
            TRENDING_UP,
            "💪 Vertical Jump is your strongest area!",
        ]

    def test_never_empty(self):
        history = [make_record(score=0, days_ago=d) for d in (1, 0)]
        assert generate_insights(history, now=NOW)


class TestStrongestTestType:
    """Highest mean score per test type"""

    def test_highest_mean_wins(self):
        history = [
            make_record(TestType.SIT_UPS, 40),
            make_record(TestType.ENDURANCE_RUN, 250),
            make_record(TestType.SIT_UPS, 60),
        ]
        assert strongest_test_type(history) == "endurance-run"

    def test_tie_goes_to_first_seen(self):
        history = [
            make_record(TestType.SHUTTLE_RUN, 50),
            make_record(TestType.SIT_UPS, 50),
        ]
        assert strongest_test_type(history) == "shuttle-run"

    def test_empty(self):
        assert strongest_test_type([]) is None


class TestMotivationalMessage:
    """get_motivational_message"""

    @pytest.mark.parametrize("tier", list(Benchmark))
    def test_message_from_matching_tier(self, tier):
        message = get_motivational_message(tier, rng=random.Random(1))
        assert message in MOTIVATIONAL_MESSAGES[tier]

    def test_lowercase_tier_text(self):
        message = get_motivational_message("excellent", rng=random.Random(2))
        assert message in MOTIVATIONAL_MESSAGES[Benchmark.EXCELLENT]

    def test_unknown_tier_falls_back_to_average(self):
        message = get_motivational_message("Legendary", rng=random.Random(3))
        assert message in MOTIVATIONAL_MESSAGES[Benchmark.AVERAGE]

    def test_same_seed_same_message(self):
        a = get_motivational_message(Benchmark.GOOD, rng=random.Random(7))
        b = get_motivational_message(Benchmark.GOOD, rng=random.Random(7))
        assert a == b
