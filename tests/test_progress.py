"""
Tests for level / XP progress calculation.
"""
import pytest

from badges import BadgeCatalog
from models import ProgressSnapshot, TestType
from progress import calculate_progress, level_progress, score_bonus
from conftest import NOW, make_record


class TestScoreBonus:
    """Per-result XP bonus"""

    @pytest.mark.parametrize("score,bonus", [
        (100, 20), (90, 20), (89.9, 10), (80, 10), (79.9, 0), (0, 0),
    ])
    def test_bonus_thresholds(self, score, bonus):
        assert score_bonus(score) == bonus

    def test_thresholds_ignore_unit(self):
        """A 2800 m endurance run gets the same bonus as a 90-point score."""
        assert score_bonus(2800) == 20


class TestCalculateProgress:
    """calculate_progress over a history"""

    def test_empty_history(self):
        assert calculate_progress([]) == ProgressSnapshot(
            level=1, xp=0, next_level_xp=100, total_tests=0, average_score=0,
        )

    def test_xp_counts_tests_and_bonuses(self):
        history = [make_record(score=s) for s in (95, 85, 50)]
        snapshot = calculate_progress(history)

        # 3 * 10 + 20 + 10 + 0
        assert snapshot.xp == 60
        assert snapshot.level == 1
        assert snapshot.next_level_xp == 100
        assert snapshot.total_tests == 3

    def test_level_boundary(self):
        history = [make_record(score=95) for _ in range(4)]
        snapshot = calculate_progress(history)

        assert snapshot.xp == 120
        assert snapshot.level == 2
        assert snapshot.next_level_xp == 200

    def test_exactly_one_hundred_xp_is_level_two(self):
        history = [make_record(score=50) for _ in range(10)]
        snapshot = calculate_progress(history)

        assert snapshot.xp == 100
        assert snapshot.level == 2

    def test_average_rounds_half_up(self):
        history = [make_record(score=s) for s in (50, 51)]
        assert calculate_progress(history).average_score == 51

    def test_average_rounds_down_below_half(self):
        history = [make_record(score=s) for s in (50, 50, 51)]
        assert calculate_progress(history).average_score == 50

    @pytest.mark.asyncio
    async def test_independent_of_badge_state(self):
        history = [make_record(test_type=TestType.VERTICAL_JUMP, score=95)]
        before = calculate_progress(history)

        catalog = BadgeCatalog()
        await catalog.evaluate(history[0], history, now=NOW)

        assert catalog.earned_badges()
        assert calculate_progress(history) == before


class TestLevelProgress:
    """Fraction of the current level earned"""

    def test_start_of_level(self):
        assert level_progress(ProgressSnapshot(level=2, xp=100, next_level_xp=200)) == 0.0

    def test_middle_of_level(self):
        assert level_progress(ProgressSnapshot(level=1, xp=60, next_level_xp=100)) == pytest.approx(0.6)
