"""Level / XP progress derived from the result log."""

import math
from typing import Sequence

import config
from models import ProgressSnapshot, TestRecord


def score_bonus(score: float) -> int:
    """XP bonus for a single result.

    The thresholds are raw numbers applied to every test type, even though
    scores are in different units (cm, reps, meters). Kept as-is pending
    product review.
    """
    rules = config.XP_RULES
    if score >= rules.excellent_score:
        return rules.excellent_bonus
    if score >= rules.good_score:
        return rules.good_bonus
    return 0


def calculate_progress(history: Sequence[TestRecord]) -> ProgressSnapshot:
    """Recompute the full snapshot. Depends only on scores and counts."""
    rules = config.XP_RULES
    total_tests = len(history)
    if total_tests == 0:
        return ProgressSnapshot(
            level=1, xp=0, next_level_xp=rules.per_level, total_tests=0, average_score=0,
        )

    xp = total_tests * rules.per_test + sum(score_bonus(r.score) for r in history)
    level = xp // rules.per_level + 1
    # Half-up, not banker's rounding.
    average_score = math.floor(sum(r.score for r in history) / total_tests + 0.5)

    return ProgressSnapshot(
        level=level,
        xp=xp,
        next_level_xp=level * rules.per_level,
        total_tests=total_tests,
        average_score=average_score,
    )


def level_progress(snapshot: ProgressSnapshot) -> float:
    """Fraction (0-1) of the current level already earned."""
    per_level = config.XP_RULES.per_level
    level_start = (snapshot.level - 1) * per_level
    return max(0.0, min(1.0, (snapshot.xp - level_start) / per_level))
