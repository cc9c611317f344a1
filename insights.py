"""Rule-based feedback strings built from the result log."""

import random
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence

import config
from models import Benchmark, TestRecord, utc_now

FIRST_TEST_PROMPT = "Complete your first test to get personalized insights!"
CONSISTENT_WEEK = "🔥 You're on fire! Great consistency this week!"
INACTIVE_WEEK = "📅 Try to test at least once this week to maintain progress"
TRENDING_UP = "📈 Your scores are trending upward! Keep it up!"
KEEP_TESTING = "Keep testing to unlock personalized insights!"

MOTIVATIONAL_MESSAGES = {
    Benchmark.EXCELLENT: [
        "Outstanding performance! You're setting the bar high! 🏆",
        "Incredible result! Keep pushing your limits! 💪",
        "Exceptional work! You're among the best! ⭐",
    ],
    Benchmark.GOOD: [
        "Great job! You're making solid progress! 👏",
        "Well done! Keep up the good work! 🎯",
        "Nice performance! You're on the right track! 📈",
    ],
    Benchmark.AVERAGE: [
        "Good effort! There's room for improvement! 💪",
        "Keep practicing! Every test makes you stronger! 🎯",
        "Nice try! Focus on technique for better results! 📚",
    ],
}


def generate_insights(
    history: Sequence[TestRecord],
    now: Optional[datetime] = None,
) -> List[str]:
    """Build insight messages in priority order. Never returns an empty list."""
    if not history:
        return [FIRST_TEST_PROMPT]

    insights = []
    now = now or utc_now()

    # Consistency
    week_ago = now - timedelta(days=config.INSIGHT_WINDOW_DAYS)
    this_week = sum(1 for r in history if r.date >= week_ago)
    if this_week >= config.INSIGHT_CONSISTENT_TESTS:
        insights.append(CONSISTENT_WEEK)
    elif this_week == 0:
        insights.append(INACTIVE_WEEK)

    # Score trend, in log order
    recent = list(history)[-config.INSIGHT_TREND_WINDOW:]
    if len(recent) >= 2 and recent[-1].score > recent[0].score:
        insights.append(TRENDING_UP)

    # Strongest area
    best_type = strongest_test_type(history)
    if best_type:
        display_name = config.TEST_TYPE_DISPLAY.get(best_type, best_type.title())
        insights.append(f"💪 {display_name} is your strongest area!")

    if not insights:
        insights.append(KEEP_TESTING)
    return insights


def strongest_test_type(history: Sequence[TestRecord]) -> Optional[str]:
    """Test type with the highest mean score; ties go to the first one seen."""
    by_type: Dict[str, List[float]] = {}
    for r in history:
        by_type.setdefault(r.test_type.value, []).append(r.score)

    best_type = None
    best_average = None
    for test_type, scores in by_type.items():
        average = sum(scores) / len(scores)
        if best_average is None or average > best_average:
            best_type = test_type
            best_average = average
    return best_type


def get_motivational_message(benchmark, rng: Optional[random.Random] = None) -> str:
    """Pick an encouraging line for a benchmark tier (unknown tiers count as Average)."""
    try:
        tier = Benchmark(benchmark) if not isinstance(benchmark, Benchmark) else benchmark
    except ValueError:
        tier = _tier_from_text(str(benchmark))
    messages = MOTIVATIONAL_MESSAGES[tier]
    return (rng or random).choice(messages)


def _tier_from_text(text: str) -> Benchmark:
    for tier in Benchmark:
        if tier.value.lower() == text.strip().lower():
            return tier
    return Benchmark.AVERAGE
