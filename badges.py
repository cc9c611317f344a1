"""Badge catalog and eligibility rules for gamification."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from models import (
    Badge,
    Consistency,
    Improvement,
    ScoreThreshold,
    TestCompletion,
    TestRecord,
    TestScoreThreshold,
    TestType,
    utc_now,
)

logger = logging.getLogger(__name__)


class BadgeCriteriaError(Exception):
    """A badge carries criteria the evaluator doesn't know how to check.

    This is a catalog/config mismatch, never a data problem, so it is not
    caught anywhere in the app.
    """


def default_badges() -> List[Badge]:
    """Fresh, unearned copy of the built-in catalog."""
    return [
        Badge("first_test", "First Steps", "Complete your first assessment test",
              "target", "#10b981", TestCompletion(1)),
        Badge("consistency_week", "Consistent Performer", "Complete 5 tests in one week",
              "calendar", "#3b82f6", Consistency(tests=5, days=7)),
        Badge("top_performer", "Top 10%", "Achieve top 10% score in any test",
              "trophy", "#f97316", ScoreThreshold(90)),
        Badge("vertical_jump_master", "Jump Master", "Score excellent in vertical jump",
              "arrow-up", "#8b5cf6", TestScoreThreshold(TestType.VERTICAL_JUMP, 70)),
        Badge("endurance_champion", "Endurance Champion",
              "Complete endurance run with excellent rating",
              "heart", "#ef4444", TestScoreThreshold(TestType.ENDURANCE_RUN, 2800)),
        Badge("speed_demon", "Speed Demon", "Fastest shuttle run in your region",
              "zap", "#fbbf24", TestScoreThreshold(TestType.SHUTTLE_RUN, 12)),
        Badge("improvement_streak", "Always Improving",
              "Show improvement in 3 consecutive tests",
              "trending-up", "#06b6d4", Improvement(3)),
        Badge("all_rounder", "All-Rounder", "Complete all 5 assessment tests",
              "award", "#f59e0b", TestCompletion(5)),
    ]


# ---------------------------------------------------------------------------
# Rules, one per criteria kind
# ---------------------------------------------------------------------------

def _check_test_completion(
    criteria: TestCompletion, new_result: TestRecord,
    history: Sequence[TestRecord], now: datetime,
) -> bool:
    if criteria.count == 1:
        return len(history) == 1
    return len({r.test_type for r in history}) >= criteria.count


def _check_score_threshold(
    criteria, new_result: TestRecord,
    history: Sequence[TestRecord], now: datetime,
) -> bool:
    if isinstance(criteria, ScoreThreshold):
        return new_result.score >= criteria.score
    if isinstance(criteria, TestScoreThreshold):
        return new_result.test_type == criteria.test and new_result.score >= criteria.score
    raise BadgeCriteriaError(f"Unsupported score_threshold criteria: {criteria!r}")


def _check_consistency(
    criteria: Consistency, new_result: TestRecord,
    history: Sequence[TestRecord], now: datetime,
) -> bool:
    window_start = now - timedelta(days=criteria.days)
    recent = [r for r in history if r.date >= window_start]
    return len(recent) >= criteria.tests


def _check_improvement(
    criteria: Improvement, new_result: TestRecord,
    history: Sequence[TestRecord], now: datetime,
) -> bool:
    same_type = [
        (i, r) for i, r in enumerate(history) if r.test_type == new_result.test_type
    ]
    # Most recent first; on equal dates the later insertion is more recent.
    latest = sorted(same_type, key=lambda p: (p[1].date, p[0]), reverse=True)[:criteria.streak]
    if len(latest) < criteria.streak:
        return False
    scores = [r.score for _, r in reversed(latest)]
    return all(later > earlier for earlier, later in zip(scores, scores[1:]))


_CHECKS: Dict[str, Callable] = {
    "test_completion": _check_test_completion,
    "score_threshold": _check_score_threshold,
    "consistency": _check_consistency,
    "improvement": _check_improvement,
}


def check_badge(
    badge: Badge,
    new_result: TestRecord,
    history: Sequence[TestRecord],
    now: Optional[datetime] = None,
) -> bool:
    """Whether ``badge``'s rule holds. Pure; doesn't look at ``badge.earned``."""
    kind = getattr(badge.criteria, "kind", None)
    check = _CHECKS.get(kind)
    if check is None:
        raise BadgeCriteriaError(
            f"Badge '{badge.id}' has unknown criteria kind {kind!r}"
        )
    return check(badge.criteria, new_result, history, now or utc_now())


class BadgeCatalog:
    """The session's badge set and its earned state.

    ``evaluate`` is the only place a badge flips to earned, and it runs under
    a lock so overlapping calls can't both award the same badge.
    """

    def __init__(self, badges: Optional[List[Badge]] = None):
        self._badges = badges if badges is not None else default_badges()
        self._lock = asyncio.Lock()

    def all_badges(self) -> List[Badge]:
        return list(self._badges)

    def earned_badges(self) -> List[Badge]:
        return [b for b in self._badges if b.earned]

    def get(self, badge_id: str) -> Optional[Badge]:
        for badge in self._badges:
            if badge.id == badge_id:
                return badge
        return None

    def restore(self, earned_entries: Iterable[Dict]) -> None:
        """Mark badges earned from persisted ``{id, name, earned_date}`` entries."""
        for entry in earned_entries:
            badge = self.get(entry.get("id", ""))
            if badge is None:
                logger.warning("Ignoring stored badge not in catalog: %s", entry.get("id"))
                continue
            badge.earned = True
            raw_date = entry.get("earned_date")
            badge.earned_date = datetime.fromisoformat(raw_date) if raw_date else None

    async def evaluate(
        self,
        new_result: TestRecord,
        history: Sequence[TestRecord],
        now: Optional[datetime] = None,
    ) -> List[Badge]:
        """Award every not-yet-earned badge whose rule now holds.

        ``history`` must already contain ``new_result``. Returns the badges
        that flipped during this call, in catalog order.
        """
        now = now or utc_now()
        newly_earned = []
        async with self._lock:
            for badge in self._badges:
                if badge.earned:
                    continue
                if check_badge(badge, new_result, history, now):
                    badge.earned = True
                    badge.earned_date = now
                    newly_earned.append(badge)
                    logger.info("Badge earned: %s", badge.id)
        return newly_earned
