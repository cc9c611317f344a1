"""Reference scoring: raw measurements -> score, benchmark tier and unit.

Deterministic stand-in for the capture/analysis pipeline. The rest of the
app only consumes the ScoringResult, never the formulas.
"""

import math
from typing import Callable, Dict

from models import Benchmark, ScoringResult, TestType


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _require(measurements: Dict[str, float], key: str, test_type: TestType) -> float:
    if key not in measurements:
        raise ValueError(f"{test_type.value} needs a '{key}' measurement")
    return float(measurements[key])


def _score_vertical_jump(m: Dict[str, float]) -> ScoringResult:
    height = _require(m, "height_cm", TestType.VERTICAL_JUMP)
    if height > 70:
        tier = Benchmark.EXCELLENT
    elif height > 60:
        tier = Benchmark.GOOD
    else:
        tier = Benchmark.AVERAGE
    return ScoringResult(score=height, benchmark=tier, unit="cm", metric_fields={"height_cm": height})


def _score_shuttle_run(m: Dict[str, float]) -> ScoringResult:
    time_s = _require(m, "time_seconds", TestType.SHUTTLE_RUN)
    # Lower time is better, so the score inverts it.
    score = _round_half_up((20 - time_s) * 10)
    if time_s < 12:
        tier = Benchmark.EXCELLENT
    elif time_s < 14:
        tier = Benchmark.GOOD
    else:
        tier = Benchmark.AVERAGE
    return ScoringResult(
        score=score, benchmark=tier, unit="sec",
        metric_fields={"time_seconds": round(time_s, 1)},
    )


def _score_sit_ups(m: Dict[str, float]) -> ScoringResult:
    reps = _require(m, "reps", TestType.SIT_UPS)
    if reps > 50:
        tier = Benchmark.EXCELLENT
    elif reps > 40:
        tier = Benchmark.GOOD
    else:
        tier = Benchmark.AVERAGE
    return ScoringResult(score=reps, benchmark=tier, unit="reps", metric_fields={"reps": reps})


def _score_height_weight(m: Dict[str, float]) -> ScoringResult:
    height = _require(m, "height_cm", TestType.HEIGHT_WEIGHT)
    weight = _require(m, "weight_kg", TestType.HEIGHT_WEIGHT)
    if height <= 0:
        raise ValueError("height_cm must be positive")
    bmi = weight / ((height / 100) ** 2)
    score = _round_half_up((25 - abs(bmi - 22)) * 10)
    tier = Benchmark.EXCELLENT if 18.5 <= bmi <= 24.9 else Benchmark.GOOD
    return ScoringResult(
        score=score, benchmark=tier, unit="BMI",
        metric_fields={"height_cm": height, "weight_kg": weight, "bmi": round(bmi, 1)},
    )


def _score_endurance_run(m: Dict[str, float]) -> ScoringResult:
    distance = _require(m, "distance_m", TestType.ENDURANCE_RUN)
    score = _round_half_up(distance / 10)
    if distance > 2800:
        tier = Benchmark.EXCELLENT
    elif distance > 2400:
        tier = Benchmark.GOOD
    else:
        tier = Benchmark.AVERAGE
    return ScoringResult(
        score=score, benchmark=tier, unit="meters",
        metric_fields={"distance_m": _round_half_up(distance)},
    )


_SCORERS: Dict[TestType, Callable[[Dict[str, float]], ScoringResult]] = {
    TestType.VERTICAL_JUMP: _score_vertical_jump,
    TestType.SHUTTLE_RUN: _score_shuttle_run,
    TestType.SIT_UPS: _score_sit_ups,
    TestType.HEIGHT_WEIGHT: _score_height_weight,
    TestType.ENDURANCE_RUN: _score_endurance_run,
}


def score_measurement(test_type, measurements: Dict[str, float]) -> ScoringResult:
    """Score one completed test. Unknown test types raise ValueError."""
    try:
        test_type = TestType(test_type)
    except ValueError:
        raise ValueError(f"Unknown test type: {test_type!r}") from None
    return _SCORERS[test_type](measurements)

