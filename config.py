import os
from pathlib import Path
from dataclasses import dataclass
from typing import Dict

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).parent / ".env")


# ---------------------------------------------------------------------------
# Helper: read a setting from the environment
# ---------------------------------------------------------------------------
def _get_setting(key: str, default: str = "") -> str:
    """Read from env vars (populated from .env), falling back to default."""
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value


# ---------------------------------------------------------------------------
# Environment-driven settings
# ---------------------------------------------------------------------------
DB_URL: str = _get_setting("FITTRACK_DB_URL", "")
API_BASE_URL: str = _get_setting("FITTRACK_API_BASE_URL", "https://api.sai.gov.in")
PROBE_URL: str = _get_setting("FITTRACK_PROBE_URL", "https://www.google.com")
HTTP_TIMEOUT_SECONDS: float = float(_get_setting("FITTRACK_HTTP_TIMEOUT", "10"))
ATHLETE_ID: str = _get_setting("FITTRACK_ATHLETE_ID", "local-athlete")
LOG_LEVEL: str = _get_setting("FITTRACK_LOG_LEVEL", "WARNING").upper()

# ---------------------------------------------------------------------------
# Remote endpoints
# ---------------------------------------------------------------------------
SUBMIT_ENDPOINT = "/api/v1/assessments/submit"
BENCHMARKS_ENDPOINT = "/api/v1/benchmarks"
LEADERBOARD_ENDPOINT = "/api/v1/leaderboard"
VIDEO_UPLOAD_ENDPOINT = "/api/v1/videos"

# ---------------------------------------------------------------------------
# Persistence keys
# ---------------------------------------------------------------------------
KEY_USER_PROFILE = "user_profile"
KEY_TEST_RESULTS = "test_results"
KEY_BADGES = "badges"
KEY_PENDING_SUBMISSIONS = "pending_submissions"

ALL_STORAGE_KEYS = (
    KEY_USER_PROFILE,
    KEY_TEST_RESULTS,
    KEY_BADGES,
    KEY_PENDING_SUBMISSIONS,
)

# ---------------------------------------------------------------------------
# Gamification constants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class XPRules:
    per_test: int
    excellent_score: float     # raw score for the top bonus
    excellent_bonus: int
    good_score: float          # raw score for the smaller bonus
    good_bonus: int
    per_level: int


# Thresholds are raw scores, independent of the test's unit.
XP_RULES = XPRules(
    per_test=10,
    excellent_score=90,
    excellent_bonus=20,
    good_score=80,
    good_bonus=10,
    per_level=100,
)

INSIGHT_WINDOW_DAYS = 7
INSIGHT_CONSISTENT_TESTS = 3
INSIGHT_TREND_WINDOW = 3

# ---------------------------------------------------------------------------
# Test types
# ---------------------------------------------------------------------------

TEST_TYPE_DISPLAY = {
    "vertical-jump": "Vertical Jump",
    "shuttle-run": "Shuttle Run",
    "sit-ups": "Sit-Ups",
    "height-weight": "Height & Weight",
    "endurance-run": "Endurance Run",
}


@dataclass(frozen=True)
class BenchmarkConfig:
    excellent: float
    good: float
    average: float
    unit: str


# Used when the remote benchmark service can't be reached.
DEFAULT_BENCHMARKS: Dict[str, BenchmarkConfig] = {
    "vertical-jump": BenchmarkConfig(excellent=70, good=60, average=50, unit="cm"),
    "shuttle-run": BenchmarkConfig(excellent=12, good=14, average=16, unit="sec"),
    "sit-ups": BenchmarkConfig(excellent=50, good=40, average=30, unit="reps"),
    "endurance-run": BenchmarkConfig(excellent=2800, good=2400, average=2000, unit="meters"),
}
FALLBACK_BENCHMARK = BenchmarkConfig(excellent=100, good=80, average=60, unit="points")

# Shown when the leaderboard service can't be reached.
STATIC_LEADERBOARD = [
    {"rank": 1, "name": "Rajesh Kumar", "score": 95, "region": "Maharashtra", "medal": "gold"},
    {"rank": 2, "name": "Priya Singh", "score": 92, "region": "Punjab", "medal": "silver"},
    {"rank": 3, "name": "Arjun Patel", "score": 89, "region": "Gujarat", "medal": "bronze"},
    {"rank": 4, "name": "Sneha Reddy", "score": 87, "region": "Telangana", "medal": None},
    {"rank": 5, "name": "Vikram Sharma", "score": 85, "region": "Rajasthan", "medal": None},
    {"rank": 6, "name": "Anita Das", "score": 83, "region": "West Bengal", "medal": None},
    {"rank": 7, "name": "Rohit Gupta", "score": 81, "region": "Uttar Pradesh", "medal": None},
    {"rank": 8, "name": "Kavya Nair", "score": 79, "region": "Kerala", "medal": None},
]
