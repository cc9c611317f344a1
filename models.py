import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Union


class TestType(str, Enum):
    __test__ = False  # keep pytest from collecting Test* names

    VERTICAL_JUMP = "vertical-jump"
    SHUTTLE_RUN = "shuttle-run"
    SIT_UPS = "sit-ups"
    HEIGHT_WEIGHT = "height-weight"
    ENDURANCE_RUN = "endurance-run"


class Benchmark(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class TestRecord:
    """One completed assessment.

    Frozen: a stored record only ever changes through a copy with
    ``submitted`` flipped, so identity fields stay fixed.
    """
    __test__ = False

    test_type: TestType
    score: float
    benchmark: Benchmark
    date: datetime = field(default_factory=utc_now)
    id: str = field(default_factory=new_record_id)
    submitted: bool = False
    video_path: Optional[str] = None
    unit: Optional[str] = None
    metric_fields: Dict[str, float] = field(default_factory=dict)


@dataclass
class UserProfile:
    name: str = ""
    age: int = 0
    gender: str = ""
    region: str = ""
    join_date: Optional[str] = None

    @property
    def age_group(self) -> str:
        if self.age < 14:
            return "U14"
        if self.age < 17:
            return "U17"
        if self.age < 20:
            return "U20"
        return "senior"


# ---------------------------------------------------------------------------
# Badge criteria: one variant per kind, validated on construction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TestCompletion:
    __test__ = False
    kind: ClassVar[str] = "test_completion"
    count: int

    def __post_init__(self):
        if self.count < 1:
            raise ValueError(f"TestCompletion count must be >= 1, got {self.count}")


@dataclass(frozen=True)
class ScoreThreshold:
    kind: ClassVar[str] = "score_threshold"
    score: float


@dataclass(frozen=True)
class TestScoreThreshold:
    __test__ = False
    kind: ClassVar[str] = "score_threshold"
    test: TestType
    score: float

    def __post_init__(self):
        if not isinstance(self.test, TestType):
            raise ValueError(f"TestScoreThreshold needs a TestType, got {self.test!r}")


@dataclass(frozen=True)
class Consistency:
    kind: ClassVar[str] = "consistency"
    tests: int
    days: int

    def __post_init__(self):
        if self.tests < 1 or self.days < 1:
            raise ValueError("Consistency needs positive tests and days")


@dataclass(frozen=True)
class Improvement:
    kind: ClassVar[str] = "improvement"
    streak: int

    def __post_init__(self):
        if self.streak < 2:
            raise ValueError(f"Improvement streak must be >= 2, got {self.streak}")


BadgeCriteria = Union[TestCompletion, ScoreThreshold, TestScoreThreshold, Consistency, Improvement]


@dataclass
class Badge:
    id: str
    name: str
    description: str
    icon: str
    color: str
    criteria: BadgeCriteria
    earned: bool = False
    earned_date: Optional[datetime] = None


@dataclass(frozen=True)
class ProgressSnapshot:
    level: int = 1
    xp: int = 0
    next_level_xp: int = 100
    total_tests: int = 0
    average_score: int = 0


@dataclass
class PendingSubmission:
    """A recorded result still waiting for remote acknowledgment."""
    record: TestRecord
    athlete_id: str
    queued_at: datetime = field(default_factory=utc_now)
    attempts: int = 0
    last_error: Optional[str] = None

    @property
    def id(self) -> str:
        return self.record.id


@dataclass
class SubmissionResult:
    success: bool
    submission_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class SyncResult:
    success: bool
    synced_count: int = 0
    failed_count: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class VideoUploadResult:
    success: bool
    video_url: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    name: str
    score: float
    region: str = ""
    medal: Optional[str] = None


@dataclass(frozen=True)
class ScoringResult:
    """What the scoring source hands over for a completed test."""
    score: float
    benchmark: Benchmark
    unit: str
    metric_fields: Dict[str, float] = field(default_factory=dict)
