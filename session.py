"""Per-athlete session: records results and runs the gamification pipeline."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import config
from api import RemoteTransport
from badges import BadgeCatalog
from config import BenchmarkConfig
from insights import generate_insights, get_motivational_message
from models import (
    Badge,
    LeaderboardEntry,
    PendingSubmission,
    ProgressSnapshot,
    ScoringResult,
    SubmissionResult,
    SyncResult,
    TestRecord,
    TestType,
    UserProfile,
    VideoUploadResult,
    utc_now,
)
from progress import calculate_progress
from storage import StorageService
from submission_queue import SubmissionQueue

logger = logging.getLogger(__name__)


@dataclass
class RecordOutcome:
    record: TestRecord
    new_badges: List[Badge] = field(default_factory=list)
    progress: ProgressSnapshot = field(default_factory=ProgressSnapshot)
    submission: Optional[SubmissionResult] = None
    message: str = ""
    video_upload: Optional[VideoUploadResult] = None


class AthleteSession:
    """Owns the badge catalog for one signed-in athlete.

    The result log in storage is the source of truth; progress and insights
    are recomputed from it on every call.
    """

    def __init__(
        self,
        storage: StorageService,
        transport: RemoteTransport,
        catalog: Optional[BadgeCatalog] = None,
        athlete_id: Optional[str] = None,
    ):
        self.storage = storage
        self.transport = transport
        self.catalog = catalog or BadgeCatalog()
        self.athlete_id = athlete_id or config.ATHLETE_ID
        self.queue = SubmissionQueue(storage, transport)

    @classmethod
    async def open(
        cls,
        storage: StorageService,
        transport: RemoteTransport,
        athlete_id: Optional[str] = None,
    ) -> "AthleteSession":
        """Build a session whose catalog reflects badges already earned."""
        session = cls(storage, transport, athlete_id=athlete_id)
        session.catalog.restore(await storage.get_badges())
        return session

    # ------------------------------------------------------------------
    # Recording results
    # ------------------------------------------------------------------

    async def record_result(
        self,
        test_type: TestType,
        scoring: ScoringResult,
        video_path: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> RecordOutcome:
        """Log a completed test, award badges, then hand it to the queue."""
        now = now or utc_now()
        record = TestRecord(
            test_type=TestType(test_type),
            score=scoring.score,
            benchmark=scoring.benchmark,
            date=now,
            video_path=video_path,
            unit=scoring.unit,
            metric_fields=dict(scoring.metric_fields),
        )
        await self.storage.save_test_result(record)

        # Once logged, the record reaches the queue even if badge bookkeeping fails.
        try:
            history = await self.storage.get_test_results()
            if not any(r.id == record.id for r in history):
                # Log read degraded to empty; evaluate against at least this result.
                history.append(record)
            new_badges = await self.catalog.evaluate(record, history, now=now)
            for badge in new_badges:
                await self.storage.save_badge(badge)
        finally:
            submission = await self.queue.submit(record, self.athlete_id)

        progress = calculate_progress(history)
        if submission.success:
            # The stored copy was flipped; keep the returned one in step.
            record = await self._reload(record)

        video_upload = None
        if video_path:
            video_upload = await self.transport.upload_video(video_path, record.id)

        return RecordOutcome(
            record=record,
            new_badges=new_badges,
            progress=progress,
            submission=submission,
            message=get_motivational_message(scoring.benchmark),
            video_upload=video_upload,
        )

    async def _reload(self, record: TestRecord) -> TestRecord:
        for stored in await self.storage.get_test_results():
            if stored.id == record.id:
                return stored
        return record

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    async def progress(self) -> ProgressSnapshot:
        return calculate_progress(await self.storage.get_test_results())

    async def insights(self, now: Optional[datetime] = None) -> List[str]:
        return generate_insights(await self.storage.get_test_results(), now=now)

    async def history(self) -> List[TestRecord]:
        return await self.storage.get_test_results()

    async def benchmarks_for(self, test_type: TestType) -> BenchmarkConfig:
        profile = await self.storage.get_user_profile() or UserProfile()
        return await self.transport.get_benchmarks(
            TestType(test_type).value, profile.age_group, profile.gender,
        )

    # ------------------------------------------------------------------
    # Sync / profile / logout
    # ------------------------------------------------------------------

    async def leaderboard(self, test_type: Optional[TestType] = None) -> List[LeaderboardEntry]:
        return await self.transport.get_leaderboard(
            test_type=TestType(test_type).value if test_type else None,
        )

    async def sync(self) -> SyncResult:
        return await self.queue.sync_pending()

    async def pending_submissions(self) -> List[PendingSubmission]:
        return await self.queue.get_pending_submissions()

    async def pending_count(self) -> int:
        return len(await self.pending_submissions())

    async def abandon(self, record_id: str) -> bool:
        """Stop retrying a saved result. It stays in the history unsubmitted."""
        abandoned = await self.queue.abandon(record_id)
        if abandoned:
            logger.info("Abandoned pending submission %s", record_id)
        return abandoned

    async def save_profile(self, profile: UserProfile) -> None:
        if not profile.join_date:
            profile.join_date = utc_now().isoformat()
        await self.storage.save_user_profile(profile)

    async def profile(self) -> Optional[UserProfile]:
        return await self.storage.get_user_profile()

    async def logout(self) -> None:
        """Clear every stored collection. Raises StorageError if that fails."""
        await self.storage.clear_all_data()
        self.catalog = BadgeCatalog()
        logger.info("Cleared all stored data for %s", self.athlete_id)
