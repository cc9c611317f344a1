"""
Tests for AthleteSession: the record -> badges -> progress -> submit flow.
"""
import pytest

import config
from insights import MOTIVATIONAL_MESSAGES
from models import Benchmark, TestType, UserProfile
from scoring import score_measurement
from session import AthleteSession
from storage import MemoryStore, StorageError, StorageService
from submission_queue import OFFLINE_SAVED
from conftest import NOW, BrokenStore, FakeTransport


def jump(height):
    return score_measurement(TestType.VERTICAL_JUMP, {"height_cm": height})


class BadgeWriteFailingStore(MemoryStore):
    async def set(self, key, value):
        if key == config.KEY_BADGES:
            raise StorageError("badges table is read-only")
        await super().set(key, value)


class RecordingTransport(FakeTransport):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.benchmark_requests = []

    async def get_benchmarks(self, test_type, age_group, gender):
        self.benchmark_requests.append((test_type, age_group, gender))
        return await super().get_benchmarks(test_type, age_group, gender)


class TestRecordResult:
    """AthleteSession.record_result"""

    @pytest.mark.asyncio
    async def test_online_flow(self, storage, transport):
        session = await AthleteSession.open(storage, transport, athlete_id="a1")

        outcome = await session.record_result(TestType.VERTICAL_JUMP, jump(72), now=NOW)

        assert [b.id for b in outcome.new_badges] == ["first_test", "vertical_jump_master"]
        assert outcome.progress.xp == 10
        assert outcome.progress.total_tests == 1
        assert outcome.submission.success
        assert outcome.record.submitted
        assert outcome.record.unit == "cm"
        assert outcome.message in MOTIVATIONAL_MESSAGES[Benchmark.EXCELLENT]
        assert [b["id"] for b in await storage.get_badges()] == ["first_test", "vertical_jump_master"]
        assert transport.payloads[0]["athleteId"] == "a1"

    @pytest.mark.asyncio
    async def test_offline_result_is_queued(self, storage, offline_transport):
        session = await AthleteSession.open(storage, offline_transport)

        outcome = await session.record_result(TestType.SIT_UPS, score_measurement("sit-ups", {"reps": 45}), now=NOW)

        assert outcome.submission.success is False
        assert outcome.submission.error == OFFLINE_SAVED
        assert not outcome.record.submitted
        assert await session.pending_count() == 1
        assert outcome.new_badges[0].id == "first_test"

    @pytest.mark.asyncio
    async def test_sync_after_reconnect(self, storage):
        transport = FakeTransport(reachable=False)
        session = await AthleteSession.open(storage, transport)
        await session.record_result(TestType.VERTICAL_JUMP, jump(55), now=NOW)

        transport.reachable = True
        result = await session.sync()

        assert result.synced_count == 1
        assert await session.pending_count() == 0
        assert all(r.submitted for r in await session.history())

    @pytest.mark.asyncio
    async def test_progress_and_insights_follow_the_log(self, storage, transport):
        session = await AthleteSession.open(storage, transport)
        for height in (50, 55, 62):
            await session.record_result(TestType.VERTICAL_JUMP, jump(height), now=NOW)

        progress = await session.progress()
        insights = await session.insights(now=NOW)

        assert progress.total_tests == 3
        assert progress.xp == 30
        assert "💪 Vertical Jump is your strongest area!" in insights


class TestSessionLifecycle:
    """Opening, profile and logout"""

    @pytest.mark.asyncio
    async def test_open_restores_earned_badges(self, storage, transport):
        first = await AthleteSession.open(storage, transport)
        await first.record_result(TestType.VERTICAL_JUMP, jump(72), now=NOW)

        second = await AthleteSession.open(storage, transport)
        outcome = await second.record_result(TestType.VERTICAL_JUMP, jump(75), now=NOW)

        assert second.catalog.get("vertical_jump_master").earned
        assert "vertical_jump_master" not in [b.id for b in outcome.new_badges]

    @pytest.mark.asyncio
    async def test_save_profile_sets_join_date(self, storage, transport):
        session = AthleteSession(storage, transport)
        await session.save_profile(UserProfile(name="Ravi", age=15, gender="male"))

        profile = await session.profile()
        assert profile.name == "Ravi"
        assert profile.join_date

    @pytest.mark.asyncio
    async def test_benchmarks_use_profile(self, storage):
        transport = RecordingTransport()
        session = AthleteSession(storage, transport)
        await session.save_profile(UserProfile(name="Meera", age=16, gender="female"))

        result = await session.benchmarks_for(TestType.SIT_UPS)

        assert transport.benchmark_requests == [("sit-ups", "U17", "female")]
        assert result.unit == "reps"

    @pytest.mark.asyncio
    async def test_logout_clears_everything(self, storage, offline_transport):
        session = await AthleteSession.open(storage, offline_transport)
        await session.save_profile(UserProfile(name="A"))
        await session.record_result(TestType.VERTICAL_JUMP, jump(72), now=NOW)

        await session.logout()

        assert await session.history() == []
        assert await session.pending_count() == 0
        assert await session.profile() is None
        assert await storage.get_badges() == []
        assert session.catalog.earned_badges() == []

    @pytest.mark.asyncio
    async def test_logout_failure_is_raised(self, transport):
        session = AthleteSession(StorageService(BrokenStore()), transport)
        with pytest.raises(StorageError):
            await session.logout()


class TestRecordResultFailures:
    """A logged result always reaches the queue"""

    @pytest.mark.asyncio
    async def test_badge_write_failure_still_submits(self, transport):
        storage = StorageService(BadgeWriteFailingStore())
        session = AthleteSession(storage, transport)

        with pytest.raises(StorageError):
            await session.record_result(TestType.VERTICAL_JUMP, jump(72), now=NOW)

        history = await storage.get_test_results()
        assert transport.submitted_ids() == [history[0].id]
        assert history[0].submitted

    @pytest.mark.asyncio
    async def test_badge_write_failure_offline_is_queued(self, offline_transport):
        storage = StorageService(BadgeWriteFailingStore())
        session = AthleteSession(storage, offline_transport)

        with pytest.raises(StorageError):
            await session.record_result(TestType.VERTICAL_JUMP, jump(72), now=NOW)

        history = await storage.get_test_results()
        assert [p.id for p in await session.pending_submissions()] == [history[0].id]


class TestVideoAndLeaderboard:
    """Video upload after recording, and the leaderboard view"""

    @pytest.mark.asyncio
    async def test_video_uploaded_with_record_id(self, storage, transport):
        session = AthleteSession(storage, transport)

        outcome = await session.record_result(
            TestType.SIT_UPS, score_measurement("sit-ups", {"reps": 45}),
            video_path="/videos/situps.mp4", now=NOW,
        )

        assert transport.uploads == [("/videos/situps.mp4", outcome.record.id)]
        assert outcome.video_upload.success
        assert transport.payloads[0]["videoPath"] == "/videos/situps.mp4"

    @pytest.mark.asyncio
    async def test_no_video_no_upload(self, storage, transport):
        outcome = await AthleteSession(storage, transport).record_result(TestType.VERTICAL_JUMP, jump(60), now=NOW)

        assert outcome.video_upload is None
        assert transport.uploads == []

    @pytest.mark.asyncio
    async def test_leaderboard_filter_by_test(self, storage, transport):
        session = AthleteSession(storage, transport)

        entries = await session.leaderboard(TestType.SHUTTLE_RUN)
        await session.leaderboard()

        assert entries[0].name == "Top Athlete"
        assert transport.leaderboard_requests == ["shuttle-run", None]


class TestAbandon:
    """Discarding a saved result"""

    @pytest.mark.asyncio
    async def test_abandon_keeps_history(self, storage, offline_transport):
        session = AthleteSession(storage, offline_transport)
        outcome = await session.record_result(TestType.VERTICAL_JUMP, jump(60), now=NOW)

        assert await session.abandon(outcome.record.id)
        assert await session.pending_count() == 0
        assert [r.id for r in await session.history()] == [outcome.record.id]

    @pytest.mark.asyncio
    async def test_abandon_unknown(self, storage, transport):
        assert not await AthleteSession(storage, transport).abandon("missing")
