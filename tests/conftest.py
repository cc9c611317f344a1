"""
Shared fixtures: in-memory storage, a scripted transport and a record factory.
"""
import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from api import RemoteTransport
from config import BenchmarkConfig, DEFAULT_BENCHMARKS
from models import (
    Benchmark,
    LeaderboardEntry,
    SubmissionResult,
    TestRecord,
    TestType,
    VideoUploadResult,
)
from storage import KeyValueStore, MemoryStore, StorageError, StorageService

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeTransport(RemoteTransport):
    """Transport whose reachability and per-call outcomes are set by the test.

    ``outcomes`` is consumed one entry per submit call; once it runs out every
    call succeeds. An entry may be a SubmissionResult or an exception to raise.
    Set ``gate`` to an asyncio.Event to hold submits until the test releases it.
    """

    def __init__(self, reachable: bool = True, outcomes: Optional[List] = None):
        self.reachable = reachable
        self.outcomes = list(outcomes or [])
        self.payloads: List[Dict] = []
        self.probe_count = 0
        self.gate: Optional[asyncio.Event] = None
        self.started = asyncio.Event()
        self.uploads: List = []
        self.leaderboard_requests: List = []

    async def is_reachable(self) -> bool:
        self.probe_count += 1
        return self.reachable

    async def submit(self, payload: Dict) -> SubmissionResult:
        self.payloads.append(payload)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return SubmissionResult(success=True, submission_id=f"SAI_{len(self.payloads)}")

    async def get_benchmarks(self, test_type: str, age_group: str, gender: str) -> BenchmarkConfig:
        return DEFAULT_BENCHMARKS[test_type]

    async def get_leaderboard(self, test_type=None, region=None, age_group=None) -> List[LeaderboardEntry]:
        self.leaderboard_requests.append(test_type)
        return [LeaderboardEntry(rank=1, name="Top Athlete", score=99, region="Kerala")]

    async def upload_video(self, video_path: str, record_id: str) -> VideoUploadResult:
        self.uploads.append((video_path, record_id))
        if not self.reachable:
            return VideoUploadResult(success=False, error="offline")
        return VideoUploadResult(success=True, video_url=f"https://videos.test/{record_id}.mp4")

    def submitted_ids(self) -> List[str]:
        return [p["result"]["id"] for p in self.payloads]


class BrokenStore(KeyValueStore):
    """Store that fails every read and/or write."""

    def __init__(self, fail_reads: bool = True, fail_writes: bool = True):
        self.inner = MemoryStore()
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    async def get(self, key):
        if self.fail_reads:
            raise StorageError(f"disk unavailable reading {key}")
        return await self.inner.get(key)

    async def set(self, key, value):
        if self.fail_writes:
            raise StorageError(f"disk unavailable writing {key}")
        await self.inner.set(key, value)

    async def remove_many(self, keys):
        if self.fail_writes:
            raise StorageError("disk unavailable clearing keys")
        await self.inner.remove_many(keys)


def make_record(
    test_type: TestType = TestType.SIT_UPS,
    score: float = 50,
    days_ago: float = 0,
    benchmark: Benchmark = Benchmark.GOOD,
    now: datetime = NOW,
    **kwargs,
) -> TestRecord:
    return TestRecord(
        test_type=test_type,
        score=score,
        benchmark=benchmark,
        date=now - timedelta(days=days_ago),
        **kwargs,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def storage():
    return StorageService(MemoryStore())


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def offline_transport():
    return FakeTransport(reachable=False)
