"""Remote submission service client (assessments, benchmarks, reachability)."""

import logging
import os
from typing import Dict, List, Optional

import httpx

import config
from config import BenchmarkConfig
from models import (
    LeaderboardEntry,
    PendingSubmission,
    SubmissionResult,
    TestRecord,
    VideoUploadResult,
)

logger = logging.getLogger(__name__)


VIDEO_OFFLINE = "No internet connection. The video stays on this device."
VIDEO_FAILED = "Failed to upload video. Please try again."
VIDEO_MISSING = "Video file not found."


class TransportError(Exception):
    """Raised when a request to the remote service fails."""


def build_submission_payload(record: TestRecord, athlete_id: str) -> Dict:
    """Wire payload for the submit endpoint."""
    payload = {
        "athleteId": athlete_id,
        "testType": record.test_type.value,
        "result": {
            "id": record.id,
            "score": record.score,
            "benchmark": record.benchmark.value,
            "unit": record.unit,
            "metricFields": dict(record.metric_fields),
        },
        "timestamp": record.date.isoformat(),
    }
    if record.video_path:
        payload["videoPath"] = record.video_path
    return payload


def payload_for_pending(pending: PendingSubmission) -> Dict:
    return build_submission_payload(pending.record, pending.athlete_id)


def _row_to_leaderboard_entry(row: Dict) -> LeaderboardEntry:
    return LeaderboardEntry(
        rank=int(row["rank"]),
        name=str(row["name"]),
        score=float(row["score"]),
        region=row.get("region") or "",
        medal=row.get("medal"),
    )


class RemoteTransport:
    """What the submission queue needs from the remote authority."""

    async def is_reachable(self) -> bool:
        raise NotImplementedError

    async def submit(self, payload: Dict) -> SubmissionResult:
        raise NotImplementedError

    async def get_benchmarks(self, test_type: str, age_group: str, gender: str) -> BenchmarkConfig:
        raise NotImplementedError

    async def get_leaderboard(
        self,
        test_type: Optional[str] = None,
        region: Optional[str] = None,
        age_group: Optional[str] = None,
    ) -> List[LeaderboardEntry]:
        raise NotImplementedError

    async def upload_video(self, video_path: str, record_id: str) -> VideoUploadResult:
        raise NotImplementedError


class HttpTransport(RemoteTransport):
    def __init__(
        self,
        base_url: Optional[str] = None,
        probe_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or config.API_BASE_URL).rstrip("/")
        self.probe_url = probe_url or config.PROBE_URL
        self.timeout = timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS
        self._client = client or httpx.AsyncClient(timeout=self.timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def is_reachable(self) -> bool:
        """HEAD the probe URL. Any HTTP response at all means we're online."""
        try:
            await self._client.head(self.probe_url, timeout=self.timeout)
        except httpx.HTTPError as e:
            logger.info("Reachability probe failed: %s", e)
            return False
        return True

    async def submit(self, payload: Dict) -> SubmissionResult:
        """POST one result. Network and server problems come back as a failed result."""
        try:
            body = await self._request_json("POST", config.SUBMIT_ENDPOINT, json=payload)
        except TransportError as e:
            logger.warning("Error submitting test result: %s", e)
            return SubmissionResult(
                success=False, error="Failed to submit result. Please try again.",
            )

        submission_id = body.get("submissionId")
        if not submission_id:
            logger.warning("Submit response missing submissionId: %r", body)
            return SubmissionResult(
                success=False, error="The server did not confirm the submission.",
            )
        return SubmissionResult(success=True, submission_id=str(submission_id))

    async def get_benchmarks(self, test_type: str, age_group: str, gender: str) -> BenchmarkConfig:
        """Benchmark tiers for a test; the built-in table is used when offline."""
        try:
            body = await self._request_json(
                "GET",
                config.BENCHMARKS_ENDPOINT,
                params={"testType": test_type, "ageGroup": age_group, "gender": gender},
            )
            return BenchmarkConfig(
                excellent=float(body["excellent"]),
                good=float(body["good"]),
                average=float(body["average"]),
                unit=str(body["unit"]),
            )
        except (TransportError, KeyError, TypeError, ValueError) as e:
            logger.warning("Using built-in benchmarks for %s: %s", test_type, e)
            return config.DEFAULT_BENCHMARKS.get(test_type, config.FALLBACK_BENCHMARK)

    async def get_leaderboard(
        self,
        test_type: Optional[str] = None,
        region: Optional[str] = None,
        age_group: Optional[str] = None,
    ) -> List[LeaderboardEntry]:
        """Ranked athletes from the server, or the static board when offline."""
        filters = {"testType": test_type, "region": region, "ageGroup": age_group}
        params = {k: v for k, v in filters.items() if v}
        try:
            body = await self._request_json("GET", config.LEADERBOARD_ENDPOINT, params=params)
            return [_row_to_leaderboard_entry(row) for row in body["entries"]]
        except (TransportError, KeyError, TypeError, ValueError) as e:
            logger.warning("Using static leaderboard: %s", e)
            return [_row_to_leaderboard_entry(row) for row in config.STATIC_LEADERBOARD]

    async def upload_video(self, video_path: str, record_id: str) -> VideoUploadResult:
        """Upload the recording for a result. The local file is never removed."""
        if not os.path.isfile(video_path):
            return VideoUploadResult(success=False, error=VIDEO_MISSING)
        if not await self.is_reachable():
            return VideoUploadResult(success=False, error=VIDEO_OFFLINE)

        try:
            with open(video_path, "rb") as fh:
                body = await self._request_json(
                    "POST",
                    config.VIDEO_UPLOAD_ENDPOINT,
                    data={"testId": record_id},
                    files={"video": (os.path.basename(video_path), fh, "video/mp4")},
                )
        except (TransportError, OSError) as e:
            logger.warning("Error uploading video for %s: %s", record_id, e)
            return VideoUploadResult(success=False, error=VIDEO_FAILED)

        video_url = body.get("videoUrl")
        if not video_url:
            return VideoUploadResult(success=False, error=VIDEO_FAILED)
        return VideoUploadResult(success=True, video_url=str(video_url))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _request_json(self, method: str, path: str, **kwargs) -> Dict:
        try:
            response = await self._client.request(
                method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs
            )
            response.raise_for_status()
            body = response.json()
        except httpx.TimeoutException as e:
            raise TransportError(f"{method} {path} timed out") from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"{method} {path} returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise TransportError(f"{method} {path} returned invalid JSON") from e
        if not isinstance(body, dict):
            raise TransportError(f"{method} {path} returned unexpected body")
        return body
