"""Offline-tolerant delivery of test results to the remote service.

A result is either acknowledged right away or parked in the pending set
(keyed by record id) and retried by ``sync_pending`` until the server
acknowledges it or the user abandons it.
"""

import asyncio
import logging
from typing import List, Optional, Set

import config
from api import RemoteTransport, TransportError, build_submission_payload, payload_for_pending
from models import PendingSubmission, SubmissionResult, SyncResult, TestRecord
from storage import StorageService

logger = logging.getLogger(__name__)

OFFLINE_SAVED = "No internet connection. Result saved for later submission."
FAILED_SAVED = "Submission failed. Result saved for later submission."
ALREADY_SENDING = "This result is already being submitted."
SYNC_OFFLINE = "No internet connection available"


class SubmissionQueue:
    def __init__(
        self,
        storage: StorageService,
        transport: RemoteTransport,
        timeout: Optional[float] = None,
    ):
        self.storage = storage
        self.transport = transport
        self.timeout = timeout if timeout is not None else config.HTTP_TIMEOUT_SECONDS
        # Record ids with a delivery attempt currently on the wire.
        self._in_flight: Set[str] = set()
        self._sync_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def submit(self, record: TestRecord, athlete_id: str) -> SubmissionResult:
        """Try to deliver now; on any connectivity problem park it as pending.

        A failed delivery is normal under poor connectivity and is reported
        through the result, not raised. Storage failures do raise.
        """
        if record.id in self._in_flight:
            return SubmissionResult(success=False, error=ALREADY_SENDING)

        self._in_flight.add(record.id)
        try:
            if not await self._is_reachable():
                await self._park(record, athlete_id, OFFLINE_SAVED)
                return SubmissionResult(success=False, error=OFFLINE_SAVED)

            result = await self._deliver(build_submission_payload(record, athlete_id))
            if result.success:
                await self._acknowledge(record.id)
                logger.info("Submitted %s as %s", record.id, result.submission_id)
                return result

            await self._park(record, athlete_id, result.error)
            return SubmissionResult(success=False, error=FAILED_SAVED)
        finally:
            self._in_flight.discard(record.id)

    async def sync_pending(self) -> SyncResult:
        """Retry every pending entry once. One failure never stops the batch."""
        if not await self._is_reachable():
            return SyncResult(success=False, synced_count=0, errors=[SYNC_OFFLINE])

        async with self._sync_lock:
            pending = await self.storage.get_pending_submissions()
            synced = 0
            errors: List[str] = []

            for item in pending:
                if item.id in self._in_flight:
                    continue
                self._in_flight.add(item.id)
                try:
                    # A concurrent submit may have delivered it since the snapshot.
                    current = await self.storage.get_pending_submission(item.id)
                    if current is None:
                        continue
                    result = await self._deliver(payload_for_pending(current))
                    if result.success:
                        await self._acknowledge(current.id)
                        synced += 1
                        continue
                    current.attempts += 1
                    current.last_error = result.error
                    await self.storage.update_pending_submission(current)
                    errors.append(f"{current.id}: {result.error}")
                finally:
                    self._in_flight.discard(item.id)

        logger.info("Sync finished: %d synced, %d failed", synced, len(errors))
        return SyncResult(
            success=not errors,
            synced_count=synced,
            failed_count=len(errors),
            errors=errors,
        )

    async def get_pending_submissions(self) -> List[PendingSubmission]:
        return await self.storage.get_pending_submissions()

    async def abandon(self, record_id: str) -> bool:
        """Give up on a pending result. Returns False if it wasn't pending."""
        if record_id in self._in_flight:
            return False
        return await self.storage.remove_pending_submission(record_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _is_reachable(self) -> bool:
        try:
            return await asyncio.wait_for(self.transport.is_reachable(), self.timeout)
        except asyncio.TimeoutError:
            logger.info("Reachability probe timed out")
            return False

    async def _deliver(self, payload) -> SubmissionResult:
        try:
            return await asyncio.wait_for(self.transport.submit(payload), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Submission timed out after %.1fs", self.timeout)
            return SubmissionResult(success=False, error="Request timed out.")
        except TransportError as e:
            logger.warning("Submission failed: %s", e)
            return SubmissionResult(success=False, error=str(e))

    async def _park(self, record: TestRecord, athlete_id: str, error: Optional[str]) -> None:
        existing = await self.storage.get_pending_submission(record.id)
        if existing:
            existing.attempts += 1
            existing.last_error = error
            await self.storage.upsert_pending_submission(existing)
            return
        await self.storage.upsert_pending_submission(
            PendingSubmission(record=record, athlete_id=athlete_id, attempts=1, last_error=error)
        )

    async def _acknowledge(self, record_id: str) -> None:
        await self.storage.mark_submitted(record_id)
        await self.storage.remove_pending_submission(record_id)
