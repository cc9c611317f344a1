"""Durable key-value persistence and the typed storage service on top of it."""

import asyncio
import copy
import logging
import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

import psycopg2
import psycopg2.extras

import config
from models import (
    Badge,
    Benchmark,
    PendingSubmission,
    TestRecord,
    TestType,
    UserProfile,
)

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value JSONB NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )""",
]


class StorageError(Exception):
    """Raised when the durable store can't be read or written."""


# ---------------------------------------------------------------------------
# Stores
# ---------------------------------------------------------------------------

class KeyValueStore:
    """Narrow async interface: get / set / remove by key. Values are JSON-able."""

    async def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def remove_many(self, keys: Iterable[str]) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """In-process store. Values are deep-copied so callers never share state."""

    def __init__(self):
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def remove_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)


class PostgresStore(KeyValueStore):
    """Postgres-backed store, one JSONB row per key.

    psycopg2 is blocking, so every call runs in a worker thread; the
    connection itself is guarded by a thread lock.
    """

    def __init__(self, db_url: str):
        self.db_url = db_url
        self.conn = psycopg2.connect(db_url)
        self.conn.autocommit = False
        self._conn_lock = threading.Lock()

    def initialize(self) -> None:
        with self._conn_lock:
            cur = self.conn.cursor()
            for stmt in SCHEMA_STATEMENTS:
                cur.execute(stmt)
            self.conn.commit()
            cur.close()

    def close(self) -> None:
        self.conn.close()

    def _cursor(self):
        """Return a RealDictCursor for dict-like row access."""
        return self.conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)

    async def get(self, key: str) -> Optional[Any]:
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: Any) -> None:
        await asyncio.to_thread(self._set, key, value)

    async def remove_many(self, keys: Iterable[str]) -> None:
        await asyncio.to_thread(self._remove_many, list(keys))

    def _get(self, key: str) -> Optional[Any]:
        with self._conn_lock:
            try:
                cur = self._cursor()
                cur.execute("SELECT value FROM kv_store WHERE key = %s", (key,))
                row = cur.fetchone()
                cur.close()
                self.conn.commit()
            except psycopg2.Error as e:
                self.conn.rollback()
                raise StorageError(f"Failed to read '{key}': {e}") from e
        if not row:
            return None
        return row["value"]

    def _set(self, key: str, value: Any) -> None:
        with self._conn_lock:
            try:
                cur = self.conn.cursor()
                cur.execute(
                    """INSERT INTO kv_store (key, value, updated_at)
                       VALUES (%s, %s, %s)
                       ON CONFLICT(key) DO UPDATE SET
                         value = EXCLUDED.value,
                         updated_at = EXCLUDED.updated_at""",
                    (key, psycopg2.extras.Json(value), datetime.now().isoformat()),
                )
                self.conn.commit()
                cur.close()
            except psycopg2.Error as e:
                self.conn.rollback()
                raise StorageError(f"Failed to write '{key}': {e}") from e

    def _remove_many(self, keys: List[str]) -> None:
        # One transaction: either every key goes or none does.
        with self._conn_lock:
            try:
                cur = self.conn.cursor()
                cur.execute("DELETE FROM kv_store WHERE key = ANY(%s)", (keys,))
                self.conn.commit()
                cur.close()
            except psycopg2.Error as e:
                self.conn.rollback()
                raise StorageError(f"Failed to clear {', '.join(keys)}: {e}") from e


def open_store(db_url: str = "") -> KeyValueStore:
    """Postgres when a URL is configured, otherwise an in-memory store."""
    db_url = db_url or config.DB_URL
    if not db_url:
        logger.info("No database URL configured; using in-memory store")
        return MemoryStore()
    try:
        store = PostgresStore(db_url)
        store.initialize()
    except psycopg2.Error as e:
        raise StorageError(f"Could not open database: {e}") from e
    return store


# ---------------------------------------------------------------------------
# Typed storage service
# ---------------------------------------------------------------------------

class StorageService:
    """Reads and writes the four persisted collections.

    Write paths raise StorageError. Public read paths log and fall back to an
    empty value so the app stays usable; read-modify-write paths never do,
    since writing back an empty default would lose data.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._locks: Dict[str, asyncio.Lock] = {
            key: asyncio.Lock() for key in config.ALL_STORAGE_KEYS
        }

    async def _load(self, key: str) -> Optional[Any]:
        try:
            return await self.store.get(key)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read '{key}': {e}") from e

    async def _save(self, key: str, value: Any) -> None:
        try:
            await self.store.set(key, value)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write '{key}': {e}") from e

    async def _load_list(self, key: str) -> List[Dict]:
        value = await self._load(key)
        return list(value) if value else []

    # ------------------------------------------------------------------
    # User profile
    # ------------------------------------------------------------------
    async def save_user_profile(self, profile: UserProfile) -> None:
        await self._save(config.KEY_USER_PROFILE, self._profile_to_dict(profile))

    async def get_user_profile(self) -> Optional[UserProfile]:
        try:
            row = await self._load(config.KEY_USER_PROFILE)
        except StorageError as e:
            logger.warning("Error getting user profile: %s", e)
            return None
        if not row:
            return None
        return self._row_to_profile(row)

    # ------------------------------------------------------------------
    # Test results
    # ------------------------------------------------------------------
    async def save_test_result(self, record: TestRecord) -> None:
        async with self._locks[config.KEY_TEST_RESULTS]:
            rows = await self._load_list(config.KEY_TEST_RESULTS)
            rows.append(self._record_to_dict(record))
            await self._save(config.KEY_TEST_RESULTS, rows)

    async def get_test_results(self) -> List[TestRecord]:
        try:
            rows = await self._load_list(config.KEY_TEST_RESULTS)
        except StorageError as e:
            logger.warning("Error getting test results: %s", e)
            return []
        return [self._row_to_record(r) for r in rows]

    async def mark_submitted(self, record_id: str) -> bool:
        """Flip ``submitted`` on the stored record. Returns False if it isn't logged."""
        async with self._locks[config.KEY_TEST_RESULTS]:
            rows = await self._load_list(config.KEY_TEST_RESULTS)
            found = False
            for row in rows:
                if row["id"] == record_id:
                    row["submitted"] = True
                    found = True
            if found:
                await self._save(config.KEY_TEST_RESULTS, rows)
            return found

    # ------------------------------------------------------------------
    # Badges (earned only)
    # ------------------------------------------------------------------
    async def save_badge(self, badge: Badge) -> None:
        async with self._locks[config.KEY_BADGES]:
            rows = await self._load_list(config.KEY_BADGES)
            if any(r["id"] == badge.id for r in rows):
                return
            rows.append({
                "id": badge.id,
                "name": badge.name,
                "earned_date": (badge.earned_date or datetime.now().astimezone()).isoformat(),
            })
            await self._save(config.KEY_BADGES, rows)

    async def get_badges(self) -> List[Dict]:
        try:
            return await self._load_list(config.KEY_BADGES)
        except StorageError as e:
            logger.warning("Error getting badges: %s", e)
            return []

    # ------------------------------------------------------------------
    # Pending submissions
    # ------------------------------------------------------------------
    async def upsert_pending_submission(self, pending: PendingSubmission) -> None:
        """Insert or replace the entry keyed by record id, keeping its position."""
        async with self._locks[config.KEY_PENDING_SUBMISSIONS]:
            rows = await self._load_list(config.KEY_PENDING_SUBMISSIONS)
            new_row = self._pending_to_dict(pending)
            for i, row in enumerate(rows):
                if row["record"]["id"] == pending.id:
                    rows[i] = new_row
                    break
            else:
                rows.append(new_row)
            await self._save(config.KEY_PENDING_SUBMISSIONS, rows)

    async def update_pending_submission(self, pending: PendingSubmission) -> bool:
        """Replace an existing entry only. Returns False if it's gone meanwhile."""
        async with self._locks[config.KEY_PENDING_SUBMISSIONS]:
            rows = await self._load_list(config.KEY_PENDING_SUBMISSIONS)
            for i, row in enumerate(rows):
                if row["record"]["id"] == pending.id:
                    rows[i] = self._pending_to_dict(pending)
                    await self._save(config.KEY_PENDING_SUBMISSIONS, rows)
                    return True
            return False

    async def get_pending_submissions(self) -> List[PendingSubmission]:
        try:
            rows = await self._load_list(config.KEY_PENDING_SUBMISSIONS)
        except StorageError as e:
            logger.warning("Error getting pending submissions: %s", e)
            return []
        return [self._row_to_pending(r) for r in rows]

    async def get_pending_submission(self, record_id: str) -> Optional[PendingSubmission]:
        for pending in await self.get_pending_submissions():
            if pending.id == record_id:
                return pending
        return None

    async def remove_pending_submission(self, record_id: str) -> bool:
        """Drop the entry with this record id. Returns False if it wasn't queued."""
        async with self._locks[config.KEY_PENDING_SUBMISSIONS]:
            rows = await self._load_list(config.KEY_PENDING_SUBMISSIONS)
            remaining = [r for r in rows if r["record"]["id"] != record_id]
            if len(remaining) == len(rows):
                return False
            await self._save(config.KEY_PENDING_SUBMISSIONS, remaining)
            return True

    # ------------------------------------------------------------------
    # Logout
    # ------------------------------------------------------------------
    async def clear_all_data(self) -> None:
        locks = [self._locks[k] for k in config.ALL_STORAGE_KEYS]
        for lock in locks:
            await lock.acquire()
        try:
            await self.store.remove_many(config.ALL_STORAGE_KEYS)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to clear stored data: {e}") from e
        finally:
            for lock in reversed(locks):
                lock.release()

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------
    def _profile_to_dict(self, profile: UserProfile) -> Dict:
        return {
            "name": profile.name,
            "age": profile.age,
            "gender": profile.gender,
            "region": profile.region,
            "join_date": profile.join_date,
        }

    def _row_to_profile(self, row: Dict) -> UserProfile:
        return UserProfile(
            name=row.get("name", ""),
            age=int(row.get("age") or 0),
            gender=row.get("gender", ""),
            region=row.get("region", ""),
            join_date=row.get("join_date"),
        )

    def _record_to_dict(self, record: TestRecord) -> Dict:
        return {
            "id": record.id,
            "test_type": record.test_type.value,
            "score": record.score,
            "benchmark": record.benchmark.value,
            "date": record.date.isoformat(),
            "submitted": record.submitted,
            "video_path": record.video_path,
            "unit": record.unit,
            "metric_fields": dict(record.metric_fields),
        }

    def _row_to_record(self, row: Dict) -> TestRecord:
        return TestRecord(
            id=row["id"],
            test_type=TestType(row["test_type"]),
            score=row["score"],
            benchmark=Benchmark(row["benchmark"]),
            date=datetime.fromisoformat(row["date"]),
            submitted=bool(row.get("submitted", False)),
            video_path=row.get("video_path"),
            unit=row.get("unit"),
            metric_fields=dict(row.get("metric_fields") or {}),
        )

    def _pending_to_dict(self, pending: PendingSubmission) -> Dict:
        return {
            "record": self._record_to_dict(pending.record),
            "athlete_id": pending.athlete_id,
            "queued_at": pending.queued_at.isoformat(),
            "attempts": pending.attempts,
            "last_error": pending.last_error,
        }

    def _row_to_pending(self, row: Dict) -> PendingSubmission:
        return PendingSubmission(
            record=self._row_to_record(row["record"]),
            athlete_id=row["athlete_id"],
            queued_at=datetime.fromisoformat(row["queued_at"]),
            attempts=int(row.get("attempts") or 0),
            last_error=row.get("last_error"),
        )
