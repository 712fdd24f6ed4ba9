# local fallback store: per-owner key-value buckets on a sqlite file
# each bucket holds a json-serialized array of records, keyed like "patients_<owner id>"

import asyncio
import json
import logging
import os
import sqlite3
from typing import Callable, Optional, TypeVar

from app.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

UPSERT_SQL = (
    "INSERT INTO kv (key, value) VALUES (?, ?) "
    "ON CONFLICT(key) DO UPDATE SET value = excluded.value"
)

# bucket prefixes per collection
BUCKET_PREFIXES = {
    "patients": "patients",
    "therapy_plans": "therapy_plans",
}


def bucket_key(collection: str, owner_id: str) -> str:
    """derive the bucket key for an owner's collection"""
    prefix = BUCKET_PREFIXES.get(collection, collection)
    return f"{prefix}_{owner_id}"


def _decode_bucket(key: str, raw: Optional[str]) -> list[dict]:
    """parse a stored bucket, empty list if absent or unreadable"""
    if not raw:
        return []
    try:
        records = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Local bucket {key} is corrupt, ignoring it: {e}")
        return []
    if not isinstance(records, list):
        logger.warning(f"Local bucket {key} is not a list, ignoring it")
        return []
    return [r for r in records if isinstance(r, dict)]


class LocalStore:
    """persistent key-value store backed by a single sqlite table"""

    def __init__(self, path: str):
        self.path = path
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        # wait up to 30s for another writer to release the database lock
        return sqlite3.connect(self.path, timeout=30, check_same_thread=False)

    def _ensure_schema(self) -> None:
        conn = self._connect()
        try:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
            conn.commit()
        finally:
            conn.close()

    def get_sync(self, key: str) -> Optional[str]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return row[0] if row else None

    def set_sync(self, key: str, value: str) -> None:
        conn = self._connect()
        try:
            conn.execute(UPSERT_SQL, (key, value))
            conn.commit()
        finally:
            conn.close()

    def modify_sync(self, key: str, fn: Callable[[list[dict]], T]) -> T:
        """read, change and write one bucket inside a single write transaction.

        BEGIN IMMEDIATE takes the write lock before the read, so concurrent
        modifications of the same bucket run one after another.
        """
        conn = self._connect()
        conn.isolation_level = None
        try:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            records = _decode_bucket(key, row[0] if row else None)
            result = fn(records)
            conn.execute(UPSERT_SQL, (key, json.dumps(records)))
            conn.execute("COMMIT")
            return result
        except Exception:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise
        finally:
            conn.close()

    # async wrappers so the event loop never blocks on disk io

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self.get_sync, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self.set_sync, key, value)

    async def read_bucket(self, collection: str, owner_id: str) -> list[dict]:
        """load the owner's records for a collection, empty list if absent or unreadable"""
        key = bucket_key(collection, owner_id)
        return _decode_bucket(key, await self.get(key))

    async def write_bucket(self, collection: str, owner_id: str, records: list[dict]) -> None:
        await self.set(bucket_key(collection, owner_id), json.dumps(records))

    async def modify_bucket(self, collection: str, owner_id: str, fn: Callable[[list[dict]], T]) -> T:
        """apply fn to the owner's record list in place and persist it atomically; returns fn's result"""
        return await asyncio.to_thread(self.modify_sync, bucket_key(collection, owner_id), fn)


# singleton instance, created lazily so importing the app never touches disk
_local_store: Optional[LocalStore] = None


async def get_local_store() -> LocalStore:
    """dependency injection for the local fallback store"""
    global _local_store
    if _local_store is None:
        _local_store = LocalStore(settings.FALLBACK_STORE_PATH)
        logger.info(f"Local fallback store at {settings.FALLBACK_STORE_PATH}")
    return _local_store
