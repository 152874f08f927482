"""
TCF Manager — SQLite key-value store.

All application state lives in one table of serialized JSON strings,
one row per key. Every write replaces the whole value for its key.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from tcf_manager.ports.storage_port import StorageReadError, StorageWriteError

logger = logging.getLogger(__name__)

_MEMORY = ":memory:"


class SQLiteKeyValueStore:
    """SQLite-backed implementation of the KeyValueStore port."""

    def __init__(self, db_path: str | None = None, quota_bytes: int | None = None) -> None:
        if db_path is None or quota_bytes is None:
            from tcf_manager.config import settings
            db_path = db_path or settings.DATABASE_PATH
            quota_bytes = settings.STORAGE_QUOTA_BYTES if quota_bytes is None else quota_bytes

        self._db_path = db_path
        self._quota_bytes = quota_bytes
        # A ":memory:" database only lives as long as its connection, which
        # draft autosave timers may use from another thread
        self._shared: sqlite3.Connection | None = None
        if db_path == _MEMORY:
            self._shared = sqlite3.connect(db_path, check_same_thread=False)
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._shared is not None:
            return self._shared
        return sqlite3.connect(self._db_path)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
        logger.debug("Key-value table initialized at %s", self._db_path)

    def get_item(self, key: str) -> str | None:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        except sqlite3.Error as exc:
            raise StorageReadError(f"Failed to read {key!r}: {exc}") from exc
        return None if row is None else row[0]

    def set_item(self, key: str, value: str) -> None:
        try:
            with self._connect() as conn:
                if self._quota_bytes:
                    self._check_quota(conn, key, value)
                conn.execute(
                    "INSERT INTO kv (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (key, value),
                )
        except sqlite3.Error as exc:
            raise StorageWriteError(f"Failed to write {key!r}: {exc}") from exc

    def remove_item(self, key: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as exc:
            raise StorageWriteError(f"Failed to remove {key!r}: {exc}") from exc

    def keys(self) -> list[str]:
        try:
            with self._connect() as conn:
                rows = conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        except sqlite3.Error as exc:
            raise StorageReadError(f"Failed to list keys: {exc}") from exc
        return [r[0] for r in rows]

    def _check_quota(self, conn: sqlite3.Connection, key: str, value: str) -> None:
        """Reject a write that would push the store past its byte quota."""
        row = conn.execute(
            "SELECT COALESCE(SUM(LENGTH(CAST(key AS BLOB)) + LENGTH(CAST(value AS BLOB))), 0) "
            "FROM kv WHERE key != ?",
            (key,),
        ).fetchone()
        needed = row[0] + len(key.encode("utf-8")) + len(value.encode("utf-8"))
        if needed > self._quota_bytes:
            raise StorageWriteError(
                f"Quota exceeded writing {key!r}: {needed} > {self._quota_bytes} bytes"
            )
