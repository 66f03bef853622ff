# src/pomoquest/persistence/cache.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import time
from pathlib import Path

logger = logging.getLogger(__name__)

SNAPSHOT_KEY = "snapshot"
EXTERNAL_FILE_KEY = "external_file"


class CacheStore:
    """
    SQLite key/value cache (the always-on local copy of the state).

    Two logical slots are used: SNAPSHOT_KEY (full snapshot JSON) and
    EXTERNAL_FILE_KEY (remembered external file).

    Best-effort by contract: get() returns None and set()/delete() return False
    on failure; errors are logged, never raised. The in-memory state stays the
    source of truth for the running session.

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "cache.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("CacheStore ready db=%s", self._db_path)

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS cache (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def get(self, key: str) -> str | None:
        try:
            conn = self._get_conn()
        except sqlite3.Error:
            logger.exception("Cache read failed key=%s", key)
            return None
        try:
            row = conn.execute("SELECT value FROM cache WHERE key = ?", (key,)).fetchone()
            return str(row["value"]) if row else None
        except sqlite3.Error:
            logger.exception("Cache read failed key=%s", key)
            return None
        finally:
            conn.close()

    def set(self, key: str, value: str) -> bool:
        try:
            conn = self._get_conn()
        except sqlite3.Error:
            logger.exception("Cache write failed key=%s", key)
            return False
        try:
            conn.execute(
                """
                INSERT INTO cache(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, value, time.time()),
            )
            conn.commit()
            logger.debug("Cache write key=%s bytes=%d", key, len(value))
            return True
        except sqlite3.Error:
            logger.exception("Cache write failed key=%s", key)
            return False
        finally:
            conn.close()

    def delete(self, key: str) -> bool:
        try:
            conn = self._get_conn()
        except sqlite3.Error:
            logger.exception("Cache delete failed key=%s", key)
            return False
        try:
            conn.execute("DELETE FROM cache WHERE key = ?", (key,))
            conn.commit()
            return True
        except sqlite3.Error:
            logger.exception("Cache delete failed key=%s", key)
            return False
        finally:
            conn.close()
