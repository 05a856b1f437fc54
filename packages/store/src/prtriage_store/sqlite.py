"""SQLiteCache: embedded key-value backend for shared CI caches.

The whole cache is one database file. Each put() and invalidate_by_pr() is
a single transaction, and invalidate_by_pr() is one DELETE on the indexed
`pr_number` column. The connection is shared by every thread using the
cache, so each statement runs under the instance lock.

Schema:
  cache_entries: one row per review fingerprint, value stored as JSON text.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading

from prtriage_store.base import BaseCache
from prtriage_store.models import CacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key         TEXT PRIMARY KEY,
    pr_number   INTEGER NOT NULL,
    created_at  TEXT,
    value_json  TEXT DEFAULT '{}'
);
CREATE INDEX IF NOT EXISTS idx_cache_pr ON cache_entries (pr_number);
"""


class SQLiteCache(BaseCache):
    """Stores cache entries in a local SQLite database file.

    The database path defaults to `.prtriage.db` in the current working
    directory. Configure via .prtriage.yml: `cache: sqlite` and
    `cache_path: /path/to/prtriage.db`.
    """

    def __init__(self, db_path: str = ".prtriage.db", timeout: float = 30.0):
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, timeout=timeout, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            row = self._conn.execute("SELECT * FROM cache_entries WHERE key=?", (key,)).fetchone()
        if row is None:
            return None
        try:
            value = json.loads(row["value_json"] or "{}")
        except json.JSONDecodeError as e:
            logger.warning("Ignoring corrupt cache row %s: %s", key, e)
            return None
        return CacheEntry(key=row["key"], pr_number=row["pr_number"], value=value, created_at=row["created_at"] or "")

    def put(self, entry: CacheEntry) -> None:
        with self._lock, self._conn:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO cache_entries (key, pr_number, created_at, value_json)
                VALUES (?, ?, ?, ?)
                """,
                (entry.key, entry.pr_number, entry.created_at, json.dumps(entry.value)),
            )

    def invalidate_by_pr(self, pr_number: int) -> int:
        with self._lock, self._conn:
            removed = self._conn.execute("DELETE FROM cache_entries WHERE pr_number=?", (pr_number,)).rowcount
        if removed:
            logger.info("Invalidated %d cached assessment(s) for PR #%s", removed, pr_number)
        return removed

    def close(self) -> None:
        with self._lock:
            self._conn.close()
