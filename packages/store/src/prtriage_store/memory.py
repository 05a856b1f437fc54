"""MemoryCache: process-local cache for tests and single-process batch runs."""

from __future__ import annotations

import copy
import threading
from typing import TYPE_CHECKING

from prtriage_store.base import BaseCache

if TYPE_CHECKING:
    from prtriage_store.models import CacheEntry


class MemoryCache(BaseCache):
    """Dict-backed cache guarded by a single lock.

    invalidate_by_pr() is a scan followed by deletes, so it holds the lock
    over the whole key space; get() and put() take the same lock so they
    never interleave with a half-finished invalidation.
    """

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            return copy.deepcopy(entry) if entry is not None else None

    def put(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[entry.key] = copy.deepcopy(entry)

    def invalidate_by_pr(self, pr_number: int) -> int:
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.pr_number == pr_number]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
