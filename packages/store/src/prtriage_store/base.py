"""Abstract cache interface.

Every backend (flat files, SQLite, in-memory) implements this interface.
The triage pipeline depends on BaseCache, never on a concrete backend, so
the backing store is swappable without touching the classifier.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prtriage_store.models import CacheEntry


class BaseCache(ABC):
    """Key-value store for triage results keyed by review fingerprint.

    Backends must tolerate independent pipeline instances calling get(),
    put() and invalidate_by_pr() concurrently. A reader racing with an
    invalidation sees either the whole entry or no entry.
    """

    @abstractmethod
    def get(self, key: str) -> CacheEntry | None:
        """Return the entry for ``key`` or None on a miss.

        Unreadable or half-deleted entries are misses: never raises.
        """

    @abstractmethod
    def put(self, entry: CacheEntry) -> None:
        """Store ``entry``, replacing any existing entry with the same key."""

    @abstractmethod
    def invalidate_by_pr(self, pr_number: int) -> int:
        """Delete every entry tagged with ``pr_number`` and return the count.

        Entries of other PRs are left untouched.
        """

    def close(self) -> None:
        """Release any resources held by the cache (connections, file handles).

        Default is a no-op so callers can always call close() safely.
        """
