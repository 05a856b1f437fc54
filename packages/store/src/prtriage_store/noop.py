"""No-op cache: used when caching is disabled (`cache: none`).

Every lookup misses, so each run re-parses the review. Using a NoOpCache
rather than None lets the pipeline always call the cache without
conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prtriage_store.base import BaseCache

if TYPE_CHECKING:
    from prtriage_store.models import CacheEntry


class NoOpCache(BaseCache):
    """Discards every entry. Follow-up creation is not idempotent with this cache."""

    def get(self, key: str) -> CacheEntry | None:
        return None

    def put(self, entry: CacheEntry) -> None:
        pass  # intentional no-op

    def invalidate_by_pr(self, pr_number: int) -> int:
        return 0
