"""Assessment cache data models.

Decoupled from prtriage_core so the cache layer can be used independently
and prtriage_core has no knowledge of how entries are persisted. Keys and
values are opaque to the cache: the caller derives the key and owns the
JSON-serializable value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class CacheEntry:
    """A cached triage result for one (PR, review) pair.

    ``pr_number`` is the tag used by invalidate_by_pr(); it is stored with the
    entry rather than parsed from the key.
    """

    key: str
    pr_number: int
    value: dict = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "pr_number": self.pr_number,
            "created_at": self.created_at,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> CacheEntry:
        return cls(
            key=d.get("key", ""),
            pr_number=int(d.get("pr_number", 0)),
            value=d.get("value") or {},
            created_at=d.get("created_at", ""),
        )
