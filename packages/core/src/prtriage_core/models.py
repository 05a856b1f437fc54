"""Domain records shared by the parser, classifier and follow-up generator.

Every text field on Finding defaults to "" rather than None so downstream
consumers (classifier lexicons, issue body templates, cache serialization)
never need a null check.
"""

from __future__ import annotations

import hashlib
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum


class Priority(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @classmethod
    def from_text(cls, text: str) -> Priority | None:
        """Case-insensitive lookup; returns None for unknown severity words."""
        try:
            return cls(text.strip().upper())
        except ValueError:
            return None


class Verdict(str, Enum):
    FIX_NOW = "FIX_NOW"
    SKIP = "SKIP"
    UNSTATED = "UNSTATED"


class Disposition(str, Enum):
    ACTIONABLE_NOW = "ACTIONABLE_NOW"
    ACTIONABLE_LATER = "ACTIONABLE_LATER"
    DISMISSED = "DISMISSED"


class ReviewSource(str, Enum):
    HOSTED = "hosted"
    LOCAL = "local"


@dataclass
class Finding:
    """One reviewed issue extracted from a review document."""

    priority: Priority
    sequence_number: int
    title: str = ""
    location: str = ""
    problem: str = ""
    rationale: str = ""  # "Why it matters"
    recommendation: str = ""
    verdict: Verdict = Verdict.UNSTATED

    @property
    def identity(self) -> str:
        """Stable identity within one review, e.g. ``HIGH-1``."""
        return f"{self.priority.value}-{self.sequence_number}"

    @property
    def is_complete(self) -> bool:
        return self.priority is not None and self.sequence_number > 0 and bool(self.title)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["priority"] = self.priority.value
        data["verdict"] = self.verdict.value
        return data

    @classmethod
    def from_dict(cls, d: dict) -> Finding:
        return cls(
            priority=Priority(d["priority"]),
            sequence_number=int(d["sequence_number"]),
            title=d.get("title", ""),
            location=d.get("location", ""),
            problem=d.get("problem", ""),
            rationale=d.get("rationale", ""),
            recommendation=d.get("recommendation", ""),
            verdict=Verdict(d.get("verdict", Verdict.UNSTATED.value)),
        )


@dataclass
class TriagedFinding:
    """A Finding with the classifier's Disposition attached."""

    finding: Finding
    disposition: Disposition

    def to_dict(self) -> dict:
        return {"finding": self.finding.to_dict(), "disposition": self.disposition.value}

    @classmethod
    def from_dict(cls, d: dict) -> TriagedFinding:
        return cls(finding=Finding.from_dict(d["finding"]), disposition=Disposition(d["disposition"]))


@dataclass(frozen=True)
class ReviewDocument:
    """One fetched review: raw markdown plus provenance.

    Identified by (pr_number, timestamp, source). ``order`` is the position of
    the comment on the PR and only breaks ties between reviews. ``revision``
    distinguishes edits of a comment whose timestamp does not change.
    """

    pr_number: int
    body: str
    source: ReviewSource = ReviewSource.HOSTED
    model: str = ""
    timestamp: datetime | None = None
    order: int = 0
    revision: str = ""

    @property
    def version(self) -> str:
        if self.timestamp is None:
            return hashlib.sha256(self.body.encode("utf-8")).hexdigest()
        if self.revision:
            return f"{self.timestamp.isoformat()}+{self.revision}"
        return self.timestamp.isoformat()

    @property
    def fingerprint(self) -> str:
        """Cache key for this review: PR number plus timestamp or content hash."""
        return review_fingerprint(self.pr_number, self.version)


def review_fingerprint(pr_number: int, version: str) -> str:
    """Derive a filesystem-safe cache key from a PR number and review version.

    The PR number stays readable in the key so cache directories are easy to
    inspect by hand.
    """
    digest = hashlib.sha256(f"{pr_number}:{version}".encode("utf-8")).hexdigest()
    return f"pr{pr_number}-{digest[:24]}"


@dataclass
class FollowupIssue:
    """An external ticket derived from one Skip-verdict Finding."""

    title: str
    priority_label: str
    type_label: str
    body: str
    finding_identity: str
    labels: list[str] = field(default_factory=list)
    external_id: str = ""  # assigned by the tracker on creation
