"""Follow-up issue generator: files Skip-verdict findings as tracked issues.

A reviewer's "→ Skip" means "valid, but not in this PR". Each such finding
becomes one issue labeled with its priority and a coarse type so it can be
scheduled later.

Idempotency: create_issue is called at most once per (finding, PR). The
FollowupLedger records each created issue in the cache entry of the review
being processed *immediately after* the tracker returns, so a run that is
aborted halfway can be re-run without duplicating the issues it already
filed.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from rich.console import Console

from prtriage_core.errors import TrackerError
from prtriage_core.gh.issues import IssueTracker
from prtriage_core.models import Finding, FollowupIssue, Priority, Verdict
from prtriage_store.base import BaseCache
from prtriage_store.models import CacheEntry

console = Console()
logger = logging.getLogger(__name__)

_PRIORITY_LABELS = {
    Priority.HIGH: "High Priority",
    Priority.MEDIUM: "Medium Priority",
    Priority.LOW: "Low Priority",
}

_DOC_RE = re.compile(r"\bdoc(?:s|ument\w*|string\w*)?\b|readme|claude\.md", re.IGNORECASE)
_TEST_RE = re.compile(r"\btest", re.IGNORECASE)
_TEST_PATH_RE = re.compile(r"(?:^|/)tests?/|(?:^|/)test_|_test\.|\.test\.|\.spec\.|(?:^|/)__tests__/", re.IGNORECASE)
_ENHANCEMENT_RE = re.compile(r"refactor|complex", re.IGNORECASE)
_INFRA_RE = re.compile(r"infrastructure|deploy", re.IGNORECASE)

_ACCEPTANCE_CRITERIA = """## Acceptance Criteria
- [ ] Issue addressed
- [ ] Tests updated if applicable
- [ ] Documentation updated if applicable"""


def priority_label(priority: Priority) -> str | None:
    """Tracker label for ``priority``; None for CRITICAL, which is never deferred."""
    return _PRIORITY_LABELS.get(priority)


def type_label(finding: Finding) -> str:
    """Coarse issue type from keywords in the title and location. Never empty."""
    title, location = finding.title, finding.location
    if _DOC_RE.search(title) or _DOC_RE.search(location):
        return "documentation"
    if _TEST_RE.search(title) or _TEST_PATH_RE.search(location):
        return "testing"
    if _ENHANCEMENT_RE.search(title):
        return "enhancement"
    if _INFRA_RE.search(location):
        return "infrastructure"
    return "enhancement"


def build_issue_body(finding: Finding, pr_number: int, pr_title: str) -> str:
    """Assemble the issue body. Location and Recommendation sections are
    omitted entirely when the finding has no value for them."""
    sections = [
        f"## From PR Review\nPR #{pr_number} - {pr_title}",
        f"## Priority\n{finding.priority.value}",
    ]
    if finding.location:
        sections.append(f"## Location\n`{finding.location}`")
    sections.append(f"## Issue\n{finding.problem}")
    sections.append(f"## Why It Matters\n{finding.rationale}")
    if finding.recommendation:
        sections.append(f"## Recommendation\n{finding.recommendation}")
    sections.append(_ACCEPTANCE_CRITERIA)
    return "\n\n".join(sections) + "\n"


def build_followup(
    finding: Finding,
    pr_number: int,
    pr_title: str,
    base_labels: list[str] | tuple[str, ...] = ("pr-review",),
) -> FollowupIssue:
    prio_label = priority_label(finding.priority) or ""
    kind = type_label(finding)
    labels = [label for label in (*base_labels, prio_label, kind) if label]
    return FollowupIssue(
        title=finding.title,
        priority_label=prio_label,
        type_label=kind,
        body=build_issue_body(finding, pr_number, pr_title),
        finding_identity=finding.identity,
        labels=labels,
    )


class FollowupLedger:
    """Per-review record of issues already filed, stored in the review's cache entry.

    The entry's ``value["followups"]`` maps finding identity → external id.
    Other keys of the entry (the cached triage result) are preserved.
    """

    def __init__(self, cache: BaseCache, key: str, pr_number: int):
        self._cache = cache
        self._key = key
        self._pr_number = pr_number

    def recorded(self, identity: str) -> str | None:
        entry = self._cache.get(self._key)
        if entry is None:
            return None
        return (entry.value.get("followups") or {}).get(identity)

    def record(self, identity: str, external_id: str) -> None:
        entry = self._cache.get(self._key) or CacheEntry(key=self._key, pr_number=self._pr_number)
        followups = dict(entry.value.get("followups") or {})
        followups[identity] = external_id
        entry.value = {**entry.value, "followups": followups}
        self._cache.put(entry)


@dataclass
class FollowupReport:
    created: list[FollowupIssue] = field(default_factory=list)
    failed: list[tuple[FollowupIssue, str]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)  # finding identities

    @property
    def succeeded(self) -> int:
        return len(self.created)

    @property
    def failures(self) -> int:
        return len(self.failed)


def is_eligible(finding: Finding) -> bool:
    return finding.verdict is Verdict.SKIP and bool(finding.title) and priority_label(finding.priority) is not None


def create_followups(
    candidates: list[Finding],
    pr_number: int,
    pr_title: str,
    tracker: IssueTracker,
    base_labels: list[str] | tuple[str, ...] = ("pr-review",),
    ledger: FollowupLedger | None = None,
) -> FollowupReport:
    """File one issue per eligible candidate.

    A tracker failure on one candidate is recorded in the report and the
    batch continues with the rest.
    """
    report = FollowupReport()
    for finding in candidates:
        if not is_eligible(finding):
            logger.debug("Not filing %s: verdict=%s title=%r", finding.identity, finding.verdict.value, finding.title)
            report.skipped.append(finding.identity)
            continue

        if ledger is not None:
            existing = ledger.recorded(finding.identity)
            if existing:
                console.print(f"  [dim]Already filed #{existing}: {finding.title}[/dim]")
                report.skipped.append(finding.identity)
                continue

        issue = build_followup(finding, pr_number, pr_title, base_labels)
        try:
            issue.external_id = tracker.create_issue(issue.title, issue.body, issue.labels)
        except TrackerError as e:
            logger.warning("Follow-up issue for %s failed: %s", finding.identity, e)
            console.print(f"  [red]Failed to create issue: {issue.title}[/red]")
            report.failed.append((issue, str(e)))
            continue

        if ledger is not None:
            ledger.record(finding.identity, issue.external_id)
        console.print(f"  [green]Created issue #{issue.external_id}: {issue.title}[/green]")
        report.created.append(issue)

    return report
