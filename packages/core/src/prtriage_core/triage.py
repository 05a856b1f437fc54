"""Triage classifier: maps each Finding to a Disposition.

Rules are evaluated in order and the first match wins:

  1. security lexicon in title/problem            → ACTIONABLE_NOW
  2. missing-test lexicon in title/problem        → ACTIONABLE_NOW
  3. CRITICAL/HIGH priority, verdict not Skip     → ACTIONABLE_NOW
  4. defer lexicon in title/recommendation, or
     Skip on MEDIUM/LOW without a measured
     performance claim                            → ACTIONABLE_LATER
  5. style lexicon with no behavioral claim       → DISMISSED
  6. anything else                                → ACTIONABLE_LATER

Ambiguous findings default to deferred, never to dismissed or blocking.
Classification is pure: whether a follow-up issue is created depends on the
verdict, not on the disposition.
"""

from __future__ import annotations

import re

from prtriage_core.models import Disposition, Finding, Priority, TriagedFinding, Verdict

_SECURITY_RE = re.compile(
    r"injection|\bauth(?:n|z|entication|orization|enticated)?\b|secret|credential|\bxss\b|"
    r"insecure|vulnerab|csrf|(?:missing|no|lack\s+of|without)\s+(?:input\s+)?validation|"
    r"input\s+validation|unvalidated|unsanitized|sanitiz",
    re.IGNORECASE,
)

_MISSING_TEST_RE = re.compile(
    r"missing\s+(?:unit\s+|integration\s+)?tests?\b|no\s+(?:unit\s+)?tests?\b|no\s+test\s+coverage|"
    r"lacks?\s+(?:test|coverage)|without\s+tests?\b|untested|test\s+coverage\s+(?:is\s+)?missing",
    re.IGNORECASE,
)

_DEFER_RE = re.compile(
    r"refactor|\bdefer|\bconsider\b|\blater\b|follow[- ]?up|\bfuture\b|nice[- ]to[- ]have|could\s+be\s+simplified",
    re.IGNORECASE,
)

_STYLE_RE = re.compile(
    r"\bstyle\b|formatting|\bnaming\b|\bnit(?:pick)?\b|whitespace|indentation|\btypo\b|cosmetic|"
    r"preference|\blint\b|trailing\s+comma",
    re.IGNORECASE,
)

_BEHAVIOR_RE = re.compile(
    r"\bbug\b|crash|incorrect|\bwrong\b|\bfails?\b|failure|\bbreaks?\b|\berror\b|\bleak|\brace\b|data\s+loss",
    re.IGNORECASE,
)

# A performance claim only counts as measured when it carries a number and a unit.
_MEASURED_PERF_RE = re.compile(
    r"\d+(?:\.\d+)?\s*(?:ms|milliseconds?|s\b|seconds?|%|x\b|mb|gb|kb|req/s|rps)",
    re.IGNORECASE,
)
_PERF_RE = re.compile(r"perf|latency|slow|throughput|memory|cpu|n\+1", re.IGNORECASE)


def _text(*parts: str) -> str:
    return " ".join(p for p in parts if p)


def has_measured_performance_claim(finding: Finding) -> bool:
    text = _text(finding.title, finding.problem, finding.rationale)
    return bool(_PERF_RE.search(text) and _MEASURED_PERF_RE.search(text))


def classify(finding: Finding) -> Disposition:
    """Return the Disposition for ``finding``."""
    title_problem = _text(finding.title, finding.problem)

    if _SECURITY_RE.search(title_problem):
        return Disposition.ACTIONABLE_NOW

    if _MISSING_TEST_RE.search(title_problem):
        return Disposition.ACTIONABLE_NOW

    if finding.priority in (Priority.CRITICAL, Priority.HIGH) and finding.verdict is not Verdict.SKIP:
        return Disposition.ACTIONABLE_NOW

    if _DEFER_RE.search(_text(finding.title, finding.recommendation)):
        return Disposition.ACTIONABLE_LATER
    if (
        finding.verdict is Verdict.SKIP
        and finding.priority in (Priority.MEDIUM, Priority.LOW)
        and not has_measured_performance_claim(finding)
    ):
        return Disposition.ACTIONABLE_LATER

    if _STYLE_RE.search(title_problem) and not _BEHAVIOR_RE.search(_text(title_problem, finding.rationale)):
        return Disposition.DISMISSED

    return Disposition.ACTIONABLE_LATER


def classify_text(
    text: str,
    priority: Priority | None = None,
    verdict: Verdict = Verdict.UNSTATED,
) -> Disposition:
    """Classify a raw description when no structured review is available.

    Without an explicit severity the text is treated as MEDIUM, so only the
    lexicon rules can escalate or dismiss it.
    """
    finding = Finding(priority=priority or Priority.MEDIUM, sequence_number=1, title=text.strip(), verdict=verdict)
    return classify(finding)


def triage(findings: list[Finding]) -> list[TriagedFinding]:
    """Attach a Disposition to every finding, preserving order."""
    return [TriagedFinding(finding=f, disposition=classify(f)) for f in findings]
