"""Line classification for semi-structured markdown reviews.

Reviews come from a text generator, so the same structure shows up in
several spellings (`#### 4.`, `**4.**`, `Issue #4:`). All of that pattern
matching lives here: iter_line_events() turns raw text into a lazy stream of
typed events, and the parser's state machine only ever sees those events.

Classification order per line (first match wins):
  1. priority section header  → PriorityHeader
  2. numbered finding header  → IssueHeader
  3. labeled field line       → FieldLine
  4. verdict marker           → VerdictLine
  5. anything else            → TextLine
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Union

from prtriage_core.models import Priority, Verdict

# "### HIGH Priority", "## 🔴 CRITICAL Priority Issues", "**LOW Priority**".
# The captured word is validated against Priority afterwards, so an unknown
# word ("### URGENT Priority") falls through to plain text.
_PRIORITY_RE = re.compile(r"^\s*(?:#{2,4}|\*\*)\s*[^\w\s]*\s*(\w+)\s+Priority\b", re.IGNORECASE)

_NUMBERED_RE = re.compile(
    r"""
    ^\s*
    (?:
        \#{3,6}\s*(?:\*\*)?         # "#### 4."  or "#### **4."
      | (?:\*\*)?Issue\s*\#         # "Issue #4:" or "**Issue #4:"
      | \*\*                        # "**4.**"
    )
    \s*(\d+)\s*[.):]
    """,
    re.VERBOSE | re.IGNORECASE,
)

# Labels are case-sensitive; whitespace around them is not.
_FIELD_RE = re.compile(
    r"^\s*(?:[-*]\s+)?\*\*\s*(Location|Problem|Issue|Why\s+it\s+matters|Recommendation)\s*:\s*\*\*\s*(.*)$"
)

_FIELD_NAMES = {
    "Location": "location",
    "Problem": "problem",
    "Issue": "problem",
    "Why it matters": "rationale",
    "Recommendation": "recommendation",
}

_VERDICT_RES = (
    re.compile(r"(?:→|->)\s*(skip|fix\s+now)\b", re.IGNORECASE),
    re.compile(r"^\s*(?:[-*]\s+)?\*\*Verdict\s*:?\s*\*\*\s*:?\s*(skip|fix\s+now)\b", re.IGNORECASE),
    re.compile(r"\*\*(skip|fix\s+now)\*\*", re.IGNORECASE),
)


@dataclass(frozen=True)
class PriorityHeader:
    priority: Priority


@dataclass(frozen=True)
class IssueHeader:
    number: int
    title: str


@dataclass(frozen=True)
class FieldLine:
    field: str  # attribute name on Finding
    value: str


@dataclass(frozen=True)
class VerdictLine:
    verdict: Verdict


@dataclass(frozen=True)
class TextLine:
    text: str


LineEvent = Union[PriorityHeader, IssueHeader, FieldLine, VerdictLine, TextLine]


def strip_emphasis(text: str) -> str:
    """Remove bold/italic markers and stray heading characters around a title."""
    text = text.replace("**", "").replace("__", "")
    return text.strip().strip("#*_").strip()


def classify_line(line: str) -> LineEvent:
    """Classify a single review line. Never raises."""
    match = _PRIORITY_RE.match(line)
    if match:
        priority = Priority.from_text(match.group(1))
        if priority is not None:
            return PriorityHeader(priority)

    match = _NUMBERED_RE.match(line)
    if match:
        return IssueHeader(number=int(match.group(1)), title=strip_emphasis(line[match.end() :]))

    match = _FIELD_RE.match(line)
    if match:
        label = re.sub(r"\s+", " ", match.group(1))
        return FieldLine(field=_FIELD_NAMES[label], value=match.group(2).strip())

    for pattern in _VERDICT_RES:
        match = pattern.search(line)
        if match:
            token = match.group(1).lower()
            return VerdictLine(Verdict.SKIP if token.startswith("skip") else Verdict.FIX_NOW)

    return TextLine(line.strip())


def iter_line_events(text: str) -> Iterator[LineEvent]:
    """Lazily yield one classified event per line of ``text``."""
    for line in text.splitlines():
        yield classify_line(line)
