"""Review parser: turns a markdown review into ordered Finding records.

The parser is an explicit state machine over the events produced by
prtriage_core.review.lines:

    current_priority   set by a priority header, unset until one is seen
    current_finding    accumulator for the finding being read, or None
    output             finalized findings in document order

A finding is finalized on the next numbered header, the next priority
header, or end of document. A verdict line never finalizes, because some
review formats put more fields after the verdict.

Follow-up candidates are captured at the Skip marker itself: the snapshot
holds the fields seen *so far*. A Recommendation written after "→ Skip" is
kept on the finding but not on the snapshot.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field

from prtriage_core.models import Finding, Priority, Verdict
from prtriage_core.review.lines import (
    FieldLine,
    IssueHeader,
    LineEvent,
    PriorityHeader,
    TextLine,
    VerdictLine,
    iter_line_events,
    strip_emphasis,
)

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    findings: list[Finding] = field(default_factory=list)
    followup_candidates: list[Finding] = field(default_factory=list)


class ReviewParser:
    """Line-oriented state machine. One instance parses one document."""

    def __init__(self):
        self.current_priority: Priority | None = None
        self.current_finding: Finding | None = None
        self.output: list[Finding] = []
        self.followup_candidates: list[Finding] = []
        self._snapshot_taken = False

    def feed(self, event: LineEvent) -> None:
        if isinstance(event, PriorityHeader):
            self._finalize()
            self.current_priority = event.priority
        elif isinstance(event, IssueHeader):
            self._finalize()
            self._start(event)
        elif isinstance(event, FieldLine):
            if self.current_finding is not None:
                # Last write wins within one finding.
                setattr(self.current_finding, event.field, event.value)
        elif isinstance(event, VerdictLine):
            self._on_verdict(event.verdict)
        elif isinstance(event, TextLine):
            if self.current_finding is not None and not self.current_finding.title and event.text:
                self.current_finding.title = strip_emphasis(event.text)

    def close(self) -> ParseResult:
        self._finalize()
        return ParseResult(findings=list(self.output), followup_candidates=list(self.followup_candidates))

    # ------------------------------------------------------------------ #
    # Transitions                                                          #
    # ------------------------------------------------------------------ #

    def _start(self, header: IssueHeader) -> None:
        self._snapshot_taken = False
        if self.current_priority is None:
            logger.debug("Ignoring finding #%d outside any priority section", header.number)
            self.current_finding = None
            return
        self.current_finding = Finding(
            priority=self.current_priority,
            sequence_number=header.number,
            title=header.title,
        )

    def _on_verdict(self, verdict: Verdict) -> None:
        finding = self.current_finding
        if finding is None:
            return
        finding.verdict = verdict
        if verdict is not Verdict.SKIP or self._snapshot_taken:
            return
        self._snapshot_taken = True
        # CRITICAL findings are never deferred to follow-up issues.
        if finding.title and finding.priority is not Priority.CRITICAL:
            self.followup_candidates.append(dataclasses.replace(finding))

    def _finalize(self) -> None:
        finding = self.current_finding
        self.current_finding = None
        if finding is None:
            return
        if not finding.is_complete:
            logger.debug("Dropping incomplete finding %s", finding.identity)
            return
        self.output.append(finding)


def parse_review(text: str) -> ParseResult:
    """Parse one review document. Pure: the same text always yields equal results."""
    parser = ReviewParser()
    for event in iter_line_events(text or ""):
        parser.feed(event)
    return parser.close()
