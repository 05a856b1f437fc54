"""Tests for the review line classifier and parser state machine."""

import pytest

from prtriage_core.models import Priority, Verdict
from prtriage_core.review.lines import (
    FieldLine,
    IssueHeader,
    PriorityHeader,
    TextLine,
    VerdictLine,
    classify_line,
    iter_line_events,
    strip_emphasis,
)
from prtriage_core.review.parser import ReviewParser, parse_review

EXAMPLE_REVIEW = """\
### HIGH Priority
#### 1. Add input validation
**Problem:** No validation on user field
→ Skip - deferred
"""

FULL_REVIEW = """\
<!-- review-source source:local model:opus timestamp:2026-03-01T12:00:00Z -->
## Code Review

Some general remarks that are not findings.

### 🔴 CRITICAL Priority

#### 1. SQL injection in search endpoint
**Location:** api/search.py:42
**Problem:** Query string is interpolated into SQL.
**Why it matters:** Attackers can read any table.
**Recommendation:** Use bound parameters.
→ Fix now

### HIGH Priority

#### 1. Race condition in cache writer
**Location:** cache/writer.py:10
**Problem:** Two writers can interleave.
**Why it matters:** Corrupt entries.
→ Fix now

#### 2. Retry loop never backs off
**Location:** client.py:88
**Problem:** Tight loop on 500s.
**Why it matters:** Hammers the upstream.
**Recommendation:** Exponential backoff.
→ Skip - tracked separately

### MEDIUM Priority

**3.** Rename helper for clarity
**Location:** utils.py
**Problem:** Name is misleading.
**Verdict:** Skip - cosmetic

### LOW Priority

Issue #4: Trailing whitespace in README
- **Location:** README.md
- **Problem:** Whitespace noise.

Overall: Needs work before merge.
"""


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------


class TestClassifyLine:
    @pytest.mark.parametrize(
        "line, priority",
        [
            ("### HIGH Priority", Priority.HIGH),
            ("## critical priority", Priority.CRITICAL),
            ("#### Medium Priority Issues", Priority.MEDIUM),
            ("**LOW Priority**", Priority.LOW),
            ("### 🟡 MEDIUM Priority", Priority.MEDIUM),
        ],
    )
    def test_priority_headers(self, line, priority):
        assert classify_line(line) == PriorityHeader(priority)

    def test_unknown_severity_word_is_text(self):
        assert isinstance(classify_line("### URGENT Priority"), TextLine)

    def test_single_hash_is_not_priority_header(self):
        assert isinstance(classify_line("# HIGH Priority"), TextLine)

    @pytest.mark.parametrize(
        "line, number, title",
        [
            ("#### 1. Add input validation", 1, "Add input validation"),
            ("#### **2. Bold title**", 2, "Bold title"),
            ("**3.** Rename helper", 3, "Rename helper"),
            ("**4) Paren style**", 4, "Paren style"),
            ("Issue #5: Leak in pool", 5, "Leak in pool"),
            ("**Issue #6:** Emphasised issue", 6, "Emphasised issue"),
        ],
    )
    def test_numbered_headers(self, line, number, title):
        assert classify_line(line) == IssueHeader(number=number, title=title)

    @pytest.mark.parametrize(
        "line, field, value",
        [
            ("**Location:** src/app.py:12", "location", "src/app.py:12"),
            ("**Problem:** Null deref", "problem", "Null deref"),
            ("**Issue:** Null deref", "problem", "Null deref"),
            ("**Why it matters:** Crashes prod", "rationale", "Crashes prod"),
            ("**Recommendation:** Guard it", "recommendation", "Guard it"),
            ("- **Location:**   lib.py  ", "location", "lib.py"),
            ("  * **Problem :** spaced label", "problem", "spaced label"),
        ],
    )
    def test_field_lines(self, line, field, value):
        assert classify_line(line) == FieldLine(field=field, value=value)

    def test_field_labels_are_case_sensitive(self):
        assert isinstance(classify_line("**location:** src/app.py"), TextLine)

    @pytest.mark.parametrize(
        "line, verdict",
        [
            ("→ Skip - deferred", Verdict.SKIP),
            ("-> Fix now", Verdict.FIX_NOW),
            ("→ FIX NOW", Verdict.FIX_NOW),
            ("**Verdict:** Skip - later", Verdict.SKIP),
            ("**Verdict:** Fix now", Verdict.FIX_NOW),
            ("**Skip**", Verdict.SKIP),
            ("**Fix now**", Verdict.FIX_NOW),
        ],
    )
    def test_verdict_markers(self, line, verdict):
        assert classify_line(line) == VerdictLine(verdict)

    def test_plain_text(self):
        assert classify_line("  just prose  ") == TextLine("just prose")

    def test_iter_line_events_is_lazy_and_ordered(self):
        events = iter_line_events("### HIGH Priority\n#### 1. Title\n→ Skip")
        assert next(events) == PriorityHeader(Priority.HIGH)
        assert next(events) == IssueHeader(number=1, title="Title")
        assert next(events) == VerdictLine(Verdict.SKIP)
        with pytest.raises(StopIteration):
            next(events)

    def test_strip_emphasis(self):
        assert strip_emphasis("**Bold** _and_ __strong__ **") == "Bold _and_ strong"


# ---------------------------------------------------------------------------
# Parser state machine
# ---------------------------------------------------------------------------


class TestParseReview:
    def test_example_review(self):
        result = parse_review(EXAMPLE_REVIEW)

        assert len(result.findings) == 1
        finding = result.findings[0]
        assert finding.priority is Priority.HIGH
        assert finding.sequence_number == 1
        assert finding.title == "Add input validation"
        assert finding.problem == "No validation on user field"
        assert finding.verdict is Verdict.SKIP
        assert [f.identity for f in result.followup_candidates] == ["HIGH-1"]

    def test_full_review_in_document_order(self):
        result = parse_review(FULL_REVIEW)

        assert [f.identity for f in result.findings] == ["CRITICAL-1", "HIGH-1", "HIGH-2", "MEDIUM-3", "LOW-4"]
        assert [f.verdict for f in result.findings] == [
            Verdict.FIX_NOW,
            Verdict.FIX_NOW,
            Verdict.SKIP,
            Verdict.SKIP,
            Verdict.UNSTATED,
        ]
        retry = result.findings[2]
        assert retry.location == "client.py:88"
        assert retry.rationale == "Hammers the upstream."
        assert retry.recommendation == "Exponential backoff."
        assert result.findings[4].location == "README.md"

    def test_followup_candidates_are_skip_findings(self):
        result = parse_review(FULL_REVIEW)
        assert [f.identity for f in result.followup_candidates] == ["HIGH-2", "MEDIUM-3"]

    @pytest.mark.parametrize("count", [1, 3, 7])
    def test_n_numbered_findings_yield_n_records(self, count):
        sections = ["### MEDIUM Priority"]
        for i in range(1, count + 1):
            sections.append(f"#### {i}. Finding {i}\n**Problem:** p{i}")
        result = parse_review("\n".join(sections))
        assert [f.sequence_number for f in result.findings] == list(range(1, count + 1))

    def test_multiple_sections_each_with_many_findings(self):
        text = "### HIGH Priority\n#### 1. a\n#### 2. b\n### LOW Priority\n#### 1. c\n#### 2. d\n#### 3. e"
        result = parse_review(text)
        assert [f.identity for f in result.findings] == ["HIGH-1", "HIGH-2", "LOW-1", "LOW-2", "LOW-3"]

    def test_parsing_is_deterministic(self):
        first = parse_review(FULL_REVIEW)
        second = parse_review(FULL_REVIEW)
        assert [f.to_dict() for f in first.findings] == [f.to_dict() for f in second.findings]
        assert [f.to_dict() for f in first.followup_candidates] == [f.to_dict() for f in second.followup_candidates]

    def test_duplicate_label_last_write_wins(self):
        text = "### LOW Priority\n#### 1. T\n**Problem:** first\n**Problem:** second"
        assert parse_review(text).findings[0].problem == "second"

    def test_zero_sections_returns_empty_result(self):
        result = parse_review("LGTM! Nothing to report.\n\n- minor nit somewhere")
        assert result.findings == []
        assert result.followup_candidates == []

    def test_empty_and_none_input(self):
        assert parse_review("").findings == []
        assert parse_review(None).findings == []

    def test_missing_verdict_stays_unstated_and_no_followup(self):
        text = "### MEDIUM Priority\n#### 1. Unclear ownership\n**Problem:** who owns this?"
        result = parse_review(text)
        assert result.findings[0].verdict is Verdict.UNSTATED
        assert result.followup_candidates == []

    def test_missing_optional_fields_are_empty_strings(self):
        finding = parse_review("### LOW Priority\n#### 1. Bare finding").findings[0]
        assert finding.location == ""
        assert finding.rationale == ""
        assert finding.recommendation == ""

    def test_finding_before_any_priority_section_dropped(self):
        text = "#### 1. Orphan\n**Problem:** nowhere\n→ Skip\n### HIGH Priority\n#### 2. Real"
        result = parse_review(text)
        assert [f.identity for f in result.findings] == ["HIGH-2"]
        assert result.followup_candidates == []

    def test_unknown_priority_word_does_not_close_section(self):
        text = "### HIGH Priority\n#### 1. First\n### URGENT Priority\n#### 2. Second"
        result = parse_review(text)
        assert [f.identity for f in result.findings] == ["HIGH-1", "HIGH-2"]

    def test_title_taken_from_next_text_line_when_header_is_bare(self):
        text = "### LOW Priority\n#### 1.\n\n**Improve logging**\n**Problem:** sparse logs"
        finding = parse_review(text).findings[0]
        assert finding.title == "Improve logging"

    def test_finding_without_title_dropped(self):
        text = "### LOW Priority\n#### 1.\n**Problem:** no title anywhere"
        assert parse_review(text).findings == []

    def test_verdict_does_not_finalize(self):
        text = "### MEDIUM Priority\n#### 1. T\n→ Fix now\n**Recommendation:** after the verdict"
        finding = parse_review(text).findings[0]
        assert finding.verdict is Verdict.FIX_NOW
        assert finding.recommendation == "after the verdict"

    def test_skip_snapshot_excludes_fields_after_marker(self):
        text = "### MEDIUM Priority\n#### 1. T\n**Problem:** p\n→ Skip\n**Recommendation:** later field"
        result = parse_review(text)
        assert result.findings[0].recommendation == "later field"
        assert result.followup_candidates[0].problem == "p"
        assert result.followup_candidates[0].recommendation == ""

    def test_repeated_skip_marker_snapshots_once(self):
        text = "### LOW Priority\n#### 1. T\n→ Skip\n**Skip**"
        assert len(parse_review(text).followup_candidates) == 1

    def test_critical_skip_is_not_a_followup_candidate(self):
        text = "### CRITICAL Priority\n#### 1. Leaked key\n→ Skip - out of scope"
        result = parse_review(text)
        assert result.findings[0].verdict is Verdict.SKIP
        assert result.followup_candidates == []

    def test_field_lines_outside_finding_ignored(self):
        text = "**Location:** floating.py\n### LOW Priority\n**Problem:** before any header\n#### 1. T"
        finding = parse_review(text).findings[0]
        assert finding.location == ""
        assert finding.problem == ""


class TestReviewParserObject:
    def test_state_exposed_while_feeding(self):
        parser = ReviewParser()
        parser.feed(PriorityHeader(Priority.HIGH))
        parser.feed(IssueHeader(number=1, title="T"))

        assert parser.current_priority is Priority.HIGH
        assert parser.current_finding.title == "T"
        assert parser.output == []

        result = parser.close()
        assert [f.identity for f in result.findings] == ["HIGH-1"]
        assert parser.current_finding is None
