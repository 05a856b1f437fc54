"""Tests for the triage classifier."""

import pytest

from prtriage_core.models import Disposition, Finding, Priority, Verdict
from prtriage_core.triage import classify, classify_text, has_measured_performance_claim, triage


def _finding(priority=Priority.MEDIUM, title="", problem="", verdict=Verdict.UNSTATED, **kwargs):
    return Finding(priority=priority, sequence_number=1, title=title, problem=problem, verdict=verdict, **kwargs)


class TestSecurityRule:
    def test_example_high_skip_with_missing_validation(self):
        finding = _finding(
            Priority.HIGH,
            title="Add input validation",
            problem="No validation on user field",
            verdict=Verdict.SKIP,
        )
        assert classify(finding) is Disposition.ACTIONABLE_NOW

    @pytest.mark.parametrize(
        "title",
        [
            "Possible SQL injection in search",
            "Hard-coded secret in settings",
            "Credential logged at debug level",
            "Reflected XSS in error page",
            "Insecure default for cookies",
            "Sanitize filenames before use",
            "Missing authorization check on delete",
        ],
    )
    def test_security_lexicon_is_actionable_now(self, title):
        assert classify(_finding(Priority.LOW, title=title, verdict=Verdict.SKIP)) is Disposition.ACTIONABLE_NOW

    def test_security_beats_style(self):
        finding = _finding(Priority.LOW, title="Inconsistent formatting in credential loader")
        assert classify(finding) is Disposition.ACTIONABLE_NOW

    def test_author_is_not_auth(self):
        finding = _finding(Priority.LOW, title="Author name formatting")
        assert classify(finding) is Disposition.DISMISSED


class TestMissingTestRule:
    @pytest.mark.parametrize(
        "title, problem",
        [
            ("Missing tests for parser", ""),
            ("Edge cases", "This branch is untested."),
            ("Coverage gap", "No test coverage for the retry path."),
        ],
    )
    def test_missing_tests_are_actionable_now(self, title, problem):
        finding = _finding(Priority.LOW, title=title, problem=problem, verdict=Verdict.SKIP)
        assert classify(finding) is Disposition.ACTIONABLE_NOW


class TestSeverityRule:
    @pytest.mark.parametrize("priority", [Priority.CRITICAL, Priority.HIGH])
    @pytest.mark.parametrize("verdict", [Verdict.FIX_NOW, Verdict.UNSTATED])
    def test_high_severity_without_skip_is_actionable_now(self, priority, verdict):
        finding = _finding(priority, title="Retry loop never backs off", verdict=verdict)
        assert classify(finding) is Disposition.ACTIONABLE_NOW

    def test_high_severity_skip_falls_through_to_default(self):
        finding = _finding(Priority.HIGH, title="Retry loop never backs off", verdict=Verdict.SKIP)
        assert classify(finding) is Disposition.ACTIONABLE_LATER


class TestDeferRule:
    def test_defer_lexicon_in_title(self):
        assert classify(_finding(title="Consider extracting a helper")) is Disposition.ACTIONABLE_LATER

    def test_defer_lexicon_in_recommendation(self):
        finding = _finding(Priority.LOW, title="Long function", recommendation="Refactor into smaller pieces")
        assert classify(finding) is Disposition.ACTIONABLE_LATER

    def test_skip_on_low_style_finding_is_deferred_not_dismissed(self):
        finding = _finding(Priority.LOW, title="Naming of cache variable", verdict=Verdict.SKIP)
        assert classify(finding) is Disposition.ACTIONABLE_LATER


class TestStyleRule:
    def test_pure_style_is_dismissed(self):
        finding = _finding(Priority.LOW, title="Fix indentation in config loader", problem="Inconsistent whitespace")
        assert classify(finding) is Disposition.DISMISSED

    def test_style_with_behavioral_claim_is_not_dismissed(self):
        finding = _finding(Priority.LOW, title="Naming typo breaks import")
        assert classify(finding) is Disposition.ACTIONABLE_LATER


class TestDefault:
    def test_ambiguous_finding_is_deferred(self):
        assert classify(_finding(title="Clarify the module layout")) is Disposition.ACTIONABLE_LATER


class TestMeasuredPerformance:
    def test_measured_claim_needs_number_and_unit(self):
        finding = _finding(title="Slow dashboard query", problem="Adds 450 ms of latency per request")
        assert has_measured_performance_claim(finding)

    def test_unmeasured_claim(self):
        assert not has_measured_performance_claim(_finding(title="Might be slow", problem="Feels sluggish"))

    def test_number_without_performance_topic(self):
        assert not has_measured_performance_claim(_finding(title="Bump timeout to 30s"))


class TestClassifyText:
    def test_security_text(self):
        assert classify_text("Possible SQL injection in search") is Disposition.ACTIONABLE_NOW

    def test_style_text(self):
        assert classify_text("nit: trailing whitespace") is Disposition.DISMISSED

    def test_priority_and_verdict_respected(self):
        assert classify_text("Retry storm", priority=Priority.HIGH) is Disposition.ACTIONABLE_NOW
        deferred = classify_text("Retry storm", priority=Priority.HIGH, verdict=Verdict.SKIP)
        assert deferred is Disposition.ACTIONABLE_LATER


class TestTriage:
    def test_preserves_order_and_attaches_dispositions(self):
        findings = [
            _finding(Priority.LOW, title="Fix indentation"),
            _finding(Priority.CRITICAL, title="Data loss on restart"),
        ]
        result = triage(findings)
        assert [t.finding for t in result] == findings
        assert [t.disposition for t in result] == [Disposition.DISMISSED, Disposition.ACTIONABLE_NOW]

    def test_empty_input(self):
        assert triage([]) == []
