"""Tests for GitHub pull request and issue helpers."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from github import GithubException
from requests.exceptions import ConnectionError as RequestsConnectionError

from prtriage_core.errors import TrackerError
from prtriage_core.gh.issues import GitHubIssueTracker
from prtriage_core.gh.pull_request import (
    get_changed_paths,
    get_commit_messages,
    get_diff_text,
    get_head_commit_date,
    get_issue_comments,
    post_comment,
)


def _file(filename, patch="@@ -1 +1 @@\n-a\n+b"):
    f = MagicMock()
    f.filename = filename
    f.patch = patch
    return f


def _commit(message, date=None):
    c = MagicMock()
    c.commit.message = message
    c.commit.committer.date = date
    return c


class TestDiffHelpers:
    def test_changed_paths(self):
        pr = MagicMock()
        pr.get_files.return_value = [_file("src/a.py"), _file("docs/guide.md")]
        assert get_changed_paths(pr) == ["src/a.py", "docs/guide.md"]

    def test_diff_text_contains_headers_and_patches(self):
        pr = MagicMock()
        pr.get_files.return_value = [_file("src/a.py")]
        diff = get_diff_text(pr)
        assert diff.startswith("diff --git a/src/a.py b/src/a.py")
        assert "+b" in diff

    def test_binary_file_listed_without_patch(self):
        pr = MagicMock()
        pr.get_files.return_value = [_file("logo.png", patch=None)]
        assert "(binary or empty diff)" in get_diff_text(pr)

    def test_diff_text_truncated(self):
        pr = MagicMock()
        pr.get_files.return_value = [_file("big.py", patch="+" + "x" * 500)]
        diff = get_diff_text(pr, max_chars=100)
        assert diff.endswith("... [diff truncated]")
        assert len(diff) < 150


class TestCommitHelpers:
    def test_commit_messages_use_subject_line_only(self):
        pr = MagicMock()
        pr.get_commits.return_value = [_commit("feat: add auth\n\nlong body"), _commit("fix: typo")]
        assert get_commit_messages(pr) == ["feat: add auth", "fix: typo"]

    def test_commit_messages_limited(self):
        pr = MagicMock()
        pr.get_commits.return_value = [_commit(f"commit {i}") for i in range(20)]
        assert len(get_commit_messages(pr, limit=5)) == 5

    def test_head_commit_date_is_last_commit_utc(self):
        pr = MagicMock()
        pr.get_commits.return_value = [
            _commit("one", datetime(2026, 1, 1, 9, 0)),
            _commit("two", datetime(2026, 1, 2, 9, 0)),
        ]
        assert get_head_commit_date(pr) == datetime(2026, 1, 2, 9, 0, tzinfo=timezone.utc)

    def test_head_commit_date_none_without_commits(self):
        pr = MagicMock()
        pr.get_commits.return_value = []
        assert get_head_commit_date(pr) is None


class TestComments:
    def test_issue_comments_returned_as_list(self):
        pr = MagicMock()
        pr.get_issue_comments.return_value = iter([MagicMock(), MagicMock()])
        assert len(get_issue_comments(pr)) == 2

    def test_post_comment(self):
        pr = MagicMock()
        post_comment(pr, "hello")
        pr.create_issue_comment.assert_called_once_with("hello")


class TestGitHubIssueTracker:
    def test_returns_issue_number_as_string(self):
        repo = MagicMock()
        repo.create_issue.return_value.number = 57
        tracker = GitHubIssueTracker(repo)

        assert tracker.create_issue("Title", "Body", ["pr-review", "High Priority"]) == "57"
        repo.create_issue.assert_called_once_with(title="Title", body="Body", labels=["pr-review", "High Priority"])

    def test_empty_labels_dropped(self):
        repo = MagicMock()
        repo.create_issue.return_value.number = 1
        GitHubIssueTracker(repo).create_issue("T", "B", ["pr-review", ""])
        assert repo.create_issue.call_args.kwargs["labels"] == ["pr-review"]

    def test_github_error_wrapped(self):
        repo = MagicMock()
        repo.create_issue.side_effect = GithubException(422, {"message": "Validation Failed"}, None)
        with pytest.raises(TrackerError, match="422 Validation Failed"):
            GitHubIssueTracker(repo).create_issue("T", "B", [])

    def test_network_error_wrapped(self):
        repo = MagicMock()
        repo.create_issue.side_effect = RequestsConnectionError("connection reset")
        with pytest.raises(TrackerError, match="Could not reach GitHub"):
            GitHubIssueTracker(repo).create_issue("T", "B", [])
