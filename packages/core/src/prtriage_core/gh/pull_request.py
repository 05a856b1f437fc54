from __future__ import annotations

from datetime import datetime, timezone

from github import Github

_MAX_DIFF_CHARS = 60_000


_DEFAULT_TIMEOUT = 30


def github_timeout(config: dict) -> int:
    """Per-request timeout in seconds for the PyGithub client, from ``github_timeout_seconds``."""
    return int(config.get("github_timeout_seconds") or _DEFAULT_TIMEOUT)


def get_repo(repo_name: str, token: str, timeout: int = _DEFAULT_TIMEOUT):
    return Github(token, timeout=timeout).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_issue_comments(pr) -> list:
    """Return the PR's conversation comments in posting order."""
    return list(pr.get_issue_comments())


def get_changed_paths(pr) -> list[str]:
    return [f.filename for f in pr.get_files()]


def get_diff_text(pr, max_chars: int = _MAX_DIFF_CHARS) -> str:
    """Rebuild a unified diff from the per-file patches GitHub returns.

    Binary files have no patch and are listed by name only. The result is
    truncated to ``max_chars`` so prompts stay bounded on very large PRs.
    """
    parts = []
    for f in pr.get_files():
        header = f"diff --git a/{f.filename} b/{f.filename}"
        parts.append(f"{header}\n{f.patch}" if f.patch else f"{header}\n(binary or empty diff)")
    diff = "\n".join(parts)
    if len(diff) > max_chars:
        diff = diff[:max_chars] + "\n... [diff truncated]"
    return diff


def get_commit_messages(pr, limit: int = 10) -> list[str]:
    messages = []
    for commit in pr.get_commits():
        message = commit.commit.message or ""
        messages.append(message.splitlines()[0] if message else "")
        if len(messages) >= limit:
            break
    return messages


def get_head_commit_date(pr) -> datetime | None:
    """Return the committer date of the PR head commit (UTC), or None if unknown."""
    commits = list(pr.get_commits())
    if not commits:
        return None
    date = commits[-1].commit.committer.date
    if date is not None and date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date


def post_comment(pr, body: str):
    return pr.create_issue_comment(body)
