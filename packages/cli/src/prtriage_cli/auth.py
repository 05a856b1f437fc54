"""Resolve the GitHub token and target repository without extra setup.

Token, first match wins:
  1. GITHUB_TOKEN environment variable (CI, explicit override)
  2. `gh auth token` (an existing GitHub CLI session)

Repository, first match wins:
  1. --repo option
  2. GITHUB_REPOSITORY environment variable (set by GitHub Actions)
  3. the `origin` remote of the git checkout in the current directory
"""

from __future__ import annotations

import logging
import os
import re
import subprocess

logger = logging.getLogger(__name__)

_REMOTE_RE = re.compile(r"github\.com[:/](?P<repo>[\w.-]+/[\w.-]+?)(?:\.git)?/?$")
_SUBPROCESS_TIMEOUT = 5


def _run(args: list[str]) -> str | None:
    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=_SUBPROCESS_TIMEOUT)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token() -> str | None:
    """Return a GitHub token or None. Never raises; the caller reports absence."""
    token = os.environ.get("GITHUB_TOKEN")
    if token:
        return token

    gh_token = _run(["gh", "auth", "token"])
    if gh_token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return gh_token


def repo_from_remote(url: str) -> str | None:
    """``owner/name`` from an https or ssh GitHub remote URL."""
    match = _REMOTE_RE.search(url.strip())
    return match.group("repo") if match else None


def resolve_repo(explicit: str | None = None) -> str | None:
    if explicit:
        return explicit
    env_repo = os.environ.get("GITHUB_REPOSITORY")
    if env_repo:
        return env_repo
    url = _run(["git", "remote", "get-url", "origin"])
    if url:
        repo = repo_from_remote(url)
        if repo:
            logger.debug("Resolved repository %s from git remote.", repo)
            return repo
    return None
