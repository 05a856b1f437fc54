"""Issue tracker interface and its GitHub implementation.

The follow-up generator only knows IssueTracker, so tests and other
trackers can stand in for GitHub without touching the generator.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from github import GithubException
from requests.exceptions import RequestException

from prtriage_core.errors import TrackerError

logger = logging.getLogger(__name__)


class IssueTracker(ABC):
    @abstractmethod
    def create_issue(self, title: str, body: str, labels: list[str]) -> str:
        """Create an issue and return the identifier the tracker assigned.

        Raises TrackerError on any failure.
        """


class GitHubIssueTracker(IssueTracker):
    """Creates issues in the PR's repository via PyGithub."""

    def __init__(self, repo):
        self._repo = repo

    def create_issue(self, title: str, body: str, labels: list[str]) -> str:
        try:
            issue = self._repo.create_issue(title=title, body=body, labels=[label for label in labels if label])
        except GithubException as e:
            message = e.data.get("message", "") if isinstance(e.data, dict) else ""
            raise TrackerError(f"GitHub rejected issue {title!r}: {e.status} {message}".rstrip()) from e
        except RequestException as e:
            raise TrackerError(f"Could not reach GitHub to create issue {title!r}: {e}") from e
        logger.debug("Created issue #%s: %s", issue.number, title)
        return str(issue.number)
