"""Exception types raised by prtriage_core.

The CLI catches PrTriageError and renders it as a one-line message, so every
subclass must carry a message a user can act on without a traceback.
"""

from __future__ import annotations


class PrTriageError(Exception):
    """Base class for every error prtriage_core raises on purpose."""


class CompletionError(PrTriageError):
    """The LLM could not produce a completion (API error, timeout, empty output)."""


class FetchError(PrTriageError):
    """No usable review could be fetched or generated for a PR."""


class TrackerError(PrTriageError):
    """The issue tracker rejected or failed a create_issue call."""


class PipelineError(PrTriageError):
    """A pipeline stage failed fatally for one PR.

    The message always names the PR, the stage and the underlying cause.
    """

    def __init__(self, pr_number: int, stage: str, cause: BaseException | str):
        self.pr_number = pr_number
        self.stage = stage
        self.cause = cause
        super().__init__(f"PR #{pr_number}: {stage} stage failed: {cause}")
