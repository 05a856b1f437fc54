"""Review fetcher: finds the latest review of a PR, or produces one.

Reviews live as PR conversation comments. A comment counts as a review when
it carries a provenance marker::

    <!-- review-source source:local model:opus timestamp:2026-01-05T10:00:00Z -->

or when it was posted by one of the configured review bots (hosted review).
When several reviews exist the newest explicit timestamp wins; comment order
breaks ties and orders reviews that have no timestamp.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from github import GithubException
from requests.exceptions import RequestException
from rich.console import Console

from prtriage_core.config import load_review_instructions
from prtriage_core.errors import CompletionError, FetchError
from prtriage_core.gh.pull_request import get_diff_text, get_head_commit_date, get_issue_comments, post_comment
from prtriage_core.models import ReviewDocument, ReviewSource
from prtriage_core.prompts import build_review_prompt
from prtriage_core.providers.base import BaseCompleter
from prtriage_store.base import BaseCache

console = Console()
logger = logging.getLogger(__name__)

_MARKER_RE = re.compile(r"<!--\s*review-source\b(?P<fields>.*?)-->", re.DOTALL)
_FIELD_RE = re.compile(r"(\w+):(\S+)")
# Bots also post status and CI comments; only keep the ones that read like a review.
_REVIEW_HINT_RE = re.compile(r"review|CRITICAL|WARNING|MINOR|Priority", re.IGNORECASE)
_OVERALL_RE = re.compile(r"Overall:.*$", re.MULTILINE)


@dataclass(frozen=True)
class Provenance:
    source: ReviewSource = ReviewSource.HOSTED
    model: str = ""
    timestamp: datetime | None = None


def _parse_timestamp(value: str) -> datetime | None:
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Ignoring unparseable review timestamp %r", value)
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_provenance(body: str) -> Provenance | None:
    """Read the provenance marker from a comment body, or None if absent.

    Every field is optional. When a body carries several markers the last
    one wins.
    """
    matches = list(_MARKER_RE.finditer(body or ""))
    if not matches:
        return None
    fields = dict(_FIELD_RE.findall(matches[-1].group("fields")))

    source = ReviewSource.HOSTED
    if fields.get("source", "").lower() == ReviewSource.LOCAL.value:
        source = ReviewSource.LOCAL
    timestamp = _parse_timestamp(fields["timestamp"]) if "timestamp" in fields else None
    return Provenance(source=source, model=fields.get("model", ""), timestamp=timestamp)


def render_marker(source: ReviewSource, model: str, timestamp: datetime) -> str:
    stamp = timestamp.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return f"<!-- review-source source:{source.value} model:{model or 'unknown'} timestamp:{stamp} -->"


def _comment_time(comment) -> datetime | None:
    created = getattr(comment, "created_at", None)
    if not isinstance(created, datetime):
        return None
    return created if created.tzinfo else created.replace(tzinfo=timezone.utc)


def collect_reviews(comments, pr_number: int, bot_logins: list[str]) -> list[ReviewDocument]:
    """Turn PR comments into ReviewDocuments, preserving comment order."""
    bots = set(bot_logins)
    documents = []
    for order, comment in enumerate(comments):
        body = comment.body or ""
        provenance = parse_provenance(body)
        revision = ""
        if provenance is None:
            login = comment.user.login if comment.user else ""
            if login not in bots or not _REVIEW_HINT_RE.search(body):
                continue
            provenance = Provenance()
            # Bots edit their comment in place; created_at stays the same.
            revision = hashlib.sha256(body.encode("utf-8")).hexdigest()[:16]

        documents.append(
            ReviewDocument(
                pr_number=pr_number,
                body=body,
                source=provenance.source,
                model=provenance.model,
                timestamp=provenance.timestamp or _comment_time(comment),
                order=order,
                revision=revision,
            )
        )
    return documents


def select_latest(documents: list[ReviewDocument]) -> ReviewDocument | None:
    """Most recent review by timestamp; later comment order wins ties.

    Reviews without a timestamp rank below every timestamped review.
    """
    if not documents:
        return None
    floor = datetime.min.replace(tzinfo=timezone.utc)
    return max(documents, key=lambda d: (d.timestamp is not None, d.timestamp or floor, d.order))


def fetch_latest_review(comments, pr_number: int, bot_logins: list[str]) -> ReviewDocument | None:
    return select_latest(collect_reviews(comments, pr_number, bot_logins))


def is_stale(review: ReviewDocument, head_commit_date: datetime | None) -> bool:
    """True when the review predates the newest commit on the PR."""
    if review.timestamp is None or head_commit_date is None:
        return False
    return review.timestamp < head_commit_date


def overall_verdict(text: str) -> str:
    """The reviewer's one-line ``Overall:`` summary, or '' if missing."""
    match = _OVERALL_RE.search(text)
    return match.group(0).strip() if match else ""


def _project_context(root: Path) -> str:
    claude_md = root / "CLAUDE.md"
    if not claude_md.exists():
        return ""
    return claude_md.read_text(encoding="utf-8", errors="replace")


def generate_local_review(
    pr,
    pr_number: int,
    completer: BaseCompleter,
    config: dict,
    cache: BaseCache | None = None,
    post: bool = True,
    root: str | Path = ".",
) -> ReviewDocument:
    """Run a review with the configured LLM and (optionally) post it on the PR.

    Posting a review makes every cached assessment of the PR stale, so the
    PR's cache entries are invalidated right after the comment lands.

    Raises FetchError when the instructions cannot be read, the LLM fails or
    the comment cannot be posted.
    """
    try:
        instructions = load_review_instructions(config)
    except OSError as e:
        raise FetchError(f"Cannot review PR #{pr_number}: {e}") from e
    prompt = build_review_prompt(
        instructions=instructions,
        pr_number=pr_number,
        pr_title=pr.title,
        head_ref=pr.head.ref,
        base_ref=pr.base.ref,
        diff=get_diff_text(pr),
        project_context=_project_context(Path(root)),
    )

    console.print(f"[dim]Generating local review for PR #{pr_number} with {completer.model}...[/dim]")
    try:
        review_text = completer.complete(prompt)
    except CompletionError as e:
        raise FetchError(f"Local review for PR #{pr_number} failed: {e}") from e

    timestamp = datetime.now(timezone.utc).replace(microsecond=0)
    body = f"{render_marker(ReviewSource.LOCAL, completer.model, timestamp)}\n\n{review_text}"
    document = ReviewDocument(
        pr_number=pr_number,
        body=body,
        source=ReviewSource.LOCAL,
        model=completer.model,
        timestamp=timestamp,
    )

    if post:
        post_review(pr, document, cache)
    return document


def post_review(pr, document: ReviewDocument, cache: BaseCache | None = None) -> None:
    """Post a generated review on its PR and invalidate the PR's cached assessments.

    Raises FetchError if GitHub rejects the comment.
    """
    try:
        post_comment(pr, document.body)
    except GithubException as e:
        raise FetchError(f"Could not post review comment on PR #{document.pr_number}: {e.status}") from e
    except RequestException as e:
        raise FetchError(f"Could not reach GitHub to post the review on PR #{document.pr_number}: {e}") from e
    console.print(f"[green]Review posted on PR #{document.pr_number}.[/green]")

    if cache is not None:
        removed = cache.invalidate_by_pr(document.pr_number)
        if removed:
            console.print(f"[dim]Invalidated {removed} cached assessment(s) for PR #{document.pr_number}.[/dim]")


def obtain_review(
    pr,
    pr_number: int,
    config: dict,
    cache: BaseCache | None = None,
    completer: BaseCompleter | None = None,
    root: str | Path = ".",
) -> ReviewDocument:
    """Return the review to triage, honouring ``review_method``.

    * ``app``  : only hosted/posted reviews; missing review is an error.
    * ``local`` / ``auto``: latest posted review, else generate one locally.

    With ``refresh_stale_reviews`` a review older than the PR head commit is
    regenerated (except in ``app`` mode, which never generates).
    """
    method = config.get("review_method", "auto")
    latest = fetch_latest_review(get_issue_comments(pr), pr_number, config.get("bot_logins") or [])

    if latest is None:
        if method == "app":
            raise FetchError(f"No review found on PR #{pr_number} and review_method is 'app'.")
        reason = "no review found"
    elif method != "app" and config.get("refresh_stale_reviews") and is_stale(latest, get_head_commit_date(pr)):
        console.print(f"[yellow]Review on PR #{pr_number} predates the latest commit.[/yellow]")
        reason = "stale review"
    else:
        logger.debug("Using %s review of PR #%s (model=%s)", latest.source.value, pr_number, latest.model or "?")
        return latest

    if completer is None:
        raise FetchError(f"PR #{pr_number}: {reason} and no LLM provider is available to generate one.")
    logger.info("Generating local review for PR #%s: %s", pr_number, reason)
    return generate_local_review(pr, pr_number, completer, config, cache=cache, root=root)
