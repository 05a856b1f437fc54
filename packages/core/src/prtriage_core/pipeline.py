"""PR triage orchestration.

    fetch → cache lookup → (miss) invalidate + parse + classify + put → follow-ups

Only the fetch stage is fatal. Everything after it recovers locally: cache
errors degrade to misses, tracker failures are counted in the follow-up
report, and a failed documentation assessment is reported as "no update".
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from github import GithubException
from requests.exceptions import RequestException
from rich.console import Console

from prtriage_core.docs import DocAssessment, assess_documentation, doc_findings
from prtriage_core.errors import CompletionError, FetchError, PipelineError, PrTriageError
from prtriage_core.fetcher import fetch_latest_review, obtain_review
from prtriage_core.followup import FollowupLedger, FollowupReport, create_followups
from prtriage_core.gh.issues import GitHubIssueTracker, IssueTracker
from prtriage_core.gh.pull_request import (
    get_changed_paths,
    get_commit_messages,
    get_diff_text,
    get_issue_comments,
    get_pull,
    get_repo,
    github_timeout,
)
from prtriage_core.models import Disposition, Finding, ReviewDocument, TriagedFinding
from prtriage_core.providers.base import BaseCompleter
from prtriage_core.review.parser import parse_review
from prtriage_core.triage import triage
from prtriage_store.base import BaseCache
from prtriage_store.models import CacheEntry

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class TriageSummary:
    """Result of run_triage, rendered by the CLI."""

    repo: str
    pr_number: int
    pr_title: str
    fingerprint: str
    review_source: str
    review_model: str = ""
    cached: bool = False
    findings: list[TriagedFinding] = field(default_factory=list)
    followup_candidates: list[Finding] = field(default_factory=list)
    followups: FollowupReport | None = None
    triaged_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def count(self, disposition: Disposition) -> int:
        return sum(1 for t in self.findings if t.disposition is disposition)


@dataclass
class DocRun:
    """Inputs gathered for a documentation pass, plus the assessment itself."""

    pr_number: int
    pr_title: str
    diff: str
    assessment: DocAssessment


def get_completer(config: dict, required: bool = True) -> BaseCompleter | None:
    """Build the configured LLM completer.

    With ``required=False`` a missing credential or CLI yields None instead
    of an error, for commands that only need the LLM as a fallback.
    """
    provider = config.get("provider", "anthropic")
    model = config.get("review_model")
    timeout = float(config.get("timeout_seconds", 300))

    if provider == "anthropic":
        key = config.get("anthropic_api_key")
        if key:
            from prtriage_core.providers.anthropic import AnthropicCompleter

            return AnthropicCompleter(api_key=key, model=model, timeout=timeout)
        missing = "ANTHROPIC_API_KEY is not set."
    elif provider == "openai":
        key = config.get("openai_api_key")
        if key:
            from prtriage_core.providers.openai import OpenAICompleter

            return OpenAICompleter(api_key=key, model=model, timeout=timeout)
        missing = "OPENAI_API_KEY is not set."
    elif provider == "claude-cli":
        from prtriage_core.providers.claude_cli import ClaudeCLICompleter, find_claude_cli

        if find_claude_cli():
            return ClaudeCLICompleter(model=model, timeout=timeout)
        missing = "claude CLI not found on PATH."
    else:
        raise ValueError(f"Unknown provider: {provider!r}. Choose 'anthropic', 'openai' or 'claude-cli'.")

    if required:
        raise PrTriageError(f"Provider {provider!r} is not usable: {missing}")
    logger.debug("No completer available: %s", missing)
    return None


def _open_repo(repo: str, config: dict):
    return get_repo(repo, token=config["github_token"], timeout=github_timeout(config))


def _cache_get(cache: BaseCache, key: str) -> CacheEntry | None:
    try:
        return cache.get(key)
    except Exception as e:
        logger.warning("Cache read failed for %s; treating as a miss: %s", key, e)
        return None


def _cache_refresh(cache: BaseCache, entry: CacheEntry) -> None:
    """Drop every older assessment of the PR, then store ``entry``."""
    try:
        removed = cache.invalidate_by_pr(entry.pr_number)
        if removed:
            console.print(f"[dim]Invalidated {removed} stale cached assessment(s) for PR #{entry.pr_number}.[/dim]")
        cache.put(entry)
    except Exception as e:
        logger.warning("Cache update failed for %s: %s", entry.key, e)


def _triage_review(review: ReviewDocument, cache: BaseCache) -> tuple[list[TriagedFinding], list[Finding], bool]:
    entry = _cache_get(cache, review.fingerprint)
    if entry is not None and "findings" in entry.value:
        logger.debug("Cache hit for %s", review.fingerprint)
        findings = [TriagedFinding.from_dict(d) for d in entry.value["findings"]]
        candidates = [Finding.from_dict(d) for d in entry.value.get("followup_candidates", [])]
        return findings, candidates, True

    # A ledger-only entry (its first put failed) still records filed issues for this review.
    filed = dict(entry.value.get("followups") or {}) if entry is not None else {}
    result = parse_review(review.body)
    findings = triage(result.findings)
    entry = CacheEntry(
        key=review.fingerprint,
        pr_number=review.pr_number,
        value={
            "review": {
                "source": review.source.value,
                "model": review.model,
                "timestamp": review.timestamp.isoformat() if review.timestamp else None,
            },
            "findings": [t.to_dict() for t in findings],
            "followup_candidates": [f.to_dict() for f in result.followup_candidates],
            "followups": filed,
        },
    )
    _cache_refresh(cache, entry)
    return findings, result.followup_candidates, False


def run_triage(
    repo: str,
    pr_number: int,
    config: dict,
    cache: BaseCache,
    completer: BaseCompleter | None = None,
    tracker: IssueTracker | None = None,
    create_issues: bool = True,
    repo_obj=None,
) -> TriageSummary:
    """Fetch, parse and classify the latest review of a PR, then file follow-ups.

    Raises PipelineError when no review can be fetched or generated.
    """
    try:
        this_repo = repo_obj if repo_obj is not None else _open_repo(repo, config)
        this_pr = get_pull(this_repo, pr_number)
        review = obtain_review(this_pr, pr_number, config, cache=cache, completer=completer)
    except GithubException as e:
        raise PipelineError(pr_number, "fetch", f"GitHub returned {e.status}") from e
    except RequestException as e:
        raise PipelineError(pr_number, "fetch", f"could not reach GitHub: {e}") from e
    except FetchError as e:
        raise PipelineError(pr_number, "fetch", e) from e

    console.print(
        f"[cyan]Triaging {review.source.value} review of PR #{pr_number}"
        + (f" (model: {review.model})" if review.model else "")
        + "[/cyan]"
    )
    findings, candidates, cached = _triage_review(review, cache)

    summary = TriageSummary(
        repo=repo,
        pr_number=pr_number,
        pr_title=this_pr.title,
        fingerprint=review.fingerprint,
        review_source=review.source.value,
        review_model=review.model,
        cached=cached,
        findings=findings,
        followup_candidates=candidates,
    )

    if create_issues and candidates:
        file_followups(summary, tracker if tracker is not None else GitHubIssueTracker(this_repo), cache, config)
    return summary


def file_followups(summary: TriageSummary, tracker: IssueTracker, cache: BaseCache, config: dict) -> FollowupReport:
    """Create the follow-up issues of a triaged review, skipping ones already filed."""
    console.print(f"\n[bold]Creating {len(summary.followup_candidates)} follow-up issue(s)...[/bold]")
    summary.followups = create_followups(
        summary.followup_candidates,
        summary.pr_number,
        summary.pr_title,
        tracker,
        base_labels=config.get("followup_labels") or [],
        ledger=FollowupLedger(cache, summary.fingerprint, summary.pr_number),
    )
    return summary.followups


def run_doc_assessment(
    repo: str,
    pr_number: int,
    config: dict,
    cache: BaseCache,
    completer: BaseCompleter | None = None,
    root: str = ".",
    repo_obj=None,
) -> DocRun:
    """Gather PR context and decide whether documentation must change.

    Doc-related findings of the latest review take precedence over asking
    the LLM. The review is read from the cache when it was already triaged.
    """
    try:
        this_repo = repo_obj if repo_obj is not None else _open_repo(repo, config)
        this_pr = get_pull(this_repo, pr_number)
        changed = get_changed_paths(this_pr)
        diff = get_diff_text(this_pr)
        comments = get_issue_comments(this_pr)
        commits = get_commit_messages(this_pr)
    except GithubException as e:
        raise PipelineError(pr_number, "fetch", f"GitHub returned {e.status}") from e
    except RequestException as e:
        raise PipelineError(pr_number, "fetch", f"could not reach GitHub: {e}") from e

    flagged: list[Finding] = []
    review = fetch_latest_review(comments, pr_number, config.get("bot_logins") or [])
    if review is None:
        console.print("[yellow]No review found; performing standalone assessment.[/yellow]")
    else:
        findings, _, _ = _triage_review(review, cache)
        flagged = doc_findings([t.finding for t in findings])
        console.print(f"[dim]{len(flagged)} documentation-related finding(s) in review.[/dim]")

    try:
        assessment = assess_documentation(
            pr_title=this_pr.title,
            pr_body=this_pr.body or "",
            changed_files=changed,
            flagged=flagged,
            completer=completer,
            root=root,
            doc_files=config.get("doc_files") or [],
            commit_messages=commits,
        )
    except CompletionError as e:
        logger.warning("Documentation assessment for PR #%s failed: %s", pr_number, e)
        console.print(f"[yellow]Documentation assessment failed: {e}[/yellow]")
        assessment = DocAssessment(needs_update=False, reason=f"assessment failed: {e}", source="llm")

    return DocRun(pr_number=pr_number, pr_title=this_pr.title, diff=diff, assessment=assessment)
