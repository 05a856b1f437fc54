"""triage command: classify the latest review of a PR and file follow-up issues."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prtriage_cli.commands.common import (
    ask_to_continue,
    auto_option,
    parse_pr_number,
    pr_argument,
    repo_option,
    require_repo,
    require_token,
)

console = Console()

_DISPOSITION_STYLE = {
    "ACTIONABLE_NOW": "red",
    "ACTIONABLE_LATER": "yellow",
    "DISMISSED": "dim",
}


def _print_findings(summary) -> None:
    origin = "cache" if summary.cached else "review"
    if not summary.findings:
        console.print(f"[green]No findings in the review of PR #{summary.pr_number} ({origin}).[/green]")
        return

    table = Table(title=f"PR #{summary.pr_number}: {summary.pr_title}", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold", width=12)
    table.add_column("Verdict", width=9)
    table.add_column("Disposition", width=17)
    table.add_column("Title", max_width=50)
    table.add_column("Location", max_width=30)

    for t in summary.findings:
        style = _DISPOSITION_STYLE.get(t.disposition.value, "white")
        table.add_row(
            t.finding.identity,
            t.finding.verdict.value,
            f"[{style}]{t.disposition.value}[/{style}]",
            t.finding.title,
            t.finding.location,
        )
    console.print(table)
    console.print(f"[dim]{len(summary.findings)} finding(s) from {origin}; fingerprint {summary.fingerprint}[/dim]")


def _print_followups(report) -> None:
    if report is None:
        return
    console.print(
        f"\nFollow-up issues: {report.succeeded} created, {report.failures} failed, {len(report.skipped)} skipped."
    )
    for issue, error in report.failed:
        console.print(f"  [red]✗ {issue.title}: {error}[/red]")


@click.command("triage")
@pr_argument
@repo_option
@auto_option
@click.option("--no-issues", "no_issues", is_flag=True, help="Classify only; do not create follow-up issues.")
@click.option(
    "--method",
    type=click.Choice(["auto", "app", "local"]),
    default=None,
    help="Where the review comes from. Overrides review_method in the config file.",
)
@click.pass_context
def triage_cmd(ctx, pr_number: str, repo: str | None, auto: bool, no_issues: bool, method: str | None):
    """Triage the latest AI review of PR_NUMBER.

    Parses the review into findings, classifies each one as ACTIONABLE_NOW,
    ACTIONABLE_LATER or DISMISSED, and turns findings the reviewer marked
    "Skip" into follow-up issues. Results are cached per review, so running
    the command again on an unchanged review does not re-parse it or create
    duplicate issues.
    """
    from github import GithubException
    from requests.exceptions import RequestException

    from prtriage_core.errors import PrTriageError
    from prtriage_core.gh.issues import GitHubIssueTracker
    from prtriage_core.gh.pull_request import get_repo, github_timeout
    from prtriage_core.pipeline import file_followups, get_completer, run_triage

    number = parse_pr_number(pr_number)
    config = dict(ctx.obj["config"])
    if method:
        config["review_method"] = method
    repo_name = require_repo(repo)
    token = require_token(config)
    cache = ctx.obj["cache"]

    try:
        completer = None if config["review_method"] == "app" else get_completer(config, required=False)
        this_repo = get_repo(repo_name, token=token, timeout=github_timeout(config))
        summary = run_triage(
            repo=repo_name,
            pr_number=number,
            config=config,
            cache=cache,
            completer=completer,
            create_issues=auto and not no_issues,
            repo_obj=this_repo,
        )
    except GithubException as e:
        raise click.ClickException(f"Could not access {repo_name}: GitHub returned {e.status}.")
    except RequestException as e:
        raise click.ClickException(f"Could not reach GitHub for {repo_name}: {e}")
    except (PrTriageError, ValueError) as e:
        raise click.ClickException(str(e))

    _print_findings(summary)

    if no_issues or not summary.followup_candidates:
        return
    if not auto:
        count = len(summary.followup_candidates)
        if not ask_to_continue(
            ctx,
            f"Create {count} follow-up issue(s) for skipped findings?",
            "Continue without creating follow-up issues?",
        ):
            return
        file_followups(summary, GitHubIssueTracker(this_repo), cache, config)
    _print_followups(summary.followups)
