"""docs command: assess and apply documentation updates for a PR."""

from __future__ import annotations

import click
from rich.console import Console

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


@click.command("docs")
@pr_argument
@repo_option
@auto_option
@click.option("--root", default=".", show_default=True, help="Repository checkout holding the documentation files.")
@click.option("--commit/--no-commit", "commit", default=True, show_default=True, help="Commit updated docs with git.")
@click.option("--push", is_flag=True, help="Push the documentation commit to the PR branch.")
@click.pass_context
def docs_cmd(ctx, pr_number: str, repo: str | None, auto: bool, root: str, commit: bool, push: bool):
    """Decide whether PR_NUMBER needs documentation updates and apply them.

    Documentation findings in the latest review are used when present;
    otherwise the configured LLM assesses the PR. Each updated file is
    backed up to <file>.backup-<epoch> first, and rewrites that lose more
    than the configured share of lines are rejected as truncated.
    """
    from github import GithubException
    from requests.exceptions import RequestException

    from prtriage_core.docs import apply_doc_updates, build_commit_message, commit_doc_updates
    from prtriage_core.errors import PrTriageError
    from prtriage_core.gh.pull_request import get_repo, github_timeout
    from prtriage_core.pipeline import get_completer, run_doc_assessment

    number = parse_pr_number(pr_number)
    config = ctx.obj["config"]
    repo_name = require_repo(repo)
    token = require_token(config)

    try:
        completer = get_completer(config, required=False)
        run = run_doc_assessment(
            repo=repo_name,
            pr_number=number,
            config=config,
            cache=ctx.obj["cache"],
            completer=completer,
            root=root,
            repo_obj=get_repo(repo_name, token=token, timeout=github_timeout(config)),
        )
    except GithubException as e:
        raise click.ClickException(f"Could not access {repo_name}: GitHub returned {e.status}.")
    except RequestException as e:
        raise click.ClickException(f"Could not reach GitHub for {repo_name}: {e}")
    except (PrTriageError, ValueError) as e:
        raise click.ClickException(str(e))

    assessment = run.assessment
    if not assessment.needs_update:
        console.print("[green]Documentation is up to date.[/green]")
        console.print(f"  Reason: {assessment.reason}")
        return

    console.print("[bold]Status: Updates needed[/bold]")
    console.print(f"  Files: {', '.join(assessment.files)}")
    console.print(f"  Reason: {assessment.reason}")

    if completer is None:
        raise click.ClickException("Documentation needs updating but no LLM provider is configured to write it.")
    if not auto and not ask_to_continue(ctx, "Apply documentation updates?", "Continue without documentation updates?"):
        return

    report = apply_doc_updates(
        assessment,
        completer,
        root=root,
        pr_number=number,
        pr_title=run.pr_title,
        diff=run.diff,
        min_ratio=float(config.get("doc_min_ratio", 0.8)),
    )

    console.print(f"\nUpdated: {len(report.updated)} file(s)")
    for path in report.updated:
        console.print(f"  [green]✓ {path}[/green]")
    if report.skipped:
        console.print(f"Skipped: {len(report.skipped)} file(s)")
        for path, reason in report.skipped:
            console.print(f"  [yellow]⚠ {path} ({reason})[/yellow]")

    if not report.updated or not commit:
        return
    message = build_commit_message(number, report.updated, assessment.reason)
    try:
        committed, pushed = commit_doc_updates(report.updated, message, push=push, root=root)
    except PrTriageError as e:
        raise click.ClickException(str(e))
    if committed:
        console.print(f"Committed: docs update for PR #{number}" + (" (pushed)" if pushed else ""))
    else:
        console.print("[dim]No changes to commit (docs may already be up to date).[/dim]")
