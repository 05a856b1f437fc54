"""cache command group: manage cached review assessments."""

from __future__ import annotations

import click
from rich.console import Console

from prtriage_cli.commands.common import parse_pr_number, pr_argument

console = Console()


@click.group("cache")
def cache_cmd():
    """Manage the assessment cache (.prtriage.yml `cache:` setting)."""


@cache_cmd.command("invalidate")
@pr_argument
@click.pass_context
def invalidate_cmd(ctx, pr_number: str):
    """Drop every cached assessment of PR_NUMBER.

    The next `prtriage triage` run re-parses the latest review. Follow-up
    issues already filed are forgotten too, so re-running triage on the same
    review may file them again.
    """
    number = parse_pr_number(pr_number)
    cache = ctx.obj["cache"]
    removed = cache.invalidate_by_pr(number)
    if removed:
        console.print(f"[green]Invalidated {removed} cached assessment(s) for PR #{number}.[/green]")
    else:
        console.print(f"[yellow]No cached assessments for PR #{number}.[/yellow]")
