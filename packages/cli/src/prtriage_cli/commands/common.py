"""Helpers shared by the PR commands: argument validation and preconditions."""

from __future__ import annotations

import click

from prtriage_cli.auth import resolve_repo

# Exit status when the user declines to continue at a prompt.
EXIT_DECLINED = 2


def pr_argument(func):
    return click.argument("pr_number", metavar="PR_NUMBER")(func)


def repo_option(func):
    return click.option(
        "--repo",
        default=None,
        help="GitHub repository in owner/name format. Defaults to GITHUB_REPOSITORY or the origin remote.",
    )(func)


def auto_option(func):
    return click.option("--auto", "auto", is_flag=True, help="Non-interactive: never prompt.")(func)


def parse_pr_number(value: str) -> int:
    """Validate a PR number argument. Bad input is a fatal error (exit 1)."""
    text = str(value).lstrip("#")
    if not text.isdigit() or int(text) <= 0:
        raise click.ClickException(f"Invalid PR number: {value!r}. Expected a positive integer.")
    return int(text)


def require_repo(repo: str | None) -> str:
    resolved = resolve_repo(repo)
    if not resolved:
        raise click.ClickException(
            "Could not determine the repository. Pass --repo owner/name or run inside a GitHub checkout."
        )
    return resolved


def require_token(config: dict) -> str:
    token = config.get("github_token")
    if not token:
        raise click.ClickException(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    return token


def ask_to_continue(ctx: click.Context, question: str, fallback: str) -> bool:
    """Ask ``question`` (default yes). On "no", ask ``fallback`` (default no) and
    exit with EXIT_DECLINED unless the user agrees to carry on without it.

    Returns True when the action in ``question`` was approved.
    """
    if click.confirm(question, default=True):
        return True
    if not click.confirm(fallback, default=False):
        click.echo("Stopped at user request.")
        ctx.exit(EXIT_DECLINED)
    return False
