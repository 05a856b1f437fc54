"""review command: generate a PR review locally with the configured LLM."""

from __future__ import annotations

from collections import Counter

import click
from rich.console import Console
from rich.rule import Rule

from prtriage_cli.commands.common import (
    EXIT_DECLINED,
    auto_option,
    parse_pr_number,
    pr_argument,
    repo_option,
    require_repo,
    require_token,
)

console = Console()


def _print_review_summary(body: str) -> None:
    from prtriage_core.fetcher import overall_verdict
    from prtriage_core.models import Priority
    from prtriage_core.review.parser import parse_review

    result = parse_review(body)
    counts = Counter(f.priority for f in result.findings)
    console.print("\n[bold]Review summary[/bold]")
    for priority in Priority:
        console.print(f"  {priority.value}: {counts.get(priority, 0)}")
    verdict = overall_verdict(body)
    if verdict:
        console.print(f"\n  {verdict}")


@click.command("review")
@pr_argument
@repo_option
@auto_option
@click.option("--post", is_flag=True, help="Post the review as a PR comment. Without it the review is only printed.")
@click.pass_context
def review_cmd(ctx, pr_number: str, repo: str | None, auto: bool, post: bool):
    """Review PR_NUMBER with the configured LLM provider.

    The review is printed for preview unless --post is given. A posted review
    carries a provenance marker so `prtriage triage` can find it, and posting
    invalidates every cached assessment of the PR.

    \b
    Environment variables:
      GITHUB_TOKEN         GitHub personal access token (or use gh CLI)
      ANTHROPIC_API_KEY    Required when provider is anthropic
      OPENAI_API_KEY       Required when provider is openai
    """
    from github import GithubException
    from requests.exceptions import RequestException

    from prtriage_core.errors import PrTriageError
    from prtriage_core.fetcher import generate_local_review, post_review
    from prtriage_core.gh.pull_request import get_pull, get_repo, github_timeout
    from prtriage_core.pipeline import get_completer

    number = parse_pr_number(pr_number)
    config = ctx.obj["config"]
    repo_name = require_repo(repo)
    token = require_token(config)
    cache = ctx.obj["cache"]

    try:
        completer = get_completer(config)
        this_pr = get_pull(get_repo(repo_name, token=token, timeout=github_timeout(config)), number)
        document = generate_local_review(this_pr, number, completer, config, cache=cache, post=False)
    except GithubException as e:
        raise click.ClickException(f"Could not load PR #{number} from {repo_name}: GitHub returned {e.status}.")
    except RequestException as e:
        raise click.ClickException(f"Could not reach GitHub for {repo_name}: {e}")
    except (PrTriageError, ValueError) as e:
        raise click.ClickException(str(e))

    if not post or not auto:
        console.print(Rule("REVIEW PREVIEW" if post else "REVIEW PREVIEW (not posted)"))
        console.print(document.body, markup=False)
        console.print(Rule())
    if not post:
        console.print(f"To post this review, run: prtriage review {number} --post")
        return

    if not auto and not click.confirm(f"Post this review to PR #{number}?", default=True):
        click.echo("Review not posted.")
        ctx.exit(EXIT_DECLINED)

    try:
        post_review(this_pr, document, cache)
    except PrTriageError as e:
        raise click.ClickException(str(e))
    _print_review_summary(document.body)
