"""CLI entry point for prtriage.

Commands:
  triage  : parse and classify the latest review of a PR, file follow-up issues
  review  : generate a review locally with the configured LLM
  docs    : decide whether the PR needs documentation updates and apply them
  cache   : inspect and invalidate the assessment cache

Exit codes: 0 success (including nothing to do), 1 fatal error, 2 the user
declined to continue at an interactive prompt.
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from prtriage_cli.commands.cache import cache_cmd
from prtriage_cli.commands.docs import docs_cmd
from prtriage_cli.commands.review import review_cmd
from prtriage_cli.commands.triage import triage_cmd

console = Console()


def _build_cache(config: dict):
    """Instantiate the configured assessment cache from .prtriage.yml settings.

      cache: file   → FileCache   (cache_dir, default .prtriage/assessment-cache)
      cache: sqlite → SQLiteCache (cache_path, default .prtriage.db)
      cache: memory → MemoryCache (process lifetime only)
      cache: none   → NoOpCache   (always re-parse)

    The factory lives here so prtriage_core only ever sees BaseCache.
    """
    from prtriage_store.noop import NoOpCache

    cache_type = config.get("cache", "file")

    if cache_type == "file":
        from prtriage_store.files import FileCache

        return FileCache(cache_dir=config.get("cache_dir", ".prtriage/assessment-cache"))

    if cache_type == "sqlite":
        from prtriage_store.sqlite import SQLiteCache

        return SQLiteCache(db_path=config.get("cache_path", ".prtriage.db"))

    if cache_type == "memory":
        from prtriage_store.memory import MemoryCache

        return MemoryCache()

    if cache_type not in ("none", "noop", None):
        console.print(f"[yellow]Unknown cache type {cache_type!r}. Caching is disabled.[/yellow]")
    return NoOpCache()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("prtriage"),
    prog_name="prtriage",
)
@click.option(
    "--config",
    "config_path",
    default=".prtriage.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRTRIAGE_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Triage AI pull request reviews into actions, follow-up issues and doc updates."""
    from prtriage_cli.auth import resolve_github_token
    from prtriage_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.ClickException(str(e))

    # Resolve token early so all subcommands share the same resolution.
    token = resolve_github_token()
    if token:
        config["github_token"] = token

    cache = _build_cache(config)
    ctx.obj["cache"] = cache
    ctx.obj["config"] = config
    ctx.call_on_close(cache.close)


main.add_command(triage_cmd)
main.add_command(review_cmd)
main.add_command(docs_cmd)
main.add_command(cache_cmd)
