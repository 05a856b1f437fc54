"""Completer backed by a locally installed `claude` CLI.

Useful on developer machines that already have an authenticated Claude
Code session: no API key is needed. The prompt goes in on stdin and the
response is read from stdout (`claude --print`).
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

from prtriage_core.providers.base import BaseCompleter

_CANDIDATES = ("claude", "claude-code")


def find_claude_cli() -> str | None:
    """Return the path of the claude CLI, or None if it is not installed."""
    for name in _CANDIDATES:
        found = shutil.which(name)
        if found:
            return found
    fallback = Path.home() / ".claude" / "claude"
    return str(fallback) if fallback.exists() else None


class ClaudeCLICompleter(BaseCompleter):
    MODEL = "opus"
    # The CLI retries internally.
    MAX_RETRIES = 1

    def __init__(
        self,
        model: str | None = None,
        timeout: float = 300.0,
        executable: str | None = None,
        skip_permissions: bool = True,
    ):
        super().__init__(model=model, timeout=timeout)
        self.executable = executable or find_claude_cli()
        if not self.executable:
            raise FileNotFoundError("claude CLI not found. Install it and run `claude setup-token`.")
        self.skip_permissions = skip_permissions

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        args = [self.executable, "--print"]
        if self.model:
            args += ["--model", self.model]
        if self.skip_permissions:
            args.append("--dangerously-skip-permissions")
        prompt = f"{system_prompt}\n\n{user_prompt}" if system_prompt else user_prompt
        result = subprocess.run(
            args,
            input=prompt,
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            raise RuntimeError(f"claude exited with {result.returncode}: {result.stderr.strip()[:500]}")
        return result.stdout
