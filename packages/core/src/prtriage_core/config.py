import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "provider": "anthropic",  # anthropic | openai | claude-cli
    "review_model": None,  # None = provider default
    "review_method": "auto",  # auto | app | local
    "bot_logins": ["github-actions[bot]", "claude[bot]", "claude", "claude-code"],
    "refresh_stale_reviews": False,
    "cache": "file",  # file | sqlite | memory | none
    "cache_dir": ".prtriage/assessment-cache",
    "cache_path": ".prtriage.db",
    "timeout_seconds": 300,
    "github_timeout_seconds": 30,
    "followup_labels": ["pr-review"],
    "doc_files": ["CLAUDE.md", "README.md"],
    "doc_min_ratio": 0.8,
    "review_instructions": None,  # None = built-in; set to a path string to override
}

_LIST_KEYS = ("bot_logins", "followup_labels", "doc_files")

BUILTIN_INSTRUCTIONS_DIR = Path(__file__).parent / "instructions"
_BUILTIN_REVIEW = BUILTIN_INSTRUCTIONS_DIR / "review.md"
_REPO_REVIEW = Path(".github") / "claude-code" / "pr-review-instructions.md"


def load_config(config_path: str = ".prtriage.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prtriage.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG}
    for key in _LIST_KEYS:
        config[key] = list(DEFAULT_CONFIG[key])

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    if config["review_method"] not in ("auto", "app", "local"):
        raise ValueError(f"Unknown review_method: {config['review_method']!r}. Choose auto, app or local.")

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def load_review_instructions(config: dict) -> str:
    """
    Load the instructions sent to the model when generating a local review.

    Order: ``review_instructions`` from config (relative to cwd), then the
    repo's `.github/claude-code/pr-review-instructions.md`, then the
    built-in default.
    """
    custom_path = config.get("review_instructions")
    if custom_path:
        p = Path(custom_path)
        if not p.exists():
            raise FileNotFoundError(f"Review instructions file not found: {custom_path}")
        return p.read_text()

    if _REPO_REVIEW.exists():
        return _REPO_REVIEW.read_text()

    if _BUILTIN_REVIEW.exists():
        return _BUILTIN_REVIEW.read_text()

    raise FileNotFoundError("No review instructions configured and built-in default is missing.")
