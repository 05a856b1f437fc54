"""Documentation-need assessor.

Decides whether a PR needs documentation changes and, when asked, applies
them by having the LLM rewrite each target file in full.

Two ways to reach a decision, cheapest first:

  1. The review already flagged documentation gaps → reuse those findings.
     Target files are the docs the findings reference, else the first
     configured root doc that exists. No LLM call.
  2. Otherwise ask the LLM, which answers ``NEEDS_UPDATE: a.md, b.md`` or
     ``NO_UPDATE_NEEDED``, each followed by a ``REASON:`` line.

Applying an update is guarded: a rewrite that loses too many lines is
treated as truncated output and discarded, and every file that does get
rewritten is backed up first.
"""

from __future__ import annotations

import logging
import re
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from prtriage_core.errors import CompletionError, PrTriageError
from prtriage_core.models import Finding
from prtriage_core.prompts import build_assessment_prompt, build_doc_update_prompt
from prtriage_core.providers.base import BaseCompleter

console = Console()
logger = logging.getLogger(__name__)

_DOC_FINDING_RE = re.compile(
    r"(documentation|docs/|README|CLAUDE\.md|update.*doc|missing.*doc|add.*doc)",
    re.IGNORECASE,
)
_DOC_PATH_RE = re.compile(r"[\w./-]+\.md\b")
_NEEDS_UPDATE_RE = re.compile(r"^[ \t]*NEEDS_UPDATE:[ \t]*(.*)$", re.MULTILINE)
_NO_UPDATE_RE = re.compile(r"^\s*NO_UPDATE_NEEDED\b", re.MULTILINE)
_REASON_RE = re.compile(r"^[ \t]*REASON:[ \t]*(.*)$", re.MULTILINE)
_HEADING_RE = re.compile(r"^#{1,6}\s+\S")

_DIFF_CONTEXT_LINES = 300
_HEADINGS_PER_DOC = 10
_MAX_CHANGED_FILES = 20

SKIP_NOT_FOUND = "not found"
SKIP_GENERATION_FAILED = "generation failed"
SKIP_TRUNCATED = "truncated output"
SKIP_OUTSIDE_ROOT = "outside repository"


@dataclass
class DocAssessment:
    needs_update: bool
    files: list[str] = field(default_factory=list)
    reason: str = ""
    source: str = "review"  # "review" | "llm"


@dataclass
class DocUpdateReport:
    updated: list[str] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)  # (path, reason)
    backups: dict[str, str] = field(default_factory=dict)  # path → backup path


def _finding_text(finding: Finding) -> str:
    return "\n".join((finding.title, finding.location, finding.problem, finding.recommendation))


def doc_findings(findings: list[Finding]) -> list[Finding]:
    """Findings whose text mentions documentation (README, CLAUDE.md, docs/ ...)."""
    return [f for f in findings if _DOC_FINDING_RE.search(_finding_text(f))]


def _inside(root: Path, relative: str) -> Path | None:
    """Resolve ``relative`` under ``root``; None if it escapes the root."""
    resolved_root = root.resolve()
    candidate = (resolved_root / relative).resolve()
    if candidate != resolved_root and resolved_root not in candidate.parents:
        return None
    return candidate


def _referenced_docs(findings: list[Finding], root: Path) -> list[str]:
    seen: list[str] = []
    for finding in findings:
        for match in _DOC_PATH_RE.findall(_finding_text(finding)):
            path = match[2:] if match.startswith("./") else match
            target = _inside(root, path)
            if target is not None and target.is_file() and path not in seen:
                seen.append(path)
    return seen


def _doc_outline(root: Path, doc_files: list[str]) -> dict[str, list[str]]:
    candidates = [p for p in doc_files if (root / p).is_file()]
    docs_dir = root / "docs"
    if docs_dir.is_dir():
        candidates += sorted(str(p.relative_to(root)) for p in docs_dir.rglob("*.md"))

    outline = {}
    for relative in candidates:
        text = (root / relative).read_text(encoding="utf-8", errors="replace")
        headings = [line.strip() for line in text.splitlines() if _HEADING_RE.match(line)]
        outline[relative] = headings[:_HEADINGS_PER_DOC]
    return outline


def parse_assessment(text: str) -> DocAssessment:
    """Parse the LLM's NEEDS_UPDATE / NO_UPDATE_NEEDED answer.

    An answer that matches neither form is treated as "no update needed"
    so a confused model never triggers file rewrites.
    """
    reason_match = _REASON_RE.search(text)
    reason = reason_match.group(1).strip() if reason_match else ""

    needs = _NEEDS_UPDATE_RE.search(text)
    if needs:
        files = [name.strip().strip("`<>").strip() for name in needs.group(1).split(",")]
        files = [name for name in files if name]
        if files:
            return DocAssessment(needs_update=True, files=files, reason=reason, source="llm")
    elif not _NO_UPDATE_RE.search(text):
        logger.warning("Unrecognised documentation assessment response; assuming no update needed.")
        reason = reason or "assessment response not understood"
    return DocAssessment(needs_update=False, reason=reason or "documentation is current", source="llm")


def assess_documentation(
    pr_title: str,
    pr_body: str,
    changed_files: list[str],
    flagged: list[Finding],
    completer: BaseCompleter | None = None,
    root: str | Path = ".",
    doc_files: list[str] | tuple[str, ...] = ("CLAUDE.md", "README.md"),
    commit_messages: list[str] | None = None,
) -> DocAssessment:
    """Decide whether documentation must change for this PR.

    ``flagged`` is the output of doc_findings() for the PR's review. When it
    is non-empty the decision is made from it directly.

    Raises CompletionError if the LLM is consulted and fails.
    """
    root = Path(root)
    code_changes = [p for p in changed_files if not p.startswith("docs/")][:_MAX_CHANGED_FILES]

    if flagged:
        targets = _referenced_docs(flagged, root)
        if not targets:
            targets = [p for p in doc_files if (root / p).is_file()][:1]
        reason = "; ".join(f.title for f in flagged)
        if targets:
            return DocAssessment(needs_update=True, files=targets, reason=reason, source="review")
        logger.info("Review flags documentation but none of %s exist under %s", list(doc_files), root)
        return DocAssessment(needs_update=False, reason=f"review flags documentation but no doc files exist ({reason})")

    if completer is None:
        return DocAssessment(needs_update=False, reason="no documentation items in review")

    prompt = build_assessment_prompt(
        pr_title=pr_title,
        pr_body=pr_body or "",
        changed_files=code_changes,
        doc_outline=_doc_outline(root, list(doc_files)),
        commit_messages=commit_messages,
    )
    return parse_assessment(completer.complete(prompt))


def _line_count(text: str) -> int:
    return len(text.splitlines())


def is_truncated(original: str, updated: str, min_ratio: float = 0.8) -> bool:
    """True when ``updated`` has fewer lines than ``min_ratio`` of ``original``.

    Integer arithmetic, so 80% of a 9-line file is 7 lines.
    """
    percent = round(min_ratio * 100)
    return _line_count(updated) < _line_count(original) * percent // 100


def apply_doc_updates(
    assessment: DocAssessment,
    completer: BaseCompleter,
    root: str | Path,
    pr_number: int,
    pr_title: str,
    diff: str,
    min_ratio: float = 0.8,
) -> DocUpdateReport:
    """Rewrite every file named by ``assessment``.

    Each file is handled on its own: a missing file, a failed generation or
    a truncated rewrite is recorded in ``report.skipped`` and the remaining
    files are still processed. Files that are rewritten are backed up to
    ``<file>.backup-<epoch>`` first.
    """
    root = Path(root)
    report = DocUpdateReport()
    if not assessment.needs_update:
        return report

    diff_context = "\n".join(diff.splitlines()[:_DIFF_CONTEXT_LINES])
    for relative in assessment.files:
        path = _inside(root, relative)
        if path is None:
            report.skipped.append((relative, SKIP_OUTSIDE_ROOT))
            continue
        if not path.is_file():
            report.skipped.append((relative, SKIP_NOT_FOUND))
            continue

        console.print(f"  Updating: {relative}")
        original = path.read_text(encoding="utf-8")
        prompt = build_doc_update_prompt(pr_number, pr_title, assessment.reason, diff_context, original)
        try:
            updated = completer.complete(prompt)
        except CompletionError as e:
            logger.warning("Documentation rewrite of %s failed: %s", relative, e)
            report.skipped.append((relative, SKIP_GENERATION_FAILED))
            continue

        if is_truncated(original, updated, min_ratio):
            logger.warning(
                "Discarding rewrite of %s: %d lines vs %d original",
                relative,
                _line_count(updated),
                _line_count(original),
            )
            report.skipped.append((relative, SKIP_TRUNCATED))
            continue

        backup = path.with_name(f"{path.name}.backup-{int(time.time())}")
        shutil.copy2(path, backup)
        path.write_text(updated if updated.endswith("\n") else updated + "\n", encoding="utf-8")
        report.backups[relative] = str(backup)
        report.updated.append(relative)
        console.print(f"    [green]✓ Updated {relative}[/green]")

    return report


def build_commit_message(pr_number: int, files: list[str], reason: str) -> str:
    return (
        f"docs: update documentation for PR #{pr_number}\n\n"
        "Auto-updated by doc assessment:\n"
        f"- Files: {' '.join(files)}\n"
        f"- Reason: {reason}\n\n"
        f"Related: #{pr_number}"
    )


def _git(args: list[str], root: Path, timeout: float) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(
            ["git", *args],
            cwd=root,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise PrTriageError("git is not installed or not on PATH.") from e
    except subprocess.TimeoutExpired as e:
        raise PrTriageError(f"git {args[0]} timed out after {timeout:.0f}s.") from e


def commit_doc_updates(
    files: list[str],
    message: str,
    push: bool = False,
    root: str | Path = ".",
    timeout: float = 60.0,
) -> tuple[bool, bool]:
    """Stage, commit and optionally push the updated docs.

    Returns ``(committed, pushed)``. "Nothing to commit" is not an error;
    a failed ``git add`` is.
    """
    root = Path(root)
    if not files:
        return False, False

    added = _git(["add", "--", *files], root, timeout)
    if added.returncode != 0:
        raise PrTriageError(f"git add failed: {added.stderr.strip()}")

    committed = _git(["commit", "-m", message], root, timeout)
    if committed.returncode != 0:
        logger.info("git commit made no commit: %s", (committed.stdout or committed.stderr).strip())
        return False, False

    if not push:
        return True, False
    pushed = _git(["push"], root, timeout)
    if pushed.returncode != 0:
        console.print("[yellow]Could not push doc updates; they are committed locally only.[/yellow]")
        return True, False
    return True, True
