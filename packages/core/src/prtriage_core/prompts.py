"""Prompt builders for every LLM call prtriage makes.

Kept in one module so the three prompts (local review, documentation
assessment, documentation rewrite) stay consistent about the output
formats the parsers downstream expect.
"""

from __future__ import annotations

_PROJECT_CONTEXT_LINES = 200
_DOC_SECTIONS_LIMIT = 10


def build_review_prompt(
    instructions: str,
    pr_number: int,
    pr_title: str,
    head_ref: str,
    base_ref: str,
    diff: str,
    project_context: str = "",
) -> str:
    """Prompt for a local review. The response is parsed by prtriage_core.review."""
    context = ""
    if project_context:
        lines = project_context.splitlines()[:_PROJECT_CONTEXT_LINES]
        context = "\n\n## Project Context (from CLAUDE.md)\n\n" + "\n".join(lines)

    return f"""{instructions}
{context}

---

## PR Information

**Title:** {pr_title}
**Branch:** {head_ref} -> {base_ref}
**PR Number:** #{pr_number}

---

## Code Changes (Diff)

```diff
{diff}
```

---

Please provide your code review following the output format specified above."""


def build_assessment_prompt(
    pr_title: str,
    pr_body: str,
    changed_files: list[str],
    doc_outline: dict[str, list[str]],
    commit_messages: list[str] | None = None,
) -> str:
    """Prompt asking whether documentation must change.

    ``doc_outline`` maps each existing doc path to its headings so the model
    can name concrete files in its answer.
    """
    outline_lines = []
    for path, headings in sorted(doc_outline.items()):
        shown = "; ".join(headings[:_DOC_SECTIONS_LIMIT])
        outline_lines.append(f"- {path}: {shown}" if shown else f"- {path}")
    outline = "\n".join(outline_lines) or "(no documentation files found)"
    files = "\n".join(changed_files) or "(none)"
    commits = "\n".join(commit_messages or []) or "(not available)"

    return f"""You are reviewing a pull request to assess if documentation needs updating.

**PR Title:** {pr_title}

**PR Description:**
{pr_body}

**Changed Files (excluding docs/):**
{files}

**Recent Commits:**
{commits}

**Existing Documentation Structure:**
{outline}

**Your Task:**
Assess whether ANY documentation needs to be updated based on these code changes.
New scripts, architectural patterns, workflows, security patterns, infrastructure,
schema changes and new configuration ALWAYS need documentation. Bug fixes, test
updates, refactors without behavior change and version bumps do not.

**Response Format:**
If documentation updates are needed, respond with:
NEEDS_UPDATE: <file1.md>, <file2.md>
REASON: <Brief explanation of what needs updating>

If no documentation updates needed, respond with:
NO_UPDATE_NEEDED
REASON: <Brief explanation>"""


def build_doc_update_prompt(
    pr_number: int,
    pr_title: str,
    reason: str,
    diff: str,
    current_content: str,
) -> str:
    """Prompt for a complete replacement of one documentation file."""
    return f"""You are updating documentation to reflect code changes from a PR.

**Documentation Update Rule:**
- If pertinent topic exists: expand section as necessary with new information
- If topic doesn't exist: add new section in appropriate location
- Keep updates minimal and focused on the actual changes
- Match existing documentation style and format

**PR Context:**
- PR #{pr_number}: {pr_title}
- Reason for doc update: {reason}

**PR Changes (diff):**
```
{diff}
```

**Current Documentation Content:**
```markdown
{current_content}
```

**Your Task:**
Update this documentation file to reflect the PR changes. Output the COMPLETE updated file.
Maintain all existing content unless it contradicts new changes.

Output ONLY the complete updated markdown file, nothing else."""
