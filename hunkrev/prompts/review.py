"""Prompts for hunk review."""

from hunkrev.services.github.models import PRContext
from hunkrev.services.review.diff_parser import FileChange, Hunk

REVIEW_INSTRUCTIONS = """You are a senior software engineer reviewing a pull request.

## Goal
Review the Git diff below and suggest only **meaningful** improvements.

## Review focus
Look at these areas first:
- Concurrency and thread safety (shared mutable state, race conditions, misuse of async code)
- Layering and separation of concerns (responsibilities leaking across layers)
- Testability and dependency injection (hard-wired dependencies, hidden globals, tight coupling)
- Error handling (unhandled failures, swallowed errors, possible crashes)
- Performance problems with real impact (redundant work, repeated calls, needless allocations)

Do not comment on purely stylistic matters such as formatting, whitespace or naming taste.
Do not write praise. Do not suggest adding comments to the code.

## Output format (VERY IMPORTANT)
Respond with JSON in exactly this shape:

{"reviews": [{"lineNumber": <line_number>, "reviewComment": "<review comment>"}]}

- `lineNumber` is the number printed at the start of the diff line you are commenting on.
- `reviewComment` is written in GitHub Markdown.
- If nothing needs improving, return `{"reviews": []}`.
- Return only the JSON object. No code fences (```), no text before or after it."""

CONTEXT_NOTE = (
    "Use the pull request title and description only to understand the intent of the "
    "change. Every comment must be based on the diff itself."
)


def format_hunk(hunk: Hunk) -> str:
    """Render a hunk with each line prefixed by the line number it can be cited by."""
    numbered = [f"{line.line_number} {line}" for line in hunk.lines]
    return "\n".join([hunk.header, *numbered])


def build_review_prompt(file_change: FileChange, hunk: Hunk, pr: PRContext) -> str:
    """Build the instruction sent to the model for a single hunk."""
    parts = [
        REVIEW_INSTRUCTIONS,
        "",
        "## Context",
        CONTEXT_NOTE,
        "",
        f"Pull request title: {pr.title or ''}",
        "Pull request description:",
        "",
        "---",
        pr.description or "",
        "---",
        "",
        f'## Git diff to review (file: "{file_change.destination_path or ""}"):',
        "",
        "```diff",
        format_hunk(hunk),
        "```",
    ]
    return "\n".join(parts) + "\n"
