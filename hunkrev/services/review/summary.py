from dataclasses import dataclass, field

from hunkrev.services.github.models import PRContext
from hunkrev.services.review.mapper import CommentRecord

ELLIPSIS = "…"


@dataclass(frozen=True)
class RunSummary:
    """Short, human readable outcome of a review run."""

    comment_count: int
    previews: tuple[str, ...] = field(default_factory=tuple)
    pr_url: str = ""
    pr_title: str = ""

    def to_text(self) -> str:
        title = f" {self.pr_title}" if self.pr_title else ""
        lines = [f"AI review finished for{title}: {self.comment_count} comment(s)."]
        lines.extend(f"• {preview}" for preview in self.previews)
        hidden = self.comment_count - len(self.previews)
        if hidden > 0:
            lines.append(f"…and {hidden} more.")
        if self.pr_url:
            lines.append(self.pr_url)
        return "\n".join(lines)


def truncate(text: str, max_chars: int) -> str:
    """Collapse whitespace and cut to ``max_chars`` characters."""
    flat = " ".join(text.split())
    if len(flat) <= max_chars:
        return flat
    if max_chars <= len(ELLIPSIS):
        return flat[:max_chars]
    return flat[: max_chars - len(ELLIPSIS)] + ELLIPSIS


def summarize_run(
    comments: list[CommentRecord],
    pr: PRContext,
    preview_count: int = 5,
    preview_chars: int = 100,
) -> RunSummary:
    previews = tuple(
        truncate(f"{comment.path}:{comment.line} {comment.body}", preview_chars)
        for comment in comments[: max(preview_count, 0)]
    )
    return RunSummary(
        comment_count=len(comments),
        previews=previews,
        pr_url=pr.html_url,
        pr_title=pr.title,
    )
