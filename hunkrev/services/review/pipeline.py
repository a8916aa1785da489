"""Main review pipeline orchestration."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Literal

import structlog

from hunkrev.core.config import settings
from hunkrev.core.exceptions import PublishError
from hunkrev.core.metrics import REVIEWS_IN_PROGRESS, record_review_completed
from hunkrev.prompts.review import build_review_prompt
from hunkrev.services.github.client import GitHubClient
from hunkrev.services.github.models import DiffRequest, PRContext, Review
from hunkrev.services.llm.base import ModelInvoke
from hunkrev.services.llm.invoker import ModelInvoker
from hunkrev.services.notify.webhook import WebhookNotifier
from hunkrev.services.review.diff_parser import DiffParser, FileChange, Hunk
from hunkrev.services.review.exclusion import filter_excluded, split_patterns
from hunkrev.services.review.extractor import extract_findings
from hunkrev.services.review.mapper import CommentRecord, to_comments
from hunkrev.services.review.summary import summarize_run

logger = structlog.get_logger()


def reviewable_hunks(file_changes: list[FileChange]) -> list[tuple[FileChange, Hunk]]:
    """All (file, hunk) pairs in file order then hunk order, deleted files left out."""
    return [
        (file_change, hunk)
        for file_change in file_changes
        if not file_change.is_deleted
        for hunk in file_change.hunks
    ]


async def review_hunk(
    file_change: FileChange,
    hunk: Hunk,
    pr: PRContext,
    model_invoke: ModelInvoke,
) -> list[CommentRecord]:
    """Prompt, invoke, extract and map a single hunk."""
    prompt = build_review_prompt(file_change, hunk, pr)

    try:
        response = await model_invoke(prompt)
    except Exception as e:
        logger.warning(
            "Model invocation raised, treating as no response",
            path=file_change.path,
            hunk=hunk.header,
            error=str(e),
        )
        response = None

    findings = extract_findings(response)
    comments = to_comments(file_change, findings)

    logger.info(
        "Reviewed hunk",
        path=file_change.path,
        hunk=hunk.header,
        findings=len(findings),
        comments=len(comments),
    )
    return comments


async def review_file_changes(
    file_changes: list[FileChange],
    pr: PRContext,
    model_invoke: ModelInvoke,
    concurrency: int = 1,
) -> list[CommentRecord]:
    """
    Review every hunk of every non-deleted file and aggregate the comments.

    Hunks are independent. With ``concurrency`` above 1 up to that many model
    calls run at once, but the result keeps the sequential order: file, then
    hunk, then finding.

    Args:
        file_changes: Parsed (and already filtered) diff.
        pr: Pull request context embedded in every prompt.
        model_invoke: Async callable returning response text or None.
        concurrency: Maximum number of hunks in flight.

    Returns:
        All comment records of the run.
    """
    units = reviewable_hunks(file_changes)

    if concurrency <= 1:
        results = [
            await review_hunk(file_change, hunk, pr, model_invoke) for file_change, hunk in units
        ]
    else:
        semaphore = asyncio.Semaphore(concurrency)

        async def run(file_change: FileChange, hunk: Hunk) -> list[CommentRecord]:
            async with semaphore:
                return await review_hunk(file_change, hunk, pr, model_invoke)

        # gather returns results in submission order
        results = await asyncio.gather(*(run(file_change, hunk) for file_change, hunk in units))

    comments: list[CommentRecord] = []
    for hunk_comments in results:
        comments.extend(hunk_comments)
    return comments


@dataclass
class PipelineResult:
    """Result of a review pipeline execution."""

    pr_number: int
    pr_title: str
    status: Literal["completed", "skipped"]
    files_reviewed: int = 0
    hunks_reviewed: int = 0
    comments: list[CommentRecord] = field(default_factory=list)
    review_posted: bool = False
    github_review_id: int | None = None
    notification_sent: bool = False
    latency_ms: int = 0

    @property
    def total_comments(self) -> int:
        return len(self.comments)


class ReviewPipeline:
    """Orchestrates the code review process."""

    def __init__(
        self,
        github_client: GitHubClient | None = None,
        model_invoke: ModelInvoke | None = None,
        diff_parser: DiffParser | None = None,
        notifier: WebhookNotifier | None = None,
        exclude_patterns: list[str] | None = None,
        concurrency: int | None = None,
    ) -> None:
        self.github = github_client or GitHubClient()
        self.model_invoke = model_invoke or ModelInvoker.from_settings()
        self.diff_parser = diff_parser or DiffParser()
        self.notifier = notifier or WebhookNotifier(settings.notification_webhook_url)
        self.exclude_patterns = (
            exclude_patterns
            if exclude_patterns is not None
            else split_patterns(settings.exclude_patterns)
        )
        self.concurrency = concurrency or settings.review_concurrency

    async def execute(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        diff_request: DiffRequest | None = None,
        post_review: bool = True,
    ) -> PipelineResult:
        """
        Execute the full review pipeline for a pull request.

        Args:
            owner: Repository owner.
            repo: Repository name.
            pr_number: Pull request number.
            diff_request: Full PR diff (default) or delta between two revisions.
            post_review: Whether to post the review and send the notification.

        Returns:
            PipelineResult with review details.

        Raises:
            PublishError: If posting the review fails.
            NotificationError: If the notification webhook fails.
        """
        diff_request = diff_request or DiffRequest.full()
        repository = f"{owner}/{repo}"
        start_time = time.perf_counter()

        logger.info(
            "Starting review pipeline",
            owner=owner,
            repo=repo,
            pr_number=pr_number,
            diff_mode=diff_request.mode.value,
        )

        REVIEWS_IN_PROGRESS.inc()
        try:
            result = await self._run(owner, repo, pr_number, diff_request, post_review)
        except Exception:
            record_review_completed(
                repository=repository,
                status="failed",
                duration_seconds=time.perf_counter() - start_time,
                hunks_analyzed=0,
                comments_generated=0,
            )
            raise
        finally:
            REVIEWS_IN_PROGRESS.dec()

        duration = time.perf_counter() - start_time
        result.latency_ms = int(duration * 1000)
        record_review_completed(
            repository=repository,
            status=result.status,
            duration_seconds=duration,
            hunks_analyzed=result.hunks_reviewed,
            comments_generated=result.total_comments,
        )
        return result

    async def _run(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        diff_request: DiffRequest,
        post_review: bool,
    ) -> PipelineResult:
        # 1. Fetch PR context
        pr = await self.github.get_pr_context(owner, repo, pr_number)
        logger.info("Fetched PR", title=pr.title, url=pr.html_url)

        # 2. Fetch diff
        diff = await self.github.get_diff(owner, repo, pr_number, diff_request)
        if not diff or not diff.strip():
            logger.info("No diff found", pr_number=pr_number)
            return PipelineResult(pr_number=pr_number, pr_title=pr.title, status="skipped")

        if len(diff.encode("utf-8")) > settings.max_diff_size_bytes:
            logger.warning(
                "Diff exceeds size limit, reviewing anyway",
                size_bytes=len(diff.encode("utf-8")),
                max_bytes=settings.max_diff_size_bytes,
            )

        # 3. Parse and filter
        file_changes = self.diff_parser.parse(diff)
        file_changes = filter_excluded(file_changes, self.exclude_patterns)
        file_changes = [f for f in file_changes if not f.is_deleted]
        logger.info("Parsed diff", files=len(file_changes))

        # 4. Apply limits
        if len(file_changes) > settings.max_files_per_review:
            logger.warning(
                "Too many files, truncating",
                total_files=len(file_changes),
                max_files=settings.max_files_per_review,
            )
            file_changes = file_changes[: settings.max_files_per_review]

        # 5. Review each hunk
        comments = await review_file_changes(
            file_changes,
            pr,
            self.model_invoke,
            concurrency=self.concurrency,
        )
        result = PipelineResult(
            pr_number=pr_number,
            pr_title=pr.title,
            status="completed",
            files_reviewed=len(file_changes),
            hunks_reviewed=len(reviewable_hunks(file_changes)),
            comments=comments,
        )
        logger.info("Review finished", comments=len(comments), hunks=result.hunks_reviewed)

        if not post_review:
            return result

        # 6. Post review to GitHub
        if comments:
            result.github_review_id = await self._publish(owner, repo, pr_number, comments)
            result.review_posted = True

        # 7. Notify
        summary = summarize_run(
            comments,
            pr,
            preview_count=settings.notification_preview_count,
            preview_chars=settings.notification_preview_chars,
        )
        result.notification_sent = await self.notifier.notify(summary)

        return result

    async def _publish(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        comments: list[CommentRecord],
    ) -> int | None:
        review = Review(
            event="COMMENT",
            comments=[comment.to_review_comment() for comment in comments],
        )
        try:
            response = await self.github.create_review(owner, repo, pr_number, review)
        except Exception as e:
            logger.error("Failed to post review", error=str(e))
            raise PublishError(f"Failed to post review: {e}") from e

        review_id = response.get("id")
        logger.info("Posted review to GitHub", review_id=review_id)
        return review_id

    async def close(self) -> None:
        """Clean up resources."""
        await self.github.close()
        close = getattr(self.model_invoke, "close", None)
        if close is not None:
            await close()
