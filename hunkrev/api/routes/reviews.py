import structlog
from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from hunkrev.services.github.models import DiffRequest
from hunkrev.services.review.pipeline import PipelineResult, ReviewPipeline

router = APIRouter()
logger = structlog.get_logger()


class ReviewRequest(BaseModel):
    """Request to trigger a manual code review."""

    owner: str = Field(..., description="Repository owner")
    repo: str = Field(..., description="Repository name")
    pr_number: int = Field(..., gt=0, description="Pull request number")
    base_sha: str | None = Field(
        default=None,
        description="Review only the changes after this revision (needs head_sha)",
    )
    head_sha: str | None = Field(default=None, description="Last revision to review")
    post_review: bool = Field(
        default=True,
        description="Whether to post the review to GitHub",
    )


class CommentOut(BaseModel):
    path: str
    line: int
    body: str


class ReviewResponse(BaseModel):
    """Outcome of a manual review run."""

    pr_number: int
    pr_title: str
    status: str
    files_reviewed: int
    hunks_reviewed: int
    total_comments: int
    comments: list[CommentOut]
    review_posted: bool
    github_review_id: int | None = None
    notification_sent: bool = False
    latency_ms: int = 0

    @classmethod
    def from_result(cls, result: PipelineResult) -> "ReviewResponse":
        return cls(
            pr_number=result.pr_number,
            pr_title=result.pr_title,
            status=result.status,
            files_reviewed=result.files_reviewed,
            hunks_reviewed=result.hunks_reviewed,
            total_comments=result.total_comments,
            comments=[CommentOut(path=c.path, line=c.line, body=c.body) for c in result.comments],
            review_posted=result.review_posted,
            github_review_id=result.github_review_id,
            notification_sent=result.notification_sent,
            latency_ms=result.latency_ms,
        )


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_200_OK)
async def trigger_review(request: ReviewRequest) -> ReviewResponse:
    """
    Review a pull request synchronously.

    Fetches the diff, asks the model about each hunk and, when
    ``post_review`` is set, posts one COMMENT review and sends the run
    notification. Errors are handled by the application's exception
    handlers.
    """
    diff_request = DiffRequest.full()
    if request.base_sha and request.head_sha:
        diff_request = DiffRequest.delta(request.base_sha, request.head_sha)

    logger.info(
        "Manual review requested",
        repository=f"{request.owner}/{request.repo}",
        pr_number=request.pr_number,
        diff_mode=diff_request.mode.value,
    )

    pipeline = ReviewPipeline()
    try:
        result = await pipeline.execute(
            request.owner,
            request.repo,
            request.pr_number,
            diff_request=diff_request,
            post_review=request.post_review,
        )
    finally:
        await pipeline.close()

    return ReviewResponse.from_result(result)
