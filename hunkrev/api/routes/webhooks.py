from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Header, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from hunkrev.core.exceptions import HunkRevError
from hunkrev.services.github.models import DiffRequest, WebhookPullRequestEvent
from hunkrev.services.review.pipeline import ReviewPipeline

router = APIRouter()
logger = structlog.get_logger()


async def process_pr_review(
    owner: str,
    repo: str,
    pr_number: int,
    diff_request: DiffRequest,
) -> None:
    """Background task to process a PR review."""
    logger.info(
        "Processing PR review in background",
        owner=owner,
        repo=repo,
        pr_number=pr_number,
        diff_mode=diff_request.mode.value,
    )

    pipeline = ReviewPipeline()
    try:
        result = await pipeline.execute(
            owner=owner,
            repo=repo,
            pr_number=pr_number,
            diff_request=diff_request,
            post_review=True,
        )
        logger.info(
            "Background review completed",
            pr_number=pr_number,
            status=result.status,
            comments=result.total_comments,
        )
    except HunkRevError as e:
        logger.error(
            "Background review failed",
            pr_number=pr_number,
            error=e.message,
            details=e.details,
        )
    finally:
        await pipeline.close()


@router.post("/github")
async def github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_github_event: str = Header(..., alias="X-GitHub-Event"),
) -> JSONResponse:
    """
    Handle GitHub webhook events.

    Reviews are queued for:
    - pull_request.opened (full diff against the base branch)
    - pull_request.synchronize (delta between the previous and the new head)

    Every other event or action is acknowledged and ignored.
    """
    payload: dict[str, Any] = await request.json()

    logger.info(
        "Received GitHub webhook",
        github_event=x_github_event,
        action=payload.get("action"),
    )

    if x_github_event != "pull_request":
        return _ignored(f"Unsupported event: {x_github_event}")

    try:
        event = WebhookPullRequestEvent.model_validate(payload)
    except ValidationError as e:
        logger.warning("Malformed pull_request payload", error=str(e))
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"message": "Malformed pull_request payload"},
        )

    diff_request = event.diff_request()
    if diff_request is None or not event.owner or not event.repo:
        return _ignored(f"Unsupported action: {event.action}")

    logger.info(
        "Queuing PR review",
        owner=event.owner,
        repo=event.repo,
        pr_number=event.number,
        action=event.action,
    )

    background_tasks.add_task(
        process_pr_review,
        owner=event.owner,
        repo=event.repo,
        pr_number=event.number,
        diff_request=diff_request,
    )

    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={"message": "Review queued", "pr_number": event.number},
    )


def _ignored(message: str) -> JSONResponse:
    logger.info("Ignoring webhook", reason=message)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"message": message},
    )
