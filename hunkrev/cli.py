"""Command line entry point.

``hunkrev event`` runs inside a CI job: it reads the pull_request event
payload from ``GITHUB_EVENT_PATH`` and reviews the opened or synchronized
PR. ``hunkrev review OWNER REPO NUMBER`` reviews the full diff of any PR.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from hunkrev.core.config import settings
from hunkrev.core.exceptions import HunkRevError, TriggerError
from hunkrev.core.logging import configure_logging
from hunkrev.services.github.models import DiffRequest, WebhookPullRequestEvent
from hunkrev.services.review.pipeline import PipelineResult, ReviewPipeline

logger = structlog.get_logger()

PULL_REQUEST_EVENTS = ("pull_request", "pull_request_target")


def load_event(path: str | None) -> WebhookPullRequestEvent:
    """Read and validate the trigger event payload."""
    if not path:
        raise TriggerError("GITHUB_EVENT_PATH is not set")

    try:
        payload: Any = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise TriggerError(f"Could not read event payload: {e}", {"path": path}) from e

    try:
        return WebhookPullRequestEvent.model_validate(payload)
    except ValidationError as e:
        raise TriggerError(f"Event payload is not a pull_request event: {e}") from e


async def run_review(
    owner: str,
    repo: str,
    pr_number: int,
    diff_request: DiffRequest,
    post_review: bool,
    pipeline: ReviewPipeline | None = None,
) -> PipelineResult:
    pipeline = pipeline or ReviewPipeline()
    try:
        return await pipeline.execute(
            owner=owner,
            repo=repo,
            pr_number=pr_number,
            diff_request=diff_request,
            post_review=post_review,
        )
    finally:
        await pipeline.close()


async def run_event(
    event_path: str | None,
    event_name: str | None,
    post_review: bool,
    pipeline: ReviewPipeline | None = None,
) -> PipelineResult | None:
    """Review the PR named by the trigger event; None when the event is not reviewed."""
    if event_name and event_name not in PULL_REQUEST_EVENTS:
        logger.info("Unsupported event", event_name=event_name)
        return None

    event = load_event(event_path)
    diff_request = event.diff_request()
    if diff_request is None:
        logger.info("Unsupported event", event_name=event_name, action=event.action)
        return None

    return await run_review(
        owner=event.owner,
        repo=event.repo,
        pr_number=event.number,
        diff_request=diff_request,
        post_review=post_review,
        pipeline=pipeline,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hunkrev", description="AI review of pull request hunks")
    subcommands = parser.add_subparsers(dest="command", required=True)

    event = subcommands.add_parser("event", help="review the PR from a CI trigger event")
    event.add_argument("--event-path", default=settings.github_event_path)
    event.add_argument("--event-name", default=settings.github_event_name)
    event.add_argument("--dry-run", action="store_true", help="do not post anything")

    review = subcommands.add_parser("review", help="review the full diff of a PR")
    review.add_argument("owner")
    review.add_argument("repo")
    review.add_argument("pr_number", type=int)
    review.add_argument("--dry-run", action="store_true", help="do not post anything")

    return parser


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)
    post_review = not args.dry_run

    try:
        if args.command == "event":
            result = asyncio.run(run_event(args.event_path, args.event_name, post_review))
        else:
            result = asyncio.run(
                run_review(args.owner, args.repo, args.pr_number, DiffRequest.full(), post_review)
            )
    except HunkRevError as e:
        logger.error("Review run failed", error=e.message, details=e.details)
        return 1
    except Exception as e:
        logger.exception("Review run failed", error=str(e))
        return 1

    if result is not None:
        logger.info(
            "Review run completed",
            pr_number=result.pr_number,
            status=result.status,
            comments=result.total_comments,
            review_posted=result.review_posted,
        )
        if args.dry_run:
            for comment in result.comments:
                print(f"{comment.path}:{comment.line}: {comment.body}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
