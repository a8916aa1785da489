from hunkrev.services.github.client import GitHubClient
from hunkrev.services.github.models import (
    DiffMode,
    DiffRequest,
    PRContext,
    Review,
    ReviewComment,
    WebhookPullRequestEvent,
)

__all__ = [
    "DiffMode",
    "DiffRequest",
    "GitHubClient",
    "PRContext",
    "Review",
    "ReviewComment",
    "WebhookPullRequestEvent",
]
