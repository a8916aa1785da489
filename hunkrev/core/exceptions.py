from typing import Any


class HunkRevError(Exception):
    """Base exception for the hunkrev application."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class GitHubError(HunkRevError):
    """Errors related to GitHub API interactions."""

    pass


class GitHubAuthenticationError(GitHubError):
    """GitHub authentication failed."""

    pass


class GitHubRateLimitError(GitHubError):
    """GitHub API rate limit exceeded."""

    def __init__(self, reset_at: int, message: str = "Rate limit exceeded") -> None:
        self.reset_at = reset_at
        super().__init__(message, {"reset_at": reset_at})


class GitHubNotFoundError(GitHubError):
    """Requested GitHub resource not found."""

    pass


class LLMError(HunkRevError):
    """Errors related to LLM interactions."""

    pass


class LLMProviderUnavailableError(LLMError):
    """LLM provider is not available or configured."""

    pass


class LLMTimeoutError(LLMError):
    """LLM call exceeded its deadline."""

    pass


class PublishError(HunkRevError):
    """Posting the aggregated review failed."""

    pass


class NotificationError(HunkRevError):
    """Sending the run notification failed."""

    pass


class TriggerError(HunkRevError):
    """The trigger event could not be read or is missing required fields."""

    pass
