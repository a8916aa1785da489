from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class PRContext(BaseModel):
    """Pull request metadata handed to the review pipeline."""

    model_config = ConfigDict(frozen=True)

    owner: str
    repo: str
    number: int
    title: str = ""
    description: str = ""
    html_url: str = ""
    head_sha: str | None = None
    base_sha: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class ReviewComment(BaseModel):
    """A review comment to post on a PR."""

    path: str
    line: int
    body: str
    side: Literal["LEFT", "RIGHT"] = "RIGHT"


class Review(BaseModel):
    """A complete review to submit."""

    body: str = ""
    event: Literal["APPROVE", "REQUEST_CHANGES", "COMMENT"] = "COMMENT"
    comments: list[ReviewComment] = Field(default_factory=list)


class DiffMode(str, Enum):
    FULL = "full"  # whole PR diff against its base
    DELTA = "delta"  # compare between two head revisions


@dataclass(frozen=True)
class DiffRequest:
    """Which diff to fetch for a review run."""

    mode: DiffMode = DiffMode.FULL
    base_sha: str | None = None
    head_sha: str | None = None

    @classmethod
    def full(cls) -> "DiffRequest":
        return cls(mode=DiffMode.FULL)

    @classmethod
    def delta(cls, base_sha: str, head_sha: str) -> "DiffRequest":
        return cls(mode=DiffMode.DELTA, base_sha=base_sha, head_sha=head_sha)


class WebhookPullRequestEvent(BaseModel):
    """Parsed pull_request event payload (webhook body or CI event file)."""

    model_config = ConfigDict(extra="ignore")

    action: str
    number: int
    pull_request: dict[str, Any] = Field(default_factory=dict)
    repository: dict[str, Any]
    before: str | None = None
    after: str | None = None

    @property
    def repo_full_name(self) -> str:
        return str(self.repository.get("full_name", ""))

    @property
    def owner(self) -> str:
        owner = self.repository.get("owner", {})
        if isinstance(owner, dict) and owner.get("login"):
            return str(owner["login"])
        return self.repo_full_name.split("/", 1)[0]

    @property
    def repo(self) -> str:
        if self.repository.get("name"):
            return str(self.repository["name"])
        return self.repo_full_name.split("/", 1)[-1]

    @property
    def pr_title(self) -> str:
        return str(self.pull_request.get("title") or "")

    def diff_request(self) -> DiffRequest | None:
        """
        Map the event action to the diff the run should review.

        ``opened`` reviews the full PR diff, ``synchronize`` reviews only
        what changed between the previous and the new head. Anything else
        (including a ``synchronize`` without both revisions) is not reviewed.
        """
        if self.action == "opened":
            return DiffRequest.full()
        if self.action == "synchronize" and self.before and self.after:
            return DiffRequest.delta(self.before, self.after)
        return None
