"""GitHub REST client for the review run: PR context, diffs and reviews."""

import time
from typing import Any

import httpx
import structlog

from hunkrev.core.config import settings
from hunkrev.core.exceptions import (
    GitHubAuthenticationError,
    GitHubError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from hunkrev.core.metrics import record_github_api_call
from hunkrev.services.github.models import DiffMode, DiffRequest, PRContext, Review

logger = structlog.get_logger()

JSON_MEDIA_TYPE = "application/vnd.github+json"
DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"
API_VERSION = "2022-11-28"


def _header_int(response: httpx.Response, name: str) -> int | None:
    value = response.headers.get(name)
    return int(value) if value and value.isdigit() else None


def _raise_for_status(response: httpx.Response, endpoint: str) -> None:
    """Map an error response to the matching GitHubError subclass."""
    code = response.status_code
    if code < 400:
        return
    if code == 401:
        raise GitHubAuthenticationError("Invalid GitHub token")
    if code == 403:
        if "rate limit" in response.text.lower():
            raise GitHubRateLimitError(reset_at=_header_int(response, "X-RateLimit-Reset") or 0)
        raise GitHubAuthenticationError("Access forbidden")
    if code == 404:
        raise GitHubNotFoundError(f"Resource not found: {endpoint}")
    raise GitHubError(f"GitHub API error: {code}", details={"response": response.text})


class GitHubClient:
    """Thin async client over the few GitHub endpoints a review run needs."""

    def __init__(self, token: str | None = None, base_url: str | None = None) -> None:
        self.token = token or settings.github_token.get_secret_value()
        self.base_url = base_url or settings.github_api_url
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Accept": JSON_MEDIA_TYPE,
                    "X-GitHub-Api-Version": API_VERSION,
                },
                timeout=30.0,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _extract_endpoint_name(self, endpoint: str) -> str:
        """
        Metric label for an endpoint: the path after ``/repos/{owner}/{repo}``
        without numbers or revision ranges.

            /repos/owner/repo/pulls/123/reviews -> pulls_reviews
            /repos/owner/repo/compare/abc...def -> compare
        """
        parts = endpoint.strip("/").split("/")
        if parts[:1] == ["repos"]:
            parts = parts[3:]
        parts = [p for p in parts if not p.isdigit() and "..." not in p]
        return "_".join(parts) or "unknown"

    async def _request(
        self,
        method: str,
        endpoint: str,
        **kwargs: Any,
    ) -> dict[str, Any] | list[Any] | str:
        """Send one request; diff media type responses come back as text."""
        client = await self._get_client()
        logger.debug("GitHub API request", method=method, endpoint=endpoint)

        response: httpx.Response | None = None
        start_time = time.perf_counter()
        try:
            response = await client.request(method, endpoint, **kwargs)
        except httpx.HTTPError as e:
            raise GitHubError(f"GitHub request failed: {e}") from e
        finally:
            record_github_api_call(
                endpoint=self._extract_endpoint_name(endpoint),
                method=method,
                status_code=response.status_code if response is not None else 0,
                duration_seconds=time.perf_counter() - start_time,
                rate_limit_remaining=(
                    _header_int(response, "X-RateLimit-Remaining") if response is not None else None
                ),
                rate_limit_reset=(
                    _header_int(response, "X-RateLimit-Reset") if response is not None else None
                ),
            )

        _raise_for_status(response, endpoint)

        accept = (kwargs.get("headers") or {}).get("Accept", "")
        if accept == DIFF_MEDIA_TYPE:
            return response.text

        data: dict[str, Any] | list[Any] = response.json()
        return data

    async def _get_diff_text(self, endpoint: str) -> str:
        diff = await self._request("GET", endpoint, headers={"Accept": DIFF_MEDIA_TYPE})
        if not isinstance(diff, str):
            raise GitHubError("Unexpected response format for diff")
        return diff

    async def get_pr_context(self, owner: str, repo: str, pr_number: int) -> PRContext:
        """Fetch title, description and URL of a pull request."""
        data = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{pr_number}")
        if not isinstance(data, dict):
            raise GitHubError("Unexpected response format")

        return PRContext(
            owner=owner,
            repo=repo,
            number=pr_number,
            title=data.get("title") or "",
            description=data.get("body") or "",
            html_url=data.get("html_url") or "",
            head_sha=(data.get("head") or {}).get("sha"),
            base_sha=(data.get("base") or {}).get("sha"),
        )

    async def get_pull_request_diff(self, owner: str, repo: str, pr_number: int) -> str:
        """Raw diff of the PR against its base branch."""
        return await self._get_diff_text(f"/repos/{owner}/{repo}/pulls/{pr_number}")

    async def get_compare_diff(self, owner: str, repo: str, base_sha: str, head_sha: str) -> str:
        """Raw diff between two revisions."""
        return await self._get_diff_text(f"/repos/{owner}/{repo}/compare/{base_sha}...{head_sha}")

    async def get_diff(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        request: DiffRequest,
    ) -> str:
        """Fetch the diff selected by ``request``."""
        if request.mode != DiffMode.DELTA:
            return await self.get_pull_request_diff(owner, repo, pr_number)
        if not request.base_sha or not request.head_sha:
            raise GitHubError("Delta diff needs both base and head revisions")
        return await self.get_compare_diff(owner, repo, request.base_sha, request.head_sha)

    async def create_review(
        self,
        owner: str,
        repo: str,
        pr_number: int,
        review: Review,
    ) -> dict[str, Any]:
        """Submit one review carrying all line comments."""
        payload: dict[str, Any] = {"event": review.event}
        if review.body:
            payload["body"] = review.body
        if review.comments:
            payload["comments"] = [comment.model_dump() for comment in review.comments]

        data = await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls/{pr_number}/reviews",
            json=payload,
        )
        if not isinstance(data, dict):
            raise GitHubError("Unexpected response format")

        logger.info(
            "Review submitted",
            repository=f"{owner}/{repo}",
            pr_number=pr_number,
            comment_count=len(review.comments),
        )
        return data
