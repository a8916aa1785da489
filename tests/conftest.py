"""Pytest configuration and fixtures."""

import os
from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient

# =============================================================================
# Environment Setup (must happen before app imports)
# =============================================================================

os.environ.setdefault("GITHUB_TOKEN", "test-token-for-testing")
os.environ.setdefault("OPENAI_API_KEY", "test-key-for-testing")
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")

from hunkrev.api.main import app  # noqa: E402
from hunkrev.services.github.models import PRContext  # noqa: E402

pytest_plugins = ("pytest_asyncio",)


# =============================================================================
# FastAPI Test Client
# =============================================================================


@pytest.fixture
def client() -> TestClient:
    """Create a test client for the FastAPI application."""
    return TestClient(app)


# =============================================================================
# Review Fixtures
# =============================================================================


@pytest.fixture
def pr_context() -> PRContext:
    return PRContext(
        owner="owner",
        repo="repo",
        number=42,
        title="Add profile loading",
        description="Loads the cached profile name on appear.",
        html_url="https://github.com/owner/repo/pull/42",
    )


class StubModel:
    """Deterministic model stand-in: returns canned responses in call order."""

    def __init__(self, responses: list[str | None]) -> None:
        self.responses = list(responses)
        self.prompts: list[str] = []

    async def __call__(self, prompt: str) -> str | None:
        self.prompts.append(prompt)
        if not self.responses:
            return None
        return self.responses.pop(0)


@pytest.fixture
def stub_model() -> Callable[[list[str | None]], StubModel]:
    return StubModel
