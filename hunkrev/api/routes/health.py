from datetime import UTC, datetime
from typing import Literal

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from hunkrev.core.config import settings

router = APIRouter()


class HealthStatus(BaseModel):
    status: Literal["healthy", "unhealthy"]
    version: str
    environment: str
    timestamp: datetime


class ReadinessStatus(BaseModel):
    status: Literal["ready", "not_ready"]
    checks: dict[str, bool]
    timestamp: datetime


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    """Liveness probe."""
    return HealthStatus(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
        timestamp=datetime.now(UTC),
    )


@router.get("/ready", response_model=ReadinessStatus)
async def readiness_check() -> ReadinessStatus:
    """
    Readiness probe.

    Only checks configuration: a GitHub token and credentials for the
    configured model provider. Remote endpoints are not called.
    """
    provider_configured = {
        "openai": settings.openai_api_key is not None,
        "anthropic": settings.anthropic_api_key is not None,
        "ollama": bool(settings.ollama_host),
    }[settings.llm_provider]

    checks = {
        "github_token": bool(settings.github_token.get_secret_value()),
        "llm_provider": provider_configured,
    }

    return ReadinessStatus(
        status="ready" if all(checks.values()) else "not_ready",
        checks=checks,
        timestamp=datetime.now(UTC),
    )


@router.get("/metrics", response_class=Response, summary="Prometheus metrics")
async def metrics() -> Response:
    """Expose Prometheus metrics in the text exposition format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
