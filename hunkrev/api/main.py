"""FastAPI application factory for hunkrev."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from hunkrev.api.middleware.metrics import MetricsMiddleware
from hunkrev.api.routes import health, reviews, webhooks
from hunkrev.core.config import settings
from hunkrev.core.exceptions import HunkRevError
from hunkrev.core.logging import configure_logging
from hunkrev.core.metrics import initialize_app_info

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown."""
    configure_logging()
    initialize_app_info(settings.app_version, settings.environment)
    logger.info(
        "Starting hunkrev",
        version=settings.app_version,
        environment=settings.environment,
        llm_provider=settings.llm_provider,
        model=settings.resolved_model,
    )

    yield

    logger.info("Shutting down hunkrev")


def create_app() -> FastAPI:
    """Application factory."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="AI review of pull request hunks",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(MetricsMiddleware)

    # Exception handlers
    @app.exception_handler(HunkRevError)
    async def hunkrev_exception_handler(request: Request, exc: HunkRevError) -> JSONResponse:
        logger.error("Application error", error=exc.message, details=exc.details)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": exc.message, "details": exc.details},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception", error=str(exc))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    # Routes
    app.include_router(health.router, tags=["Health"])
    app.include_router(webhooks.router, prefix="/webhooks", tags=["Webhooks"])
    app.include_router(reviews.router, prefix="/reviews", tags=["Reviews"])

    return app


app = create_app()
