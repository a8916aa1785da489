"""Prometheus request metrics for the FastAPI app."""

import time
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Match

from hunkrev.core.metrics import HTTP_REQUESTS_IN_PROGRESS, record_http_request

# Probes and the scrape endpoint are not counted
UNTRACKED_PATHS = frozenset({"/health", "/ready", "/metrics"})


def route_template(request: Request) -> str:
    """Route pattern for the request (``/reviews`` rather than a concrete URL)."""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return str(getattr(route, "path", request.url.path))
    return "unmatched"


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts requests, observes their duration and tracks in-flight requests."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path in UNTRACKED_PATHS:
            return await call_next(request)

        endpoint = route_template(request)
        in_progress = HTTP_REQUESTS_IN_PROGRESS.labels(method=request.method, endpoint=endpoint)
        in_progress.inc()

        start_time = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            in_progress.dec()
            record_http_request(
                method=request.method,
                endpoint=endpoint,
                status_code=status_code,
                duration_seconds=time.perf_counter() - start_time,
            )
