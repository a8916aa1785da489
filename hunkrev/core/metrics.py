"""
Prometheus metrics for hunkrev.

Everything a review run touches is counted here: incoming HTTP requests,
model calls, how each model response was extracted, findings dropped on
the way to comments, finished runs, notifications and GitHub API calls.
All metric names carry the ``hunkrev_`` prefix.
"""

import time

from prometheus_client import Counter, Gauge, Histogram, Info

PREFIX = "hunkrev"

# =============================================================================
# Application Info
# =============================================================================

APP_INFO = Info(f"{PREFIX}_app", "Version and environment of the running hunkrev process")

# =============================================================================
# HTTP (webhook and manual review API)
# =============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    f"{PREFIX}_http_requests_total",
    "API requests by route template and response status",
    ["method", "endpoint", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    f"{PREFIX}_http_request_duration_seconds",
    "API request latency",
    ["method", "endpoint"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 120.0),
)

HTTP_REQUESTS_IN_PROGRESS = Gauge(
    f"{PREFIX}_http_requests_in_progress",
    "API requests currently being handled",
    ["method", "endpoint"],
)

# =============================================================================
# Model Calls
# =============================================================================

LLM_REQUESTS_TOTAL = Counter(
    f"{PREFIX}_llm_requests_total",
    "Per-hunk model calls",
    ["provider", "model", "status"],  # status: success, error, timeout
)

LLM_TOKENS_TOTAL = Counter(
    f"{PREFIX}_llm_tokens_total",
    "Tokens consumed by model calls",
    ["provider", "model", "direction"],  # direction: input, output
)

LLM_COST_USD_TOTAL = Counter(
    f"{PREFIX}_llm_cost_usd_total",
    "Estimated model spend in USD",
    ["provider", "model"],
)

LLM_REQUEST_DURATION_SECONDS = Histogram(
    f"{PREFIX}_llm_request_duration_seconds",
    "Latency of a single per-hunk model call",
    ["provider", "model"],
    buckets=(0.5, 1.0, 2.0, 5.0, 10.0, 20.0, 60.0, 120.0),
)

# =============================================================================
# Extraction and Mapping
# =============================================================================

EXTRACTION_OUTCOMES_TOTAL = Counter(
    f"{PREFIX}_extraction_outcomes_total",
    "Model responses by extraction outcome",
    # outcome: findings, empty, no_response, unparseable, schema_mismatch
    ["outcome"],
)

FINDINGS_DROPPED_TOTAL = Counter(
    f"{PREFIX}_findings_dropped_total",
    "Findings dropped while mapping to review comments",
    ["reason"],  # reason: deleted_file, not_an_object, invalid_line, invalid_body
)

# =============================================================================
# Review Runs
# =============================================================================

REVIEWS_TOTAL = Counter(
    f"{PREFIX}_reviews_total",
    "Finished review runs",
    ["repository", "status"],  # status: completed, skipped, failed
)

REVIEWS_IN_PROGRESS = Gauge(
    f"{PREFIX}_reviews_in_progress",
    "Review runs currently executing",
)

REVIEW_DURATION_SECONDS = Histogram(
    f"{PREFIX}_review_duration_seconds",
    "Wall time of a review run, fetch to notification",
    ["repository"],
    buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0),
)

REVIEW_HUNKS_ANALYZED = Histogram(
    f"{PREFIX}_review_hunks_analyzed",
    "Hunks sent to the model per run",
    buckets=(1, 2, 5, 10, 20, 50, 100, 200),
)

REVIEW_COMMENTS_GENERATED = Histogram(
    f"{PREFIX}_review_comments_generated",
    "Comments produced per run",
    buckets=(0, 1, 2, 5, 10, 20, 50),
)

NOTIFICATIONS_TOTAL = Counter(
    f"{PREFIX}_notifications_total",
    "Run notifications sent to chat webhooks",
    ["status"],  # status: sent, failed, skipped
)

# =============================================================================
# GitHub API
# =============================================================================

GITHUB_API_REQUESTS_TOTAL = Counter(
    f"{PREFIX}_github_api_requests_total",
    "GitHub REST calls by endpoint and status",
    ["endpoint", "method", "status_code"],
)

GITHUB_API_DURATION_SECONDS = Histogram(
    f"{PREFIX}_github_api_duration_seconds",
    "GitHub REST call latency",
    ["endpoint", "method"],
    buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

GITHUB_RATE_LIMIT_REMAINING = Gauge(
    f"{PREFIX}_github_rate_limit_remaining",
    "Requests left in the current GitHub rate limit window",
)

GITHUB_RATE_LIMIT_RESET_SECONDS = Gauge(
    f"{PREFIX}_github_rate_limit_reset_seconds",
    "Seconds until the GitHub rate limit window resets",
)


# =============================================================================
# Recording Helpers
# =============================================================================


def initialize_app_info(version: str, environment: str) -> None:
    APP_INFO.info({"version": version, "environment": environment})


def record_http_request(
    method: str,
    endpoint: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    HTTP_REQUESTS_TOTAL.labels(method, endpoint, str(status_code)).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(method, endpoint).observe(duration_seconds)


def record_llm_request(
    provider: str,
    model: str,
    status: str,
    duration_seconds: float,
    tokens_input: int = 0,
    tokens_output: int = 0,
    cost_usd: float = 0.0,
) -> None:
    """
    Record one model call.

    Token and cost counters only move for calls that reported usage, so
    failed and timed out calls count towards requests and latency only.
    """
    LLM_REQUESTS_TOTAL.labels(provider, model, status).inc()
    LLM_REQUEST_DURATION_SECONDS.labels(provider, model).observe(duration_seconds)

    for direction, tokens in (("input", tokens_input), ("output", tokens_output)):
        if tokens > 0:
            LLM_TOKENS_TOTAL.labels(provider, model, direction).inc(tokens)

    if cost_usd > 0:
        LLM_COST_USD_TOTAL.labels(provider, model).inc(cost_usd)


def record_extraction_outcome(outcome: str) -> None:
    """Count one model response by how its extraction ended."""
    EXTRACTION_OUTCOMES_TOTAL.labels(outcome=outcome).inc()


def record_finding_dropped(reason: str) -> None:
    FINDINGS_DROPPED_TOTAL.labels(reason=reason).inc()


def record_review_completed(
    repository: str,
    status: str,
    duration_seconds: float,
    hunks_analyzed: int,
    comments_generated: int,
) -> None:
    """
    Record a finished review run.

    Args:
        repository: Repository full name (owner/repo)
        status: Run status (completed, skipped, failed)
        duration_seconds: Total run duration
        hunks_analyzed: Number of hunks sent to the model
        comments_generated: Number of comments in the aggregate
    """
    REVIEWS_TOTAL.labels(repository, status).inc()
    REVIEW_DURATION_SECONDS.labels(repository).observe(duration_seconds)
    REVIEW_HUNKS_ANALYZED.observe(hunks_analyzed)
    REVIEW_COMMENTS_GENERATED.observe(comments_generated)


def record_notification(status: str) -> None:
    NOTIFICATIONS_TOTAL.labels(status=status).inc()


def record_github_api_call(
    endpoint: str,
    method: str,
    status_code: int,
    duration_seconds: float,
    rate_limit_remaining: int | None = None,
    rate_limit_reset: int | None = None,
) -> None:
    """
    Record one GitHub REST call.

    ``rate_limit_reset`` is the epoch timestamp from ``X-RateLimit-Reset``;
    the gauge holds the seconds left until then. A ``status_code`` of 0
    means the request never got a response.
    """
    GITHUB_API_REQUESTS_TOTAL.labels(endpoint, method, str(status_code)).inc()
    GITHUB_API_DURATION_SECONDS.labels(endpoint, method).observe(duration_seconds)

    if rate_limit_remaining is not None:
        GITHUB_RATE_LIMIT_REMAINING.set(rate_limit_remaining)
    if rate_limit_reset is not None:
        GITHUB_RATE_LIMIT_RESET_SECONDS.set(max(0, rate_limit_reset - int(time.time())))
