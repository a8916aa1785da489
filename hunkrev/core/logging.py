"""Structlog configuration with a stdlib bridge.

``configure_logging()`` is called once by each entry point (the CLI and the
API lifespan). Modules keep using ``structlog.get_logger()`` directly.
"""

import logging
import sys
from typing import Any

import structlog

from hunkrev.core.config import settings

_CONFIGURED = False


def configure_logging(force: bool = False) -> None:
    """Configure structlog and route stdlib logging through the same processors.

    Only the first call takes effect unless ``force`` is set.
    """
    global _CONFIGURED  # noqa: PLW0603
    if _CONFIGURED and not force:
        return
    _CONFIGURED = True

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer = _select_renderer()
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    root.addHandler(handler)
    root.setLevel(level)


def _select_renderer() -> Any:
    """JSON in deployed environments, console output everywhere else."""
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    if settings.log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=False)

    if settings.environment in ("staging", "production"):
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=False)
