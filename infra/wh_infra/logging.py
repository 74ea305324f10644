"""Structured logging with structlog.

Pulumi shows whatever the program prints during `pulumi up`, so in
development the provisioning steps are rendered as colorized console lines
and in production (CI) as JSON.
"""

from __future__ import annotations

import logging
import sys
from functools import lru_cache
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


@lru_cache(maxsize=1)
def _configure_logging(*, is_production: bool, is_silent: bool, level: str) -> None:
    """Configure structlog for the Pulumi program.

    Args:
        is_production: Use JSON output for production, colorized for dev.
        is_silent: Suppress all logging output.
        level: Minimum level name when not silent.
    """
    min_level = logging.CRITICAL if is_silent else _LEVELS.get(level, logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if is_production:
        structlog.configure(
            processors=[
                *shared_processors,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(min_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
            cache_logger_on_first_use=True,
        )
    else:
        structlog.configure(
            processors=[
                *shared_processors,
                structlog.dev.ConsoleRenderer(colors=True),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(min_level),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(),
            cache_logger_on_first_use=True,
        )


def get_logger(name: str) -> FilteringBoundLogger:
    """Get a logger for a specific module/stack.

    Args:
        name: Logger name (typically module name like "wh_infra.stacks.worker").

    Returns:
        Configured structlog logger with service context.

    Example:
        >>> log = get_logger("wh_infra.stacks.worker")
        >>> log.info("provisioning_stack", variant="worker")
    """
    from wh_infra.settings import get_settings

    settings = get_settings()
    _configure_logging(
        is_production=settings.is_production,
        is_silent=settings.is_silent,
        level=settings.log_level,
    )

    return structlog.get_logger(service=name)
