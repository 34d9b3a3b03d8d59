"""Structured logging for livecache.

Every component logs through a structlog logger bound with ``component=``
(``sync.subscription``, ``source.replay``, ``api.app``, ``cli`` ...). Events
use snake_case names such as ``subscription_started``,
``late_delivery_dropped`` or ``subscription_failed`` with key/value context.
Output is one JSON object per line on stderr, so stdout stays free for the
``livecache replay`` result stream.
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr at *level*."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Get a logger bound with a livecache component name."""
    return structlog.get_logger(component=component)  # type: ignore[return-value]
