"""Logging setup using structlog.

JSON lines, one event per refresh step, each bound to a `component`
(engine, alerts, api, file_source, ...). The CLI `scan` command sends
them to stderr so its stdout stays a clean JSON document.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional, TextIO

import structlog


def configure_logging(log_level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str, **kwargs: Any) -> structlog.BoundLogger:
    return structlog.get_logger().bind(component=component, **kwargs)


def bind_cycle(**kwargs: Any) -> None:
    """Attach refresh-cycle context (timeframe, cycle number) to every event until cleared."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**kwargs)
