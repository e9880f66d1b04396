"""structlog configuration for command line use."""

import logging
import os
import sys
from typing import Optional

import structlog


def setup_logging(level: Optional[str] = None, format_type: str = "console") -> None:
    """
    Configure structlog to write to stderr.

    Args:
        level: Log level name, default ETS_LOG_LEVEL or WARNING
        format_type: "json" for machine-readable output, "console" otherwise
    """
    level_name = (level or os.environ.get("ETS_LOG_LEVEL") or "WARNING").upper()
    log_level = getattr(logging, level_name, None)
    if not isinstance(log_level, int):
        log_level = logging.WARNING

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if format_type == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        context_class=dict,
        cache_logger_on_first_use=False,
    )
