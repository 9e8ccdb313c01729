"""
Structured logging for swap runs.

The engine modules log through ``logging.getLogger(__name__)``; the
reporter logs key/value events through structlog. Both end up on one
stdout handler. Values bound with ``structlog.contextvars`` (the batch
runner binds ``swap`` and ``wallet``) are merged into every line.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import settings


LOG_FORMATS = ("auto", "json", "console")


def _use_console(level: int, log_format: str) -> bool:
    if log_format == "auto":
        return level == logging.DEBUG
    return log_format == "console"


def setup_logging(log_level: Optional[str] = None, log_format: Optional[str] = None) -> None:
    """Configure structlog and the root logger.

    Args:
        log_level: Override log level (default: settings.log_level)
        log_format: "json", "console" or "auto" (console at DEBUG, JSON otherwise);
            default: settings.log_format
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    log_format = (log_format or settings.log_format).lower()
    if log_format not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}, got {log_format!r}")
    console = _use_console(level, log_format)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if console:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Event-loop debug chatter
    logging.getLogger("asyncio").setLevel(logging.WARNING)
