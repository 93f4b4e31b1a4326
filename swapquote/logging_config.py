"""
Structured logging configuration using structlog.

JSON lines by default, coloured console output when running at DEBUG or
when ``LOG_FORMAT=console``. Quote-phase events go to the ``quote``
logger, which can run at its own level.
"""

import logging
import sys
from typing import Optional

import structlog

from .config import settings

LOG_FORMATS = ("auto", "json", "console")


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def _renderer(log_format: str, level: int) -> structlog.types.Processor:
    if log_format not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}, got {log_format!r}")
    if log_format == "console" or (log_format == "auto" and level == logging.DEBUG):
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    quote_log_level: Optional[str] = None,
) -> None:
    """Configure structlog and route stdlib loggers through it.

    Args:
        log_level: Override log level (default: from settings.log_level)
        log_format: "json", "console" or "auto" (default: settings.log_format)
        quote_log_level: Level of the ``quote`` logger (default: the root level)
    """
    level = _level(log_level or settings.log_level)
    renderer = _renderer((log_format or settings.log_format).lower(), level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if isinstance(renderer, structlog.processors.JSONRenderer):
        shared_processors.append(structlog.processors.format_exc_info)

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

    phase_level = quote_log_level or settings.quote_log_level
    logging.getLogger("quote").setLevel(_level(phase_level) if phase_level else logging.NOTSET)

    # Aggregator clients are chatty at INFO
    for name in ("uvicorn.access", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(logging.WARNING)
