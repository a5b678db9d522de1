"""Logging setup: structlog for application events, stdlib routed through it."""

import logging
import sys

import structlog
from structlog.typing import Processor

from ordertrack.config import LogFormat, settings

# Third-party loggers and the most verbose level they may emit
_LIBRARY_LEVELS = {
    "asyncio": logging.INFO,
    "uvicorn.access": logging.INFO,
    # SQLAlchemy emits every statement at INFO
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
    "alembic": logging.INFO,
}


def _renderer(log_format: LogFormat) -> Processor:
    if log_format == LogFormat.JSON:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)


def configure_logging(log_format: LogFormat | None = None, level: str | None = None) -> None:
    """Configure structlog and the stdlib root logger.

    Records from uvicorn, SQLAlchemy and alembic go through the same
    ProcessorFormatter as structlog events, so the console shows one format.
    ``console`` renders colored key-value lines, ``json`` one object per line.
    """
    log_format = log_format or settings.log_format
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso" if log_format == LogFormat.JSON else "%Y-%m-%d %H:%M:%S"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format == LogFormat.JSON:
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, (level or settings.log_level).upper(), logging.INFO))

    for name, library_level in _LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(library_level)


_configured = False


def setup_logging() -> None:
    """Configure logging on first call only (main.py and the CLI both call it)."""
    global _configured
    if not _configured:
        configure_logging()
        _configured = True
