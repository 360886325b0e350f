"""Structured logging configuration for the computation dependency updater.

structlog with context variables (the daemon binds ``app``, ``app_id`` and
``office``), ISO timestamps, and either console or JSON-lines rendering.
configure_logging() runs once per process; get_logger() returns named
loggers.
"""

import logging

import structlog

_configured = False


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """Configure structlog processors once.

    Safe to call multiple times -- only the first invocation takes effect.

    Args:
        level: Minimum level name (``"DEBUG"``, ``"INFO"``, ...).
        json_output: Render one JSON object per line instead of the
            human-readable console format.
    """
    global _configured
    if _configured:
        return

    min_level = logging.getLevelName(level.upper())
    if not isinstance(min_level, int):
        min_level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound with ``logger_name=name``."""
    return structlog.get_logger(logger_name=name)
