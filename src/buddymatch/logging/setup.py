"""structlog wiring for the matching engine and its HTTP service."""

from __future__ import annotations

import logging

import structlog

from buddymatch.config import get_settings


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()


def configure_logging(level: str | None = None, *, service: str | None = None) -> None:
    """Route structlog events through stdlib logging.

    ``level`` overrides ``LOG_LEVEL``. When ``service`` is given it is bound
    into the context so every event of the process carries it.
    """

    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            _renderer(settings.log_format),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s")
    # basicConfig is a no-op once handlers exist, the level is applied regardless.
    logging.getLogger().setLevel(numeric_level)

    if service is not None:
        structlog.contextvars.bind_contextvars(service=service)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


__all__ = ["configure_logging", "get_logger"]
