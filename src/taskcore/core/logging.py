"""Logging configuration using structlog."""

import logging
import sys
from uuid import UUID

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

from src.taskcore.core.config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog over stdlib logging for the embedding process.

    ``settings.debug`` selects coloured console output, otherwise JSON lines.
    """
    debug = (settings or get_settings()).debug
    log_level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=log_level,
    )

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Set library log levels to reduce noise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.INFO)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Optional logger name.

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


def bind_caller_context(caller_id: UUID, email: str | None = None) -> None:
    """Bind the verified caller to all subsequent log calls.

    Args:
        caller_id: The verified identity-provider user id of the caller.
        email: Optional caller email. Only logged if settings.log_user_emails is True.
    """
    bind_contextvars(caller_id=str(caller_id))
    settings = get_settings()
    if email and settings.log_user_emails:
        bind_contextvars(caller_email=email)


def bind_operation_context(operation: str) -> None:
    """Bind the name of the core operation being executed."""
    bind_contextvars(operation=operation)


def clear_caller_context() -> None:
    """Clear all caller-scoped context."""
    clear_contextvars()
