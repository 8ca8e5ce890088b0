"""Structured logging for Phaseboard.

structlog renders every event (JSON for log shippers, console for humans);
stdlib logging only supplies the handler, stdout or a size-rotated file.
Two kinds of context ride along on each event:

- the request correlation id, set by the web middleware;
- the board context (project and acting user), bound for the lifetime of a
  board request.

Example:
    >>> setup_logging(LoggingConfig(level="INFO", format="console"))
    >>> bind_board_context(project_id="5f0c...", user_id="a71e...")
    >>> get_logger(__name__).info("phase_created", position=2)
"""

from __future__ import annotations

import contextvars
import logging
import logging.handlers
import sys
from typing import Any

import structlog

from phaseboard.config import LoggingConfig

BOARD_CONTEXT_KEYS = ("project_id", "user_id")

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor: attach the current correlation id, if any.

    Args:
        logger: Wrapped logger (unused; part of the processor signature)
        method_name: Name of the log method called (unused)
        event_dict: Event being built for rendering

    Returns:
        The same event dict, with ``correlation_id`` set when the current
        context has one
    """
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["correlation_id"] = correlation_id
    return event_dict


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation id for the current request context.

    Args:
        correlation_id: Id to tag subsequent events with, or None to stop
            tagging them
    """
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    """Correlation id of the current context.

    Returns:
        The id set by ``set_correlation_id``, or None outside a request
    """
    return _correlation_id.get()


def bind_board_context(project_id: str, user_id: str | None = None) -> None:
    """Tag every following event in this context with the board it concerns.

    The values are bound through structlog's contextvars, so they apply to
    the current task and any tasks it starts, not to other requests.

    Args:
        project_id: Project whose board is being served
        user_id: Acting user, or None when the request is anonymous
    """
    structlog.contextvars.bind_contextvars(project_id=project_id, user_id=user_id)


def clear_board_context() -> None:
    """Drop the project and user bound by ``bind_board_context``."""
    structlog.contextvars.unbind_contextvars(*BOARD_CONTEXT_KEYS)


def _handler(config: LoggingConfig) -> logging.Handler:
    if config.file is None:
        return logging.StreamHandler(sys.stdout)

    config.file.parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        filename=config.file,
        maxBytes=config.rotation_size_mb * 1024 * 1024,
        backupCount=config.retention_count,
        encoding="utf-8",
    )


def _renderer(config: LoggingConfig) -> Any:
    if config.format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(config: LoggingConfig) -> None:
    """Install the root handler and the structlog processor chain.

    Replaces any handlers already on the root logger, so calling it again
    (the CLI's ``--verbose`` flag does) reconfigures cleanly.

    Args:
        config: Logging section of PhaseboardConfig; selects level, renderer
            and whether events go to stdout or a rotating file

    Example:
        >>> setup_logging(LoggingConfig(level="DEBUG", format="console"))
    """
    level = getattr(logging, config.level)

    handler = _handler(config)
    handler.setLevel(level)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.contextvars.merge_contextvars,
            add_correlation_id,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(config),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structured logger for a module.

    Args:
        name: Logger name, normally the caller's ``__name__``

    Returns:
        A structlog BoundLogger using the processor chain installed by
        ``setup_logging``
    """
    return structlog.get_logger(name)
