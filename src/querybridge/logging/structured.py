"""Structured logging for QueryBridge.

Thin wrapper over a structlog logger that carries bound context
(connection id, dialect) and an optional correlation id through every
event it emits.

Example:
    >>> logger = StructuredLogger("querybridge.registry")
    >>> conn_logger = logger.bind(connection_id="18c2f-4411-1", dialect="sqlite")
    >>> with conn_logger.context(operation="get_schema"):
    ...     conn_logger.info("Schema inspected", tables=12)
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import structlog

from ..core.exceptions import ValidationError


class StructuredLogger:
    """Structured logger with bound context and correlation ids.

    Attributes:
        name: Logger name
    """

    def __init__(
        self,
        name: str,
        *,
        level: Optional[str] = None,
        enable_correlation: bool = True,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize structured logger.

        Args:
            name: Logger name (typically module name)
            level: Level for the backing stdlib logger; inherited when None
            enable_correlation: Attach a correlation id to every event
            context: Initial bound context
        """
        self.name = name
        self._enable_correlation = enable_correlation
        self._context: Dict[str, Any] = dict(context or {})
        self._logger = structlog.get_logger(name)
        self._stdlib_logger = logging.getLogger(name)

        if level is not None:
            self.set_level(level)

        if self._enable_correlation and "correlation_id" not in self._context:
            self._context["correlation_id"] = str(uuid.uuid4())

    def _event(self, **kwargs: Any) -> Dict[str, Any]:
        event_dict = dict(self._context)
        event_dict.update(kwargs)
        return event_dict

    @contextmanager
    def context(self, **context_data: Any) -> Generator[None, None, None]:
        """Temporarily add context to every event in the block.

        The context lives in structlog's context variables, so it follows
        the current asyncio task rather than the thread.
        """
        with structlog.contextvars.bound_contextvars(**context_data):
            yield

    def bind(self, **context_data: Any) -> "StructuredLogger":
        """Return a new logger with additional bound context."""
        merged = dict(self._context)
        merged.update(context_data)
        return StructuredLogger(
            self.name,
            enable_correlation=self._enable_correlation,
            context=merged,
        )

    def set_level(self, level: str) -> None:
        """Set the level of the backing stdlib logger.

        Raises:
            ValidationError: If the level name is unknown
        """
        log_level = logging.getLevelName(level.upper())
        if not isinstance(log_level, int):
            raise ValidationError(
                f"Unknown log level: {level}",
                code="UNKNOWN_LOG_LEVEL",
            )
        self._stdlib_logger.setLevel(log_level)

    def get_level(self) -> str:
        return logging.getLevelName(self._stdlib_logger.getEffectiveLevel())

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(message, **self._event(**kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(message, **self._event(**kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(message, **self._event(**kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(message, **self._event(**kwargs))

    def critical(self, message: str, **kwargs: Any) -> None:
        self._logger.critical(message, **self._event(**kwargs))

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an error event with the active exception's traceback."""
        self._logger.error(message, exc_info=True, **self._event(**kwargs))

    @property
    def correlation_id(self) -> Optional[str]:
        return self._context.get("correlation_id")

    def get_context(self) -> Dict[str, Any]:
        return dict(self._context)

    def __repr__(self) -> str:
        return (
            f"StructuredLogger("
            f"name={self.name!r}, "
            f"level={self.get_level()!r}, "
            f"correlation={self._enable_correlation})"
        )
