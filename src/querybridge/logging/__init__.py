"""QueryBridge structured logging.

Structured loggers over structlog, performance timing, and the factory
that wires both into stdlib logging.

Example:
    >>> from querybridge.logging import get_logger, get_performance_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Connection opened", dialect="sqlite")
    >>>
    >>> perf_logger = get_performance_logger("engine.sqlite")
    >>> with perf_logger.measure("execute"):
    ...     pass
"""

from .factory import (
    LoggerConfig,
    LoggerFactory,
    configure_logging,
    get_factory,
    get_logger,
    get_performance_logger,
    shutdown_logging,
)
from .formatters import JSONFormatter, TextFormatter, get_formatter
from .handlers import ConsoleHandler, RotatingFileHandler
from .performance import OperationStats, PerformanceLogger, Timing
from .structured import StructuredLogger

__all__ = [
    # Factory and configuration
    "LoggerConfig",
    "LoggerFactory",
    "configure_logging",
    "get_factory",
    "get_logger",
    "get_performance_logger",
    "shutdown_logging",

    # Formatters
    "JSONFormatter",
    "TextFormatter",
    "get_formatter",

    # Handlers
    "ConsoleHandler",
    "RotatingFileHandler",

    # Performance logging
    "PerformanceLogger",
    "OperationStats",
    "Timing",

    # Structured logging
    "StructuredLogger",
]
