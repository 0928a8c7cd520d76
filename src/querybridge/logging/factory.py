"""Logger factory and configuration for QueryBridge.

One ``LoggerFactory`` owns the root-logger handlers it installs, the
structlog processor chain, and the cached structured and performance
loggers handed to engines, pools and the registry.

Loggers can be obtained before logging is configured; structlog resolves
its configuration lazily, so they pick it up once ``configure_logging``
(or ``configure_from_config``) runs.

Example:
    >>> from querybridge.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", format="json", slow_query_ms=250)
    >>> logger = get_logger("querybridge.service")
    >>> logger.info("Service started", connections=0)
"""

import logging
from dataclasses import dataclass, fields
from typing import Any, Dict, List, Optional

import structlog

from .formatters import get_formatter
from .handlers import ConsoleHandler, RotatingFileHandler
from .performance import PerformanceLogger
from .structured import StructuredLogger
from ..config.models import LoggingConfig
from ..core.exceptions import ErrorCodes, ValidationError

_SHARED_PROCESSORS: List[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.filter_by_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


@dataclass
class LoggerConfig:
    """Settings applied by a LoggerFactory.

    Attributes:
        level: Log level name
        format: ``json`` or ``text``
        console_output: Install the console handler
        file_path: Log file path; no file handler when None
        max_file_size: Bytes before the log file rotates
        backup_count: Rotated files to keep
        correlation_ids: Attach a correlation id to each structured logger
        slow_query_ms: Threshold above which timed operations log a warning
    """
    level: str = "INFO"
    format: str = "json"
    console_output: bool = True
    file_path: Optional[str] = None
    max_file_size: int = 10485760  # 10MB
    backup_count: int = 5
    correlation_ids: bool = True
    slow_query_ms: Optional[float] = None


class LoggerFactory:
    """Configures logging and creates QueryBridge loggers.

    Example:
        >>> factory = LoggerFactory()
        >>> factory.configure_from_config(system_config.logging)
        >>> logger = factory.get_logger("database.registry")
    """

    def __init__(self, config: Optional[LoggerConfig] = None) -> None:
        self.config = config or LoggerConfig()
        self.initialized = False
        self._loggers: Dict[str, StructuredLogger] = {}
        self._performance_loggers: Dict[str, PerformanceLogger] = {}
        self._handlers: List[logging.Handler] = []

    def configure_from_config(self, logging_config: LoggingConfig) -> None:
        """Apply a validated LoggingConfig (the ``logging`` section of SystemConfig)."""
        file_path = logging_config.file_path
        self.config = LoggerConfig(
            level=logging_config.level,
            format=logging_config.format,
            console_output=logging_config.console_output,
            file_path=str(file_path) if file_path else None,
            max_file_size=logging_config.max_file_size,
            backup_count=logging_config.backup_count,
            correlation_ids=self.config.correlation_ids,
            slow_query_ms=logging_config.slow_query_ms,
        )
        self._apply()

    def configure_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """Override individual settings; unknown keys are ignored."""
        known = {f.name for f in fields(LoggerConfig)}
        for key, value in config_dict.items():
            if key in known:
                setattr(self.config, key, value)
        self._apply()

    def _apply(self) -> None:
        level = self._numeric_level()
        self._install_handlers(level)
        self._configure_structlog()
        for perf_logger in self._performance_loggers.values():
            perf_logger.slow_threshold_ms = self.config.slow_query_ms
        self.initialized = True

    def _numeric_level(self) -> int:
        level = logging.getLevelName(str(self.config.level).upper())
        if not isinstance(level, int):
            raise ValidationError(
                f"Invalid log level: {self.config.level}",
                code=ErrorCodes.CONFIG_INVALID,
                context={"level": self.config.level},
            )
        return level

    def _build_handlers(self) -> List[logging.Handler]:
        handlers: List[logging.Handler] = []
        if self.config.console_output:
            handlers.append(ConsoleHandler())
        if self.config.file_path:
            handlers.append(RotatingFileHandler(
                self.config.file_path,
                maxBytes=self.config.max_file_size,
                backupCount=self.config.backup_count,
            ))
        return handlers

    def _install_handlers(self, level: int) -> None:
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        self._remove_handlers()

        formatter = get_formatter(self.config.format)
        for handler in self._build_handlers():
            handler.setLevel(level)
            handler.setFormatter(formatter)
            root_logger.addHandler(handler)
            self._handlers.append(handler)

    def _remove_handlers(self) -> None:
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()

    def _configure_structlog(self) -> None:
        if self.config.format.lower() == "json":
            renderer: Any = structlog.processors.JSONRenderer()
        else:
            renderer = structlog.dev.ConsoleRenderer(colors=False)

        structlog.configure(
            processors=[*_SHARED_PROCESSORS, renderer],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

    def get_logger(self, name: str) -> StructuredLogger:
        """Cached structured logger for ``name``."""
        logger = self._loggers.get(name)
        if logger is None:
            logger = StructuredLogger(name, enable_correlation=self.config.correlation_ids)
            self._loggers[name] = logger
        return logger

    def get_performance_logger(self, name: str, *, auto_log: bool = True) -> PerformanceLogger:
        """Cached performance logger for ``name``, honouring ``slow_query_ms``."""
        perf_logger = self._performance_loggers.get(name)
        if perf_logger is None:
            perf_logger = PerformanceLogger(
                name,
                auto_log=auto_log,
                slow_threshold_ms=self.config.slow_query_ms,
                logger=StructuredLogger(f"perf.{name}", enable_correlation=False),
            )
            self._performance_loggers[name] = perf_logger
        return perf_logger

    def set_level(self, level: str) -> None:
        self.config.level = level
        numeric = self._numeric_level()
        logging.getLogger().setLevel(numeric)
        for handler in self._handlers:
            handler.setLevel(numeric)

    def shutdown(self) -> None:
        """Remove installed handlers and forget cached loggers."""
        self._remove_handlers()
        self._loggers.clear()
        self._performance_loggers.clear()
        self.initialized = False

    def __repr__(self) -> str:
        return (
            f"LoggerFactory("
            f"level={self.config.level!r}, "
            f"format={self.config.format!r}, "
            f"initialized={self.initialized})"
        )


_global_factory = LoggerFactory()


def configure_logging(
    *,
    level: str = "INFO",
    format: str = "json",
    console_output: bool = True,
    file_path: Optional[str] = None,
    **kwargs: Any
) -> None:
    """Configure QueryBridge logging globally.

    Example:
        >>> configure_logging(level="DEBUG", format="text")
    """
    _global_factory.configure_from_dict({
        "level": level,
        "format": format,
        "console_output": console_output,
        "file_path": file_path,
        **kwargs
    })


def get_logger(name: str) -> StructuredLogger:
    return _global_factory.get_logger(name)


def get_performance_logger(name: str) -> PerformanceLogger:
    """Performance logger from the global factory.

    Example:
        >>> perf_logger = get_performance_logger("engine.postgres")
        >>> with perf_logger.measure("execute"):
        ...     await engine.execute("SELECT 1")
    """
    return _global_factory.get_performance_logger(name)


def get_factory() -> LoggerFactory:
    return _global_factory


def shutdown_logging() -> None:
    _global_factory.shutdown()
