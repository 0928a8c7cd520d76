"""Log formatters for QueryBridge.

Classes:
    JSONFormatter: One JSON object per record, for log aggregation
    TextFormatter: Human-readable single-line format

Example:
    >>> handler.setFormatter(get_formatter("json"))
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

# Attributes every LogRecord carries; anything else arrived through ``extra``.
_STANDARD_FIELDS = frozenset({
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName",
    "processName", "process", "message", "exc_info", "exc_text",
    "stack_info", "taskName",
})


def _extra_fields(record: logging.LogRecord, exclude: Iterable[str] = ()) -> Dict[str, Any]:
    excluded = set(exclude)
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_FIELDS and key not in excluded
    }


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured log output.

    Example:
        {"message":"Connection opened","timestamp":"2024-05-02T10:30:45.123456",
         "level":"INFO","logger":"querybridge.registry"}
    """

    def __init__(
        self,
        *,
        timestamp_format: str = "iso",
        include_module: bool = False,
        exclude_fields: Optional[list] = None,
    ) -> None:
        """Initialize JSON formatter.

        Args:
            timestamp_format: "iso" or "unix"
            include_module: Include module and line number
            exclude_fields: Fields to drop from output
        """
        super().__init__()
        self.timestamp_format = timestamp_format
        self.include_module = include_module
        self.exclude_fields = set(exclude_fields or [])

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {"message": record.getMessage()}

        if "timestamp" not in self.exclude_fields:
            if self.timestamp_format == "unix":
                log_data["timestamp"] = record.created
            else:
                log_data["timestamp"] = datetime.fromtimestamp(record.created).isoformat()

        if "level" not in self.exclude_fields:
            log_data["level"] = record.levelname
        if "logger" not in self.exclude_fields:
            log_data["logger"] = record.name

        if self.include_module:
            log_data["module"] = record.module
            log_data["line"] = record.lineno

        if record.exc_info and "exception" not in self.exclude_fields:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        log_data.update(_extra_fields(record, self.exclude_fields))

        return json.dumps(log_data, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """Human-readable text formatter.

    Example:
        2024-05-02 10:30:45.123 [INFO] querybridge.registry: Connection opened (dialect=sqlite)
    """

    def __init__(self, *, include_extras: bool = True, max_line_length: Optional[int] = None) -> None:
        super().__init__()
        self.include_extras = include_extras
        self.max_line_length = max_line_length

    def format(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        timestamp = dt.strftime("%Y-%m-%d %H:%M:%S.") + f"{dt.microsecond:06d}"[:3]
        parts = [timestamp, f"[{record.levelname}]", f"{record.name}:", record.getMessage()]

        if self.include_extras:
            extras = [
                f"{key}={value}" if isinstance(value, str) else f"{key}={value!r}"
                for key, value in _extra_fields(record).items()
            ]
            if extras:
                parts.append("(" + ", ".join(extras) + ")")

        formatted = " ".join(parts)

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        if self.max_line_length and len(formatted) > self.max_line_length:
            formatted = formatted[:self.max_line_length - 3] + "..."

        return formatted


def get_formatter(format_type: str, **kwargs: Any) -> logging.Formatter:
    """Get formatter instance by type.

    Raises:
        ValueError: If format_type is not supported
    """
    format_type = format_type.lower()

    if format_type == "json":
        return JSONFormatter(**kwargs)
    if format_type == "text":
        return TextFormatter(**kwargs)
    raise ValueError(f"Unsupported formatter type: {format_type}")
