"""QueryBridge core infrastructure.

Exception hierarchy, component lifecycle base classes and the
reader/writer lock guarding shared state.
"""

from .base import AsyncComponent, BaseComponent
from .exceptions import (
    AcquireTimeoutError,
    ConfigurationError,
    ConnectionError,
    ConnectionNotFoundError,
    DatabaseConnectionError,
    ErrorCodes,
    ExecutionError,
    QueryBridgeError,
    QueryBuildError,
    QueryError,
    SchemaIntrospectionError,
    ValidationError,
)
from .locks import AsyncRWLock

__all__ = [
    # Base classes
    "AsyncComponent",
    "BaseComponent",

    # Exceptions
    "AcquireTimeoutError",
    "ConfigurationError",
    "ConnectionError",
    "ConnectionNotFoundError",
    "DatabaseConnectionError",
    "ErrorCodes",
    "ExecutionError",
    "QueryBridgeError",
    "QueryBuildError",
    "QueryError",
    "SchemaIntrospectionError",
    "ValidationError",

    # Concurrency
    "AsyncRWLock",
]
