"""QueryBridge exception hierarchy.

Every error raised by the database layer derives from ``QueryBridgeError``
and carries a machine-readable code, a context dictionary and, when the
error wraps a driver exception, the original cause.

Classes:
    QueryBridgeError: Base exception for all QueryBridge operations
    ConfigurationError: Configuration related errors
    ValidationError: Invalid input (bad specs, bad URLs, bad drivers)
    ConnectionError: Connection establishment and lookup errors
    QueryError: Statement execution and catalog errors

Example:
    >>> try:
    ...     await registry.open(Driver.POSTGRES, url)
    ... except DatabaseConnectionError as e:
    ...     logger.error("Connection failed", error_code=e.code, context=e.context)
"""

from typing import Any, Dict, Optional


class QueryBridgeError(Exception):
    """Base exception for all QueryBridge operations.

    Attributes:
        message: Human-readable error description, unmodified
        code: Unique error code for categorization
        context: Additional context information about the error
        cause: Original exception that caused this error (if any)

    Example:
        >>> raise QueryBridgeError(
        ...     "Operation failed",
        ...     code="OPERATION_FAILED",
        ...     context={"connection_id": "18c2f-4411-1"}
        ... )
    """

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        """Initialize QueryBridge exception.

        Args:
            message: Human-readable error description
            code: Unique error code for categorization (defaults to class name)
            context: Additional context information
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message: str = message
        self.code: str = code or self.__class__.__name__
        self.context: Dict[str, Any] = context or {}
        self.cause: Optional[BaseException] = cause

    def __str__(self) -> str:
        """Return formatted error message with code."""
        return f"{self.code}: {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation of the exception."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code!r}, "
            f"context={self.context!r}, "
            f"cause={self.cause!r})"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
        }


class ConfigurationError(QueryBridgeError):
    """Configuration related errors.

    Raised when configuration is invalid, missing, or cannot be loaded.
    """
    pass


class ValidationError(ConfigurationError):
    """Data validation errors.

    Raised when caller input fails validation: unknown drivers,
    malformed connection URLs, malformed query specs.
    """
    pass


class QueryBuildError(ValidationError):
    """A query spec cannot be turned into SQL.

    Raised for specs that are structurally valid JSON but describe no
    statement, such as an INSERT without columns.
    """
    pass


class ConnectionError(QueryBridgeError):
    """Connection related errors.

    Base class for failures to open, reach or look up a database connection.
    """
    pass


class DatabaseConnectionError(ConnectionError):
    """The engine rejected the URL or the first handshake failed."""
    pass


class AcquireTimeoutError(ConnectionError):
    """No pooled connection became available within the acquire timeout.

    The pool is exhausted; the caller may retry later.
    """
    pass


class ConnectionNotFoundError(ConnectionError):
    """The connection id is not registered.

    Always recoverable: the caller should open a new connection.
    """
    pass


class QueryError(QueryBridgeError):
    """Statement execution related errors."""
    pass


class ExecutionError(QueryError):
    """The engine refused or failed a statement.

    ``message`` holds the engine's own text, unmodified.
    """
    pass


class SchemaIntrospectionError(QueryError):
    """A catalog query failed; no partial schema is returned."""
    pass


class ErrorCodes:
    """Common error codes for QueryBridge exceptions."""

    # Configuration errors
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"
    CONFIG_INVALID = "CONFIG_INVALID"

    # Input errors
    INVALID_SPEC = "INVALID_SPEC"
    INVALID_URL = "INVALID_URL"
    UNSUPPORTED_DRIVER = "UNSUPPORTED_DRIVER"

    # Connection errors
    CONNECTION_NOT_FOUND = "CONNECTION_NOT_FOUND"
    CONNECTION_TIMEOUT = "CONNECTION_TIMEOUT"
    CONNECTION_REFUSED = "CONNECTION_REFUSED"
    AUTH_FAILED = "AUTH_FAILED"
    NETWORK_UNREACHABLE = "NETWORK_UNREACHABLE"
    POOL_EXHAUSTED = "POOL_EXHAUSTED"
    POOL_CLOSED = "POOL_CLOSED"
    REGISTRY_CLOSED = "REGISTRY_CLOSED"

    # Query errors
    QUERY_EXECUTION_FAILED = "QUERY_EXECUTION_FAILED"
    SCHEMA_INTROSPECTION_FAILED = "SCHEMA_INTROSPECTION_FAILED"

    # Lifecycle errors
    INIT_FAILED = "INIT_FAILED"
