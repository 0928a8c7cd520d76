"""Unit tests for the QueryBridge exception hierarchy.

This module tests the exception classes to ensure errors carry their
codes, context and causes, and that callers can catch them by kind.
"""

import pytest

from querybridge.core.exceptions import (
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


class TestQueryBridgeError:
    """Test base QueryBridge exception class."""

    def test_basic_exception_creation(self):
        """Test basic exception creation with message only."""
        exc = QueryBridgeError("Test error message")

        assert str(exc) == "QueryBridgeError: Test error message"
        assert exc.message == "Test error message"
        assert exc.code == "QueryBridgeError"
        assert exc.context == {}
        assert exc.cause is None

    def test_exception_with_custom_code(self):
        """Test exception creation with custom error code."""
        exc = QueryBridgeError("Test error", code=ErrorCodes.INVALID_SPEC)

        assert exc.code == "INVALID_SPEC"
        assert str(exc) == "INVALID_SPEC: Test error"

    def test_exception_with_context(self):
        """Test exception creation with context information."""
        context = {"connection_id": "18c2f-4411-1", "operation": "get_schema"}
        exc = QueryBridgeError("Test error", context=context)

        assert exc.context == context

    def test_exception_with_cause(self):
        """Test exception keeps the wrapped driver error."""
        original_error = ValueError("near \"SELEC\": syntax error")
        exc = ExecutionError(str(original_error), cause=original_error)

        assert exc.cause is original_error
        assert exc.message == 'near "SELEC": syntax error'

    def test_exception_to_dict(self):
        """Test exception serialization to dictionary."""
        cause = RuntimeError("socket closed")
        exc = DatabaseConnectionError(
            "connection refused",
            code=ErrorCodes.CONNECTION_REFUSED,
            context={"url": "postgres://app:***@db/app"},
            cause=cause,
        )

        assert exc.to_dict() == {
            "error_type": "DatabaseConnectionError",
            "message": "connection refused",
            "code": "CONNECTION_REFUSED",
            "context": {"url": "postgres://app:***@db/app"},
            "cause": "socket closed",
        }

    def test_exception_repr(self):
        """Test exception detailed representation."""
        exc = QueryBridgeError("Test error", code="TEST", context={"a": 1})

        repr_str = repr(exc)

        assert "QueryBridgeError" in repr_str
        assert "message='Test error'" in repr_str
        assert "code='TEST'" in repr_str
        assert "context={'a': 1}" in repr_str


class TestExceptionHierarchy:
    """Test that each error kind is catchable through its base class."""

    def test_validation_errors_are_configuration_errors(self):
        """Test input validation errors inheritance chain."""
        exc = QueryBuildError("INSERT requires at least one column")

        assert isinstance(exc, ValidationError)
        assert isinstance(exc, ConfigurationError)
        assert isinstance(exc, QueryBridgeError)

    @pytest.mark.parametrize("exception_class", [
        DatabaseConnectionError,
        AcquireTimeoutError,
        ConnectionNotFoundError,
    ])
    def test_connection_error_kinds(self, exception_class):
        """Test connection-level errors share one base."""
        exc = exception_class("failed")

        assert isinstance(exc, ConnectionError)
        assert not isinstance(exc, QueryError)

    @pytest.mark.parametrize("exception_class", [ExecutionError, SchemaIntrospectionError])
    def test_query_error_kinds(self, exception_class):
        """Test statement-level errors share one base."""
        exc = exception_class("failed")

        assert isinstance(exc, QueryError)
        assert not isinstance(exc, ConnectionError)

    def test_connection_error_shadows_builtin(self):
        """Test the library ConnectionError is distinct from the builtin."""
        import builtins

        assert ConnectionError is not builtins.ConnectionError
        assert not issubclass(ConnectionError, builtins.ConnectionError)

    def test_catching_by_kind(self):
        """Test a caller can tell a missing id from an engine failure."""
        with pytest.raises(ConnectionError) as exc_info:
            raise ConnectionNotFoundError(
                "Connection not found: x",
                code=ErrorCodes.CONNECTION_NOT_FOUND,
            )

        assert exc_info.value.code == "CONNECTION_NOT_FOUND"


class TestErrorCodes:
    """Test error code constants."""

    def test_error_codes_exist(self):
        """Test that the codes raised by the database layer exist."""
        assert ErrorCodes.INVALID_SPEC == "INVALID_SPEC"
        assert ErrorCodes.INVALID_URL == "INVALID_URL"
        assert ErrorCodes.UNSUPPORTED_DRIVER == "UNSUPPORTED_DRIVER"
        assert ErrorCodes.CONNECTION_NOT_FOUND == "CONNECTION_NOT_FOUND"
        assert ErrorCodes.POOL_EXHAUSTED == "POOL_EXHAUSTED"
        assert ErrorCodes.QUERY_EXECUTION_FAILED == "QUERY_EXECUTION_FAILED"
        assert ErrorCodes.SCHEMA_INTROSPECTION_FAILED == "SCHEMA_INTROSPECTION_FAILED"

    def test_error_codes_are_uppercase_strings(self):
        """Test that all error codes are uppercase strings equal to their names."""
        for attr_name in dir(ErrorCodes):
            if attr_name.startswith("_"):
                continue
            value = getattr(ErrorCodes, attr_name)
            assert isinstance(value, str)
            assert value == attr_name
            assert value.isupper()


@pytest.mark.parametrize("exception_class,expected_code", [
    (QueryBridgeError, "QueryBridgeError"),
    (ValidationError, "ValidationError"),
    (ConnectionNotFoundError, "ConnectionNotFoundError"),
    (ExecutionError, "ExecutionError"),
])
def test_exception_default_codes(exception_class, expected_code):
    """Test that exceptions default their code to the class name."""
    exc = exception_class("Test message")
    assert exc.code == expected_code
