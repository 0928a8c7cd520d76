"""Tests for structured logging module."""

import logging

import pytest
import structlog
from structlog.testing import capture_logs

from querybridge.core.exceptions import ValidationError
from querybridge.logging.structured import StructuredLogger


class TestStructuredLogger:
    """Test cases for StructuredLogger class."""

    def test_logger_initialization(self):
        """Test logger initializes with a correlation id."""
        logger = StructuredLogger("querybridge.test")

        assert logger.name == "querybridge.test"
        assert logger.correlation_id is not None
        assert logger.get_context() == {"correlation_id": logger.correlation_id}

    def test_logger_without_correlation(self):
        """Test correlation ids can be disabled."""
        logger = StructuredLogger("querybridge.test", enable_correlation=False)

        assert logger.correlation_id is None
        assert logger.get_context() == {}

    def test_initial_context_keeps_given_correlation_id(self):
        """Test an explicit correlation id is not replaced."""
        logger = StructuredLogger("querybridge.test", context={"correlation_id": "abc"})

        assert logger.correlation_id == "abc"

    def test_events_carry_bound_context(self):
        """Test every event includes the logger's context."""
        with capture_logs() as captured:
            logger = StructuredLogger("querybridge.test", enable_correlation=False)
            conn_logger = logger.bind(connection_id="18c2f-1-1", dialect="sqlite")
            conn_logger.info("Connection opened", pool_size=5)

        assert captured == [{
            "event": "Connection opened",
            "log_level": "info",
            "connection_id": "18c2f-1-1",
            "dialect": "sqlite",
            "pool_size": 5,
        }]

    def test_bind_returns_new_logger(self):
        """Test bind leaves the original logger untouched."""
        logger = StructuredLogger("querybridge.test")
        bound = logger.bind(connection_id="x")

        assert bound is not logger
        assert "connection_id" not in logger.get_context()
        assert bound.correlation_id == logger.correlation_id

    @pytest.mark.parametrize("method,level", [
        ("debug", "debug"),
        ("info", "info"),
        ("warning", "warning"),
        ("error", "error"),
        ("critical", "critical"),
    ])
    def test_log_levels(self, method, level):
        """Test each level method emits at its level."""
        with capture_logs() as captured:
            logger = StructuredLogger("querybridge.test", enable_correlation=False)
            getattr(logger, method)("message")

        assert captured[0]["log_level"] == level

    def test_exception_includes_exc_info(self):
        """Test exception() logs at error level with exc_info."""
        with capture_logs() as captured:
            logger = StructuredLogger("querybridge.test", enable_correlation=False)
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("Query failed")

        assert captured[0]["log_level"] == "error"
        assert captured[0]["exc_info"] is True

    def test_context_manager_binds_contextvars(self):
        """Test temporary context lives only inside the block."""
        logger = StructuredLogger("querybridge.test")

        with logger.context(operation="get_schema"):
            assert structlog.contextvars.get_contextvars()["operation"] == "get_schema"

        assert "operation" not in structlog.contextvars.get_contextvars()

    def test_set_level(self):
        """Test set_level changes the backing stdlib logger."""
        logger = StructuredLogger("querybridge.levels", level="debug")

        assert logging.getLogger("querybridge.levels").level == logging.DEBUG
        logger.set_level("ERROR")
        assert logger.get_level() == "ERROR"

    def test_set_invalid_level(self):
        """Test unknown level names are rejected."""
        logger = StructuredLogger("querybridge.test")

        with pytest.raises(ValidationError) as exc_info:
            logger.set_level("chatty")

        assert exc_info.value.code == "UNKNOWN_LOG_LEVEL"

    def test_repr(self):
        """Test logger representation."""
        logger = StructuredLogger("querybridge.repr", enable_correlation=False)

        assert repr(logger).startswith("StructuredLogger(name='querybridge.repr'")
        assert "correlation=False" in repr(logger)
