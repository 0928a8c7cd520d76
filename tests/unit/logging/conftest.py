"""Logging-specific test configuration and fixtures."""

import tempfile
from pathlib import Path

import pytest

from querybridge.config.models import LoggingConfig
from querybridge.logging.factory import LoggerFactory


@pytest.fixture
def temp_log_file():
    """Create temporary log file path for testing."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir) / "logs" / "querybridge.log"


@pytest.fixture
def sample_logging_config(temp_log_file):
    """Create sample logging configuration."""
    return LoggingConfig(
        level="INFO",
        format="json",
        file_path=temp_log_file,
        console_output=True,
        max_file_size=1048576,  # 1MB
        backup_count=3,
    )


@pytest.fixture
def logger_factory():
    """Create clean logger factory for testing."""
    factory = LoggerFactory()
    yield factory
    # Cleanup after test
    factory.shutdown()
