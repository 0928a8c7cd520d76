"""Pytest configuration and shared fixtures.

This module provides pytest configuration and shared fixtures for all tests
in the QueryBridge test suite.
"""

import logging
import tempfile
from pathlib import Path
from typing import Generator
from unittest.mock import MagicMock

import pytest
import structlog

from querybridge.config.models import PoolConfig, SystemConfig


def configure_test_logging() -> None:
    """Route structlog into a capture processor so tests stay quiet."""
    structlog.reset_defaults()
    structlog.configure(
        processors=[structlog.testing.LogCapture()],
        wrapper_class=structlog.BoundLogger,
        logger_factory=structlog.testing.ReturnLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure test logging to suppress noise during tests
configure_test_logging()


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging configuration done by a test."""
    yield

    from querybridge.logging.factory import _global_factory
    _global_factory.shutdown()

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)
    configure_test_logging()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide temporary directory for test files."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def mock_logger():
    """Mock structured logger for testing."""
    logger = MagicMock()
    logger.bind.return_value = logger
    return logger


@pytest.fixture
def pool_config() -> PoolConfig:
    """Small pool without the background idle sweep."""
    return PoolConfig(max_connections=3, min_connections=1, acquire_timeout=0.5, idle_timeout=None)


@pytest.fixture
def system_config(pool_config: PoolConfig) -> SystemConfig:
    return SystemConfig(
        environment="testing",
        pool=pool_config,
        query={"default_row_limit": 1000, "select_row_cap": 1000},
        logging={"level": "DEBUG", "format": "json"},
    )


@pytest.fixture
def sample_config_data() -> dict:
    """Sample configuration data for testing."""
    return {
        "app_name": "QueryBridge",
        "environment": "testing",
        "debug": True,
        "pool": {
            "max_connections": 4,
            "min_connections": 1,
            "acquire_timeout": 2.5,
            "idle_timeout": 120,
        },
        "query": {
            "default_row_limit": 500,
            "select_row_cap": 200,
        },
        "logging": {
            "level": "DEBUG",
            "format": "text",
            "console_output": True,
        },
    }


@pytest.fixture
def config_file(temp_dir: Path, sample_config_data: dict) -> Path:
    """Create temporary configuration file."""
    import yaml

    config_path = temp_dir / "querybridge.yaml"
    with open(config_path, 'w') as f:
        yaml.dump(sample_config_data, f)
    return config_path


# Pytest markers for different test categories
def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (slower, real dependencies)"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests that take > 1 second"
    )
    config.addinivalue_line(
        "markers", "database: marks tests that open real databases"
    )


# Auto-mark tests based on their location
def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    tests_root = Path(config.rootdir) / "tests"
    for item in items:
        try:
            test_path = Path(item.fspath).relative_to(tests_root)
        except ValueError:
            continue

        if test_path.parts[0] == "unit":
            item.add_marker(pytest.mark.unit)
        elif test_path.parts[0] == "integration":
            item.add_marker(pytest.mark.integration)

        # Engine and service tests run against real SQLite databases
        if test_path.parts[-2:-1] in (("connectors",), ("service",)):
            item.add_marker(pytest.mark.database)

        if not any(mark.name == "slow" for mark in item.iter_markers()):
            if any(mark.name == "integration" for mark in item.iter_markers()):
                item.add_marker(pytest.mark.slow)
