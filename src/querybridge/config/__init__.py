"""QueryBridge configuration management.

Classes:
    BaseConfig: Base configuration class
    PoolConfig: Connection pool tuning
    QueryConfig: Service row limits
    LoggingConfig: Logging configuration
    SystemConfig: System-wide configuration

Example:
    >>> from querybridge.config import SystemConfig
    >>> config = SystemConfig.from_file("querybridge.yaml")
"""

from .models import (
    BaseConfig,
    LoggingConfig,
    PoolConfig,
    QueryConfig,
    SystemConfig,
)

__all__ = [
    "BaseConfig",
    "LoggingConfig",
    "PoolConfig",
    "QueryConfig",
    "SystemConfig",
]
