"""Configuration models for QueryBridge.

Pydantic models for pool tuning, query limits, logging and the
system-wide configuration that bundles them. Values may reference
environment variables with ``${VAR}`` or ``${VAR:default}``.

Classes:
    BaseConfig: Base configuration class
    PoolConfig: Connection pool tuning shared by all engines
    QueryConfig: Row limits applied by the service layer
    LoggingConfig: Logging configuration
    SystemConfig: System-wide configuration

Example:
    >>> config = SystemConfig.from_file("querybridge.yaml")
    >>> config.pool.max_connections
    5
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    ValidationError as PydanticValidationError,
    field_validator,
    model_validator,
)

from ..core.exceptions import ConfigurationError, ErrorCodes

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _resolve_env(value: Any) -> Any:
    if isinstance(value, str):
        def replace_env_var(match: "re.Match[str]") -> str:
            var_spec = match.group(1)
            if ":" in var_spec:
                var_name, default = var_spec.split(":", 1)
            else:
                var_name, default = var_spec, ""
            return os.getenv(var_name, default)

        return _ENV_PATTERN.sub(replace_env_var, value)
    if isinstance(value, dict):
        return {k: _resolve_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_env(item) for item in value]
    return value


class BaseConfig(BaseModel):
    """Base configuration class with common functionality.

    Provides validated assignment, rejection of unknown keys and
    environment variable resolution.
    """

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def resolve_environment_variables(cls, values: Any) -> Any:
        """Resolve ``${VAR_NAME}`` and ``${VAR_NAME:default}`` in raw values."""
        if isinstance(values, dict):
            return {key: _resolve_env(value) for key, value in values.items()}
        return values

    def to_dict(self, *, mask_secrets: bool = True) -> Dict[str, Any]:
        """Convert configuration to dictionary.

        Args:
            mask_secrets: Whether to mask secret values

        Returns:
            Dictionary representation of configuration
        """
        data = self.model_dump()

        def mask_value(value: Any) -> Any:
            if isinstance(value, dict):
                return {k: mask_value(v) for k, v in value.items()}
            if isinstance(value, list):
                return [mask_value(item) for item in value]
            if isinstance(value, SecretStr):
                return "***MASKED***" if mask_secrets else value.get_secret_value()
            if isinstance(value, Path):
                return str(value)
            return value

        return mask_value(data)


class PoolConfig(BaseConfig):
    """Connection pool configuration.

    Applied identically to every engine; each engine maps these onto its
    driver's own pool options.

    Attributes:
        max_connections: Maximum concurrent connections per pool
        min_connections: Connections opened eagerly at pool creation
        acquire_timeout: Seconds to wait for a free connection
        idle_timeout: Seconds before an unused connection is closed (None disables)
        health_check_interval: Seconds between idle-connection sweeps
    """

    max_connections: PositiveInt = Field(5, description="Maximum pool size")
    min_connections: NonNegativeInt = Field(1, description="Minimum pool size")
    acquire_timeout: PositiveFloat = Field(10.0, description="Acquire timeout in seconds")
    idle_timeout: Optional[PositiveFloat] = Field(
        300.0, description="Idle connection timeout in seconds"
    )
    health_check_interval: PositiveFloat = Field(
        60.0, description="Idle sweep interval in seconds"
    )

    @model_validator(mode="after")
    def validate_sizes(self) -> "PoolConfig":
        """Ensure max_connections >= min_connections."""
        if self.max_connections < self.min_connections:
            raise ValueError(
                f"max_connections ({self.max_connections}) must be >= "
                f"min_connections ({self.min_connections})"
            )
        return self


class QueryConfig(BaseConfig):
    """Row limits applied by the service layer.

    Attributes:
        default_row_limit: Cap for raw SQL when the caller gives none
        select_row_cap: Cap for spec-built SELECT statements
    """

    default_row_limit: PositiveInt = Field(1000, description="Default raw SQL row limit")
    select_row_cap: PositiveInt = Field(1000, description="SelectSpec row cap")


class LoggingConfig(BaseConfig):
    """Logging configuration.

    Attributes:
        level: Log level
        format: Log format (json, text)
        file_path: Log file path; file output is off when unset
        max_file_size: Maximum log file size in bytes
        backup_count: Number of rotated files to keep
        console_output: Enable console output
        slow_query_ms: Warn when an engine operation takes longer than this
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Logging level"
    )
    format: Literal["json", "text"] = Field("json", description="Log format")
    file_path: Optional[Path] = Field(None, description="Log file path")
    max_file_size: PositiveInt = Field(10485760, description="Max file size in bytes (10MB)")
    backup_count: NonNegativeInt = Field(5, description="Number of backup files")
    console_output: bool = Field(True, description="Enable console output")
    slow_query_ms: Optional[PositiveFloat] = Field(
        None, description="Slow operation warning threshold in milliseconds"
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class SystemConfig(BaseConfig):
    """System-wide configuration.

    Example:
        >>> config = SystemConfig.from_dict({"pool": {"max_connections": 10}})
        >>> config.query.default_row_limit
        1000
    """

    app_name: str = Field("QueryBridge", description="Application name")
    environment: Literal["development", "testing", "staging", "production"] = Field(
        "development", description="Deployment environment"
    )
    debug: bool = Field(False, description="Enable debug mode")
    pool: PoolConfig = Field(default_factory=PoolConfig, description="Pool config")
    query: QueryConfig = Field(default_factory=QueryConfig, description="Query limits")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Logging config")

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystemConfig":
        """Build configuration from a plain dictionary.

        Raises:
            ConfigurationError: If the data fails validation
        """
        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                code=ErrorCodes.CONFIG_INVALID,
                context={"errors": e.errors(include_url=False)},
                cause=e,
            ) from e

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "SystemConfig":
        """Load configuration from a YAML file.

        An empty file yields the defaults.

        Raises:
            ConfigurationError: If the file is missing, unreadable or invalid
        """
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                code=ErrorCodes.CONFIG_NOT_FOUND,
                context={"path": str(config_path)},
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Configuration file is not valid YAML: {e}",
                code=ErrorCodes.CONFIG_INVALID,
                context={"path": str(config_path)},
                cause=e,
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping",
                code=ErrorCodes.CONFIG_INVALID,
                context={"path": str(config_path)},
            )

        return cls.from_dict(data)
