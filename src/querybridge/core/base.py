"""Base classes for QueryBridge components.

Components are configured objects with an explicit lifecycle. Database
engines, the connection registry and the service are ``AsyncComponent``
subclasses: they acquire resources in ``initialize()`` and release them
in ``cleanup()``.

Example:
    >>> class SQLiteEngine(AsyncComponent[PoolConfig]):
    ...     async def _async_initialize(self) -> None:
    ...         self._pool = await open_pool()
"""

import asyncio
import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, ClassVar, Dict, Generic, TypeVar

import structlog

from .exceptions import ErrorCodes, QueryBridgeError, ValidationError

T = TypeVar("T")  # Configuration type


class BaseComponent(Generic[T], ABC):
    """Holds a validated configuration and reports health.

    Attributes:
        component_name: Name used in logs, errors and health reports
        version: Component version
    """

    component_name: ClassVar[str] = "BaseComponent"
    version: ClassVar[str] = "1.0.0"

    def __init__(self, config: T) -> None:
        """
        Raises:
            ValidationError: If ``config`` is None (CONFIG_NULL) or
                ``validate_config()`` rejects it (CONFIG_INVALID)
        """
        if config is None:
            raise ValidationError(
                "Configuration cannot be None",
                code="CONFIG_NULL",
                context={"component": self.component_name},
            )

        self._config: T = config
        self._initialized = False
        self._started_at = time.monotonic()
        self._logger = structlog.get_logger(self.__class__.__name__)

        if not self.validate_config():
            raise ValidationError(
                f"Invalid configuration for {self.component_name}",
                code=ErrorCodes.CONFIG_INVALID,
                context={"component": self.component_name},
            )

    @property
    def config(self) -> T:
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def uptime(self) -> float:
        """Seconds since construction."""
        return time.monotonic() - self._started_at

    def validate_config(self) -> bool:
        """Hook for component-specific configuration checks."""
        return True

    def get_health_status(self) -> Dict[str, Any]:
        return {
            "component": self.component_name,
            "version": self.version,
            "initialized": self._initialized,
            "uptime_seconds": round(self.uptime, 3),
            "status": "healthy" if self._initialized else "not_initialized",
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"name={self.component_name!r}, "
            f"initialized={self._initialized}, "
            f"uptime={self.uptime:.2f}s)"
        )


class AsyncComponent(BaseComponent[T]):
    """Component whose resources are opened and closed asynchronously.

    ``initialize()`` and ``cleanup()`` are idempotent, and one lock
    serializes them so a close never interleaves with an open.
    """

    def __init__(self, config: T) -> None:
        super().__init__(config)
        self._lifecycle_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Run ``_async_initialize`` once.

        Raises:
            QueryBridgeError: Library errors propagate unchanged; any other
                exception is wrapped with code ``INIT_FAILED``
        """
        async with self._lifecycle_lock:
            if self._initialized:
                return

            self._logger.debug("Initializing component", component=self.component_name)
            try:
                await self._async_initialize()
            except Exception as e:
                self._logger.error("Component initialization failed",
                                   component=self.component_name,
                                   error=str(e))
                if isinstance(e, QueryBridgeError):
                    raise
                raise QueryBridgeError(
                    f"Failed to initialize {self.component_name}: {e}",
                    code=ErrorCodes.INIT_FAILED,
                    context={"component": self.component_name},
                    cause=e,
                ) from e

            self._initialized = True

    async def cleanup(self) -> None:
        """Run ``_async_cleanup`` if initialized.

        Failures are logged, not raised, so a failing close never masks
        the error that triggered it.
        """
        async with self._lifecycle_lock:
            if not self._initialized:
                return

            self._initialized = False
            try:
                await self._async_cleanup()
            except Exception as e:
                self._logger.error("Component cleanup failed",
                                   component=self.component_name,
                                   error=str(e))

    @abstractmethod
    async def _async_initialize(self) -> None:
        """Acquire the component's resources."""

    async def _async_cleanup(self) -> None:
        """Release the component's resources."""

    @asynccontextmanager
    async def managed_lifecycle(self) -> AsyncIterator["AsyncComponent[T]"]:
        """Initialize on entry and clean up on exit, even on error.

        Example:
            >>> async with engine.managed_lifecycle() as eng:
            ...     await eng.ping()
        """
        await self.initialize()
        try:
            yield self
        finally:
            await self.cleanup()

    async def __aenter__(self) -> "AsyncComponent[T]":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.cleanup()
