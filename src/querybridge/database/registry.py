# src/querybridge/database/registry.py
"""Connection registry: maps opaque connection ids to live engines."""

import itertools
import os
import time
from typing import Any, Dict, List, Optional, Tuple

from querybridge.config.models import PoolConfig
from querybridge.core import AsyncComponent, AsyncRWLock
from querybridge.core.exceptions import (
    ConnectionError,
    ConnectionNotFoundError,
    ErrorCodes,
)
from querybridge.database.base import DatabaseEngine
from querybridge.database.factory import EngineFactory
from querybridge.database.models import Dialect, Driver
from querybridge.logging import get_logger


class ConnectionRegistry(AsyncComponent[PoolConfig]):
    """Owns every open engine and its pool.

    Lookups take the read side of the lock and may run concurrently.
    Open and close take the write side only for the dict mutation; engine
    startup and teardown happen outside the lock, so they never block
    queries on other connections.

    Example:
        >>> registry = ConnectionRegistry(PoolConfig())
        >>> conn_id = await registry.open("sqlite", "sqlite::memory:")
        >>> engine = await registry.lookup(conn_id)
        >>> await registry.close(conn_id)
    """

    component_name = "ConnectionRegistry"

    def __init__(self, config: PoolConfig, *, engine_factory: Optional[EngineFactory] = None) -> None:
        super().__init__(config)
        self.logger = get_logger("database.registry")
        self._factory = engine_factory or EngineFactory()
        self._engines: Dict[str, DatabaseEngine] = {}
        self._lock = AsyncRWLock()
        self._closed = False
        self._counter = itertools.count(1)

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _new_id(self) -> str:
        # The counter separates ids minted within one clock tick.
        return f"{time.time_ns():x}-{os.getpid()}-{next(self._counter)}"

    def _registry_closed(self) -> ConnectionError:
        return ConnectionError(
            "Connection registry is shut down",
            code=ErrorCodes.REGISTRY_CLOSED,
        )

    async def _async_initialize(self) -> None:
        self.logger.debug("Connection registry ready",
                          max_connections=self.config.max_connections)

    async def _async_cleanup(self) -> None:
        await self.shutdown()

    async def open(self, driver: Any, url: str) -> str:
        """Create and start an engine, then register it.

        Returns:
            The new connection id

        Raises:
            ValidationError: If the driver is unsupported
            DatabaseConnectionError: If the URL is rejected or the handshake fails
            ConnectionError: If the registry is shut down (REGISTRY_CLOSED)
        """
        if self._closed:
            raise self._registry_closed()

        driver = Driver.parse(driver)
        engine = self._factory.create_engine(driver, url, self.config)
        await engine.initialize()

        conn_id = self._new_id()
        async with self._lock.write():
            registered = not self._closed
            if registered:
                self._engines[conn_id] = engine

        if not registered:
            await engine.cleanup()
            raise self._registry_closed()

        self.logger.info("Connection opened",
                         connection_id=conn_id,
                         dialect=engine.dialect.value,
                         url=engine.masked_url)
        return conn_id

    async def close(self, conn_id: str) -> bool:
        """Remove and close a connection; unknown ids are ignored.

        Returns:
            True if a connection was closed
        """
        async with self._lock.write():
            engine = self._engines.pop(conn_id, None)

        if engine is None:
            self.logger.debug("Close of unknown connection ignored", connection_id=conn_id)
            return False

        await engine.cleanup()
        self.logger.info("Connection closed",
                         connection_id=conn_id,
                         dialect=engine.dialect.value)
        return True

    async def lookup(self, conn_id: str) -> DatabaseEngine:
        """Return the engine for ``conn_id``.

        Raises:
            ConnectionNotFoundError: If the id is not registered
        """
        async with self._lock.read():
            engine = self._engines.get(conn_id)

        if engine is None:
            raise ConnectionNotFoundError(
                f"Connection not found: {conn_id}",
                code=ErrorCodes.CONNECTION_NOT_FOUND,
                context={"connection_id": conn_id},
            )
        return engine

    async def list_connections(self) -> List[Tuple[str, Dialect]]:
        async with self._lock.read():
            return [(conn_id, engine.dialect) for conn_id, engine in self._engines.items()]

    async def shutdown(self) -> None:
        """Close every live connection and refuse new ones."""
        async with self._lock.write():
            self._closed = True
            engines = list(self._engines.items())
            self._engines.clear()

        for conn_id, engine in engines:
            await engine.cleanup()
            self.logger.debug("Connection closed at shutdown", connection_id=conn_id)

        if engines:
            self.logger.info("Connection registry shut down", closed_connections=len(engines))

    def __len__(self) -> int:
        return len(self._engines)

    def get_health_status(self) -> Dict[str, Any]:
        status = super().get_health_status()
        status.update({"connections": len(self._engines), "closed": self._closed})
        return status
