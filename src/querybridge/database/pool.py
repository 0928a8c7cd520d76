"""
Connection pool for engines whose driver ships no pool of its own.

Used by the SQLite engine: aiosqlite opens one thread-backed connection
at a time, and this pool bounds, reuses and expires them.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional, Set

from querybridge.config.models import PoolConfig
from querybridge.core.exceptions import (
    AcquireTimeoutError,
    DatabaseConnectionError,
    ErrorCodes,
)
from querybridge.logging import get_logger, get_performance_logger

ConnectFactory = Callable[[], Awaitable[Any]]


class PooledConnection:
    """Wrapper for pooled database connections with usage metadata."""

    def __init__(self, connection: Any):
        self.connection = connection
        self.created_at = time.monotonic()
        self.last_used = self.created_at
        self.use_count = 0
        self.is_in_use = False
        self.connection_id = id(connection)

    def mark_used(self) -> None:
        self.last_used = time.monotonic()
        self.use_count += 1
        self.is_in_use = True

    def mark_returned(self) -> None:
        self.last_used = time.monotonic()
        self.is_in_use = False

    def get_age(self) -> float:
        """Seconds since the connection was opened."""
        return time.monotonic() - self.created_at

    def get_idle_time(self) -> float:
        """Seconds since the connection was last returned."""
        return time.monotonic() - self.last_used

    async def close(self) -> None:
        await self.connection.close()


class ConnectionPool:
    """Bounded async connection pool.

    Idle connections wait in a queue. A caller takes an idle connection,
    opens a new one while the pool is below ``max_connections``, or waits
    up to ``acquire_timeout`` for one to be returned.
    """

    def __init__(self, connect: ConnectFactory, config: PoolConfig, *, name: str = "pool"):
        self._connect = connect
        self.config = config
        self.name = name

        # Pool state
        self._idle: "asyncio.Queue[PooledConnection]" = asyncio.Queue()
        self._connections: Set[PooledConnection] = set()
        self._closed = False
        self._sweep_task: Optional[asyncio.Task] = None

        # Statistics
        self._stats = {
            'total_created': 0,
            'total_closed': 0,
            'total_acquired': 0,
            'pool_exhausted_count': 0,
            'idle_connections_closed': 0,
            'max_wait_time': 0.0,
        }

        self.logger = get_logger(f"pool.{name}")
        self.perf_logger = get_performance_logger(f"pool.{name}")

    @property
    def size(self) -> int:
        return len(self._connections)

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def initialize(self) -> None:
        """Open ``min_connections`` connections and start the idle sweep.

        Raises:
            DatabaseConnectionError: If a connection cannot be opened
        """
        self.logger.debug("Initializing connection pool",
                          min_size=self.config.min_connections,
                          max_size=self.config.max_connections)
        try:
            for _ in range(self.config.min_connections):
                self._idle.put_nowait(await self._create_connection())
        except BaseException:
            await self.close()
            raise

        if self.config.idle_timeout is not None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Any]:
        """Acquire a connection for the duration of the block.

        Raises:
            DatabaseConnectionError: If the pool is closed (POOL_CLOSED)
            AcquireTimeoutError: If none frees up within ``acquire_timeout``
        """
        if self._closed:
            raise DatabaseConnectionError(
                "Connection pool is closed",
                code=ErrorCodes.POOL_CLOSED,
                context={"pool": self.name},
            )

        start_time = time.monotonic()
        pooled_conn = await self._get_or_create_connection()
        wait_time = time.monotonic() - start_time
        self._stats['max_wait_time'] = max(self._stats['max_wait_time'], wait_time)
        self._stats['total_acquired'] += 1
        pooled_conn.mark_used()

        try:
            yield pooled_conn.connection
        finally:
            await self._release_connection(pooled_conn)

    async def _get_or_create_connection(self) -> PooledConnection:
        try:
            return self._idle.get_nowait()
        except asyncio.QueueEmpty:
            pass

        if self.size < self.config.max_connections:
            return await self._create_connection()

        self._stats['pool_exhausted_count'] += 1
        self.logger.warning("Connection pool exhausted, waiting",
                            active_connections=self.size,
                            max_size=self.config.max_connections)
        try:
            return await asyncio.wait_for(self._idle.get(), timeout=self.config.acquire_timeout)
        except asyncio.TimeoutError:
            raise AcquireTimeoutError(
                f"Connection pool exhausted after {self.config.acquire_timeout}s timeout",
                code=ErrorCodes.POOL_EXHAUSTED,
                context={
                    "pool": self.name,
                    "pool_size": self.config.max_connections,
                    "timeout": self.config.acquire_timeout,
                },
            ) from None

    async def _create_connection(self) -> PooledConnection:
        # Placeholder reserves the slot across the await so concurrent
        # callers cannot overshoot max_connections.
        slot = PooledConnection(None)
        self._connections.add(slot)
        try:
            with self.perf_logger.measure("connect", pool=self.name):
                raw_connection = await self._connect()
        except Exception as e:
            self.logger.error("Failed to create connection", error=str(e))
            raise DatabaseConnectionError(
                str(e),
                code=ErrorCodes.CONNECTION_REFUSED,
                context={"pool": self.name},
                cause=e,
            ) from e
        finally:
            self._connections.discard(slot)

        pooled_conn = PooledConnection(raw_connection)
        self._connections.add(pooled_conn)
        self._stats['total_created'] += 1
        self.logger.debug("New connection created",
                          connection_id=pooled_conn.connection_id,
                          total_connections=self.size)
        return pooled_conn

    async def _release_connection(self, pooled_conn: PooledConnection) -> None:
        pooled_conn.mark_returned()
        if self._closed:
            await self._close_connection(pooled_conn)
            return
        self._idle.put_nowait(pooled_conn)

    async def _close_connection(self, pooled_conn: PooledConnection) -> None:
        self._connections.discard(pooled_conn)
        try:
            await pooled_conn.close()
        except Exception as e:
            self.logger.warning("Error closing connection",
                                connection_id=pooled_conn.connection_id,
                                error=str(e))
        self._stats['total_closed'] += 1
        self.logger.debug("Connection closed",
                          connection_id=pooled_conn.connection_id,
                          age_seconds=pooled_conn.get_age(),
                          use_count=pooled_conn.use_count)

    async def _sweep_loop(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.config.health_check_interval)
            try:
                await self.sweep_idle()
            except Exception as e:
                self.logger.error("Error in idle sweep", error=str(e))

    async def sweep_idle(self) -> int:
        """Close connections idle longer than ``idle_timeout``.

        Never shrinks the pool below ``min_connections``.

        Returns:
            Number of connections closed
        """
        if self.config.idle_timeout is None:
            return 0

        keep = []
        expired = []
        while True:
            try:
                pooled_conn = self._idle.get_nowait()
            except asyncio.QueueEmpty:
                break
            if pooled_conn.get_idle_time() > self.config.idle_timeout:
                expired.append(pooled_conn)
            else:
                keep.append(pooled_conn)

        surplus = max(self.size - self.config.min_connections, 0)
        to_close = expired[:surplus]
        keep.extend(expired[surplus:])

        for pooled_conn in keep:
            self._idle.put_nowait(pooled_conn)
        for pooled_conn in to_close:
            await self._close_connection(pooled_conn)

        self._stats['idle_connections_closed'] += len(to_close)
        return len(to_close)

    async def close(self) -> None:
        """Close the pool; connections in use close when they are returned."""
        if self._closed:
            return
        self._closed = True

        if self._sweep_task:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        while True:
            try:
                pooled_conn = self._idle.get_nowait()
            except asyncio.QueueEmpty:
                break
            await self._close_connection(pooled_conn)

        self.logger.debug("Connection pool closed",
                          total_created=self._stats['total_created'],
                          total_closed=self._stats['total_closed'])

    def get_stats(self) -> Dict[str, Any]:
        """Get connection pool statistics."""
        return {
            'total_connections': self.size,
            'idle_connections': self._idle.qsize(),
            'active_connections': self.size - self._idle.qsize(),
            'min_size': self.config.min_connections,
            'max_size': self.config.max_connections,
            'is_closed': self._closed,
            **self._stats,
        }
