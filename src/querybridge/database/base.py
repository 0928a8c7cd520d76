from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, FrozenSet, List, Optional, Sequence

from querybridge.config.models import PoolConfig
from querybridge.core import AsyncComponent
from querybridge.core.exceptions import (
    DatabaseConnectionError,
    ErrorCodes,
    ExecutionError,
)
from querybridge.database.inspector import inspect_schema
from querybridge.database.models import (
    ColumnRow,
    DatabaseSchema,
    Dialect,
    ForeignKeyRow,
    RawResult,
    RelationRow,
)
from querybridge.database.urls import mask_url
from querybridge.logging import get_logger, get_performance_logger


class DatabaseEngine(AsyncComponent[PoolConfig], ABC):
    """
    Abstract base class for database engines.
    One engine owns one pool against one URL; call sites use this
    interface and never switch on the engine type.
    """

    dialect: ClassVar[Dialect]
    system_schemas: ClassVar[FrozenSet[str]] = frozenset()

    def __init__(self, url: str, config: PoolConfig) -> None:
        self._url = url
        super().__init__(config)
        self.logger = get_logger(f"engine.{self.dialect.value}").bind(url=self.masked_url)
        self.perf_logger = get_performance_logger(f"engine.{self.dialect.value}")

    @property
    def url(self) -> str:
        return self._url

    @property
    def masked_url(self) -> str:
        return mask_url(self._url)

    def is_system_schema(self, schema: str) -> bool:
        return schema in self.system_schemas

    def _ensure_open(self) -> None:
        if not self.is_initialized:
            raise DatabaseConnectionError(
                f"{self.dialect.value} engine is closed",
                code=ErrorCodes.POOL_CLOSED,
                context={"url": self.masked_url},
            )

    def _execution_error(self, error: BaseException, sql: str) -> ExecutionError:
        """Wrap a driver error, keeping the driver's message verbatim."""
        return ExecutionError(
            str(error),
            code=ErrorCodes.QUERY_EXECUTION_FAILED,
            context={"dialect": self.dialect.value, "sql": sql},
            cause=error,
        )

    async def execute(
        self,
        sql: str,
        params: Optional[Sequence[Any]] = None,
        cap: Optional[int] = None,
    ) -> RawResult:
        """Execute one autocommit statement.

        Args:
            sql: Statement text in this engine's placeholder style
            params: Bind parameters; None runs ``sql`` as raw text
            cap: When given, at most ``cap + 1`` rows are returned where the
                driver supports bounded fetches

        Raises:
            AcquireTimeoutError: If no pooled connection frees up in time
            ExecutionError: If the engine rejects the statement
        """
        self._ensure_open()
        with self.perf_logger.measure("execute", dialect=self.dialect.value):
            return await self._execute_impl(sql, params, cap)

    async def ping(self) -> None:
        """Round-trip ``SELECT 1``; failures surface as connection errors."""
        self._ensure_open()
        try:
            await self._execute_impl("SELECT 1", None, None)
        except ExecutionError as e:
            raise DatabaseConnectionError(
                e.message,
                code=ErrorCodes.CONNECTION_REFUSED,
                context={"url": self.masked_url},
                cause=e.cause,
            ) from e

    async def inspect_schema(self) -> DatabaseSchema:
        """Return the canonical schema of this database."""
        self._ensure_open()
        with self.perf_logger.measure("inspect_schema", dialect=self.dialect.value):
            schema = await inspect_schema(self)
        self.logger.info("Schema inspected", tables=len(schema.tables))
        return schema

    @abstractmethod
    async def _execute_impl(
        self,
        sql: str,
        params: Optional[Sequence[Any]],
        cap: Optional[int],
    ) -> RawResult:
        """Run a statement on a pooled connection and return raw rows."""
        pass

    @abstractmethod
    async def fetch_relations(self) -> List[RelationRow]:
        pass

    @abstractmethod
    async def fetch_columns(self, schema: str, table: str) -> List[ColumnRow]:
        pass

    @abstractmethod
    async def fetch_foreign_keys(self, schema: str, table: str) -> List[ForeignKeyRow]:
        pass

    def get_health_status(self) -> dict:
        status = super().get_health_status()
        status.update({"dialect": self.dialect.value, "url": self.masked_url})
        return status
