# src/querybridge/database/connectors/mysql.py
"""MySQL/MariaDB engine built on an aiomysql pool."""

import asyncio
from typing import Any, List, Optional, Sequence

import aiomysql

from querybridge.config.models import PoolConfig
from querybridge.core.exceptions import (
    AcquireTimeoutError,
    DatabaseConnectionError,
    ErrorCodes,
)
from querybridge.database.base import DatabaseEngine
from querybridge.database.models import (
    ColumnRow,
    Dialect,
    ForeignKeyRow,
    RawResult,
    RelationRow,
)
from querybridge.database.urls import parse_mysql_url

RELATIONS_SQL = """
    SELECT table_schema, table_name, table_type
    FROM information_schema.tables
    WHERE table_schema NOT IN ('mysql', 'information_schema', 'performance_schema', 'sys')
    ORDER BY table_schema, table_name
"""

COLUMNS_SQL = """
    SELECT column_name, data_type, is_nullable, column_default, column_key,
           character_maximum_length, numeric_precision, numeric_scale
    FROM information_schema.columns
    WHERE table_schema = %s AND table_name = %s
    ORDER BY ordinal_position
"""

FOREIGN_KEYS_SQL = """
    SELECT column_name, referenced_table_schema, referenced_table_name, referenced_column_name
    FROM information_schema.key_column_usage
    WHERE table_schema = %s AND table_name = %s
      AND referenced_table_name IS NOT NULL
    ORDER BY constraint_name, ordinal_position
"""

# Server error number for a rejected login
ER_ACCESS_DENIED = 1045


def _text(value: Any) -> Optional[str]:
    """Catalog strings arrive as bytes on some server versions."""
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _count(value: Any) -> Optional[int]:
    return None if value is None else int(value)


class MySQLEngine(DatabaseEngine):
    """MySQL engine.

    Connections run in autocommit mode. Statements built with bind
    parameters are always sent with a parameter tuple so ``%%`` in the
    SQL text unescapes; raw SQL without parameters is sent verbatim.
    """

    component_name = "MySQLEngine"
    dialect = Dialect.MYSQL
    system_schemas = frozenset({"mysql", "information_schema", "performance_schema", "sys"})

    def __init__(self, url: str, config: PoolConfig) -> None:
        super().__init__(url, config)
        self._target = parse_mysql_url(url)
        self._pool: Optional[aiomysql.Pool] = None

    async def _async_initialize(self) -> None:
        """Create the aiomysql pool and run the first handshake."""
        self.logger.debug("Opening MySQL pool",
                          host=self._target.host,
                          port=self._target.port)

        try:
            self._pool = await aiomysql.create_pool(
                minsize=self.config.min_connections,
                maxsize=self.config.max_connections,
                pool_recycle=int(self.config.idle_timeout) if self.config.idle_timeout else -1,
                connect_timeout=self.config.acquire_timeout,
                autocommit=True,
                charset="utf8mb4",
                **self._target.connect_kwargs(),
            )
            await self._execute_impl("SELECT 1", None, None)

        except aiomysql.OperationalError as e:
            await self._release()
            error_code = e.args[0] if e.args else 0
            if error_code == ER_ACCESS_DENIED:
                raise self._connect_error(e, ErrorCodes.AUTH_FAILED) from e
            raise self._connect_error(e, ErrorCodes.CONNECTION_REFUSED) from e
        except asyncio.TimeoutError as e:
            await self._release()
            raise self._connect_error(e, ErrorCodes.CONNECTION_TIMEOUT) from e
        except Exception as e:
            await self._release()
            raise self._connect_error(e, ErrorCodes.CONNECTION_REFUSED) from e

    def _connect_error(self, error: BaseException, code: str) -> DatabaseConnectionError:
        return DatabaseConnectionError(
            str(error) or error.__class__.__name__,
            code=code,
            context={
                "host": self._target.host,
                "port": self._target.port,
                "database": self._target.database,
            },
            cause=error,
        )

    async def _async_cleanup(self) -> None:
        await self._release()
        self.logger.debug("MySQL pool closed")

    async def _release(self) -> None:
        if self._pool is not None:
            pool, self._pool = self._pool, None
            pool.close()
            await pool.wait_closed()

    async def _acquire(self) -> Any:
        if self._pool is None:
            self._ensure_open()
        try:
            return await asyncio.wait_for(self._pool.acquire(), timeout=self.config.acquire_timeout)
        except asyncio.TimeoutError:
            self.logger.warning("Connection pool exhausted",
                                max_size=self.config.max_connections,
                                timeout=self.config.acquire_timeout)
            raise AcquireTimeoutError(
                f"Connection pool exhausted after {self.config.acquire_timeout}s timeout",
                code=ErrorCodes.POOL_EXHAUSTED,
                context={"pool_size": self.config.max_connections},
            ) from None

    async def _execute_impl(
        self,
        sql: str,
        params: Optional[Sequence[Any]],
        cap: Optional[int],
    ) -> RawResult:
        args = tuple(params) if params is not None else None
        pool = self._pool
        connection = await self._acquire()
        try:
            async with connection.cursor() as cursor:
                await cursor.execute(sql, args)
                if cursor.description:
                    columns = [d[0] for d in cursor.description]
                    if cap is None:
                        rows = await cursor.fetchall()
                    else:
                        rows = await cursor.fetchmany(cap + 1)
                    affected = None
                else:
                    columns, rows = [], []
                    affected = cursor.rowcount
        except aiomysql.Error as e:
            raise self._execution_error(e, sql) from e
        finally:
            pool.release(connection)

        return RawResult(columns=columns, rows=list(rows), rows_affected=affected)

    async def fetch_relations(self) -> List[RelationRow]:
        result = await self._execute_impl(RELATIONS_SQL, (), None)
        return [
            RelationRow(schema=_text(schema), name=_text(name), kind=_text(kind))
            for schema, name, kind in result.rows
        ]

    async def fetch_columns(self, schema: str, table: str) -> List[ColumnRow]:
        result = await self._execute_impl(COLUMNS_SQL, (schema, table), None)
        return [
            ColumnRow(
                name=_text(name),
                data_type=_text(data_type),
                nullable=_text(is_nullable) != "NO",
                default_value=_text(default),
                is_primary_key=_text(column_key) == "PRI",
                length=_count(length),
                precision=_count(precision),
                scale=_count(scale),
            )
            for name, data_type, is_nullable, default, column_key, length, precision, scale
            in result.rows
        ]

    async def fetch_foreign_keys(self, schema: str, table: str) -> List[ForeignKeyRow]:
        result = await self._execute_impl(FOREIGN_KEYS_SQL, (schema, table), None)
        return [
            ForeignKeyRow(
                from_column=_text(column),
                referenced_schema=_text(ref_schema),
                referenced_table=_text(ref_table),
                referenced_column=_text(ref_column),
            )
            for column, ref_schema, ref_table, ref_column in result.rows
        ]
