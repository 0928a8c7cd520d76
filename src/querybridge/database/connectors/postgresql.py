# src/querybridge/database/connectors/postgresql.py
"""PostgreSQL engine built on an asyncpg pool."""

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import asyncpg

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
from querybridge.database.urls import parse_postgres_url

RELATIONS_SQL = """
    SELECT table_schema, table_name, table_type
    FROM information_schema.tables
    WHERE table_schema NOT IN ('pg_catalog', 'information_schema', 'pg_toast')
      AND left(table_schema, 7) <> 'pg_temp'
      AND left(table_schema, 13) <> 'pg_toast_temp'
    ORDER BY table_schema, table_name
"""

COLUMNS_SQL = """
    SELECT a.attname AS column_name,
           t.typname AS data_type,
           NOT a.attnotnull AS nullable,
           pg_get_expr(ad.adbin, ad.adrelid) AS default_value,
           EXISTS (
               SELECT 1 FROM pg_index i
               WHERE i.indrelid = a.attrelid
                 AND i.indisprimary
                 AND a.attnum = ANY(i.indkey)
           ) AS is_primary_key,
           a.atttypmod AS typmod
    FROM pg_attribute a
    JOIN pg_class c ON c.oid = a.attrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    JOIN pg_type t ON t.oid = a.atttypid
    LEFT JOIN pg_attrdef ad ON ad.adrelid = a.attrelid AND ad.adnum = a.attnum
    WHERE n.nspname = $1 AND c.relname = $2
      AND a.attnum > 0 AND NOT a.attisdropped
    ORDER BY a.attnum
"""

FOREIGN_KEYS_SQL = """
    SELECT kcu.column_name, ref.table_schema, ref.table_name, ref.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON kcu.constraint_schema = tc.constraint_schema
     AND kcu.constraint_name = tc.constraint_name
    JOIN information_schema.referential_constraints rc
      ON rc.constraint_schema = tc.constraint_schema
     AND rc.constraint_name = tc.constraint_name
    JOIN information_schema.key_column_usage ref
      ON ref.constraint_schema = rc.unique_constraint_schema
     AND ref.constraint_name = rc.unique_constraint_name
     AND ref.ordinal_position = kcu.position_in_unique_constraint
    WHERE tc.constraint_type = 'FOREIGN KEY'
      AND tc.table_schema = $1 AND tc.table_name = $2
    ORDER BY tc.constraint_name, kcu.ordinal_position
"""

_LENGTH_TYPES = {"varchar", "bpchar"}
_BIT_TYPES = {"bit", "varbit"}
_TEMPORAL_TYPES = {"time", "timetz", "timestamp", "timestamptz"}
_COUNTING_COMMANDS = {"INSERT", "UPDATE", "DELETE", "MERGE", "COPY"}


def typmod_facets(type_name: str, typmod: int) -> Dict[str, Optional[int]]:
    """Decode length, precision and scale from ``pg_attribute.atttypmod``."""
    facets: Dict[str, Optional[int]] = {"length": None, "precision": None, "scale": None}
    if typmod is None or typmod < 0:
        return facets
    if type_name in _LENGTH_TYPES and typmod >= 4:
        facets["length"] = typmod - 4
    elif type_name in _BIT_TYPES:
        facets["length"] = typmod
    elif type_name == "numeric" and typmod >= 4:
        facets["precision"] = ((typmod - 4) >> 16) & 0xFFFF
        facets["scale"] = (typmod - 4) & 0xFFFF
    elif type_name in _TEMPORAL_TYPES:
        facets["precision"] = typmod
    return facets


def rows_affected(status: Optional[str]) -> Optional[int]:
    """Row count from a command tag such as ``INSERT 0 3`` or ``UPDATE 2``."""
    if not status:
        return None
    parts = status.split()
    if parts[0] in _COUNTING_COMMANDS and parts[-1].isdigit():
        return int(parts[-1])
    return None


class PostgresEngine(DatabaseEngine):
    """PostgreSQL engine.

    The URL is handed to asyncpg unchanged. Statements run as prepared
    statements so column names and the command tag are available.
    """

    component_name = "PostgresEngine"
    dialect = Dialect.POSTGRES
    system_schemas = frozenset({"pg_catalog", "information_schema", "pg_toast"})

    def __init__(self, url: str, config: PoolConfig) -> None:
        super().__init__(url, config)
        self._dsn = parse_postgres_url(url)
        self._pool: Optional[asyncpg.Pool] = None

    def is_system_schema(self, schema: str) -> bool:
        return schema in self.system_schemas or schema.startswith(("pg_temp", "pg_toast_temp"))

    async def _async_initialize(self) -> None:
        """Create the asyncpg pool and run the first handshake."""
        self.logger.debug("Opening PostgreSQL pool")

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._dsn,
                min_size=self.config.min_connections,
                max_size=self.config.max_connections,
                max_inactive_connection_lifetime=self.config.idle_timeout or 0,
                timeout=self.config.acquire_timeout,
            )
            async with self._pool.acquire(timeout=self.config.acquire_timeout) as connection:
                await connection.fetchval("SELECT 1")

        except asyncpg.InvalidAuthorizationSpecificationError as e:
            await self._release()
            raise self._connect_error(e, ErrorCodes.AUTH_FAILED) from e
        except asyncio.TimeoutError as e:
            await self._release()
            raise self._connect_error(e, ErrorCodes.CONNECTION_TIMEOUT) from e
        except ValueError as e:
            # asyncpg rejects malformed DSNs with ValueError subclasses
            await self._release()
            raise self._connect_error(e, ErrorCodes.INVALID_URL) from e
        except Exception as e:
            await self._release()
            raise self._connect_error(e, ErrorCodes.CONNECTION_REFUSED) from e

    def _connect_error(self, error: BaseException, code: str) -> DatabaseConnectionError:
        return DatabaseConnectionError(
            str(error) or error.__class__.__name__,
            code=code,
            context={"url": self.masked_url},
            cause=error,
        )

    async def _async_cleanup(self) -> None:
        await self._release()
        self.logger.debug("PostgreSQL pool closed")

    async def _release(self) -> None:
        if self._pool is not None:
            pool, self._pool = self._pool, None
            await pool.close()

    async def _acquire(self) -> asyncpg.Connection:
        if self._pool is None:
            self._ensure_open()
        try:
            return await self._pool.acquire(timeout=self.config.acquire_timeout)
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
        args = tuple(params) if params is not None else ()
        pool = self._pool
        connection = await self._acquire()
        try:
            statement = await connection.prepare(sql)
            records = await statement.fetch(*args)
            columns = [attribute.name for attribute in statement.get_attributes()]
            status = statement.get_statusmsg()
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            raise self._execution_error(e, sql) from e
        finally:
            await pool.release(connection)

        return RawResult(
            columns=columns,
            rows=[tuple(record) for record in records],
            rows_affected=rows_affected(status),
        )

    async def fetch_relations(self) -> List[RelationRow]:
        result = await self._execute_impl(RELATIONS_SQL, (), None)
        return [
            RelationRow(schema=schema, name=name, kind=kind)
            for schema, name, kind in result.rows
        ]

    async def fetch_columns(self, schema: str, table: str) -> List[ColumnRow]:
        result = await self._execute_impl(COLUMNS_SQL, (schema, table), None)
        return [
            ColumnRow(
                name=name,
                data_type=data_type,
                nullable=bool(nullable),
                default_value=default,
                is_primary_key=bool(is_pk),
                **typmod_facets(data_type, typmod),
            )
            for name, data_type, nullable, default, is_pk, typmod in result.rows
        ]

    async def fetch_foreign_keys(self, schema: str, table: str) -> List[ForeignKeyRow]:
        result = await self._execute_impl(FOREIGN_KEYS_SQL, (schema, table), None)
        return [
            ForeignKeyRow(
                from_column=column,
                referenced_schema=ref_schema,
                referenced_table=ref_table,
                referenced_column=ref_column,
            )
            for column, ref_schema, ref_table, ref_column in result.rows
        ]
