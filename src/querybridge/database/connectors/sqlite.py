# src/querybridge/database/connectors/sqlite.py
"""SQLite engine built on aiosqlite and the in-house connection pool."""

import itertools
import os
import sqlite3
from typing import Any, List, Optional, Sequence

import aiosqlite

from querybridge.config.models import PoolConfig
from querybridge.core.exceptions import DatabaseConnectionError, ErrorCodes
from querybridge.database.base import DatabaseEngine
from querybridge.database.models import (
    ColumnRow,
    Dialect,
    ForeignKeyRow,
    RawResult,
    RelationRow,
)
from querybridge.database.pool import ConnectionPool
from querybridge.database.urls import parse_sqlite_url

_memory_ids = itertools.count(1)

RELATIONS_SQL = (
    "SELECT name, type FROM sqlite_master "
    "WHERE type IN ('table', 'view') AND lower(substr(name, 1, 7)) <> 'sqlite_' "
    "ORDER BY name"
)

# Table-valued pragma functions take the object name as a bind parameter.
COLUMNS_SQL = (
    'SELECT name, type, "notnull", dflt_value, pk '
    "FROM pragma_table_info(?, ?) ORDER BY cid"
)

PRIMARY_KEY_SQL = (
    "SELECT name FROM pragma_table_info(?, ?) WHERE pk > 0 ORDER BY pk"
)

FOREIGN_KEYS_SQL = (
    'SELECT seq, "from", "table", "to" '
    "FROM pragma_foreign_key_list(?, ?) ORDER BY id, seq"
)


class SQLiteEngine(DatabaseEngine):
    """SQLite engine.

    File databases are opened through a URI so a missing file is an
    error rather than silently created (pass ``mode=rwc`` to create it).
    ``sqlite::memory:`` opens a shared-cache in-memory database private
    to this engine; an anchor connection keeps it alive until cleanup.
    """

    component_name = "SQLiteEngine"
    dialect = Dialect.SQLITE

    def __init__(self, url: str, config: PoolConfig) -> None:
        super().__init__(url, config)
        self._target = parse_sqlite_url(url)
        if self._target.is_memory:
            name = f"querybridge-mem-{os.getpid()}-{next(_memory_ids)}"
            self._uri = f"file:{name}?mode=memory&cache=shared"
        else:
            self._uri = self._target.file_uri()

        self._anchor: Optional[aiosqlite.Connection] = None
        self._pool: Optional[ConnectionPool] = None

    async def _open_connection(self) -> aiosqlite.Connection:
        connection = await aiosqlite.connect(self._uri, uri=True, isolation_level=None)
        try:
            await connection.execute("PRAGMA foreign_keys = ON")
        except BaseException:
            await connection.close()
            raise
        return connection

    async def _async_initialize(self) -> None:
        """Open the pool and run the first handshake."""
        self.logger.debug("Opening SQLite database", memory=self._target.is_memory)

        try:
            if self._target.is_memory:
                self._anchor = await self._open_connection()
            self._pool = ConnectionPool(self._open_connection, self.config, name="sqlite")
            await self._pool.initialize()
            await self._execute_impl("SELECT 1", None, None)
        except Exception as e:
            await self._release()
            if isinstance(e, DatabaseConnectionError):
                raise
            raise DatabaseConnectionError(
                str(e),
                code=ErrorCodes.CONNECTION_REFUSED,
                context={"url": self.masked_url},
                cause=e,
            ) from e

    async def _async_cleanup(self) -> None:
        await self._release()
        self.logger.debug("SQLite database closed")

    async def _release(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
        if self._anchor is not None:
            await self._anchor.close()
            self._anchor = None

    async def _execute_impl(
        self,
        sql: str,
        params: Optional[Sequence[Any]],
        cap: Optional[int],
    ) -> RawResult:
        if self._pool is None:
            self._ensure_open()
        args = tuple(params) if params is not None else ()

        async with self._pool.acquire() as connection:
            try:
                async with connection.execute(sql, args) as cursor:
                    columns = [d[0] for d in cursor.description] if cursor.description else []
                    if cap is None:
                        rows = await cursor.fetchall()
                    else:
                        rows = await cursor.fetchmany(cap + 1)
                    rowcount = cursor.rowcount
            except sqlite3.Error as e:
                raise self._execution_error(e, sql) from e

        return RawResult(
            columns=columns,
            rows=list(rows),
            rows_affected=rowcount if rowcount >= 0 else None,
        )

    async def fetch_relations(self) -> List[RelationRow]:
        result = await self._execute_impl(RELATIONS_SQL, None, None)
        return [RelationRow(schema="main", name=name, kind=kind) for name, kind in result.rows]

    async def fetch_columns(self, schema: str, table: str) -> List[ColumnRow]:
        result = await self._execute_impl(COLUMNS_SQL, (table, schema), None)
        return [
            ColumnRow(
                name=name,
                data_type=data_type or "",
                nullable=not notnull,
                default_value=None if default is None else str(default),
                is_primary_key=pk > 0,
            )
            for name, data_type, notnull, default, pk in result.rows
        ]

    async def fetch_foreign_keys(self, schema: str, table: str) -> List[ForeignKeyRow]:
        result = await self._execute_impl(FOREIGN_KEYS_SQL, (table, schema), None)

        foreign_keys = []
        for seq, from_column, parent, to_column in result.rows:
            if to_column is None:
                # REFERENCES parent without a column list targets parent's primary key
                to_column = await self._primary_key_column(schema, parent, seq)
            foreign_keys.append(ForeignKeyRow(
                from_column=from_column,
                referenced_schema=schema,
                referenced_table=parent,
                referenced_column=to_column or "",
            ))
        return foreign_keys

    async def _primary_key_column(self, schema: str, table: str, seq: int) -> Optional[str]:
        result = await self._execute_impl(PRIMARY_KEY_SQL, (table, schema), None)
        names = [row[0] for row in result.rows]
        return names[seq] if seq < len(names) else None
