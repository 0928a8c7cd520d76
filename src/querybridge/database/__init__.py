"""
QueryBridge database layer.

Connection registry, engine interface and engines (SQLite, PostgreSQL,
MySQL), query builder, schema inspector and result materializer.

Supported engines:
- SQLite (aiosqlite)
- PostgreSQL (asyncpg)
- MySQL/MariaDB (aiomysql)
"""

from .models import (
    ColumnDef,
    DatabaseSchema,
    DeleteSpec,
    Dialect,
    Driver,
    FilterCond,
    ForeignKeyDef,
    InsertSpec,
    QueryResult,
    RawResult,
    SelectSpec,
    SortSpec,
    TableDef,
    UpdateSpec,
)
from .builder import (
    BuiltQuery,
    build_delete,
    build_insert,
    build_select,
    build_update,
    quote_identifier,
)
from .materializer import materialize
from .inspector import CatalogAdapter, inspect_schema
from .base import DatabaseEngine
from .pool import ConnectionPool
from .connectors import MySQLEngine, PostgresEngine, SQLiteEngine
from .factory import EngineFactory, create_engine
from .registry import ConnectionRegistry
from .urls import mask_url, mysql_url, postgres_url, sqlite_file, sqlite_memory

__all__ = [
    # Models
    "ColumnDef",
    "DatabaseSchema",
    "DeleteSpec",
    "Dialect",
    "Driver",
    "FilterCond",
    "ForeignKeyDef",
    "InsertSpec",
    "QueryResult",
    "RawResult",
    "SelectSpec",
    "SortSpec",
    "TableDef",
    "UpdateSpec",

    # Query builder
    "BuiltQuery",
    "build_delete",
    "build_insert",
    "build_select",
    "build_update",
    "quote_identifier",

    # Results and schema
    "materialize",
    "CatalogAdapter",
    "inspect_schema",

    # Engines
    "DatabaseEngine",
    "ConnectionPool",
    "MySQLEngine",
    "PostgresEngine",
    "SQLiteEngine",
    "EngineFactory",
    "create_engine",

    # Registry
    "ConnectionRegistry",

    # URLs
    "mask_url",
    "mysql_url",
    "postgres_url",
    "sqlite_file",
    "sqlite_memory",
]
