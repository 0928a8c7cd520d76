# src/querybridge/database/inspector.py
"""Schema inspection shared by all engines.

Each engine supplies three small catalog adapters returning canonical
rows; this module folds them into one ``DatabaseSchema``, so kind
normalization, system-schema exclusion and ordering live in one place.
"""

from typing import List, Protocol, runtime_checkable

from .models import (
    ColumnDef,
    ColumnRow,
    DatabaseSchema,
    Dialect,
    ForeignKeyDef,
    ForeignKeyRow,
    RelationRow,
    TableDef,
)
from ..core.exceptions import (
    ConnectionError,
    ErrorCodes,
    QueryBridgeError,
    SchemaIntrospectionError,
)


@runtime_checkable
class CatalogAdapter(Protocol):
    """Catalog access an engine must provide for inspection."""

    @property
    def dialect(self) -> Dialect:
        ...

    def is_system_schema(self, schema: str) -> bool:
        ...

    async def fetch_relations(self) -> List[RelationRow]:
        """List every table and view outside the system schemas."""
        ...

    async def fetch_columns(self, schema: str, table: str) -> List[ColumnRow]:
        """Columns of one relation, in ordinal order."""
        ...

    async def fetch_foreign_keys(self, schema: str, table: str) -> List[ForeignKeyRow]:
        ...


def normalize_kind(raw_kind: str) -> str:
    """Map engine spellings ('BASE TABLE', 'VIEW', 'view', ...) onto 'table' or 'view'."""
    return "view" if "VIEW" in (raw_kind or "").upper() else "table"


def _column_def(row: ColumnRow) -> ColumnDef:
    return ColumnDef(
        name=row.name,
        data_type=row.data_type,
        nullable=row.nullable,
        default_value=row.default_value,
        is_primary_key=row.is_primary_key,
        length=row.length,
        precision=row.precision,
        scale=row.scale,
    )


def _foreign_key_def(row: ForeignKeyRow) -> ForeignKeyDef:
    return ForeignKeyDef(
        from_column=row.from_column,
        referenced_schema=row.referenced_schema,
        referenced_table=row.referenced_table,
        referenced_column=row.referenced_column,
    )


async def inspect_schema(adapter: CatalogAdapter) -> DatabaseSchema:
    """Run the adapter's catalog queries and build the canonical schema.

    Tables come out sorted by (schema, name) and the schema list keeps
    discovery order without duplicates.

    Raises:
        SchemaIntrospectionError: If any catalog query fails; no partial
            schema is returned
    """
    dialect = adapter.dialect
    try:
        relations = [
            relation for relation in await adapter.fetch_relations()
            if not adapter.is_system_schema(relation.schema)
        ]
        relations.sort(key=lambda relation: (relation.schema, relation.name))

        schemas: List[str] = []
        tables: List[TableDef] = []
        for relation in relations:
            if relation.schema not in schemas:
                schemas.append(relation.schema)

            columns = await adapter.fetch_columns(relation.schema, relation.name)
            foreign_keys = await adapter.fetch_foreign_keys(relation.schema, relation.name)
            tables.append(TableDef(
                schema=relation.schema,
                name=relation.name,
                kind=normalize_kind(relation.kind),
                columns=[_column_def(row) for row in columns],
                foreign_keys=[_foreign_key_def(row) for row in foreign_keys],
            ))
    except (SchemaIntrospectionError, ConnectionError):
        raise
    except Exception as e:
        raise SchemaIntrospectionError(
            e.message if isinstance(e, QueryBridgeError) else str(e),
            code=ErrorCodes.SCHEMA_INTROSPECTION_FAILED,
            context={"dialect": dialect.value},
            cause=e,
        ) from e

    return DatabaseSchema(dialect=dialect.value, schemas=schemas, tables=tables)
