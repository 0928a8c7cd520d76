"""Unit tests for schema inspection over catalog adapters."""

from typing import Dict, List, Tuple

import pytest

from querybridge.core.exceptions import (
    AcquireTimeoutError,
    ErrorCodes,
    ExecutionError,
    SchemaIntrospectionError,
)
from querybridge.database.inspector import CatalogAdapter, inspect_schema, normalize_kind
from querybridge.database.models import ColumnRow, Dialect, ForeignKeyRow, RelationRow


class _FakeCatalog:
    """In-memory catalog adapter."""

    dialect = Dialect.POSTGRES

    def __init__(self, relations, columns=None, foreign_keys=None, *, fail_on=None):
        self.relations: List[RelationRow] = relations
        self.columns: Dict[Tuple[str, str], List[ColumnRow]] = columns or {}
        self.foreign_keys: Dict[Tuple[str, str], List[ForeignKeyRow]] = foreign_keys or {}
        self.fail_on = fail_on

    def is_system_schema(self, schema: str) -> bool:
        return schema in ("pg_catalog", "information_schema")

    async def fetch_relations(self) -> List[RelationRow]:
        return list(self.relations)

    async def fetch_columns(self, schema: str, table: str) -> List[ColumnRow]:
        if self.fail_on == (schema, table):
            raise self.error
        return self.columns.get((schema, table), [])

    async def fetch_foreign_keys(self, schema: str, table: str) -> List[ForeignKeyRow]:
        return self.foreign_keys.get((schema, table), [])


class TestNormalizeKind:
    """Test relation kind normalization."""

    @pytest.mark.parametrize("raw,expected", [
        ("table", "table"),
        ("BASE TABLE", "table"),
        ("view", "view"),
        ("VIEW", "view"),
        ("SYSTEM VIEW", "view"),
        ("", "table"),
        (None, "table"),
    ])
    def test_normalize(self, raw, expected):
        """Test engine spellings map onto table or view."""
        assert normalize_kind(raw) == expected


class TestInspectSchema:
    """Test folding catalog rows into a DatabaseSchema."""

    @pytest.mark.asyncio
    async def test_ordering_and_system_schema_exclusion(self):
        """Test tables sorted by (schema, name), system schemas dropped, schemas deduplicated."""
        catalog = _FakeCatalog([
            RelationRow("public", "users", "BASE TABLE"),
            RelationRow("pg_catalog", "pg_class", "BASE TABLE"),
            RelationRow("audit", "log", "BASE TABLE"),
            RelationRow("public", "active_users", "VIEW"),
            RelationRow("information_schema", "tables", "VIEW"),
        ])

        schema = await inspect_schema(catalog)

        assert schema.dialect == "postgres"
        assert schema.schemas == ["audit", "public"]
        assert [(t.schema, t.name, t.kind) for t in schema.tables] == [
            ("audit", "log", "table"),
            ("public", "active_users", "view"),
            ("public", "users", "table"),
        ]

    @pytest.mark.asyncio
    async def test_columns_and_foreign_keys(self):
        """Test columns keep ordinal order and foreign keys are attached."""
        catalog = _FakeCatalog(
            [RelationRow("public", "child", "BASE TABLE"), RelationRow("public", "parent", "BASE TABLE")],
            columns={
                ("public", "child"): [
                    ColumnRow("id", "int4", False, is_primary_key=True),
                    ColumnRow("parent_id", "int4", False),
                    ColumnRow("note", "varchar", True, default_value="'n/a'::character varying", length=40),
                ],
                ("public", "parent"): [ColumnRow("id", "int4", False, is_primary_key=True)],
            },
            foreign_keys={
                ("public", "child"): [ForeignKeyRow("parent_id", "parent", "id", "public")],
            },
        )

        schema = await inspect_schema(catalog)
        child = schema.table("child")

        assert [c.name for c in child.columns] == ["id", "parent_id", "note"]
        assert child.columns[2].length == 40
        assert child.columns[2].default_value == "'n/a'::character varying"
        assert len(child.foreign_keys) == 1
        fk = child.foreign_keys[0]
        assert (fk.from_column, fk.referenced_schema, fk.referenced_table, fk.referenced_column) == (
            "parent_id", "public", "parent", "id",
        )
        assert schema.table(fk.referenced_table) is not None
        assert schema.table("parent").foreign_keys == []

    @pytest.mark.asyncio
    async def test_empty_database(self):
        """Test a database without tables."""
        schema = await inspect_schema(_FakeCatalog([]))

        assert schema.schemas == []
        assert schema.tables == []

    @pytest.mark.asyncio
    async def test_catalog_failure_aborts(self):
        """Test one failing catalog query aborts the whole inspection."""
        catalog = _FakeCatalog(
            [RelationRow("public", "a", "BASE TABLE"), RelationRow("public", "b", "BASE TABLE")],
            fail_on=("public", "b"),
        )
        catalog.error = ExecutionError("permission denied for table b", code=ErrorCodes.QUERY_EXECUTION_FAILED)

        with pytest.raises(SchemaIntrospectionError) as exc_info:
            await inspect_schema(catalog)

        assert exc_info.value.code == ErrorCodes.SCHEMA_INTROSPECTION_FAILED
        assert exc_info.value.message == "permission denied for table b"
        assert exc_info.value.cause is catalog.error

    @pytest.mark.asyncio
    async def test_foreign_errors_are_wrapped(self):
        """Test non-library errors are wrapped with their text."""
        catalog = _FakeCatalog([RelationRow("public", "a", "BASE TABLE")], fail_on=("public", "a"))
        catalog.error = KeyError("attname")

        with pytest.raises(SchemaIntrospectionError) as exc_info:
            await inspect_schema(catalog)

        assert exc_info.value.message == "'attname'"

    @pytest.mark.asyncio
    async def test_connection_errors_propagate(self):
        """Test pool exhaustion is not reported as a catalog failure."""
        catalog = _FakeCatalog([RelationRow("public", "a", "BASE TABLE")], fail_on=("public", "a"))
        catalog.error = AcquireTimeoutError("exhausted", code=ErrorCodes.POOL_EXHAUSTED)

        with pytest.raises(AcquireTimeoutError):
            await inspect_schema(catalog)

    def test_fake_catalog_satisfies_protocol(self):
        """Test the adapter protocol is structural."""
        assert isinstance(_FakeCatalog([]), CatalogAdapter)
