# src/querybridge/database/models.py
"""Data model for the QueryBridge database layer.

Query specs arrive as JSON payloads from the command layer and are
parsed with ``from_dict``; schema and result types serialize back to
JSON-ready dictionaries with ``to_dict``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.exceptions import ErrorCodes, ValidationError


class Dialect(str, Enum):
    """SQL generation and catalog variant of one engine."""

    SQLITE = "sqlite"
    POSTGRES = "postgres"
    MYSQL = "mysql"


class Driver(str, Enum):
    """Engine requested by the caller when opening a connection."""

    SQLITE = "sqlite"
    POSTGRES = "postgres"
    MYSQL = "mysql"

    @classmethod
    def parse(cls, value: Any) -> "Driver":
        """Resolve a driver name or alias, case-insensitively.

        Raises:
            ValidationError: If the name matches no supported engine
        """
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        resolved = _DRIVER_ALIASES.get(name)
        if resolved is None:
            raise ValidationError(
                f"Unsupported driver: {value}",
                code=ErrorCodes.UNSUPPORTED_DRIVER,
                context={"driver": value, "supported": [d.value for d in cls]},
            )
        return resolved

    @property
    def dialect(self) -> Dialect:
        return Dialect(self.value)


_DRIVER_ALIASES: Dict[str, Driver] = {
    "sqlite": Driver.SQLITE,
    "sqlite3": Driver.SQLITE,
    "postgres": Driver.POSTGRES,
    "postgresql": Driver.POSTGRES,
    "pg": Driver.POSTGRES,
    "mysql": Driver.MYSQL,
    "mariadb": Driver.MYSQL,
}


def _invalid_spec(message: str, **context: Any) -> ValidationError:
    return ValidationError(message, code=ErrorCodes.INVALID_SPEC, context=context)


def _require_table(data: Mapping[str, Any], kind: str) -> str:
    table = data.get("table")
    if not isinstance(table, str) or not table:
        raise _invalid_spec(f"{kind} requires a table name", spec=kind)
    return table


def _optional_count(data: Mapping[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _invalid_spec(f"{key} must be a non-negative integer", **{key: value})
    return value


def _parse_filters(raw: Any) -> List["FilterCond"]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise _invalid_spec("filters must be a list", filters=raw)
    return [item if isinstance(item, FilterCond) else FilterCond.from_dict(item) for item in raw]


def _parse_values(raw: Any) -> List[Tuple[str, Any]]:
    """Accept ``[[column, value], ...]`` or an ordered ``{column: value}`` object."""
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        return [(str(column), value) for column, value in raw.items()]
    if isinstance(raw, list):
        pairs = []
        for item in raw:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise _invalid_spec("values must be [column, value] pairs", value=item)
            pairs.append((str(item[0]), item[1]))
        return pairs
    raise _invalid_spec("values must be a list of pairs or an object", values=raw)


@dataclass
class FilterCond:
    """One predicate over a column; filters in a spec are AND-combined.

    ``op`` is one of ``=``, ``!=``, ``>``, ``>=``, ``<``, ``<=``, ``like``,
    ``not_like``, ``is_null``, ``is_not_null``, ``in``, ``not_in``. Any other
    value is treated as ``=``.
    """
    column: str
    op: str = "="
    value: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterCond":
        if not isinstance(data, Mapping) or not isinstance(data.get("column"), str):
            raise _invalid_spec("filter requires a column name", filter=data)
        return cls(
            column=data["column"],
            op=str(data.get("op", "=")),
            value=data.get("value"),
        )


@dataclass
class SortSpec:
    column: str
    ascending: bool = True

    @classmethod
    def parse(cls, raw: Any) -> Optional["SortSpec"]:
        if raw is None or isinstance(raw, SortSpec):
            return raw
        if isinstance(raw, Mapping) and isinstance(raw.get("column"), str):
            return cls(column=raw["column"], ascending=bool(raw.get("ascending", True)))
        if isinstance(raw, (list, tuple)) and len(raw) == 2 and isinstance(raw[0], str):
            return cls(column=raw[0], ascending=bool(raw[1]))
        raise _invalid_spec("sort must be [column, ascending] or an object", sort=raw)


@dataclass
class SelectSpec:
    """Engine-agnostic SELECT description.

    Attributes:
        table: Table to select from
        columns: Columns to return, in order; empty means all columns
        filters: AND-combined predicates
        sort: Optional single-column ordering
        limit: Optional row limit
        offset: Optional row offset
    """
    table: str
    columns: List[str] = field(default_factory=list)
    filters: List[FilterCond] = field(default_factory=list)
    sort: Optional[SortSpec] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SelectSpec":
        """Parse a JSON payload.

        Raises:
            ValidationError: If the table is missing or limit/offset is negative
        """
        if not isinstance(data, Mapping):
            raise _invalid_spec("select spec must be an object")
        columns = data.get("columns") or []
        if not isinstance(columns, list):
            raise _invalid_spec("columns must be a list", columns=columns)
        return cls(
            table=_require_table(data, "select"),
            columns=[str(column) for column in columns],
            filters=_parse_filters(data.get("filters")),
            sort=SortSpec.parse(data.get("sort")),
            limit=_optional_count(data, "limit"),
            offset=_optional_count(data, "offset"),
        )


@dataclass
class InsertSpec:
    """Single-row INSERT; ``values`` holds ordered (column, value) pairs."""
    table: str
    values: List[Tuple[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InsertSpec":
        if not isinstance(data, Mapping):
            raise _invalid_spec("insert spec must be an object")
        return cls(table=_require_table(data, "insert"), values=_parse_values(data.get("values")))


@dataclass
class UpdateSpec:
    """UPDATE with ordered assignments; filters support only ``=`` and ``!=``."""
    table: str
    values: List[Tuple[str, Any]] = field(default_factory=list)
    filters: List[FilterCond] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UpdateSpec":
        if not isinstance(data, Mapping):
            raise _invalid_spec("update spec must be an object")
        return cls(
            table=_require_table(data, "update"),
            values=_parse_values(data.get("values")),
            filters=_parse_filters(data.get("filters")),
        )


@dataclass
class DeleteSpec:
    table: str
    filters: List[FilterCond] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeleteSpec":
        if not isinstance(data, Mapping):
            raise _invalid_spec("delete spec must be an object")
        return cls(table=_require_table(data, "delete"), filters=_parse_filters(data.get("filters")))


@dataclass
class ColumnDef:
    """Column metadata; ``data_type`` keeps the engine's own spelling."""
    name: str
    data_type: str
    nullable: bool
    default_value: Optional[str] = None
    is_primary_key: bool = False
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.data_type,
            "nullable": self.nullable,
            "primaryKey": self.is_primary_key,
            "length": self.length,
            "precision": self.precision,
            "scale": self.scale,
            "defaultValue": self.default_value,
        }


@dataclass
class ForeignKeyDef:
    from_column: str
    referenced_table: str
    referenced_column: str
    referenced_schema: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column": self.from_column,
            "referencedSchema": self.referenced_schema,
            "referencedTable": self.referenced_table,
            "referencedColumn": self.referenced_column,
        }


@dataclass
class TableDef:
    """Table or view with its columns in ordinal order."""
    schema: str
    name: str
    kind: str  # 'table' or 'view'
    columns: List[ColumnDef] = field(default_factory=list)
    foreign_keys: List[ForeignKeyDef] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.schema,
            "name": self.name,
            "type": self.kind,
            "columns": [column.to_dict() for column in self.columns],
            "foreignKeys": [fk.to_dict() for fk in self.foreign_keys],
        }


@dataclass
class DatabaseSchema:
    """Canonical schema of one connection, identical in shape across engines."""
    dialect: str
    schemas: List[str] = field(default_factory=list)
    tables: List[TableDef] = field(default_factory=list)

    def table(self, name: str, schema: Optional[str] = None) -> Optional[TableDef]:
        """Find a table by name, optionally restricted to one schema."""
        for table in self.tables:
            if table.name == name and (schema is None or table.schema == schema):
                return table
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dialect": self.dialect,
            "schemas": list(self.schemas),
            "tables": [table.to_dict() for table in self.tables],
        }


@dataclass
class QueryResult:
    """Materialized result: canonical values, capped, with a truncation flag."""
    columns: List[str] = field(default_factory=list)
    rows: List[List[Any]] = field(default_factory=list)
    truncated: bool = False
    rows_affected: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "columns": list(self.columns),
            "rows": [list(row) for row in self.rows],
            "truncated": self.truncated,
        }


@dataclass
class RawResult:
    """Driver output before materialization.

    ``rows`` hold driver-native values, one sequence per row, in the
    order given by ``columns``.
    """
    columns: List[str] = field(default_factory=list)
    rows: List[Sequence[Any]] = field(default_factory=list)
    rows_affected: Optional[int] = None


# Canonical catalog rows produced by each engine's adapters and folded
# into a DatabaseSchema by the inspector.

@dataclass
class RelationRow:
    schema: str
    name: str
    kind: str  # engine spelling: 'table', 'view', 'BASE TABLE', 'VIEW', ...


@dataclass
class ColumnRow:
    name: str
    data_type: str
    nullable: bool
    default_value: Optional[str] = None
    is_primary_key: bool = False
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None


@dataclass
class ForeignKeyRow:
    from_column: str
    referenced_table: str
    referenced_column: str
    referenced_schema: Optional[str] = None
