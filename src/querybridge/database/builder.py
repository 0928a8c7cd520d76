# src/querybridge/database/builder.py
"""Dialect-aware SQL builder for query specs.

Caller-supplied values are always bind parameters; only identifiers are
embedded in the SQL text, quoted for the target dialect.

Example:
    >>> spec = SelectSpec(table="users", columns=["id"], filters=[FilterCond("name", "like", "a%")])
    >>> build_select(spec, Dialect.POSTGRES)
    BuiltQuery(sql='SELECT "users"."id" FROM "users" WHERE "users"."name" LIKE $1', params=('a%',))
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from .models import DeleteSpec, Dialect, FilterCond, InsertSpec, SelectSpec, UpdateSpec
from ..core.exceptions import QueryBuildError

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1
_UINT64 = 2 ** 64

_COMPARISONS = {
    "=": "=",
    "!=": "<>",
    ">": ">",
    ">=": ">=",
    "<": "<",
    "<=": "<=",
}


class BuiltQuery(NamedTuple):
    sql: str
    params: Tuple[Any, ...]


@dataclass(frozen=True)
class DialectRules:
    """Identifier quoting, placeholder style and paging syntax of one dialect."""

    dialect: Dialect
    quote_char: str
    param_style: str  # 'qmark', 'numeric' or 'format'
    # Row count standing in for "no limit" when only an offset is given;
    # None means the dialect accepts OFFSET on its own.
    unbounded_limit: Optional[str]

    def quote(self, identifier: str) -> str:
        q = self.quote_char
        quoted = q + identifier.replace(q, q + q) + q
        if self.param_style == "format":
            quoted = quoted.replace("%", "%%")
        return quoted

    def placeholder(self, position: int) -> str:
        if self.param_style == "numeric":
            return f"${position}"
        if self.param_style == "format":
            return "%s"
        return "?"


DIALECT_RULES: Dict[Dialect, DialectRules] = {
    Dialect.SQLITE: DialectRules(Dialect.SQLITE, '"', "qmark", "-1"),
    Dialect.POSTGRES: DialectRules(Dialect.POSTGRES, '"', "numeric", None),
    Dialect.MYSQL: DialectRules(Dialect.MYSQL, "`", "format", "18446744073709551615"),
}


def rules_for(dialect: Dialect) -> DialectRules:
    return DIALECT_RULES[Dialect(dialect)]


def quote_identifier(identifier: str, dialect: Dialect) -> str:
    return rules_for(dialect).quote(identifier)


def to_bind_value(value: Any) -> Any:
    """Map a JSON value onto the scalar bound for it.

    Unsigned 64-bit integers wrap into the signed range; integers that
    fit neither are bound as floats. Arrays and objects are bound as
    their compact JSON text.
    """
    if value is None or isinstance(value, (bool, float, str)):
        return value
    if isinstance(value, int):
        if _INT64_MIN <= value <= _INT64_MAX:
            return value
        if _INT64_MAX < value < _UINT64:
            return value - _UINT64
        try:
            return float(value)
        except OverflowError as e:
            raise QueryBuildError("Integer is too large to bind", cause=e) from e
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


class _Statement:
    """Accumulates SQL fragments and bind parameters for one statement."""

    def __init__(self, rules: DialectRules) -> None:
        self.rules = rules
        self.parts: List[str] = []
        self.params: List[Any] = []

    def bind(self, value: Any) -> str:
        self.params.append(to_bind_value(value))
        return self.rules.placeholder(len(self.params))

    def add(self, fragment: str) -> None:
        self.parts.append(fragment)

    def build(self) -> BuiltQuery:
        return BuiltQuery(" ".join(self.parts), tuple(self.params))


def _column_ref(rules: DialectRules, table: Optional[str], column: str) -> str:
    if table is None:
        return rules.quote(column)
    return f"{rules.quote(table)}.{rules.quote(column)}"


def _comparison(stmt: _Statement, column: str, op: str, value: Any) -> str:
    if value is None:
        if op == "=":
            return f"{column} IS NULL"
        if op == "!=":
            return f"{column} IS NOT NULL"
        return f"{column} {_COMPARISONS[op]} NULL"
    return f"{column} {_COMPARISONS[op]} {stmt.bind(value)}"


def _membership(stmt: _Statement, column: str, negate: bool, value: Any) -> str:
    items = value if isinstance(value, list) else [value]
    if not items:
        return "1 = 1" if negate else "1 = 2"
    rendered = ", ".join("NULL" if item is None else stmt.bind(item) for item in items)
    keyword = "NOT IN" if negate else "IN"
    return f"{column} {keyword} ({rendered})"


def _predicate(stmt: _Statement, table: Optional[str], cond: FilterCond) -> str:
    column = _column_ref(stmt.rules, table, cond.column)
    op = cond.op

    if op == "is_null":
        return f"{column} IS NULL"
    if op == "is_not_null":
        return f"{column} IS NOT NULL"
    if op in ("like", "not_like"):
        pattern = cond.value if isinstance(cond.value, str) else ""
        keyword = "NOT LIKE" if op == "not_like" else "LIKE"
        return f"{column} {keyword} {stmt.bind(pattern)}"
    if op in ("in", "not_in"):
        return _membership(stmt, column, op == "not_in", cond.value)
    if op not in _COMPARISONS:
        op = "="
    return _comparison(stmt, column, op, cond.value)


def _where(stmt: _Statement, predicates: List[str]) -> None:
    if predicates:
        stmt.add("WHERE " + " AND ".join(predicates))


def _paging(stmt: _Statement, limit: Optional[int], offset: Optional[int]) -> None:
    if limit is not None:
        stmt.add(f"LIMIT {stmt.bind(min(limit, _INT64_MAX))}")
    elif offset is not None and stmt.rules.unbounded_limit is not None:
        stmt.add(f"LIMIT {stmt.rules.unbounded_limit}")
    if offset is not None:
        stmt.add(f"OFFSET {stmt.bind(min(offset, _INT64_MAX))}")


def build_select(spec: SelectSpec, dialect: Dialect) -> BuiltQuery:
    """Build a SELECT for ``spec``.

    Columns, filters and the sort key are qualified with the table name.
    Filters are AND-combined in order; paging comes last.
    """
    rules = rules_for(dialect)
    stmt = _Statement(rules)

    if spec.columns:
        select_list = ", ".join(_column_ref(rules, spec.table, c) for c in spec.columns)
    else:
        select_list = "*"
    stmt.add(f"SELECT {select_list} FROM {rules.quote(spec.table)}")

    _where(stmt, [_predicate(stmt, spec.table, cond) for cond in spec.filters])

    if spec.sort is not None:
        direction = "ASC" if spec.sort.ascending else "DESC"
        stmt.add(f"ORDER BY {_column_ref(rules, spec.table, spec.sort.column)} {direction}")

    _paging(stmt, spec.limit, spec.offset)
    return stmt.build()


def build_insert(spec: InsertSpec, dialect: Dialect) -> BuiltQuery:
    """Build a single-row INSERT.

    Raises:
        QueryBuildError: If the insert has no values
    """
    if not spec.values:
        raise QueryBuildError(
            "INSERT requires at least one column",
            context={"table": spec.table},
        )
    rules = rules_for(dialect)
    stmt = _Statement(rules)

    columns = ", ".join(rules.quote(column) for column, _ in spec.values)
    binds = ", ".join(
        "NULL" if value is None else stmt.bind(value) for _, value in spec.values
    )
    stmt.add(f"INSERT INTO {rules.quote(spec.table)} ({columns}) VALUES ({binds})")
    return stmt.build()


def _restricted_filters(stmt: _Statement, filters: Sequence[FilterCond]) -> List[str]:
    predicates = []
    for cond in filters:
        op = cond.op if cond.op in ("=", "!=") else "="
        predicates.append(_comparison(stmt, _column_ref(stmt.rules, None, cond.column), op, cond.value))
    return predicates


def build_update(spec: UpdateSpec, dialect: Dialect) -> BuiltQuery:
    """Build an UPDATE; filters accept only ``=`` and ``!=``.

    An UPDATE without filters touches every row.

    Raises:
        QueryBuildError: If the update has no assignments
    """
    if not spec.values:
        raise QueryBuildError(
            "UPDATE requires at least one assignment",
            context={"table": spec.table},
        )
    rules = rules_for(dialect)
    stmt = _Statement(rules)

    assignments = ", ".join(
        f"{rules.quote(column)} = {'NULL' if value is None else stmt.bind(value)}"
        for column, value in spec.values
    )
    stmt.add(f"UPDATE {rules.quote(spec.table)} SET {assignments}")
    _where(stmt, _restricted_filters(stmt, spec.filters))
    return stmt.build()


def build_delete(spec: DeleteSpec, dialect: Dialect) -> BuiltQuery:
    rules = rules_for(dialect)
    stmt = _Statement(rules)
    stmt.add(f"DELETE FROM {rules.quote(spec.table)}")
    _where(stmt, _restricted_filters(stmt, spec.filters))
    return stmt.build()
