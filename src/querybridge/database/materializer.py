# src/querybridge/database/materializer.py
"""Conversion of driver rows into canonical query results.

Canonical values are None, bool, int (signed 64-bit), float and str.
Cells are converted in a fixed order: 64-bit integer, float, boolean,
string, then binary (base64 text). Anything else becomes None.
"""

import base64
import datetime
import decimal
import uuid
from typing import Any, List, Optional, Sequence

from .models import QueryResult, RawResult

_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1

# Driver types that have a faithful text form.
_TEXTUAL = (decimal.Decimal, uuid.UUID)
_TEMPORAL = (datetime.datetime, datetime.date, datetime.time)


def to_canonical(value: Any) -> Any:
    """Convert one driver-native cell value."""
    if value is None:
        return None
    # bool is an int subclass; keep the driver's boolean as a boolean
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        if _INT64_MIN <= value <= _INT64_MAX:
            return value
        return float(value)
    if isinstance(value, float):
        return value
    if isinstance(value, str):
        return value
    if isinstance(value, _TEXTUAL):
        return str(value)
    if isinstance(value, _TEMPORAL):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return None


def materialize_rows(rows: Sequence[Sequence[Any]], cap: int) -> List[List[Any]]:
    return [[to_canonical(cell) for cell in row] for row in rows[:cap]]


def materialize(raw: RawResult, cap: Optional[int] = None) -> QueryResult:
    """Build a QueryResult from raw driver output.

    Column names are only reported when at least one row came back.
    ``truncated`` is set when the driver returned more than ``cap`` rows;
    engines fetch ``cap + 1`` rows so the extra row signals that more
    data exists.

    Args:
        raw: Rows and column names as returned by the engine
        cap: Maximum number of rows to keep; None keeps all
    """
    fetched = len(raw.rows)
    limit = fetched if cap is None else max(cap, 0)

    return QueryResult(
        columns=list(raw.columns) if fetched else [],
        rows=materialize_rows(raw.rows, limit),
        truncated=fetched > limit,
        rows_affected=raw.rows_affected,
    )
