"""Unit tests for result materialization."""

import datetime
import decimal
import uuid

import pytest

from querybridge.database.materializer import materialize, to_canonical
from querybridge.database.models import QueryResult, RawResult


class TestToCanonical:
    """Test per-cell conversion."""

    @pytest.mark.parametrize("value", [None, True, False, 0, 42, -(2 ** 63), 2 ** 63 - 1, 1.25, "", "héllo"])
    def test_canonical_values_unchanged(self, value):
        """Test values already canonical pass through with their type."""
        result = to_canonical(value)

        assert result == value
        assert type(result) is type(value)

    def test_bool_stays_bool(self):
        """Test booleans are not turned into integers."""
        assert to_canonical(True) is True

    def test_integer_beyond_int64_becomes_float(self):
        """Test integers outside 64 bits fall through to float."""
        assert to_canonical(2 ** 64) == float(2 ** 64)
        assert isinstance(to_canonical(2 ** 64), float)

    @pytest.mark.parametrize("value,expected", [
        (b"\x00\x01\xff", "AAH/"),
        (bytearray(b"hi"), "aGk="),
        (memoryview(b"hi"), "aGk="),
    ])
    def test_binary_becomes_base64(self, value, expected):
        """Test binary cells are base64 text."""
        assert to_canonical(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (decimal.Decimal("12.50"), "12.50"),
        (uuid.UUID("12345678-1234-5678-1234-567812345678"), "12345678-1234-5678-1234-567812345678"),
        (datetime.date(2024, 5, 2), "2024-05-02"),
        (datetime.datetime(2024, 5, 2, 10, 30, 0), "2024-05-02T10:30:00"),
        (datetime.time(10, 30), "10:30:00"),
        (datetime.timedelta(hours=1, minutes=2), "1:02:00"),
    ])
    def test_driver_types_with_text_form(self, value, expected):
        """Test driver-native types with a faithful text form."""
        assert to_canonical(value) == expected

    @pytest.mark.parametrize("value", [object(), [1, 2], {"a": 1}])
    def test_unrecognized_becomes_none(self, value):
        """Test anything else is null."""
        assert to_canonical(value) is None


class TestMaterialize:
    """Test row capping and truncation."""

    def _raw(self, count):
        return RawResult(columns=["n"], rows=[(i,) for i in range(count)])

    def test_exactly_cap_rows_not_truncated(self):
        """Test a result of exactly cap rows is complete."""
        result = materialize(self._raw(3), cap=3)

        assert result.rows == [[0], [1], [2]]
        assert result.truncated is False

    def test_more_than_cap_rows_truncated(self):
        """Test cap + 1 rows yields cap rows and the truncation flag."""
        result = materialize(self._raw(4), cap=3)

        assert result.rows == [[0], [1], [2]]
        assert result.truncated is True

    def test_no_cap_keeps_all(self):
        """Test cap=None keeps every row."""
        result = materialize(self._raw(5))

        assert len(result.rows) == 5
        assert result.truncated is False

    def test_empty_result_has_no_columns(self):
        """Test zero rows yields an empty column list."""
        result = materialize(RawResult(columns=["id", "name"], rows=[]), cap=10)

        assert result == QueryResult(columns=[], rows=[], truncated=False)

    def test_rows_match_column_count(self):
        """Test every row has one value per column."""
        raw = RawResult(columns=["id", "blob", "price"], rows=[(1, b"x", decimal.Decimal("1.0"))])

        result = materialize(raw, cap=10)

        assert result.columns == ["id", "blob", "price"]
        assert result.rows == [[1, "eA==", "1.0"]]
        assert all(len(row) == len(result.columns) for row in result.rows)

    def test_rows_affected_is_copied(self):
        """Test write statement counts are carried over."""
        result = materialize(RawResult(rows_affected=3))

        assert result.rows_affected == 3
        assert result.to_dict() == {"columns": [], "rows": [], "truncated": False}
