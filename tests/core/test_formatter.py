"""
Tests for the Value Formatter.

Tests that condition values become the right SQL literal for each column
type family, operator and dialect.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from packages.core.query_model.models import ComparisonOperator
from packages.core.schema_registry.registry import FieldType
from packages.core.sql_compiler.dialects import Dialect
from packages.core.sql_compiler.formatter import ValueFormatter, format_value


# -----------------------------
# Fixtures
# -----------------------------


@pytest.fixture
def formatter() -> ValueFormatter:
    """Create a Postgres formatter."""
    return ValueFormatter(Dialect.POSTGRES)


# -----------------------------
# String Tests
# -----------------------------


class TestStrings:
    """Tests for text literals."""

    def test_apostrophe_doubled(self, formatter: ValueFormatter) -> None:
        assert formatter.format("O'Brien", "varchar(100)") == "'O''Brien'"

    def test_plain_text(self, formatter: ValueFormatter) -> None:
        assert formatter.format("active", "text") == "'active'"

    def test_unknown_type_is_text(self, formatter: ValueFormatter) -> None:
        assert formatter.format("42", "jsonb") == "'42'"

    def test_like_always_quoted(self, formatter: ValueFormatter) -> None:
        """LIKE patterns are text even on numeric columns."""
        assert formatter.format("4%", "integer", ComparisonOperator.LIKE) == "'4%'"
        assert formatter.format(42, "integer", "NOT LIKE") == "'42'"

    def test_mysql_backslash(self) -> None:
        assert format_value("a\\b", "text", dialect=Dialect.MYSQL) == "'a\\\\b'"

    def test_postgres_backslash_untouched(self) -> None:
        assert format_value("a\\b", "text") == "'a\\b'"


# -----------------------------
# Numeric Tests
# -----------------------------


class TestNumbers:
    """Tests for numeric literals."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (42, "42"),
            ("42", "42"),
            (" 7 ", "7"),
            ("-3.5", "-3.5"),
            ("1e3", "1e3"),
            (3.25, "3.25"),
            (Decimal("10.50"), "10.50"),
        ],
    )
    def test_numeric_values(
        self, formatter: ValueFormatter, value: object, expected: str
    ) -> None:
        assert formatter.format(value, "integer") == expected

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("abc", "'abc'"),
            ("1_000", "'1_000'"),
            ("Infinity", "'Infinity'"),
            ("12; DROP TABLE users", "'12; DROP TABLE users'"),
            (float("nan"), "'nan'"),
            (True, "'true'"),
        ],
    )
    def test_non_numbers_fall_back_to_string(
        self, formatter: ValueFormatter, value: object, expected: str
    ) -> None:
        """A value that is not a number is quoted rather than rejected."""
        assert formatter.format(value, "numeric(10, 2)") == expected


# -----------------------------
# Boolean Tests
# -----------------------------


class TestBooleans:
    """Tests for boolean literals."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (True, "true"),
            (False, "false"),
            (1, "true"),
            (0, "false"),
            ("yes", "true"),
            ("F", "false"),
            ("maybe", "'maybe'"),
        ],
    )
    def test_postgres(
        self, formatter: ValueFormatter, value: object, expected: str
    ) -> None:
        assert formatter.format(value, "boolean") == expected

    def test_sqlserver_bit(self) -> None:
        assert format_value(True, "bit", dialect=Dialect.SQLSERVER) == "1"
        assert format_value("false", "bit", dialect=Dialect.SQLSERVER) == "0"


# -----------------------------
# Date / Time Tests
# -----------------------------


class TestTemporal:
    """Tests for date and timestamp literals."""

    def test_date_object(self, formatter: ValueFormatter) -> None:
        assert formatter.format(date(2024, 1, 1), "date") == "'2024-01-01'"

    def test_datetime_object(self, formatter: ValueFormatter) -> None:
        value = datetime(2024, 1, 1, 12, 30)
        assert formatter.format(value, "timestamp") == "'2024-01-01T12:30:00'"

    def test_string_passes_through_quoted(self, formatter: ValueFormatter) -> None:
        assert formatter.format("2024-01-01", "date") == "'2024-01-01'"

    def test_field_type_accepted(self, formatter: ValueFormatter) -> None:
        assert formatter.format("2024-01-01", FieldType.DATE) == "'2024-01-01'"


# -----------------------------
# Operator Shape Tests
# -----------------------------


class TestOperators:
    """Tests for values shaped by the operator."""

    def test_null_operators_have_no_value(self, formatter: ValueFormatter) -> None:
        assert formatter.format(None, "text", ComparisonOperator.IS_NULL) == ""
        assert formatter.format("x", "text", "IS NOT NULL") == ""

    def test_null_value(self, formatter: ValueFormatter) -> None:
        assert formatter.format(None, "text") == "NULL"

    def test_in_list(self, formatter: ValueFormatter) -> None:
        assert formatter.format(["a", "b"], "text", ComparisonOperator.IN) == "('a', 'b')"

    def test_not_in_mixed(self, formatter: ValueFormatter) -> None:
        """Each element is formatted on its own."""
        result = formatter.format([1, "x"], "integer", ComparisonOperator.NOT_IN)
        assert result == "(1, 'x')"

    def test_in_single_value(self, formatter: ValueFormatter) -> None:
        assert formatter.format(5, "integer", ComparisonOperator.IN) == "(5)"

    def test_between(self, formatter: ValueFormatter) -> None:
        assert formatter.format((1, 10), "integer", ComparisonOperator.BETWEEN) == "1 AND 10"

    def test_between_missing_bound(self, formatter: ValueFormatter) -> None:
        assert formatter.format([1], "integer", ComparisonOperator.BETWEEN) == "1 AND NULL"


# -----------------------------
# Untyped Column Tests
# -----------------------------


class TestUntypedColumns:
    """Without a declared type the Python value decides the family."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (5, "5"),
            (2.5, "2.5"),
            (True, "true"),
            (date(2024, 2, 29), "'2024-02-29'"),
            ("5", "'5'"),
        ],
    )
    def test_inferred(
        self, formatter: ValueFormatter, value: object, expected: str
    ) -> None:
        assert formatter.format(value, None) == expected
        assert formatter.format(value, "") == expected
