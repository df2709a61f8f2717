"""
Value Formatter.

Turns a condition value into SQL literal text for a column's type
family and the condition's operator.

Formatting never raises: a value that does not fit the column's type
is written as a quoted string instead.
"""

import math
import re
from collections.abc import Sequence
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from packages.core.query_model.models import (
    LIST_OPERATORS,
    NULL_OPERATORS,
    ComparisonOperator,
)
from packages.core.schema_registry.registry import FieldType, classify_data_type
from packages.core.sql_compiler.dialects import Dialect, DialectAdapter, get_adapter

_TRUE_WORDS = frozenset({"true", "t", "1", "yes", "y"})
_FALSE_WORDS = frozenset({"false", "f", "0", "no", "n"})

_TEXT_OPERATORS = frozenset({ComparisonOperator.LIKE, ComparisonOperator.NOT_LIKE})

_NUMERIC_LITERAL = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


class ValueFormatter:
    """Type- and dialect-aware literal formatting."""

    def __init__(self, dialect: Dialect | str = Dialect.POSTGRES):
        self._adapter: DialectAdapter = get_adapter(dialect)

    def format(
        self,
        value: Any,
        data_type: str | FieldType | None,
        operator: ComparisonOperator | str = ComparisonOperator.EQ,
    ) -> str:
        """
        Render the value side of ``<column> <operator> <value>``.

        ``value`` is a sequence for IN / NOT IN and a pair for BETWEEN.
        Returns an empty string for IS NULL / IS NOT NULL.
        """
        operator = ComparisonOperator(operator)
        field_type = FieldType.STRING if operator in _TEXT_OPERATORS else data_type

        match operator:
            case op if op in NULL_OPERATORS:
                return ""
            case op if op in LIST_OPERATORS:
                items = _as_sequence(value)
                return "(" + ", ".join(self.literal(v, field_type) for v in items) + ")"
            case ComparisonOperator.BETWEEN:
                low, high = _as_bounds(value)
                return f"{self.literal(low, field_type)} AND {self.literal(high, field_type)}"
            case _:
                return self.literal(value, field_type)

    def literal(self, value: Any, data_type: str | FieldType | None) -> str:
        """
        Render one scalar as a SQL literal.

        With no declared type the family is taken from the Python value.
        """
        if value is None:
            return "NULL"

        if data_type:
            field_type = classify_data_type(data_type)
        else:
            field_type = _infer_field_type(value)

        match field_type:
            case FieldType.NUMERIC:
                return self._numeric(value)
            case FieldType.BOOLEAN:
                return self._boolean(value)
            case FieldType.DATE | FieldType.TIMESTAMP as field_type:
                return self._temporal(value, field_type)
            case _:
                return self._string(value)

    # -------------------------
    # Type families
    # -------------------------

    def _numeric(self, value: Any) -> str:
        if isinstance(value, bool):
            return self._string(value)
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            return repr(value) if math.isfinite(value) else self._string(value)
        if isinstance(value, Decimal):
            return str(value) if value.is_finite() else self._string(value)

        text = str(value).strip()
        if _NUMERIC_LITERAL.fullmatch(text) is None:
            return self._string(value)
        return text

    def _boolean(self, value: Any) -> str:
        if isinstance(value, bool):
            return self._adapter.format_boolean(value)
        if isinstance(value, int) and value in (0, 1):
            return self._adapter.format_boolean(bool(value))

        word = str(value).strip().lower()
        if word in _TRUE_WORDS:
            return self._adapter.format_boolean(True)
        if word in _FALSE_WORDS:
            return self._adapter.format_boolean(False)
        return self._string(value)

    def _temporal(self, value: Any, field_type: FieldType) -> str:
        if isinstance(value, (datetime, date, time)):
            text = value.isoformat()
        else:
            text = str(value)
        return self._adapter.format_temporal(self._adapter.quote_string(text), field_type)

    def _string(self, value: Any) -> str:
        if isinstance(value, bool):
            value = "true" if value else "false"
        return self._adapter.quote_string(str(value))


def format_value(
    value: Any,
    data_type: str | FieldType | None,
    operator: ComparisonOperator | str = ComparisonOperator.EQ,
    dialect: Dialect | str = Dialect.POSTGRES,
) -> str:
    """Module-level shortcut for ``ValueFormatter(dialect).format(...)``."""
    return ValueFormatter(dialect).format(value, data_type, operator)


def _infer_field_type(value: Any) -> FieldType:
    if isinstance(value, bool):
        return FieldType.BOOLEAN
    if isinstance(value, (int, float, Decimal)):
        return FieldType.NUMERIC
    if isinstance(value, datetime):
        return FieldType.TIMESTAMP
    if isinstance(value, date):
        return FieldType.DATE
    return FieldType.STRING


def _as_sequence(value: Any) -> Sequence[Any]:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return value
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return (value,)


def _as_bounds(value: Any) -> tuple[Any, Any]:
    if isinstance(value, (list, tuple)):
        low = value[0] if len(value) > 0 else None
        high = value[1] if len(value) > 1 else None
        return low, high
    return value, None
