"""
Query model for the visual query builder.

These models describe a SELECT query as the builder assembles it:
tables, selected columns, joins, a WHERE condition tree, grouping,
HAVING, ordering and pagination.

Every model is frozen. Edits never mutate a value in place; they
build a new one (see ``operations`` and ``condition_tree``).
"""

from enum import Enum
from typing import Annotated, Any, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Root group is depth 0.
MAX_NESTING_DEPTH = 3


# -----------------------------
# Enums
# -----------------------------


class AggregateFunction(str, Enum):
    """Aggregate functions available in SELECT and HAVING."""

    COUNT = "COUNT"
    SUM = "SUM"
    AVG = "AVG"
    MIN = "MIN"
    MAX = "MAX"
    COUNT_DISTINCT = "COUNT_DISTINCT"


class ComparisonOperator(str, Enum):
    """Operators for WHERE and HAVING conditions."""

    EQ = "="
    NOT_EQ = "!="
    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"
    IN = "IN"
    NOT_IN = "NOT IN"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"
    BETWEEN = "BETWEEN"


HAVING_OPERATORS: frozenset[ComparisonOperator] = frozenset(
    {
        ComparisonOperator.EQ,
        ComparisonOperator.NOT_EQ,
        ComparisonOperator.GT,
        ComparisonOperator.LT,
        ComparisonOperator.GTE,
        ComparisonOperator.LTE,
    }
)

NULL_OPERATORS: frozenset[ComparisonOperator] = frozenset(
    {ComparisonOperator.IS_NULL, ComparisonOperator.IS_NOT_NULL}
)

LIST_OPERATORS: frozenset[ComparisonOperator] = frozenset(
    {ComparisonOperator.IN, ComparisonOperator.NOT_IN}
)


class LogicalOperator(str, Enum):
    """How a condition group combines its children."""

    AND = "AND"
    OR = "OR"


class JoinType(str, Enum):
    """Supported SQL join kinds."""

    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"


class SortDirection(str, Enum):
    """Sort direction for ORDER BY clauses."""

    ASC = "ASC"
    DESC = "DESC"


# -----------------------------
# Tables & Columns
# -----------------------------


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class ColumnInfo(_Frozen):
    """A column available on a table added to the query."""

    name: str
    data_type: str = ""


class QueryTable(_Frozen):
    """
    A table in the query.

    Examples:
        public.users AS u
        orders AS orders_1
    """

    alias: str
    schema_name: str = ""
    table_name: str
    columns: tuple[ColumnInfo, ...] = ()

    def get_column(self, column_name: str) -> ColumnInfo | None:
        for column in self.columns:
            if column.name == column_name:
                return column
        return None


class SelectedColumn(_Frozen):
    """
    A column in the SELECT list.

    Examples:
        u.id
        COUNT(u.status) AS status_count
        COUNT(DISTINCT u.email)
    """

    id: str
    table_alias: str
    column_name: str
    alias: str | None = None
    aggregate: AggregateFunction | None = None
    distinct: bool = False


class JoinClause(_Frozen):
    """
    A join between two tables of the query.

    Example:
        LEFT JOIN public.orders AS o ON u.id = o.user_id
    """

    id: str
    join_type: JoinType = JoinType.INNER
    left_alias: str
    left_column: str
    right_alias: str
    right_column: str
    operator: ComparisonOperator = ComparisonOperator.EQ

    @field_validator("operator")
    @classmethod
    def comparison_only(cls, v: ComparisonOperator) -> ComparisonOperator:
        if v not in HAVING_OPERATORS:
            raise ValueError(f"Operator '{v.value}' cannot be used in a join predicate")
        return v


# -----------------------------
# WHERE Condition Tree
# -----------------------------


class WhereCondition(_Frozen):
    """
    A single WHERE predicate.

    Value shape depends on the operator:
        IS NULL / IS NOT NULL   no value
        IN / NOT IN             values
        BETWEEN                 value and value2
        everything else         value
    """

    kind: Literal["condition"] = "condition"
    id: str
    table_alias: str
    column_name: str
    operator: ComparisonOperator = ComparisonOperator.EQ
    value: Any = None
    value2: Any = None
    values: tuple[Any, ...] = ()


class ConditionGroup(_Frozen):
    """
    A node of the WHERE tree combining conditions and nested groups.

    Conditions render before nested groups, each sequence in order.
    """

    kind: Literal["group"] = "group"
    id: str
    operator: LogicalOperator = LogicalOperator.AND
    conditions: tuple[WhereCondition, ...] = ()
    groups: tuple["ConditionGroup", ...] = ()

    @property
    def children(self) -> tuple["ConditionNode", ...]:
        """All direct children in render order."""
        return (*self.conditions, *self.groups)

    def is_empty(self) -> bool:
        return not self.conditions and not self.groups


ConditionNode = Annotated[
    Union[WhereCondition, ConditionGroup],
    Field(discriminator="kind"),
]


# -----------------------------
# Grouping & Ordering
# -----------------------------


class GroupByClause(_Frozen):
    """A GROUP BY column."""

    table_alias: str
    column_name: str


class HavingCondition(_Frozen):
    """
    A HAVING predicate over an aggregate.

    Example:
        COUNT(o.order_id) > 5
    """

    id: str
    table_alias: str
    column_name: str
    aggregate: AggregateFunction
    operator: ComparisonOperator = ComparisonOperator.GT
    value: Any = None

    @field_validator("operator")
    @classmethod
    def comparison_only(cls, v: ComparisonOperator) -> ComparisonOperator:
        if v not in HAVING_OPERATORS:
            raise ValueError(f"Operator '{v.value}' is not allowed in HAVING")
        return v


class OrderByClause(_Frozen):
    """An ORDER BY entry."""

    id: str
    table_alias: str
    column_name: str
    direction: SortDirection = SortDirection.ASC


# -----------------------------
# Root Query Model
# -----------------------------


class QueryModel(_Frozen):
    """
    Root object representing the query under construction.

    Owned by the builder session; the validator and compiler only
    read it.
    """

    tables: tuple[QueryTable, ...] = ()
    columns: tuple[SelectedColumn, ...] = ()
    joins: tuple[JoinClause, ...] = ()
    where: ConditionGroup | None = None
    group_by: tuple[GroupByClause, ...] = ()
    having: tuple[HavingCondition, ...] = ()
    order_by: tuple[OrderByClause, ...] = ()
    limit: int | None = Field(default=None, ge=1)
    offset: int | None = Field(default=None, ge=0)
    distinct: bool = False

    @classmethod
    def empty(cls) -> "QueryModel":
        return cls()

    def table_aliases(self) -> set[str]:
        return {table.alias for table in self.tables}

    def get_table(self, alias: str) -> QueryTable | None:
        for table in self.tables:
            if table.alias == alias:
                return table
        return None

    def column_data_type(self, table_alias: str, column_name: str) -> str | None:
        """Declared type of a column, or None when it is not known."""
        table = self.get_table(table_alias)
        if table is None:
            return None
        column = table.get_column(column_name)
        return column.data_type if column else None


# -----------------------------
# Helpers
# -----------------------------

_M = TypeVar("_M", bound=BaseModel)


def replace_fields(model: _M, **changes: Any) -> _M:
    """
    Return a validated copy of ``model`` with ``changes`` applied.

    Nested model instances are reused, not copied.
    """
    changes.pop("id", None)
    changes.pop("kind", None)
    if not changes:
        return model
    return type(model)(**{**dict(model), **changes})
