"""Query model for the visual query builder: types, aliases, ids and tree edits."""

from .models import (
    HAVING_OPERATORS,
    MAX_NESTING_DEPTH,
    AggregateFunction,
    ColumnInfo,
    ComparisonOperator,
    ConditionGroup,
    ConditionNode,
    GroupByClause,
    HavingCondition,
    JoinClause,
    JoinType,
    LogicalOperator,
    OrderByClause,
    QueryModel,
    QueryTable,
    SelectedColumn,
    SortDirection,
    WhereCondition,
)
from .aliases import allocate_alias
from .ids import IdGenerator, SequentialIdGenerator, UuidIdGenerator
from .join_resolver import JoinPlan, JoinStep, resolve_joins
from .condition_tree import (
    add_condition,
    add_nested_group,
    remove_condition,
    remove_group,
    update_group,
)

__all__ = [
    # Models
    "HAVING_OPERATORS",
    "MAX_NESTING_DEPTH",
    "AggregateFunction",
    "ColumnInfo",
    "ComparisonOperator",
    "ConditionGroup",
    "ConditionNode",
    "GroupByClause",
    "HavingCondition",
    "JoinClause",
    "JoinType",
    "LogicalOperator",
    "OrderByClause",
    "QueryModel",
    "QueryTable",
    "SelectedColumn",
    "SortDirection",
    "WhereCondition",
    # Aliases & ids
    "allocate_alias",
    "IdGenerator",
    "SequentialIdGenerator",
    "UuidIdGenerator",
    # Joins
    "JoinPlan",
    "JoinStep",
    "resolve_joins",
    # Condition tree
    "add_condition",
    "add_nested_group",
    "remove_condition",
    "remove_group",
    "update_group",
]
