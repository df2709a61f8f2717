"""
SQL Compiler for the query builder.

Renders a QueryModel into SQL text for a target dialect.

The compiler is pure and never raises: a model the validator would
reject still compiles to some text. Clauses with nothing in them are
left out entirely.
"""

from packages.core.query_model.join_resolver import JoinStep, resolve_joins
from packages.core.query_model.models import (
    AggregateFunction,
    ComparisonOperator,
    ConditionGroup,
    HavingCondition,
    JoinType,
    OrderByClause,
    QueryModel,
    QueryTable,
    SelectedColumn,
    WhereCondition,
)
from packages.core.schema_registry.registry import FieldType
from packages.core.sql_compiler.dialects import Dialect, DialectAdapter, get_adapter
from packages.core.sql_compiler.formatter import ValueFormatter

NO_TABLES_SQL = "-- No tables selected"

# Stand-in sort key for dialects that only page an ordered result.
NO_ORDER_SQL = "(SELECT NULL)"

# Aggregates whose result is numeric whatever the column type is.
_NUMERIC_AGGREGATES = frozenset(
    {
        AggregateFunction.COUNT,
        AggregateFunction.COUNT_DISTINCT,
        AggregateFunction.SUM,
        AggregateFunction.AVG,
    }
)

_JOIN_KEYWORDS: dict[JoinType, str] = {
    JoinType.INNER: "INNER JOIN",
    JoinType.LEFT: "LEFT JOIN",
    JoinType.RIGHT: "RIGHT JOIN",
    JoinType.FULL: "FULL OUTER JOIN",
    JoinType.CROSS: "CROSS JOIN",
}

# Outer side flips when a join brings in its left-hand table.
_REVERSED_JOINS: dict[JoinType, JoinType] = {
    JoinType.LEFT: JoinType.RIGHT,
    JoinType.RIGHT: JoinType.LEFT,
}


# -----------------------------
# Compiler
# -----------------------------


class SQLCompiler:
    """Compiles a QueryModel into a SELECT statement string."""

    def __init__(self, dialect: Dialect | str = Dialect.POSTGRES):
        """
        Initialize the compiler.

        Args:
            dialect: Target database; controls identifier quoting,
                literal escaping and LIMIT/OFFSET syntax.
        """
        self._adapter: DialectAdapter = get_adapter(dialect)
        self._formatter = ValueFormatter(dialect)

    @property
    def dialect(self) -> Dialect:
        return self._adapter.dialect

    def compile(self, model: QueryModel) -> str:
        """
        Compile the model to SQL.

        Args:
            model: The query model to render.

        Returns:
            Single-line SQL text without a trailing semicolon.
        """
        if not model.tables:
            return NO_TABLES_SQL

        clauses = [
            self._select_clause(model),
            self._from_clause(model),
            self._where_clause(model),
            self._group_by_clause(model),
            self._having_clause(model),
            self._order_by_clause(model),
            self._adapter.render_pagination(model.limit, model.offset),
        ]
        return " ".join(clause for clause in clauses if clause)

    # -------------------------
    # SELECT
    # -------------------------

    def _select_clause(self, model: QueryModel) -> str:
        keyword = "SELECT DISTINCT" if model.distinct else "SELECT"
        if not model.columns:
            return f"{keyword} *"

        columns = [self._render_column(col, model.distinct) for col in model.columns]
        return f"{keyword} {', '.join(columns)}"

    def _render_column(self, column: SelectedColumn, row_distinct: bool) -> str:
        column_ref = self._column(column.table_alias, column.column_name)
        per_column_distinct = column.distinct and not row_distinct

        if column.aggregate is None:
            expr = f"DISTINCT {column_ref}" if per_column_distinct else column_ref
        elif per_column_distinct and column.aggregate != AggregateFunction.COUNT_DISTINCT:
            expr = f"{column.aggregate.value}(DISTINCT {column_ref})"
        else:
            expr = self._aggregate(column.aggregate, column_ref)

        if column.alias:
            expr += f" AS {self._adapter.quote_identifier(column.alias)}"
        return expr

    # -------------------------
    # FROM / JOIN
    # -------------------------

    def _from_clause(self, model: QueryModel) -> str:
        plan = resolve_joins(model)
        parts = [f"FROM {self._table(model.tables[0])}"]
        for step in plan.steps:
            parts.append(self._render_join(step, model))
        return " ".join(parts)

    def _render_join(self, step: JoinStep, model: QueryModel) -> str:
        """
        Render one planned join.

        When the join brings in its left-hand table the outer side flips,
        so LEFT and RIGHT swap.
        """
        join = step.join
        join_type = join.join_type
        if step.reversed:
            join_type = _REVERSED_JOINS.get(join_type, join_type)

        table = self._table(model.get_table(step.target_alias))
        keyword = _JOIN_KEYWORDS[join_type]
        if join_type == JoinType.CROSS:
            return f"{keyword} {table}"

        left = self._column(join.left_alias, join.left_column)
        right = self._column(join.right_alias, join.right_column)
        return f"{keyword} {table} ON {left} {join.operator.value} {right}"

    # -------------------------
    # WHERE
    # -------------------------

    def _where_clause(self, model: QueryModel) -> str:
        if model.where is None:
            return ""
        rendered = self._render_group(model.where, model, depth=0)
        return f"WHERE {rendered}" if rendered else ""

    def _render_group(self, group: ConditionGroup, model: QueryModel, depth: int) -> str:
        """
        Render a group and its subtree.

        Nested groups (depth > 0) are wrapped in parentheses. Empty groups
        render as an empty string and are skipped by their parent.
        """
        parts: list[str] = []
        for node in group.children:
            match node:
                case WhereCondition():
                    parts.append(self._render_condition(node, model))
                case ConditionGroup():
                    nested = self._render_group(node, model, depth + 1)
                    if nested:
                        parts.append(nested)

        if not parts:
            return ""

        rendered = f" {group.operator.value} ".join(parts)
        return f"({rendered})" if depth > 0 else rendered

    def _render_condition(self, condition: WhereCondition, model: QueryModel) -> str:
        column_ref = self._column(condition.table_alias, condition.column_name)
        data_type = model.column_data_type(condition.table_alias, condition.column_name)

        value = condition.value
        match condition.operator:
            case ComparisonOperator.IN | ComparisonOperator.NOT_IN:
                value = condition.values or _listify(condition.value)
            case ComparisonOperator.BETWEEN:
                value = (condition.value, condition.value2)

        expr = self._formatter.format(value, data_type, condition.operator)
        if not expr:
            return f"{column_ref} {condition.operator.value}"
        return f"{column_ref} {condition.operator.value} {expr}"

    # -------------------------
    # GROUP BY / HAVING
    # -------------------------

    def _group_by_clause(self, model: QueryModel) -> str:
        if not model.group_by:
            return ""
        columns = [self._column(g.table_alias, g.column_name) for g in model.group_by]
        return f"GROUP BY {', '.join(columns)}"

    def _having_clause(self, model: QueryModel) -> str:
        if not model.having:
            return ""
        conditions = [self._render_having(h, model) for h in model.having]
        return f"HAVING {' AND '.join(conditions)}"

    def _render_having(self, having: HavingCondition, model: QueryModel) -> str:
        expr = self._aggregate(
            having.aggregate, self._column(having.table_alias, having.column_name)
        )
        if having.aggregate in _NUMERIC_AGGREGATES:
            data_type: str | FieldType | None = FieldType.NUMERIC
        else:
            data_type = model.column_data_type(having.table_alias, having.column_name)

        value = self._formatter.format(having.value, data_type, having.operator)
        return f"{expr} {having.operator.value} {value}"

    # -------------------------
    # ORDER BY
    # -------------------------

    def _order_by_clause(self, model: QueryModel) -> str:
        if model.order_by:
            return "ORDER BY " + ", ".join(
                self._render_order_by(o) for o in model.order_by
            )

        paged = model.limit is not None or model.offset is not None
        if paged and self._adapter.paging_requires_order:
            return f"ORDER BY {NO_ORDER_SQL}"
        return ""

    def _render_order_by(self, order: OrderByClause) -> str:
        return f"{self._column(order.table_alias, order.column_name)} {order.direction.value}"

    # -------------------------
    # Helpers
    # -------------------------

    def _column(self, table_alias: str, column_name: str) -> str:
        return self._adapter.qualified_column(table_alias, column_name)

    def _table(self, table: QueryTable) -> str:
        name = self._adapter.qualified_table(table.schema_name, table.table_name)
        return f"{name} AS {self._adapter.quote_identifier(table.alias)}"

    @staticmethod
    def _aggregate(aggregate: AggregateFunction, column_ref: str) -> str:
        match aggregate:
            case AggregateFunction.COUNT_DISTINCT:
                return f"COUNT(DISTINCT {column_ref})"
            case _:
                return f"{aggregate.value}({column_ref})"


def compile_query(model: QueryModel, dialect: Dialect | str = Dialect.POSTGRES) -> str:
    """Compile ``model`` for ``dialect``."""
    return SQLCompiler(dialect).compile(model)


def _listify(value: object) -> tuple:
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)
