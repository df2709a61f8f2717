"""
Query Validator.

Checks a QueryModel for states that would not make a valid query and
reports them as human-readable messages.

Problems are returned as data, never raised: the builder shows the
list and only gates execution on it.
"""

from collections import Counter

from pydantic import BaseModel, ConfigDict

from packages.core.query_model.condition_tree import iter_conditions, tree_height
from packages.core.query_model.join_resolver import resolve_joins
from packages.core.query_model.models import (
    LIST_OPERATORS,
    MAX_NESTING_DEPTH,
    NULL_OPERATORS,
    ComparisonOperator,
    QueryModel,
    WhereCondition,
)


# -----------------------------
# Errors
# -----------------------------


class QueryValidationError(Exception):
    """Raised by ``ValidationResult.raise_for_errors`` for an invalid model."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


# -----------------------------
# Result
# -----------------------------


class ValidationResult(BaseModel):
    """Outcome of validating a model; ``valid`` iff ``errors`` is empty."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    errors: list[str]

    def raise_for_errors(self) -> None:
        """Raise QueryValidationError if the model is not valid."""
        if not self.valid:
            raise QueryValidationError(list(self.errors))


# -----------------------------
# Validator
# -----------------------------


class QueryValidator:
    """
    Validates QueryModel objects.

    Rules run in a fixed order and every error is collected; nothing
    short-circuits.
    """

    def __init__(self, max_nesting_depth: int = MAX_NESTING_DEPTH):
        """
        Initialize the validator.

        Args:
            max_nesting_depth: Deepest WHERE group allowed (root = 0).
        """
        self._max_nesting_depth = max_nesting_depth

    def validate(self, model: QueryModel) -> ValidationResult:
        """
        Validate the given model.

        Args:
            model: The QueryModel to check.

        Returns:
            ValidationResult with the errors in rule order.
        """
        errors: list[str] = []
        errors += self._validate_tables(model)
        errors += self._validate_grouping(model)
        errors += self._validate_column_aliases(model)
        errors += self._validate_references(model)
        errors += self._validate_condition_values(model)
        errors += self._validate_nesting(model)
        errors += self._validate_join_coverage(model)
        errors += self._validate_table_aliases(model)
        return ValidationResult(valid=not errors, errors=errors)

    # -------------------------
    # Validation Methods
    # -------------------------

    def _validate_tables(self, model: QueryModel) -> list[str]:
        if not model.tables:
            return ["Select at least one table"]
        return []

    def _validate_grouping(self, model: QueryModel) -> list[str]:
        """Bare columns must be grouped once grouping or aggregation is used."""
        aggregating = bool(model.group_by) or any(
            col.aggregate is not None for col in model.columns
        )
        if not aggregating:
            return []

        grouped = {(g.table_alias, g.column_name) for g in model.group_by}
        return [
            f"Column {col.table_alias}.{col.column_name} must be in GROUP BY "
            "or use an aggregate function"
            for col in model.columns
            if col.aggregate is None
            and (col.table_alias, col.column_name) not in grouped
        ]

    def _validate_column_aliases(self, model: QueryModel) -> list[str]:
        counts = Counter(col.alias for col in model.columns if col.alias)
        return [
            f"Column alias '{alias}' is used by {count} columns"
            for alias, count in counts.items()
            if count > 1
        ]

    def _validate_references(self, model: QueryModel) -> list[str]:
        """Every clause must point at a table that is in the query."""
        known = model.table_aliases()
        errors: list[str] = []

        def check(alias: str, what: str) -> None:
            if alias not in known:
                errors.append(f"{what} references non-existent table: {alias}")

        for col in model.columns:
            check(col.table_alias, f"Column {col.table_alias}.{col.column_name}")
        for join in model.joins:
            check(join.left_alias, "JOIN left side")
            check(join.right_alias, "JOIN right side")
        if model.where is not None:
            for condition in iter_conditions(model.where):
                check(
                    condition.table_alias,
                    f"WHERE condition on {condition.table_alias}.{condition.column_name}",
                )
        for group in model.group_by:
            check(group.table_alias, f"GROUP BY {group.table_alias}.{group.column_name}")
        for having in model.having:
            check(having.table_alias, f"HAVING {having.table_alias}.{having.column_name}")
        for order in model.order_by:
            check(order.table_alias, f"ORDER BY {order.table_alias}.{order.column_name}")

        return errors

    def _validate_condition_values(self, model: QueryModel) -> list[str]:
        """Each operator needs the value shape it renders with."""
        errors: list[str] = []
        if model.where is not None:
            for condition in iter_conditions(model.where):
                message = _value_problem(condition)
                if message:
                    errors.append(message)

        for having in model.having:
            if having.value is None or having.value == "":
                errors.append(
                    f"HAVING {having.aggregate.value}"
                    f"({having.table_alias}.{having.column_name}) requires a value"
                )
        return errors

    def _validate_nesting(self, model: QueryModel) -> list[str]:
        if model.where is None:
            return []
        depth = tree_height(model.where)
        if depth > self._max_nesting_depth:
            return [
                f"Filter groups are nested {depth} levels deep; "
                f"the maximum is {self._max_nesting_depth}"
            ]
        return []

    def _validate_join_coverage(self, model: QueryModel) -> list[str]:
        """
        Walk the joins the way the compiler places them.

        A join with neither side in FROM never renders, and a table no
        placed join brings in is left out of the query.
        """
        plan = resolve_joins(model)
        if plan is None:
            return []

        known = model.table_aliases()
        errors = [
            f"Join {j.left_alias}.{j.left_column} {j.operator.value} "
            f"{j.right_alias}.{j.right_column} does not connect to the query"
            for j in plan.stranded
            if j.left_alias in known and j.right_alias in known
        ]
        errors += [
            f"Table '{alias}' is not joined to the query"
            for alias in plan.unreachable
        ]
        return errors

    def _validate_table_aliases(self, model: QueryModel) -> list[str]:
        counts = Counter(table.alias for table in model.tables)
        return [
            f"Table alias '{alias}' is used by {count} tables"
            for alias, count in counts.items()
            if count > 1
        ]


def validate_query(
    model: QueryModel, max_nesting_depth: int = MAX_NESTING_DEPTH
) -> ValidationResult:
    """Validate ``model`` with a fresh QueryValidator."""
    return QueryValidator(max_nesting_depth).validate(model)


def _value_problem(condition: WhereCondition) -> str | None:
    column = f"{condition.table_alias}.{condition.column_name}"
    operator = condition.operator

    if operator in NULL_OPERATORS:
        return None
    if operator in LIST_OPERATORS:
        if not condition.values and _missing(condition.value):
            return f"{operator.value} on {column} requires at least one value"
        return None
    if operator == ComparisonOperator.BETWEEN:
        if _missing(condition.value) or _missing(condition.value2):
            return f"BETWEEN on {column} requires two values"
        return None
    if _missing(condition.value):
        return f"Condition on {column} requires a value"
    return None


def _missing(value: object) -> bool:
    return value is None or value == ""
