"""
Tests for the Query Validator.

Tests that QueryModel objects are checked for grouping, reference and
value problems, and that problems come back as messages, not exceptions.
"""

import pytest

from packages.core.query_model.models import (
    AggregateFunction,
    ComparisonOperator,
    ConditionGroup,
    GroupByClause,
    HavingCondition,
    JoinClause,
    OrderByClause,
    QueryModel,
    QueryTable,
    SelectedColumn,
    WhereCondition,
)
from packages.core.safety.validator import (
    QueryValidationError,
    QueryValidator,
    ValidationResult,
    validate_query,
)


# -----------------------------
# Fixtures
# -----------------------------


@pytest.fixture
def validator() -> QueryValidator:
    """Create a validator with the default nesting limit."""
    return QueryValidator()


@pytest.fixture
def users() -> QueryTable:
    return QueryTable(alias="u", schema_name="public", table_name="users")


@pytest.fixture
def orders() -> QueryTable:
    return QueryTable(alias="o", schema_name="public", table_name="orders")


def where_of(*conditions: WhereCondition) -> ConditionGroup:
    return ConditionGroup(id="root", conditions=conditions)


USERS_ORDERS = JoinClause(
    id="j1", left_alias="u", left_column="id", right_alias="o", right_column="user_id"
)

ORDERS_PRODUCTS = JoinClause(
    id="j2",
    left_alias="o",
    left_column="product_id",
    right_alias="p",
    right_column="product_id",
)


# -----------------------------
# Valid Query Tests
# -----------------------------


class TestValidQueries:
    """Tests for valid query scenarios."""

    def test_single_table(self, validator: QueryValidator, users: QueryTable) -> None:
        result = validator.validate(QueryModel(tables=(users,)))
        assert result.valid is True
        assert result.errors == []
        result.raise_for_errors()  # Should not raise

    def test_joined_tables(
        self, validator: QueryValidator, users: QueryTable, orders: QueryTable
    ) -> None:
        model = QueryModel(
            tables=(users, orders),
            columns=(SelectedColumn(id="c1", table_alias="o", column_name="quantity"),),
            joins=(
                JoinClause(
                    id="j1",
                    left_alias="u",
                    left_column="id",
                    right_alias="o",
                    right_column="user_id",
                ),
            ),
        )
        assert validator.validate(model).valid is True


# -----------------------------
# Table Tests
# -----------------------------


class TestTables:
    """Tests for the table rules."""

    def test_no_tables(self, validator: QueryValidator) -> None:
        result = validator.validate(QueryModel.empty())
        assert result == ValidationResult(valid=False, errors=["Select at least one table"])

    def test_unjoined_table(
        self, validator: QueryValidator, users: QueryTable, orders: QueryTable
    ) -> None:
        result = validator.validate(QueryModel(tables=(users, orders)))
        assert result.errors == ["Table 'o' is not joined to the query"]

    def test_duplicate_table_alias(self, validator: QueryValidator) -> None:
        model = QueryModel(
            tables=(
                QueryTable(alias="t", table_name="users"),
                QueryTable(alias="t", table_name="orders"),
            ),
            joins=(
                JoinClause(
                    id="j1",
                    left_alias="t",
                    left_column="id",
                    right_alias="t",
                    right_column="user_id",
                ),
            ),
        )
        assert validator.validate(model).errors == ["Table alias 't' is used by 2 tables"]

    def _chain(self, *joins: JoinClause) -> QueryModel:
        return QueryModel(
            tables=(
                QueryTable(alias="u", schema_name="public", table_name="users"),
                QueryTable(alias="o", schema_name="public", table_name="orders"),
                QueryTable(alias="p", schema_name="public", table_name="products"),
            ),
            joins=joins,
        )

    def test_joins_added_in_reverse_order(self, validator: QueryValidator) -> None:
        model = self._chain(ORDERS_PRODUCTS, USERS_ORDERS)
        assert validator.validate(model).valid is True

    def test_join_not_touching_first_table(self, validator: QueryValidator) -> None:
        """A join between two later tables never reaches FROM."""
        model = self._chain(ORDERS_PRODUCTS)
        assert validator.validate(model).errors == [
            "Join o.product_id = p.product_id does not connect to the query",
            "Table 'o' is not joined to the query",
            "Table 'p' is not joined to the query",
        ]


# -----------------------------
# Grouping Tests
# -----------------------------


class TestGrouping:
    """Bare columns must be grouped once aggregation is in play."""

    def test_mixed_columns_without_group_by(
        self, validator: QueryValidator, users: QueryTable
    ) -> None:
        """One aggregated and one bare column gives exactly one error."""
        model = QueryModel(
            tables=(users,),
            columns=(
                SelectedColumn(
                    id="c1",
                    table_alias="u",
                    column_name="id",
                    aggregate=AggregateFunction.SUM,
                ),
                SelectedColumn(id="c2", table_alias="u", column_name="status"),
            ),
        )
        result = validator.validate(model)

        assert result.valid is False
        assert result.errors == [
            "Column u.status must be in GROUP BY or use an aggregate function"
        ]

        grouped = model.model_copy(
            update={"group_by": (GroupByClause(table_alias="u", column_name="status"),)}
        )
        assert validator.validate(grouped).valid is True

    def test_group_by_without_aggregates(
        self, validator: QueryValidator, users: QueryTable
    ) -> None:
        """A GROUP BY alone also requires every bare column to be grouped."""
        model = QueryModel(
            tables=(users,),
            columns=(
                SelectedColumn(id="c1", table_alias="u", column_name="status"),
                SelectedColumn(id="c2", table_alias="u", column_name="email"),
            ),
            group_by=(GroupByClause(table_alias="u", column_name="status"),),
        )
        assert validator.validate(model).errors == [
            "Column u.email must be in GROUP BY or use an aggregate function"
        ]

    def test_plain_columns_need_no_grouping(
        self, validator: QueryValidator, users: QueryTable
    ) -> None:
        model = QueryModel(
            tables=(users,),
            columns=(SelectedColumn(id="c1", table_alias="u", column_name="email"),),
        )
        assert validator.validate(model).valid is True

    def test_duplicate_column_alias(
        self, validator: QueryValidator, users: QueryTable
    ) -> None:
        model = QueryModel(
            tables=(users,),
            columns=(
                SelectedColumn(id="c1", table_alias="u", column_name="id", alias="x"),
                SelectedColumn(id="c2", table_alias="u", column_name="email", alias="x"),
            ),
        )
        assert validator.validate(model).errors == ["Column alias 'x' is used by 2 columns"]


# -----------------------------
# Reference Tests
# -----------------------------


class TestReferences:
    """Every clause must refer to a table in the query."""

    def test_dangling_references(
        self, validator: QueryValidator, users: QueryTable
    ) -> None:
        model = QueryModel(
            tables=(users,),
            columns=(SelectedColumn(id="c1", table_alias="x", column_name="id"),),
            where=where_of(
                WhereCondition(id="w1", table_alias="y", column_name="id", value=1)
            ),
            order_by=(OrderByClause(id="s1", table_alias="z", column_name="id"),),
        )
        assert validator.validate(model).errors == [
            "Column x.id references non-existent table: x",
            "WHERE condition on y.id references non-existent table: y",
            "ORDER BY z.id references non-existent table: z",
        ]

    def test_dangling_join(self, validator: QueryValidator, users: QueryTable) -> None:
        model = QueryModel(
            tables=(users,),
            joins=(
                JoinClause(
                    id="j1",
                    left_alias="u",
                    left_column="id",
                    right_alias="gone",
                    right_column="user_id",
                ),
            ),
        )
        assert validator.validate(model).errors == [
            "JOIN right side references non-existent table: gone"
        ]


# -----------------------------
# Condition Value Tests
# -----------------------------


class TestConditionValues:
    """Each operator needs the values it renders with."""

    @pytest.mark.parametrize(
        "condition,message",
        [
            (
                WhereCondition(id="w", table_alias="u", column_name="id"),
                "Condition on u.id requires a value",
            ),
            (
                WhereCondition(
                    id="w",
                    table_alias="u",
                    column_name="id",
                    operator=ComparisonOperator.IN,
                ),
                "IN on u.id requires at least one value",
            ),
            (
                WhereCondition(
                    id="w",
                    table_alias="u",
                    column_name="id",
                    operator=ComparisonOperator.BETWEEN,
                    value=1,
                ),
                "BETWEEN on u.id requires two values",
            ),
        ],
    )
    def test_missing_values(
        self,
        validator: QueryValidator,
        users: QueryTable,
        condition: WhereCondition,
        message: str,
    ) -> None:
        model = QueryModel(tables=(users,), where=where_of(condition))
        assert validator.validate(model).errors == [message]

    @pytest.mark.parametrize("value", [0, False])
    def test_list_operator_with_falsy_single_value(
        self, validator: QueryValidator, users: QueryTable, value: object
    ) -> None:
        condition = WhereCondition(
            id="w",
            table_alias="u",
            column_name="id",
            operator=ComparisonOperator.IN,
            value=value,
        )
        model = QueryModel(tables=(users,), where=where_of(condition))
        assert validator.validate(model).valid is True

    def test_null_operator_needs_no_value(
        self, validator: QueryValidator, users: QueryTable
    ) -> None:
        condition = WhereCondition(
            id="w",
            table_alias="u",
            column_name="email",
            operator=ComparisonOperator.IS_NULL,
        )
        model = QueryModel(tables=(users,), where=where_of(condition))
        assert validator.validate(model).valid is True

    def test_having_needs_value(
        self, validator: QueryValidator, users: QueryTable
    ) -> None:
        model = QueryModel(
            tables=(users,),
            having=(
                HavingCondition(
                    id="h1",
                    table_alias="u",
                    column_name="id",
                    aggregate=AggregateFunction.COUNT,
                ),
            ),
        )
        assert validator.validate(model).errors == [
            "HAVING COUNT(u.id) requires a value"
        ]


# -----------------------------
# Nesting Tests
# -----------------------------


class TestNesting:
    """Trees built outside the editor are still depth-checked."""

    def test_too_deep(self, users: QueryTable) -> None:
        group = ConditionGroup(
            id="d2",
            conditions=(
                WhereCondition(id="w", table_alias="u", column_name="id", value=1),
            ),
        )
        root = ConditionGroup(id="d0", groups=(ConditionGroup(id="d1", groups=(group,)),))
        model = QueryModel(tables=(users,), where=root)

        assert validate_query(model).valid is True
        assert validate_query(model, max_nesting_depth=1).errors == [
            "Filter groups are nested 2 levels deep; the maximum is 1"
        ]


# -----------------------------
# Result Tests
# -----------------------------


class TestResult:
    """Tests for ValidationResult."""

    def test_raise_for_errors(self, validator: QueryValidator) -> None:
        result = validator.validate(QueryModel.empty())
        with pytest.raises(QueryValidationError) as exc_info:
            result.raise_for_errors()
        assert exc_info.value.errors == ["Select at least one table"]
        assert "Select at least one table" in str(exc_info.value)

    def test_errors_accumulate(self, validator: QueryValidator) -> None:
        """Rules never short-circuit; every problem is reported."""
        model = QueryModel(
            columns=(
                SelectedColumn(
                    id="c1",
                    table_alias="u",
                    column_name="id",
                    aggregate=AggregateFunction.COUNT,
                ),
                SelectedColumn(id="c2", table_alias="u", column_name="email"),
            ),
        )
        errors = validator.validate(model).errors
        assert errors[0] == "Select at least one table"
        assert errors[1].startswith("Column u.email must be in GROUP BY")
        assert len(errors) == 4
