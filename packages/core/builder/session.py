"""
Query Builder Session.

The session is the single owner of a QueryModel. UI actions call its
methods; each method applies one edit from ``operations`` and then
re-runs validation and compilation, so ``sql`` and ``validation``
always describe the current model.

New entities get their ids from an injected IdGenerator.
"""

import logging
from typing import Any

from packages.core.query_model import condition_tree, operations
from packages.core.query_model.aliases import allocate_alias
from packages.core.query_model.ids import IdGenerator, create_id_generator
from packages.core.query_model.models import (
    AggregateFunction,
    ColumnInfo,
    ComparisonOperator,
    ConditionGroup,
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
from packages.core.safety.validator import QueryValidator, ValidationResult
from packages.core.schema_registry.registry import SchemaProvider, TableSchema
from packages.core.settings import BuilderSettings, get_settings
from packages.core.sql_compiler.compiler import SQLCompiler
from packages.core.sql_compiler.dialects import Dialect

logger = logging.getLogger(__name__)


class QueryBuilderSession:
    """
    Holds the query under construction for one builder window.

    Example:
        session = QueryBuilderSession(Dialect.POSTGRES, schema_provider=registry)
        users = session.add_table("public", "users")
        session.add_column(users.alias, "id")
        session.sql  # 'SELECT users.id FROM public.users AS users'
    """

    def __init__(
        self,
        dialect: Dialect | str | None = None,
        id_generator: IdGenerator | None = None,
        schema_provider: SchemaProvider | None = None,
        settings: BuilderSettings | None = None,
    ):
        """
        Initialize the session with an empty model.

        Args:
            dialect: Target dialect. Defaults to the configured one.
            id_generator: Source of entity ids. Defaults to the
                configured strategy.
            schema_provider: Looked up once per ``add_table`` call.
            settings: Builder settings. Uses ``get_settings()`` if not
                provided.
        """
        self._settings = settings or get_settings()
        self._dialect = Dialect(dialect or self._settings.default_dialect)
        self._ids = id_generator or create_id_generator(self._settings.id_strategy)
        self._schema_provider = schema_provider
        self._validator = QueryValidator(self._settings.max_nesting_depth)
        self._compiler = SQLCompiler(self._dialect)

        self._model = QueryModel.empty()
        self._validation = self._validator.validate(self._model)
        self._sql = self._compiler.compile(self._model)

    # -------------------------
    # State
    # -------------------------

    @property
    def model(self) -> QueryModel:
        return self._model

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def sql(self) -> str:
        return self._sql

    @property
    def validation(self) -> ValidationResult:
        return self._validation

    @property
    def max_nesting_depth(self) -> int:
        return self._settings.max_nesting_depth

    def load(self, model: QueryModel) -> None:
        """Replace the current model wholesale (e.g. from a saved query)."""
        self._apply(model)

    def reset(self) -> None:
        """Clear the model back to empty."""
        logger.info("Resetting query builder model")
        self._apply(operations.reset())

    def switch_dialect(self, dialect: Dialect | str) -> None:
        """Target another database; the model is reset as on a connection switch."""
        self._dialect = Dialect(dialect)
        self._compiler = SQLCompiler(self._dialect)
        logger.info("Switched query builder dialect to %s", self._dialect.value)
        self.reset()

    def _apply(self, model: QueryModel) -> None:
        """Install a new model and re-derive validation and SQL."""
        self._model = model
        self._validation = self._validator.validate(model)
        self._sql = self._compiler.compile(model)

    # -------------------------
    # Tables
    # -------------------------

    def add_table(self, schema_name: str, table_name: str) -> QueryTable:
        """
        Add a table, describing its columns through the schema provider.

        Raises:
            SchemaIntrospectionError: If the provider cannot describe it.
        """
        columns: tuple[ColumnInfo, ...] = ()
        if self._schema_provider is not None:
            schema = self._schema_provider.get_table_schema(schema_name, table_name)
            columns = _columns_from_schema(schema)

        table = QueryTable(
            alias=allocate_alias(table_name, self._model.table_aliases()),
            schema_name=schema_name,
            table_name=table_name,
            columns=columns,
        )
        self._apply(operations.add_table(self._model, table))
        return table

    def remove_table(self, alias: str) -> None:
        self._apply(operations.remove_table(self._model, alias))

    def table_references(self, alias: str) -> list[str]:
        """What removing ``alias`` would also remove."""
        return operations.find_table_references(self._model, alias)

    # -------------------------
    # Columns
    # -------------------------

    def add_column(
        self,
        table_alias: str,
        column_name: str,
        alias: str | None = None,
        aggregate: AggregateFunction | None = None,
        distinct: bool = False,
    ) -> SelectedColumn:
        column = SelectedColumn(
            id=self._ids(),
            table_alias=table_alias,
            column_name=column_name,
            alias=alias,
            aggregate=aggregate,
            distinct=distinct,
        )
        self._apply(operations.add_column(self._model, column))
        return column

    def remove_column(self, column_id: str) -> None:
        self._apply(operations.remove_column(self._model, column_id))

    def update_column(self, column_id: str, **patch: Any) -> None:
        self._apply(operations.update_column(self._model, column_id, **patch))

    def move_column(self, column_id: str, new_index: int) -> None:
        self._apply(operations.move_column(self._model, column_id, new_index))

    # -------------------------
    # Joins
    # -------------------------

    def add_join(
        self,
        left_alias: str,
        left_column: str,
        right_alias: str,
        right_column: str,
        join_type: JoinType = JoinType.INNER,
        operator: ComparisonOperator = ComparisonOperator.EQ,
    ) -> JoinClause:
        join = JoinClause(
            id=self._ids(),
            join_type=join_type,
            left_alias=left_alias,
            left_column=left_column,
            right_alias=right_alias,
            right_column=right_column,
            operator=operator,
        )
        self._apply(operations.add_join(self._model, join))
        return join

    def remove_join(self, join_id: str) -> None:
        self._apply(operations.remove_join(self._model, join_id))

    def update_join(self, join_id: str, **patch: Any) -> None:
        self._apply(operations.update_join(self._model, join_id, **patch))

    # -------------------------
    # WHERE
    # -------------------------

    def add_condition(
        self,
        table_alias: str,
        column_name: str,
        operator: ComparisonOperator = ComparisonOperator.EQ,
        value: Any = None,
        value2: Any = None,
        values: tuple[Any, ...] | list[Any] = (),
        group_id: str | None = None,
    ) -> WhereCondition | None:
        """
        Add a filter to ``group_id`` (the root group when omitted).

        Returns None (and leaves the model alone) when ``group_id`` names
        no group of the WHERE tree.
        """
        condition = WhereCondition(
            id=self._ids(),
            table_alias=table_alias,
            column_name=column_name,
            operator=operator,
            value=value,
            value2=value2,
            values=tuple(values),
        )
        root_id = self._model.where.id if self._model.where else self._ids()
        updated = operations.add_where_condition(
            self._model, condition, group_id, root_id
        )
        if updated is self._model:
            return None
        self._apply(updated)
        return condition

    def remove_condition(self, condition_id: str) -> None:
        self._apply(operations.remove_where_condition(self._model, condition_id))

    def update_condition(self, condition_id: str, **patch: Any) -> None:
        self._apply(operations.update_where_condition(self._model, condition_id, **patch))

    def add_group(
        self,
        operator: LogicalOperator = LogicalOperator.AND,
        parent_group_id: str | None = None,
    ) -> ConditionGroup | None:
        """
        Add an empty nested group.

        Returns None (and leaves the model alone) when the parent is
        unknown or already at the deepest allowed level.
        """
        group = ConditionGroup(id=self._ids(), operator=operator)
        updated = operations.add_condition_group(
            self._model, group, parent_group_id, self.max_nesting_depth
        )
        if updated is self._model:
            return None
        self._apply(updated)
        return group

    def can_add_group(self, parent_group_id: str) -> bool:
        """Whether the "add group" action should be offered for a group."""
        if self._model.where is None:
            return False
        return condition_tree.can_add_nested_group(
            self._model.where, parent_group_id, self.max_nesting_depth
        )

    def remove_group(self, group_id: str) -> None:
        self._apply(operations.remove_condition_group(self._model, group_id))

    def update_group(self, group_id: str, **patch: Any) -> None:
        self._apply(operations.update_condition_group(self._model, group_id, **patch))

    def clear_where(self) -> None:
        self._apply(operations.set_where(self._model, None))

    # -------------------------
    # GROUP BY / HAVING
    # -------------------------

    def add_group_by(self, table_alias: str, column_name: str) -> None:
        clause = GroupByClause(table_alias=table_alias, column_name=column_name)
        self._apply(operations.add_group_by(self._model, clause))

    def remove_group_by(self, table_alias: str, column_name: str) -> None:
        self._apply(operations.remove_group_by(self._model, table_alias, column_name))

    def add_having(
        self,
        table_alias: str,
        column_name: str,
        aggregate: AggregateFunction,
        operator: ComparisonOperator,
        value: Any,
    ) -> HavingCondition:
        having = HavingCondition(
            id=self._ids(),
            table_alias=table_alias,
            column_name=column_name,
            aggregate=aggregate,
            operator=operator,
            value=value,
        )
        self._apply(operations.add_having(self._model, having))
        return having

    def remove_having(self, having_id: str) -> None:
        self._apply(operations.remove_having(self._model, having_id))

    def update_having(self, having_id: str, **patch: Any) -> None:
        self._apply(operations.update_having(self._model, having_id, **patch))

    # -------------------------
    # ORDER BY
    # -------------------------

    def add_order_by(
        self,
        table_alias: str,
        column_name: str,
        direction: SortDirection = SortDirection.ASC,
    ) -> OrderByClause:
        order = OrderByClause(
            id=self._ids(),
            table_alias=table_alias,
            column_name=column_name,
            direction=direction,
        )
        self._apply(operations.add_order_by(self._model, order))
        return order

    def remove_order_by(self, order_id: str) -> None:
        self._apply(operations.remove_order_by(self._model, order_id))

    def update_order_by(self, order_id: str, direction: SortDirection) -> None:
        self._apply(operations.update_order_by(self._model, order_id, direction=direction))

    def move_order_by(self, order_id: str, new_index: int) -> None:
        self._apply(operations.move_order_by(self._model, order_id, new_index))

    # -------------------------
    # Pagination & Flags
    # -------------------------

    def set_limit(self, limit: int | None) -> None:
        self._apply(operations.set_limit(self._model, limit))

    def set_offset(self, offset: int | None) -> None:
        self._apply(operations.set_offset(self._model, offset))

    def set_distinct(self, distinct: bool) -> None:
        self._apply(operations.set_distinct(self._model, distinct))


def _columns_from_schema(schema: TableSchema) -> tuple[ColumnInfo, ...]:
    return tuple(
        ColumnInfo(name=column.name, data_type=column.data_type)
        for column in schema.columns
    )
