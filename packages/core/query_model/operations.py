"""
Edit operations on the query model.

Each operation takes a ``QueryModel`` and returns a new one; the input
is never modified. An id that matches nothing leaves the model as it
was.

Table rules:
- Aliases stay unique: a table added with a missing or taken alias
  gets a fresh one from ``allocate_alias``.
- Removing a table prunes everything that refers to it (columns,
  joins, WHERE conditions, GROUP BY, HAVING, ORDER BY). Use
  ``find_table_references`` first to warn the user.
"""

import logging
from typing import Any, TypeVar

from packages.core.query_model import condition_tree
from packages.core.query_model.aliases import allocate_alias
from packages.core.query_model.models import (
    MAX_NESTING_DEPTH,
    ConditionGroup,
    GroupByClause,
    HavingCondition,
    JoinClause,
    LogicalOperator,
    OrderByClause,
    QueryModel,
    QueryTable,
    SelectedColumn,
    WhereCondition,
    replace_fields,
)

logger = logging.getLogger(__name__)

_Item = TypeVar("_Item", SelectedColumn, JoinClause, HavingCondition, OrderByClause)


# -----------------------------
# Tables
# -----------------------------


def add_table(model: QueryModel, table: QueryTable) -> QueryModel:
    """Append a table, re-aliasing it if its alias is empty or taken."""
    existing = model.table_aliases()
    if not table.alias or table.alias in existing:
        alias = allocate_alias(table.table_name, existing)
        table = table.model_copy(update={"alias": alias})
    return model.model_copy(update={"tables": (*model.tables, table)})


def remove_table(model: QueryModel, alias: str) -> QueryModel:
    """Remove a table and every clause that refers to it."""
    if model.get_table(alias) is None:
        logger.debug("remove_table: no table with alias %s", alias)
        return model

    where = model.where
    if where is not None:
        where = condition_tree.remove_conditions_where(
            where, lambda condition: condition.table_alias == alias
        )

    return model.model_copy(
        update={
            "tables": tuple(t for t in model.tables if t.alias != alias),
            "columns": tuple(c for c in model.columns if c.table_alias != alias),
            "joins": tuple(
                j
                for j in model.joins
                if j.left_alias != alias and j.right_alias != alias
            ),
            "where": where,
            "group_by": tuple(g for g in model.group_by if g.table_alias != alias),
            "having": tuple(h for h in model.having if h.table_alias != alias),
            "order_by": tuple(o for o in model.order_by if o.table_alias != alias),
        }
    )


def find_table_references(model: QueryModel, alias: str) -> list[str]:
    """
    Describe every clause that refers to the table ``alias``.

    An empty list means the table can be removed without losing
    anything else.
    """
    references: list[str] = []

    for column in model.columns:
        if column.table_alias == alias:
            references.append(f"selected column {alias}.{column.column_name}")

    for join in model.joins:
        if alias in (join.left_alias, join.right_alias):
            references.append(
                f"{join.join_type.value} join {join.left_alias}.{join.left_column}"
                f" {join.operator.value} {join.right_alias}.{join.right_column}"
            )

    if model.where is not None:
        for condition in condition_tree.iter_conditions(model.where):
            if condition.table_alias == alias:
                references.append(
                    f"filter on {alias}.{condition.column_name}"
                    f" {condition.operator.value}"
                )

    for group in model.group_by:
        if group.table_alias == alias:
            references.append(f"group by {alias}.{group.column_name}")

    for having in model.having:
        if having.table_alias == alias:
            references.append(
                f"having {having.aggregate.value}({alias}.{having.column_name})"
            )

    for order in model.order_by:
        if order.table_alias == alias:
            references.append(
                f"order by {alias}.{order.column_name} {order.direction.value}"
            )

    return references


# -----------------------------
# Selected Columns
# -----------------------------


def add_column(model: QueryModel, column: SelectedColumn) -> QueryModel:
    return model.model_copy(update={"columns": (*model.columns, column)})


def remove_column(model: QueryModel, column_id: str) -> QueryModel:
    return _without(model, "columns", column_id)


def update_column(model: QueryModel, column_id: str, **patch: Any) -> QueryModel:
    """Change ``alias``, ``aggregate``, ``distinct`` etc. of one column."""
    return _patched(model, "columns", column_id, patch)


def move_column(model: QueryModel, column_id: str, new_index: int) -> QueryModel:
    """Move a selected column to ``new_index`` (clamped to the list bounds)."""
    return _moved(model, "columns", column_id, new_index)


# -----------------------------
# Joins
# -----------------------------


def add_join(model: QueryModel, join: JoinClause) -> QueryModel:
    return model.model_copy(update={"joins": (*model.joins, join)})


def remove_join(model: QueryModel, join_id: str) -> QueryModel:
    return _without(model, "joins", join_id)


def update_join(model: QueryModel, join_id: str, **patch: Any) -> QueryModel:
    return _patched(model, "joins", join_id, patch)


# -----------------------------
# WHERE
# -----------------------------


def set_where(model: QueryModel, where: ConditionGroup | None) -> QueryModel:
    """Replace the whole WHERE tree; None removes the WHERE clause."""
    if where is model.where:
        return model
    return model.model_copy(update={"where": where})


def add_where_condition(
    model: QueryModel,
    condition: WhereCondition,
    group_id: str | None = None,
    root_id: str = "where",
) -> QueryModel:
    """
    Add a condition to ``group_id`` (the root group when omitted).

    If the model has no WHERE clause yet, an AND root group with id
    ``root_id`` is created around the condition.
    """
    if model.where is None:
        root = ConditionGroup(
            id=root_id, operator=LogicalOperator.AND, conditions=(condition,)
        )
        return set_where(model, root)

    target = group_id or model.where.id
    return set_where(
        model, condition_tree.add_condition_to(model.where, target, condition)
    )


def remove_where_condition(model: QueryModel, condition_id: str) -> QueryModel:
    """Remove a condition; groups (and the WHERE clause) left empty go too."""
    if model.where is None:
        return model
    return set_where(
        model, condition_tree.remove_condition_from(model.where, condition_id)
    )


def update_where_condition(
    model: QueryModel, condition_id: str, **patch: Any
) -> QueryModel:
    if model.where is None:
        return model
    return set_where(
        model, condition_tree.update_condition(model.where, condition_id, **patch)
    )


def add_condition_group(
    model: QueryModel,
    group: ConditionGroup,
    parent_group_id: str | None = None,
    max_depth: int = MAX_NESTING_DEPTH,
) -> QueryModel:
    """
    Nest ``group`` under ``parent_group_id`` (the root when omitted).

    With no WHERE clause yet, ``group`` becomes the root.
    """
    if model.where is None:
        if condition_tree.tree_height(group) > max_depth:
            logger.warning("Refusing WHERE root %s: nested too deeply", group.id)
            return model
        return set_where(model, group)

    parent = parent_group_id or model.where.id
    return set_where(
        model,
        condition_tree.add_nested_group(model.where, parent, group, max_depth),
    )


def remove_condition_group(model: QueryModel, group_id: str) -> QueryModel:
    """Remove a nested group, or the whole WHERE clause for the root id."""
    if model.where is None:
        return model
    if model.where.id == group_id:
        return set_where(model, None)
    return set_where(model, condition_tree.remove_group(model.where, group_id))


def update_condition_group(
    model: QueryModel, group_id: str, **patch: Any
) -> QueryModel:
    if model.where is None:
        return model
    return set_where(model, condition_tree.update_group(model.where, group_id, **patch))


# -----------------------------
# GROUP BY / HAVING
# -----------------------------


def add_group_by(model: QueryModel, group_by: GroupByClause) -> QueryModel:
    """Append a GROUP BY column unless the pair is already grouped."""
    if group_by in model.group_by:
        return model
    return model.model_copy(update={"group_by": (*model.group_by, group_by)})


def remove_group_by(model: QueryModel, table_alias: str, column_name: str) -> QueryModel:
    target = GroupByClause(table_alias=table_alias, column_name=column_name)
    kept = tuple(g for g in model.group_by if g != target)
    if len(kept) == len(model.group_by):
        return model
    return model.model_copy(update={"group_by": kept})


def add_having(model: QueryModel, having: HavingCondition) -> QueryModel:
    return model.model_copy(update={"having": (*model.having, having)})


def remove_having(model: QueryModel, having_id: str) -> QueryModel:
    return _without(model, "having", having_id)


def update_having(model: QueryModel, having_id: str, **patch: Any) -> QueryModel:
    return _patched(model, "having", having_id, patch)


# -----------------------------
# ORDER BY
# -----------------------------


def add_order_by(model: QueryModel, order_by: OrderByClause) -> QueryModel:
    return model.model_copy(update={"order_by": (*model.order_by, order_by)})


def remove_order_by(model: QueryModel, order_id: str) -> QueryModel:
    return _without(model, "order_by", order_id)


def update_order_by(model: QueryModel, order_id: str, **patch: Any) -> QueryModel:
    return _patched(model, "order_by", order_id, patch)


def move_order_by(model: QueryModel, order_id: str, new_index: int) -> QueryModel:
    return _moved(model, "order_by", order_id, new_index)


# -----------------------------
# Pagination & Flags
# -----------------------------


def set_limit(model: QueryModel, limit: int | None) -> QueryModel:
    """Set or clear LIMIT. Raises pydantic's ValidationError for limit < 1."""
    return replace_fields(model, limit=limit)


def set_offset(model: QueryModel, offset: int | None) -> QueryModel:
    """Set or clear OFFSET. Raises pydantic's ValidationError for offset < 0."""
    return replace_fields(model, offset=offset)


def set_distinct(model: QueryModel, distinct: bool) -> QueryModel:
    return model.model_copy(update={"distinct": distinct})


def reset() -> QueryModel:
    """A fresh, empty model."""
    return QueryModel.empty()


# -----------------------------
# Sequence helpers
# -----------------------------


def _without(model: QueryModel, field_name: str, item_id: str) -> QueryModel:
    items: tuple[_Item, ...] = getattr(model, field_name)
    kept = tuple(item for item in items if item.id != item_id)
    if len(kept) == len(items):
        logger.debug("No %s entry with id %s", field_name, item_id)
        return model
    return model.model_copy(update={field_name: kept})


def _patched(
    model: QueryModel, field_name: str, item_id: str, patch: dict[str, Any]
) -> QueryModel:
    items: tuple[_Item, ...] = getattr(model, field_name)
    found = False
    updated: list[_Item] = []
    for item in items:
        if item.id == item_id:
            item = replace_fields(item, **patch)
            found = True
        updated.append(item)

    if not found:
        logger.debug("No %s entry with id %s", field_name, item_id)
        return model
    return model.model_copy(update={field_name: tuple(updated)})


def _moved(
    model: QueryModel, field_name: str, item_id: str, new_index: int
) -> QueryModel:
    items: list[_Item] = list(getattr(model, field_name))
    for index, item in enumerate(items):
        if item.id == item_id:
            break
    else:
        logger.debug("No %s entry with id %s", field_name, item_id)
        return model

    moved = items.pop(index)
    new_index = max(0, min(new_index, len(items)))
    items.insert(new_index, moved)
    return model.model_copy(update={field_name: tuple(items)})
