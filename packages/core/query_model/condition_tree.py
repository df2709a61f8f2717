"""
Condition Tree Editor.

Structural edits to a WHERE ``ConditionGroup`` tree, addressed by id.

Rules:
- Every edit returns a new tree; the input is never changed.
- Only the path from the root to the edited group is rebuilt, other
  subtrees are shared with the input.
- An id that is not in the tree makes the edit a no-op (the input is
  returned as-is).
- Nesting depth is checked here, with the depth threaded explicitly
  through the recursion. The root group is depth 0.
"""

import logging
from collections.abc import Callable, Iterator
from typing import Any

from packages.core.query_model.models import (
    MAX_NESTING_DEPTH,
    ConditionGroup,
    ConditionNode,
    WhereCondition,
    replace_fields,
)

logger = logging.getLogger(__name__)

GroupTransform = Callable[[ConditionGroup, int], ConditionGroup]


# -----------------------------
# Traversal
# -----------------------------


def iter_nodes(
    root: ConditionGroup, depth: int = 0
) -> Iterator[tuple[ConditionNode, int]]:
    """Yield every node of the tree with its depth, pre-order."""
    yield root, depth
    for condition in root.conditions:
        yield condition, depth
    for group in root.groups:
        yield from iter_nodes(group, depth + 1)


def iter_conditions(root: ConditionGroup) -> Iterator[WhereCondition]:
    """Yield every condition in the tree."""
    for node, _ in iter_nodes(root):
        if isinstance(node, WhereCondition):
            yield node


def find_group(root: ConditionGroup, group_id: str) -> ConditionGroup | None:
    """Find a group anywhere in the tree."""
    located = _locate(root, group_id, 0)
    return located[0] if located else None


def group_depth(root: ConditionGroup, group_id: str) -> int | None:
    """Depth of a group, or None if it is not in the tree."""
    located = _locate(root, group_id, 0)
    return located[1] if located else None


def tree_height(group: ConditionGroup) -> int:
    """Number of nesting levels below ``group`` (0 for a leaf group)."""
    if not group.groups:
        return 0
    return 1 + max(tree_height(child) for child in group.groups)


def can_add_nested_group(
    root: ConditionGroup,
    parent_group_id: str,
    max_depth: int = MAX_NESTING_DEPTH,
) -> bool:
    """Whether a leaf group may be added under ``parent_group_id``."""
    depth = group_depth(root, parent_group_id)
    return depth is not None and depth + 1 <= max_depth


def _locate(
    group: ConditionGroup, group_id: str, depth: int
) -> tuple[ConditionGroup, int] | None:
    if group.id == group_id:
        return group, depth
    for child in group.groups:
        found = _locate(child, group_id, depth + 1)
        if found is not None:
            return found
    return None


# -----------------------------
# Group Edits
# -----------------------------


def update_group(
    root: ConditionGroup, group_id: str, **patch: Any
) -> ConditionGroup:
    """
    Merge ``patch`` into the group with ``group_id``.

    Patchable fields are ``operator``, ``conditions`` and ``groups``;
    ``id`` cannot be changed.
    """
    return _transform_group(
        root, group_id, lambda group, _depth: replace_fields(group, **patch), 0
    )


def add_nested_group(
    root: ConditionGroup,
    parent_group_id: str,
    new_group: ConditionGroup,
    max_depth: int = MAX_NESTING_DEPTH,
) -> ConditionGroup:
    """
    Append ``new_group`` to the ``groups`` of ``parent_group_id``.

    The whole of ``new_group`` (including its own nested groups) must
    fit below ``max_depth``; otherwise the tree is returned unchanged.
    """
    required = 1 + tree_height(new_group)

    def append(group: ConditionGroup, depth: int) -> ConditionGroup:
        if depth + required > max_depth:
            logger.warning(
                "Refusing to nest group %s under %s: depth %d exceeds maximum %d",
                new_group.id,
                group.id,
                depth + required,
                max_depth,
            )
            return group
        return group.model_copy(update={"groups": (*group.groups, new_group)})

    return _transform_group(root, parent_group_id, append, 0)


def remove_group(root: ConditionGroup, group_id: str) -> ConditionGroup:
    """
    Remove the group with ``group_id`` from wherever it is nested.

    The root cannot be removed this way; clear the model's WHERE
    clause instead.
    """
    if root.id == group_id:
        logger.debug("remove_group called with the root id %s; ignoring", group_id)
        return root
    return _without_group(root, group_id)


def _without_group(group: ConditionGroup, group_id: str) -> ConditionGroup:
    kept: list[ConditionGroup] = []
    changed = False
    for child in group.groups:
        if child.id == group_id:
            changed = True
            continue
        updated = _without_group(child, group_id)
        changed = changed or updated is not child
        kept.append(updated)

    if not changed:
        return group
    return group.model_copy(update={"groups": tuple(kept)})


def _transform_group(
    group: ConditionGroup, group_id: str, transform: GroupTransform, depth: int
) -> ConditionGroup:
    """Apply ``transform`` to the target group and rebuild its ancestors."""
    if group.id == group_id:
        return transform(group, depth)

    changed = False
    new_groups: list[ConditionGroup] = []
    for child in group.groups:
        updated = _transform_group(child, group_id, transform, depth + 1)
        changed = changed or updated is not child
        new_groups.append(updated)

    if not changed:
        return group
    return group.model_copy(update={"groups": tuple(new_groups)})


# -----------------------------
# Condition Edits (single group)
# -----------------------------


def add_condition(group: ConditionGroup, condition: WhereCondition) -> ConditionGroup:
    """Append a condition to one group."""
    return group.model_copy(update={"conditions": (*group.conditions, condition)})


def remove_condition(group: ConditionGroup, condition_id: str) -> ConditionGroup:
    """Remove a condition from one group (not recursive)."""
    kept = tuple(c for c in group.conditions if c.id != condition_id)
    if len(kept) == len(group.conditions):
        return group
    return group.model_copy(update={"conditions": kept})


# -----------------------------
# Condition Edits (whole tree)
# -----------------------------


def add_condition_to(
    root: ConditionGroup, group_id: str, condition: WhereCondition
) -> ConditionGroup:
    """Append a condition to the group with ``group_id``, at any depth."""
    return _transform_group(
        root, group_id, lambda group, _depth: add_condition(group, condition), 0
    )


def update_condition(
    root: ConditionGroup, condition_id: str, **patch: Any
) -> ConditionGroup:
    """Merge ``patch`` into the condition with ``condition_id``."""
    changed = False
    conditions: list[WhereCondition] = []
    for condition in root.conditions:
        if condition.id == condition_id:
            condition = replace_fields(condition, **patch)
            changed = True
        conditions.append(condition)

    groups: list[ConditionGroup] = []
    for child in root.groups:
        updated = update_condition(child, condition_id, **patch)
        changed = changed or updated is not child
        groups.append(updated)

    if not changed:
        return root
    return root.model_copy(
        update={"conditions": tuple(conditions), "groups": tuple(groups)}
    )


def remove_condition_from(
    root: ConditionGroup, condition_id: str
) -> ConditionGroup | None:
    """
    Remove a condition wherever it is.

    Groups left empty by the removal are dropped as well. Returns None
    when the whole tree ends up empty.
    """
    return _prune(root, lambda condition: condition.id == condition_id)


def remove_conditions_where(
    root: ConditionGroup, predicate: Callable[[WhereCondition], bool]
) -> ConditionGroup | None:
    """Remove every condition matching ``predicate``, pruning emptied groups."""
    return _prune(root, predicate)


def _prune(
    group: ConditionGroup, predicate: Callable[[WhereCondition], bool]
) -> ConditionGroup | None:
    conditions = tuple(c for c in group.conditions if not predicate(c))
    changed = len(conditions) != len(group.conditions)

    groups: list[ConditionGroup] = []
    for child in group.groups:
        updated = _prune(child, predicate)
        changed = changed or updated is not child
        if updated is not None:
            groups.append(updated)

    if not changed:
        return group
    if not conditions and not groups:
        return None
    return group.model_copy(
        update={"conditions": conditions, "groups": tuple(groups)}
    )
