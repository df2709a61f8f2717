"""
Join Resolver for the query builder.

Decides the order in which a model's joins bring tables into FROM.

Starting from the first table, a join is placed once one of its sides is
already in FROM; the other side is the table it brings in. Joins are
retried until no more can be placed, so the order they were added in
does not matter. The compiler renders this plan and the validator
reports whatever it leaves out.
"""

from dataclasses import dataclass

from packages.core.query_model.models import JoinClause, QueryModel


# -----------------------------
# Data structures
# -----------------------------


@dataclass(frozen=True)
class JoinStep:
    """A join placed in FROM, with the table it brings in."""

    join: JoinClause
    target_alias: str
    # The target is the join's left-hand table.
    reversed: bool = False


@dataclass(frozen=True)
class JoinPlan:
    """
    Complete join plan for a model.

    ``stranded`` joins never touched a table in FROM; ``unreachable``
    tables were never brought in by any join.
    """

    base_alias: str
    steps: tuple[JoinStep, ...]
    stranded: tuple[JoinClause, ...]
    unreachable: tuple[str, ...]


# -----------------------------
# Resolver
# -----------------------------


def resolve_joins(model: QueryModel) -> JoinPlan | None:
    """
    Plan the FROM clause of ``model``.

    Returns None for a model without tables. Joins whose new side is not
    a table of the model, or whose sides are both in FROM already, are
    dropped from the plan.
    """
    if not model.tables:
        return None

    known = model.table_aliases()
    base_alias = model.tables[0].alias
    in_from = {base_alias}
    steps: list[JoinStep] = []
    pending = list(model.joins)

    progress = True
    while pending and progress:
        progress = False
        waiting: list[JoinClause] = []
        for join in pending:
            left_in = join.left_alias in in_from
            right_in = join.right_alias in in_from
            if not left_in and not right_in:
                waiting.append(join)
                continue

            progress = True
            if left_in and right_in:
                continue
            target, reversed_ = (
                (join.right_alias, False) if left_in else (join.left_alias, True)
            )
            if target not in known:
                continue
            in_from.add(target)
            steps.append(JoinStep(join=join, target_alias=target, reversed=reversed_))
        pending = waiting

    unreachable = tuple(
        table.alias for table in model.tables if table.alias not in in_from
    )
    return JoinPlan(
        base_alias=base_alias,
        steps=tuple(steps),
        stranded=tuple(pending),
        unreachable=unreachable,
    )
