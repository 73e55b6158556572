"""Set expressions over items, built from a query plan.

A small tree of leaves (tag sets, meta predicates, explicit id sets) and
combinators (``Intersect``, ``Difference``). The executor compiles it into
the store's native set operations.
"""
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from gallery.services.query_compiler import QueryPlan


class SetExpr:
    """Base class for set expression nodes."""


@dataclass(frozen=True)
class Universe(SetExpr):
    """Every visible item."""


@dataclass(frozen=True)
class TagLeaf(SetExpr):
    """Items carrying at least one of ``tag_ids``."""

    tag_ids: Tuple[int, ...]
    estimated_size: int = 0


@dataclass(frozen=True)
class PredicateLeaf(SetExpr):
    """Items satisfying a meta tag predicate (or its negation)."""

    name: str
    negated: bool = False


@dataclass(frozen=True)
class ItemIdLeaf(SetExpr):
    """An explicit set of item ids, e.g. from a note search."""

    item_ids: Tuple[int, ...]


@dataclass(frozen=True)
class Intersect(SetExpr):
    operands: Tuple[SetExpr, ...]


@dataclass(frozen=True)
class Difference(SetExpr):
    base: SetExpr
    subtract: SetExpr


def build_expression(plan: QueryPlan, note_item_ids: Optional[Sequence[int]] = None) -> Optional[SetExpr]:
    """Build the set expression for a plan.

    Include groups are ordered smallest estimated size first. Returns None
    for a plan without constraints.
    """
    operands = [
        TagLeaf(group.resolved.tag_ids, group.estimated_size)
        for group in sorted(plan.include_groups, key=lambda g: g.estimated_size)
    ]
    operands += [PredicateLeaf(name) for name in plan.meta_include]
    operands += [PredicateLeaf(name, negated=True) for name in plan.meta_exclude]
    if plan.note_query is not None:
        operands.append(ItemIdLeaf(tuple(note_item_ids or ())))

    if not operands and not plan.exclude_tag_ids:
        return None

    if not operands:
        base: SetExpr = Universe()
    elif len(operands) == 1:
        base = operands[0]
    else:
        base = Intersect(tuple(operands))

    if plan.exclude_tag_ids:
        return Difference(base, TagLeaf(tuple(plan.exclude_tag_ids)))
    return base
