"""Evaluate query plans against the item-tag relation."""
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from sqlalchemy import Select, and_, false, intersect, not_, select, true
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from gallery.db.models import Item, ItemTag
from gallery.repositories.item_repository import ItemRepository
from gallery.services.blacklist import ItemVisibility
from gallery.services.cache import MATCH_SETS, CacheFabric
from gallery.services.meta_tags import meta_condition
from gallery.services.note_search import NoteSearchService
from gallery.services.query_compiler import QueryPlan
from gallery.services.set_expression import (
    Difference,
    Intersect,
    ItemIdLeaf,
    PredicateLeaf,
    SetExpr,
    TagLeaf,
    Universe,
    build_expression,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    """Ordered ids of the items matching a plan (newest import first).

    ``no_criteria`` marks the explicit empty answer to a blank plan.
    """

    item_ids: Tuple[int, ...]
    expression: Optional[SetExpr] = None
    no_criteria: bool = False

    @property
    def total_count(self) -> int:
        return len(self.item_ids)


def _items_with_tags(tag_ids) -> Select:
    ids = list(tag_ids)
    if len(ids) == 1:
        return select(ItemTag.item_id).where(ItemTag.tag_id == ids[0])
    return select(ItemTag.item_id).where(ItemTag.tag_id.in_(ids))


def compile_condition(expr: SetExpr) -> ColumnElement:
    """Compile a set expression into a condition over ``Item``.

    Each tag leaf becomes one set-producing sub-select; several tag leaves
    under an intersection become a single INTERSECT, in operand order.
    """
    if isinstance(expr, Universe):
        return true()
    if isinstance(expr, TagLeaf):
        return Item.id.in_(_items_with_tags(expr.tag_ids))
    if isinstance(expr, PredicateLeaf):
        return meta_condition(expr.name, negated=expr.negated)
    if isinstance(expr, ItemIdLeaf):
        if not expr.item_ids:
            return false()
        return Item.id.in_(list(expr.item_ids))
    if isinstance(expr, Intersect):
        tag_leaves = [op for op in expr.operands if isinstance(op, TagLeaf)]
        others = [op for op in expr.operands if not isinstance(op, TagLeaf)]
        conditions = []
        if len(tag_leaves) > 1:
            conditions.append(Item.id.in_(intersect(*(_items_with_tags(leaf.tag_ids) for leaf in tag_leaves))))
        elif tag_leaves:
            conditions.append(compile_condition(tag_leaves[0]))
        conditions.extend(compile_condition(op) for op in others)
        return and_(*conditions)
    if isinstance(expr, Difference):
        if isinstance(expr.subtract, TagLeaf):
            exclusion = Item.id.not_in(_items_with_tags(expr.subtract.tag_ids))
        else:
            exclusion = not_(compile_condition(expr.subtract))
        return and_(compile_condition(expr.base), exclusion)
    raise TypeError(f"Unsupported set expression: {type(expr).__name__}")


class SetExecutor:
    """Computes and caches the matching item set for a plan."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: CacheFabric,
        visibility: ItemVisibility,
        note_search: NoteSearchService,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.visibility = visibility
        self.note_search = note_search

    def matching_statement(self, expr: SetExpr) -> Select:
        """Select of visible item ids satisfying ``expr``."""
        return select(Item.id).where(self.visibility.condition(), compile_condition(expr))

    async def execute(self, plan: QueryPlan) -> MatchResult:
        """Resolve the matching item set for a plan.

        An unsatisfiable plan returns an empty result without touching the
        store; a plan without constraints returns the ``no_criteria`` result.
        """
        if plan.unsatisfiable:
            return MatchResult(item_ids=())
        if plan.is_empty:
            return MatchResult(item_ids=(), no_criteria=True)
        return await self.cache.get_or_compute(MATCH_SETS, plan.cache_key, lambda: self._execute(plan))

    async def _execute(self, plan: QueryPlan) -> MatchResult:
        note_item_ids = None
        if plan.note_query:
            note_item_ids = await self.note_search.matching_item_ids(plan.note_query)

        expr = build_expression(plan, note_item_ids)
        if expr is None:
            return MatchResult(item_ids=(), no_criteria=True)

        async with self.session_factory() as session:
            ids = await ItemRepository(session).list_matching_ids(
                and_(self.visibility.condition(), compile_condition(expr))
            )
        logger.debug(f"Plan '{plan.cache_key}' matched {len(ids)} items")
        return MatchResult(item_ids=tuple(ids), expression=expr)
