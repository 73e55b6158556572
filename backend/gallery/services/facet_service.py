"""Facet suggestions for progressive narrowing of a tag search."""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gallery.core.config import Settings
from gallery.core.errors import ValidationError
from gallery.db.models import TagCategory
from gallery.repositories.item_repository import ItemRepository
from gallery.repositories.tag_repository import TagRepository
from gallery.services.blacklist import ItemVisibility, TagBlacklist
from gallery.services.cache import FACETS, CacheFabric
from gallery.services.query_compiler import QueryPlan
from gallery.services.set_executor import SetExecutor

logger = logging.getLogger(__name__)

# Per-category sample sizes for the unfiltered, empty-selection view
BALANCED_CATEGORY_LIMITS = {
    TagCategory.CREATOR.value: 20,
    TagCategory.SOURCE.value: 10,
    TagCategory.SUBJECT.value: 10,
    TagCategory.GENERAL.value: 50,
    TagCategory.META.value: 10,
}


@dataclass(frozen=True)
class FacetTag:
    id: int
    name: str
    category: str
    count: int
    remaining_count: int


@dataclass(frozen=True)
class FacetResult:
    tags: Tuple[FacetTag, ...]
    matching_count: int
    selected_tags: Tuple[str, ...]


def _validate_category(category: Optional[str]) -> Optional[str]:
    if not category:
        return None
    category = category.strip().lower()
    valid = {c.value for c in TagCategory}
    if category not in valid:
        raise ValidationError(f"Unknown tag category '{category}'", token=category)
    return category


class FacetService:
    """Computes co-occurring tags with have/lack counts for the current plan."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        executor: SetExecutor,
        blacklist: TagBlacklist,
        visibility: ItemVisibility,
        cache: CacheFabric,
        settings: Settings,
    ):
        self.session_factory = session_factory
        self.executor = executor
        self.blacklist = blacklist
        self.visibility = visibility
        self.cache = cache
        self.settings = settings

    async def facet_tags(
        self,
        plan: QueryPlan,
        category: Optional[str] = None,
        text_filter: Optional[str] = None,
        limit: int = 50,
    ) -> FacetResult:
        """Suggest tags for narrowing ``plan``.

        For each tag, ``count + remaining_count`` equals ``matching_count``.

        Raises:
            ValidationError: Unknown category
        """
        category = _validate_category(category)
        text_filter = (text_filter or "").strip().lower() or None
        limit = max(1, limit)

        key = f"{plan.cache_key}|{category or ''}|{text_filter or ''}|{limit}"
        return await self.cache.get_or_compute(
            FACETS, key, lambda: self._facet_tags(plan, category, text_filter, limit)
        )

    async def _facet_tags(
        self, plan: QueryPlan, category: Optional[str], text_filter: Optional[str], limit: int
    ) -> FacetResult:
        selected = plan.selected_tags
        if plan.unsatisfiable:
            return FacetResult(tags=(), matching_count=0, selected_tags=selected)
        if plan.is_empty:
            if text_filter or category:
                tags, total = await self._top_tags(limit, category, text_filter)
            else:
                tags, total = await self._balanced_top_tags()
            return FacetResult(tags=tuple(tags), matching_count=total, selected_tags=selected)

        match = await self.executor.execute(plan)
        matching_count = match.total_count
        if matching_count == 0 or match.expression is None:
            return FacetResult(tags=(), matching_count=matching_count, selected_tags=selected)

        # Tags on every matching item cannot narrow further. With a text
        # filter they are kept so a name search still finds them.
        below_count = None if text_filter else matching_count

        async with self.session_factory() as session:
            rows = await TagRepository(session).cooccurrence(
                self.executor.matching_statement(match.expression),
                limit=limit * 2,
                exclude_tag_ids=sorted(plan.all_tag_ids()),
                category=category,
                text_filter=text_filter,
                condition=self.blacklist.with_blacklist_filter(),
                below_count=below_count,
            )

        tags = []
        for tag, count in rows:
            if self.blacklist.is_blacklisted(tag.name):
                continue
            count = min(count, matching_count)
            tags.append(FacetTag(tag.id, tag.name, tag.category, count, matching_count - count))
        return FacetResult(tags=tuple(tags[:limit]), matching_count=matching_count, selected_tags=selected)

    async def _visible_total(self) -> int:
        async with self.session_factory() as session:
            return await ItemRepository(session).count_matching(self.visibility.condition())

    async def _top_tags(
        self, limit: int, category: Optional[str], text_filter: Optional[str]
    ) -> Tuple[List[FacetTag], int]:
        async def fetch():
            async with self.session_factory() as session:
                return await TagRepository(session).top_tags(
                    limit * 2,
                    category=category,
                    text_filter=text_filter,
                    condition=self.blacklist.with_blacklist_filter(),
                )

        tags, total = await asyncio.gather(fetch(), self._visible_total())
        facets = self._from_item_counts(self.blacklist.filter_tags(tags), total)
        return facets[:limit], total

    async def _balanced_top_tags(self) -> Tuple[List[FacetTag], int]:
        """Top tags per category so small categories are not crowded out."""

        async def fetch(category: str, category_limit: int):
            async with self.session_factory() as session:
                return await TagRepository(session).top_tags(
                    category_limit, category=category, condition=self.blacklist.with_blacklist_filter()
                )

        *per_category, total = await asyncio.gather(
            *(fetch(c, n) for c, n in BALANCED_CATEGORY_LIMITS.items()),
            self._visible_total(),
        )
        tags = [tag for group in per_category for tag in self.blacklist.filter_tags(group)]
        facets = self._from_item_counts(tags, total)
        facets.sort(key=lambda f: (-f.count, f.name, f.id))
        return facets, total

    @staticmethod
    def _from_item_counts(tags, total: int) -> List[FacetTag]:
        # Stored item counts include hidden items; clamp to the visible total
        facets = []
        for tag in tags:
            count = min(tag.item_count or 0, total)
            facets.append(FacetTag(tag.id, tag.name, tag.category, count, total - count))
        return facets
