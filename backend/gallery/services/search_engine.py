"""Search engine facade used by the API layer and the sync subsystem."""
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gallery.core.config import Settings
from gallery.core.errors import NotFoundError, ValidationError, store_errors
from gallery.repositories.item_repository import ItemRepository
from gallery.services.blacklist import ItemVisibility, TagBlacklist
from gallery.services.cache import CacheFabric
from gallery.services.facet_service import FacetResult, FacetService
from gallery.services.meta_tags import MetaTag, search_meta_tags
from gallery.services.note_search import NoteSearchPage, NoteSearchService
from gallery.services.query_compiler import QueryCompiler, QueryPlan
from gallery.services.recommendation_service import Recommendation, RecommendationService
from gallery.services.set_executor import SetExecutor
from gallery.services.vocabulary import TagVocabulary
from gallery.services.wildcard import WildcardResolution

logger = logging.getLogger(__name__)

_HASH_RE = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class ItemSummary:
    id: int
    hash: str
    width: Optional[int]
    height: Optional[int]
    blurhash: Optional[str]
    mime_type: str
    imported_at: Optional[datetime]


@dataclass(frozen=True)
class ItemSearchPage:
    items: Tuple[ItemSummary, ...]
    total_count: int
    total_pages: int
    page: int
    resolved_wildcards: Tuple[WildcardResolution, ...]
    no_criteria: bool = False


class SearchEngine:
    """Tag search, facets, note search and recommendations over one store.

    The cache fabric and blacklist are injected so that several engines (or
    tests) never share hidden global state. Call ``invalidate_all`` after a
    library sync or moderation change.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        cache: Optional[CacheFabric] = None,
        blacklist: Optional[TagBlacklist] = None,
    ):
        self.session_factory = session_factory
        self.settings = settings
        self.cache = cache or CacheFabric.from_settings(settings)
        self.blacklist = blacklist or TagBlacklist(settings.tag_blacklist_patterns)
        self.visibility = ItemVisibility(settings.hidden_item_tag_patterns)

        self.vocabulary = TagVocabulary(session_factory, self.cache, self.blacklist, settings)
        self.compiler = QueryCompiler(self.vocabulary, self.blacklist, settings)
        self.note_search = NoteSearchService(session_factory, self.visibility, settings)
        self.executor = SetExecutor(session_factory, self.cache, self.visibility, self.note_search)
        self.facets = FacetService(
            session_factory, self.executor, self.blacklist, self.visibility, self.cache, settings
        )
        self.recommendations = RecommendationService(session_factory, self.visibility, self.cache, settings)

        self.blacklist.add_listener(lambda: self.invalidate_all("blacklist changed"))

    async def compile(self, tag_expression: Optional[str], note_query: Optional[str] = None) -> QueryPlan:
        with store_errors("resolve tags"):
            return await self.compiler.compile(tag_expression, note_query=note_query)

    async def search_items(
        self,
        tag_expression: Optional[str],
        page: int = 1,
        page_size: Optional[int] = None,
        note_query: Optional[str] = None,
    ) -> ItemSearchPage:
        """Search items by tag expression and optional note filter.

        Raises:
            ValidationError: Malformed tag or note query
            StoreError: The store failed
        """
        page = min(max(1, page), self.settings.MAX_PAGE)
        page_size = min(max(1, page_size or self.settings.ITEMS_PER_PAGE), self.settings.MAX_ITEMS_PER_PAGE)

        plan = await self.compile(tag_expression, note_query)
        if plan.unsatisfiable:
            return ItemSearchPage((), 0, 0, page, plan.resolved_wildcards)

        with store_errors("search items"):
            match = await self.executor.execute(plan)
            if match.no_criteria:
                return ItemSearchPage((), 0, 0, page, plan.resolved_wildcards, no_criteria=True)

            offset = (page - 1) * page_size
            page_ids = match.item_ids[offset : offset + page_size]
            async with self.session_factory() as session:
                items = await ItemRepository(session).list_by_ids(page_ids)

        total = match.total_count
        return ItemSearchPage(
            items=tuple(
                ItemSummary(i.id, i.hash, i.width, i.height, i.blurhash, i.mime_type, i.imported_at) for i in items
            ),
            total_count=total,
            total_pages=math.ceil(total / page_size) if total else 0,
            page=page,
            resolved_wildcards=plan.resolved_wildcards,
        )

    async def facet_tags(
        self,
        tag_expression: Optional[str],
        category: Optional[str] = None,
        text_filter: Optional[str] = None,
        limit: int = 50,
    ) -> FacetResult:
        """Tags co-occurring with the current selection.

        Raises:
            ValidationError: Malformed tag expression or unknown category
            StoreError: The store failed
        """
        plan = await self.compile(tag_expression)
        with store_errors("compute facets"):
            return await self.facets.facet_tags(plan, category=category, text_filter=text_filter, limit=limit)

    async def search_notes(self, query: Optional[str], page: int = 1) -> NoteSearchPage:
        """Ranked note, translation and group-title matches.

        Raises:
            ValidationError: Query too short or without terms
            StoreError: The store failed
        """
        with store_errors("search notes"):
            return await self.note_search.search_notes(query, page)

    async def recommend(self, item_id: int, exclude_group_ids: Iterable[int] = ()) -> List[Recommendation]:
        """Similar items; an unknown item yields an empty list."""
        with store_errors("load recommendations"):
            try:
                return list(await self.recommendations.recommend(item_id, exclude_group_ids))
            except NotFoundError:
                logger.debug(f"Recommendations requested for missing item {item_id}")
                return []

    async def recommend_by_hash(self, item_hash: str, exclude_group_ids: Iterable[int] = ()) -> List[Recommendation]:
        """Similar items for the item with content hash ``item_hash``.

        Raises:
            ValidationError: Hash is not 64 lowercase hex characters
        """
        item_hash = (item_hash or "").strip().lower()
        if not _HASH_RE.match(item_hash):
            raise ValidationError("Invalid item hash", token=item_hash)
        with store_errors("load recommendations"):
            async with self.session_factory() as session:
                item = await ItemRepository(session).get_by_hash(item_hash)
        if item is None:
            return []
        return await self.recommend(item.id, exclude_group_ids)

    def list_meta_tags(self, query: Optional[str] = None) -> List[MetaTag]:
        return search_meta_tags(query)

    def invalidate_all(self, reason: str = "manual") -> None:
        """Drop every cached lookup and result."""
        self.cache.invalidate_all(reason)
