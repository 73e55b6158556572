"""Tag vocabulary cache: name and wildcard resolution against persisted tags."""
import logging
from typing import Dict, Iterable, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gallery.core.config import Settings
from gallery.repositories.tag_repository import TagRepository
from gallery.services.blacklist import TagBlacklist
from gallery.services.cache import TAG_NAMES, WILDCARDS, CacheFabric
from gallery.services.wildcard import TagRef, WildcardResolution, glob_to_like

logger = logging.getLogger(__name__)


def _to_ref(tag) -> TagRef:
    return TagRef(id=tag.id, name=tag.name, category=tag.category, item_count=tag.item_count or 0)


class TagVocabulary:
    """Resolves tag names and wildcard patterns to tag ids.

    Results are memoized in the ``tag_names`` and ``wildcards`` regions of
    the cache fabric and dropped wholesale on invalidation.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: CacheFabric,
        blacklist: TagBlacklist,
        settings: Settings,
    ):
        self.session_factory = session_factory
        self.cache = cache
        self.blacklist = blacklist
        self.wildcard_limit = settings.WILDCARD_TAG_LIMIT

    async def lookup_names(self, names: Iterable[str]) -> Dict[str, Tuple[TagRef, ...]]:
        """Resolve several names, querying the store once for all misses.

        Returns:
            Mapping of name to every tag row with that name (possibly empty)
        """
        resolved: Dict[str, Tuple[TagRef, ...]] = {}
        missing: List[str] = []
        for name in dict.fromkeys(names):
            cached = self.cache.get(TAG_NAMES, name)
            if cached is None:
                missing.append(name)
            else:
                resolved[name] = cached

        if missing:
            generation = self.cache.generation
            async with self.session_factory() as session:
                tags = await TagRepository(session).list_by_names(missing)
            found: Dict[str, List[TagRef]] = {name: [] for name in missing}
            for tag in tags:
                found[tag.name].append(_to_ref(tag))
            for name, refs in found.items():
                resolved[name] = tuple(refs)
                self.cache.set(TAG_NAMES, name, resolved[name], generation=generation)
            logger.debug(f"Resolved {len(missing)} tag names from store")

        return resolved

    async def resolve_name(self, name: str) -> List[int]:
        """All tag ids for a name, across categories."""
        refs = (await self.lookup_names([name]))[name]
        return [ref.id for ref in refs]

    async def resolve_wildcard(self, pattern: str) -> WildcardResolution:
        """Resolve a validated wildcard pattern.

        Matches only persisted, non-blacklisted tags, most popular first,
        keeping at most ``WILDCARD_TAG_LIMIT``.
        """
        return await self.cache.get_or_compute(WILDCARDS, pattern, lambda: self._resolve_wildcard(pattern))

    async def _resolve_wildcard(self, pattern: str) -> WildcardResolution:
        async with self.session_factory() as session:
            tags = await TagRepository(session).find_by_like(
                glob_to_like(pattern),
                limit=self.wildcard_limit + 1,
                condition=self.blacklist.with_blacklist_filter(),
            )
        truncated = len(tags) > self.wildcard_limit
        resolution = WildcardResolution(
            pattern=pattern,
            tags=tuple(_to_ref(t) for t in tags[: self.wildcard_limit]),
            truncated=truncated,
        )
        logger.debug(f"Wildcard '{pattern}' resolved to {len(resolution.tags)} tags (truncated={truncated})")
        return resolution
