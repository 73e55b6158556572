"""Process-wide caches shared by the search engine.

Every cache lives in a named region of one ``CacheFabric``. Regions are
read-mostly: writers replace whole entries and invalidation clears every
region at once.
"""
import logging
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple, TypeVar

from gallery.core.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()

TAG_NAMES = "tag_names"
WILDCARDS = "wildcards"
MATCH_SETS = "match_sets"
FACETS = "facets"
RECOMMENDATIONS = "recommendations"


class TTLCache:
    """LRU cache whose entries also expire after a fixed time-to-live."""

    def __init__(
        self,
        max_entries: int = 128,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max(1, int(max_entries or 1))
        self.ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._store: "OrderedDict[Hashable, Tuple[float, Any]]" = OrderedDict()

    def get(self, key: Hashable, default: Any = None) -> Any:
        try:
            expires_at, value = self._store.pop(key)
        except KeyError:
            return default
        if expires_at <= self._clock():
            return default
        self._store[key] = (expires_at, value)
        return value

    def set(self, key: Hashable, value: Any) -> None:
        self._store[key] = (self._clock() + self.ttl_seconds, value)
        self._store.move_to_end(key)
        while len(self._store) > self.max_entries:
            self._store.popitem(last=False)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key, _MISSING) is not _MISSING


class CacheFabric:
    """Named cache regions with a single coarse invalidation contract.

    ``invalidate_all`` bumps a generation counter; a fill computed under an
    older generation is discarded so a result read before a sync or
    blacklist edit never lands in the cache after it.
    """

    def __init__(self, regions: Dict[str, TTLCache]):
        self._regions = dict(regions)
        self._generation = 0
        self.hits = 0
        self.misses = 0

    @classmethod
    def from_settings(cls, settings: Settings, clock: Callable[[], float] = time.monotonic) -> "CacheFabric":
        """Build the standard regions sized from settings."""
        return cls(
            {
                TAG_NAMES: TTLCache(settings.TAG_CACHE_MAX_ENTRIES, settings.TAG_CACHE_TTL_SECONDS, clock),
                WILDCARDS: TTLCache(settings.TAG_CACHE_MAX_ENTRIES, settings.TAG_CACHE_TTL_SECONDS, clock),
                MATCH_SETS: TTLCache(settings.MATCH_CACHE_MAX_ENTRIES, settings.MATCH_CACHE_TTL_SECONDS, clock),
                FACETS: TTLCache(settings.FACET_CACHE_MAX_ENTRIES, settings.FACET_CACHE_TTL_SECONDS, clock),
                RECOMMENDATIONS: TTLCache(
                    settings.RECOMMENDATION_CACHE_MAX_ENTRIES,
                    settings.RECOMMENDATION_CACHE_TTL_SECONDS,
                    clock,
                ),
            }
        )

    @property
    def generation(self) -> int:
        return self._generation

    def region(self, name: str) -> TTLCache:
        return self._regions[name]

    def get(self, region: str, key: Hashable) -> Optional[Any]:
        """Read a cached value, treating any cache failure as a miss."""
        try:
            value = self._regions[region].get(key, _MISSING)
        except Exception as e:
            logger.warning(f"Cache read failed for region '{region}': {e}")
            return None
        if value is _MISSING:
            self.misses += 1
            return None
        self.hits += 1
        return value

    def set(self, region: str, key: Hashable, value: Any, generation: Optional[int] = None) -> bool:
        """Store a value unless an invalidation happened since ``generation``.

        Returns:
            True if the value was stored
        """
        if generation is not None and generation != self._generation:
            logger.debug(f"Skipping stale fill for region '{region}'")
            return False
        try:
            self._regions[region].set(key, value)
        except Exception as e:
            logger.warning(f"Cache write failed for region '{region}': {e}")
            return False
        return True

    async def get_or_compute(self, region: str, key: Hashable, compute: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value for ``key`` or compute and store it.

        Cache failures fall through to ``compute``; errors raised by
        ``compute`` itself propagate.
        """
        cached = self.get(region, key)
        if cached is not None:
            logger.debug(f"Cache hit: {region} {key!r}")
            return cached

        logger.debug(f"Cache miss: {region} {key!r}")
        generation = self._generation
        value = await compute()
        self.set(region, key, value, generation=generation)
        return value

    def invalidate_all(self, reason: str = "manual") -> None:
        """Clear every region. Called on sync completion and blacklist edits."""
        self._generation += 1
        for name, cache in self._regions.items():
            try:
                cache.clear()
            except Exception as e:
                logger.warning(f"Cache clear failed for region '{name}': {e}")
        logger.info(f"Invalidated all caches ({reason}), generation {self._generation}")

    def stats(self) -> Dict[str, int]:
        sizes = {name: len(cache) for name, cache in self._regions.items()}
        return {"generation": self._generation, "hits": self.hits, "misses": self.misses, **sizes}
