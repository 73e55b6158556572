"""Tests for the cache fabric."""
import pytest

from gallery.services.cache import FACETS, TAG_NAMES, CacheFabric, TTLCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class BrokenCache(TTLCache):
    """A cache region whose backend is unavailable."""

    def get(self, key, default=None):
        raise RuntimeError("cache backend down")

    def set(self, key, value):
        raise RuntimeError("cache backend down")


class TestTTLCache:
    """Test TTL and LRU behaviour."""

    def test_entry_expires_after_ttl(self):
        """Entries are misses once their TTL has passed."""
        clock = FakeClock()
        cache = TTLCache(max_entries=10, ttl_seconds=300, clock=clock)
        cache.set("a", 1)

        clock.now = 299
        assert cache.get("a") == 1

        clock.now = 300
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_least_recently_used_is_evicted(self):
        """Reading an entry protects it from eviction."""
        cache = TTLCache(max_entries=2, ttl_seconds=300)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.get("a") == 1

        cache.set("c", 3)

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache


class TestCacheFabric:
    """Test compute-through caching and invalidation."""

    @pytest.fixture
    def fabric(self):
        return CacheFabric({TAG_NAMES: TTLCache(), FACETS: TTLCache()})

    async def test_get_or_compute_memoizes(self, fabric):
        """A second lookup is served from the cache."""
        calls = []

        async def compute():
            calls.append(1)
            return ("value",)

        assert await fabric.get_or_compute(FACETS, "k", compute) == ("value",)
        assert await fabric.get_or_compute(FACETS, "k", compute) == ("value",)
        assert len(calls) == 1
        assert fabric.hits == 1

    async def test_invalidate_all_clears_every_region(self, fabric):
        """Invalidation is coarse: all regions are emptied."""
        fabric.set(TAG_NAMES, "red", (1,))
        fabric.set(FACETS, "red|", ("facets",))

        fabric.invalidate_all("sync completed")

        assert fabric.get(TAG_NAMES, "red") is None
        assert fabric.get(FACETS, "red|") is None
        assert fabric.generation == 1

    async def test_fill_started_before_invalidation_is_discarded(self, fabric):
        """A value computed across an invalidation is returned but not stored."""

        async def compute():
            fabric.invalidate_all("sync completed")
            return "stale"

        assert await fabric.get_or_compute(FACETS, "k", compute) == "stale"
        assert fabric.get(FACETS, "k") is None

    async def test_cache_failure_falls_through_to_computation(self):
        """A broken region never fails the request."""
        fabric = CacheFabric({FACETS: BrokenCache()})
        calls = []

        async def compute():
            calls.append(1)
            return "live"

        assert await fabric.get_or_compute(FACETS, "k", compute) == "live"
        assert await fabric.get_or_compute(FACETS, "k", compute) == "live"
        assert len(calls) == 2

    async def test_compute_errors_propagate(self, fabric):
        """Errors from the computation itself are not swallowed."""

        async def compute():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await fabric.get_or_compute(FACETS, "k", compute)
        assert fabric.get(FACETS, "k") is None

    def test_from_settings_builds_standard_regions(self, settings):
        fabric = CacheFabric.from_settings(settings)
        stats = fabric.stats()
        assert {"tag_names", "wildcards", "match_sets", "facets", "recommendations"} <= set(stats)
        assert fabric.region("tag_names").max_entries == settings.TAG_CACHE_MAX_ENTRIES
