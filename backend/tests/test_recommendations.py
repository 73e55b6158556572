"""Tests for tag-similarity recommendations."""
import pytest

from gallery.core.config import Settings
from gallery.core.errors import NotFoundError, ValidationError
from gallery.services.search_engine import SearchEngine


class TestRecommend:
    """Test Jaccard recommendations over discriminating tags."""

    async def test_partial_overlap(self, factory, search_engine):
        x = await factory.item(["a", "b"])
        y = await factory.item(["a"])

        recommendations = await search_engine.recommend(x.id)

        assert [r.id for r in recommendations] == [y.id]
        assert recommendations[0].shared_tag_count == 1
        assert recommendations[0].similarity == pytest.approx(0.5)
        assert recommendations[0].hash == y.hash

    async def test_identical_tag_sets_excluded(self, factory, search_engine):
        x = await factory.item(["a", "b"])
        await factory.item(["a", "b"])

        assert await search_engine.recommend(x.id) == []

    async def test_similarity_bounds(self, factory, search_engine):
        x = await factory.item(["a", "b", "c"])
        await factory.item(["a", "b", "c"])
        await factory.item(["a", "b"])
        await factory.item(["a", "d"])
        await factory.item(["c", "e", "f", "g", "h", "i", "j", "k"])

        recommendations = await search_engine.recommend(x.id)

        assert recommendations
        for r in recommendations:
            assert 0.15 <= r.similarity < 1.0
            assert r.id != x.id

    async def test_below_minimum_similarity(self, factory, search_engine):
        x = await factory.item(["a"])
        await factory.item(["a", "b1", "b2", "b3", "b4", "b5", "b6"])

        assert await search_engine.recommend(x.id) == []

    async def test_at_minimum_similarity(self, factory, search_engine):
        x = await factory.item(["a"])
        y = await factory.item(["a", "b1", "b2", "b3", "b4", "b5"])

        recommendations = await search_engine.recommend(x.id)

        assert [r.id for r in recommendations] == [y.id]
        assert recommendations[0].similarity == pytest.approx(1 / 6)

    async def test_popular_tags_ignored(self, factory, session_factory, search_engine):
        x = await factory.item(["common", "rare"])
        y = await factory.item(["rare", "y1"])
        w = await factory.item(["common"])
        await factory.item(["common"])
        strict = SearchEngine(
            session_factory,
            Settings(_env_file=None, TAG_BLACKLIST="", RECOMMENDATION_TAG_POPULARITY_CEILING=2),
        )

        lenient_ids = [r.id for r in await search_engine.recommend(x.id)]
        strict_recommendations = await strict.recommend(x.id)

        assert w.id in lenient_ids
        assert [r.id for r in strict_recommendations] == [y.id]
        assert strict_recommendations[0].similarity == pytest.approx(0.5)

    async def test_ties_broken_by_newest_id(self, factory, search_engine):
        x = await factory.item(["a", "b"])
        y = await factory.item(["a"])
        z = await factory.item(["b"])

        recommendations = await search_engine.recommend(x.id)

        assert [r.id for r in recommendations] == [z.id, y.id]

    async def test_higher_similarity_first(self, factory, search_engine):
        x = await factory.item(["a", "b", "c"])
        weak = await factory.item(["a", "z"])
        strong = await factory.item(["a", "b"])

        recommendations = await search_engine.recommend(x.id)

        assert [r.id for r in recommendations] == [strong.id, weak.id]

    async def test_excluded_groups(self, factory, search_engine):
        x = await factory.item(["a", "b"])
        y = await factory.item(["a"])
        z = await factory.item(["a"])
        group = await factory.group([x, y])

        recommendations = await search_engine.recommend(x.id, exclude_group_ids=[group.id])

        assert [r.id for r in recommendations] == [z.id]

    async def test_hidden_items_excluded(self, factory, search_engine):
        x = await factory.item(["a", "b"])
        await factory.item(["a"], is_hidden=True)

        assert await search_engine.recommend(x.id) == []

    async def test_item_without_tags(self, factory, search_engine):
        x = await factory.item([])
        await factory.item(["a"])

        assert await search_engine.recommend(x.id) == []

    async def test_missing_item(self, search_engine):
        assert await search_engine.recommend(9999) == []
        with pytest.raises(NotFoundError):
            await search_engine.recommendations.recommend(9999)

    async def test_results_cached_until_invalidated(self, factory, search_engine):
        x = await factory.item(["a", "b"])
        y = await factory.item(["a"])

        first = await search_engine.recommend(x.id)
        z = await factory.item(["b"])
        cached = await search_engine.recommend(x.id)
        search_engine.invalidate_all("sync")
        fresh = await search_engine.recommend(x.id)

        assert [r.id for r in first] == [r.id for r in cached] == [y.id]
        assert [r.id for r in fresh] == [z.id, y.id]


class TestRecommendByHash:
    """Test recommendation lookup by content hash."""

    async def test_known_hash(self, factory, search_engine):
        x = await factory.item(["a", "b"])
        y = await factory.item(["a"])

        recommendations = await search_engine.recommend_by_hash(x.hash.upper())

        assert [r.id for r in recommendations] == [y.id]

    async def test_unknown_hash(self, search_engine):
        assert await search_engine.recommend_by_hash("0" * 64) == []

    @pytest.mark.parametrize("item_hash", ["", "abc", "g" * 64, "0" * 63])
    async def test_invalid_hash(self, search_engine, item_hash):
        with pytest.raises(ValidationError):
            await search_engine.recommend_by_hash(item_hash)
