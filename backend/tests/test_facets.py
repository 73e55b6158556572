"""Tests for facet suggestions."""
import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.dialects import postgresql

from gallery.core.errors import ValidationError
from gallery.db.models import Tag
from gallery.repositories.tag_repository import name_contains
from gallery.services.facet_service import BALANCED_CATEGORY_LIMITS


def _by_name(result):
    return {tag.name: tag for tag in result.tags}


def _assert_counts_add_up(result):
    for tag in result.tags:
        assert tag.count + tag.remaining_count == result.matching_count
        assert 0 < tag.count <= result.matching_count


@pytest_asyncio.fixture
async def library(factory):
    return [
        await factory.item(["red_hair", "smile", "everyone"]),
        await factory.item(["red_hair", "smile", "hat", "everyone"]),
        await factory.item(["red_hair", "blue_eyes", "everyone", "tweet id:42"]),
        await factory.item(["blue_eyes", "hat"]),
    ]


class TestFacetCounts:
    """Test co-occurrence counting for a non-empty selection."""

    async def test_cooccurrence_counts(self, search_engine, library):
        result = await search_engine.facet_tags("red_hair")

        tags = _by_name(result)
        assert result.matching_count == 3
        assert (tags["smile"].count, tags["smile"].remaining_count) == (2, 1)
        assert (tags["hat"].count, tags["hat"].remaining_count) == (1, 2)
        assert (tags["blue_eyes"].count, tags["blue_eyes"].remaining_count) == (1, 2)
        assert [t.name for t in result.tags][0] == "smile"
        _assert_counts_add_up(result)

    async def test_selected_tags_are_not_suggested(self, search_engine, library):
        """Both included and excluded tags are left out."""
        result = await search_engine.facet_tags("red_hair,-blue_eyes")

        names = set(_by_name(result))
        assert "red_hair" not in names
        assert "blue_eyes" not in names
        assert result.matching_count == 2
        assert result.selected_tags == ("red_hair", "-blue_eyes")
        _assert_counts_add_up(result)

    async def test_tags_on_every_match_are_omitted(self, search_engine, library):
        result = await search_engine.facet_tags("red_hair")

        assert "everyone" not in _by_name(result)

    async def test_text_filter_keeps_tags_on_every_match(self, search_engine, library):
        result = await search_engine.facet_tags("red_hair", text_filter="every")

        tags = _by_name(result)
        assert (tags["everyone"].count, tags["everyone"].remaining_count) == (3, 0)
        _assert_counts_add_up(result)

    async def test_blacklisted_tags_are_never_suggested(self, search_engine, library):
        result = await search_engine.facet_tags("red_hair", text_filter="tweet")

        assert result.tags == ()

    async def test_category_filter(self, factory, search_engine, library):
        await factory.item(["red_hair", await factory.tag("ann", "creator")])

        result = await search_engine.facet_tags("red_hair", category="creator")

        assert [t.name for t in result.tags] == ["ann"]
        assert result.tags[0].category == "creator"

    async def test_limit(self, search_engine, library):
        result = await search_engine.facet_tags("red_hair", limit=1)

        assert [t.name for t in result.tags] == ["smile"]

    async def test_hidden_items_do_not_count(self, factory, search_engine, library):
        await factory.item(["red_hair", "hat"], is_hidden=True)

        result = await search_engine.facet_tags("red_hair")

        assert result.matching_count == 3
        assert _by_name(result)["hat"].count == 1

    async def test_unsatisfiable_selection(self, search_engine, library):
        result = await search_engine.facet_tags("red_hair,character:*")

        assert result.tags == ()
        assert result.matching_count == 0

    async def test_unknown_category_rejected(self, search_engine, library):
        with pytest.raises(ValidationError) as exc:
            await search_engine.facet_tags("red_hair", category="colour")
        assert exc.value.token == "colour"

    async def test_results_cached_until_invalidated(self, factory, search_engine, library):
        before = await search_engine.facet_tags("red_hair")
        await factory.item(["red_hair", "scarf"])

        assert await search_engine.facet_tags("red_hair") == before

        search_engine.invalidate_all("sync completed")
        assert "scarf" in _by_name(await search_engine.facet_tags("red_hair"))


class TestEmptySelection:
    """Test facets before any tag is selected."""

    async def test_text_filter_uses_stored_counts(self, search_engine, library):
        result = await search_engine.facet_tags(None, text_filter="h")

        tags = _by_name(result)
        assert result.matching_count == 4
        assert (tags["red_hair"].count, tags["red_hair"].remaining_count) == (3, 1)
        assert (tags["hat"].count, tags["hat"].remaining_count) == (2, 2)
        _assert_counts_add_up(result)

    async def test_balanced_sample_across_categories(self, factory, search_engine):
        general = [f"general_{i:02d}" for i in range(BALANCED_CATEGORY_LIMITS["general"] + 5)]
        await factory.item(general)
        await factory.item(general)
        await factory.item([await factory.tag("rare_artist", "creator")])

        result = await search_engine.facet_tags("")

        categories = [t.category for t in result.tags]
        assert "rare_artist" in _by_name(result)
        assert categories.count("general") == BALANCED_CATEGORY_LIMITS["general"]
        assert result.matching_count == 3
        assert result.tags[0].count == 2
        _assert_counts_add_up(result)


class TestTagNameFilter:
    """Test the tag-name substring filter."""

    def test_filter_compares_bare_column(self):
        sql = str(
            select(Tag.id).where(name_contains("Red_")).compile(dialect=postgresql.dialect())
        )

        assert "lower(" not in sql
        assert "tags.name LIKE" in sql

    async def test_filter_is_case_insensitive_for_callers(self, search_engine, library):
        result = await search_engine.facet_tags("red_hair", text_filter="SMI")

        assert [t.name for t in result.tags] == ["smile"]

    async def test_like_metacharacters_are_literal(self, factory, search_engine):
        await factory.item(["100%_done", "1000_done"])

        result = await search_engine.facet_tags(None, text_filter="0%_")

        assert [t.name for t in result.tags] == ["100%_done"]
