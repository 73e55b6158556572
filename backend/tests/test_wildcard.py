"""Tests for wildcard validation and vocabulary resolution."""
import pytest

from gallery.core.config import Settings
from gallery.core.errors import ValidationError
from gallery.services.blacklist import TagBlacklist
from gallery.services.cache import CacheFabric
from gallery.services.vocabulary import TagVocabulary
from gallery.services.wildcard import glob_to_like, glob_to_regex, validate_token, validate_wildcard


class TestWildcardValidation:
    """Test wildcard syntax rules."""

    @pytest.mark.parametrize("pattern", ["character:*", "*hair", "red*eyes", "*ab*"])
    def test_valid_patterns(self, settings, pattern):
        validate_wildcard(pattern, settings)

    @pytest.mark.parametrize("pattern", ["*", "***", "a*", "*b*"])
    def test_too_broad_patterns_rejected(self, settings, pattern):
        """Patterns with fewer than two literal characters would match most of the vocabulary."""
        with pytest.raises(ValidationError) as exc:
            validate_wildcard(pattern, settings)
        assert exc.value.token == pattern

    def test_too_many_stars_rejected(self, settings):
        pattern = "a*b*c*d*e*f*g*h*i*j"
        with pytest.raises(ValidationError) as exc:
            validate_wildcard(pattern, settings)
        assert pattern in exc.value.message

    def test_control_characters_rejected(self, settings):
        with pytest.raises(ValidationError) as exc:
            validate_token("red\x00hair*", settings)
        assert "control characters" in exc.value.message

    def test_overlong_token_rejected(self, settings):
        with pytest.raises(ValidationError):
            validate_token("a" * (settings.TAG_TOKEN_MAX_LENGTH + 1), settings)

    def test_like_metacharacters_are_escaped(self):
        assert glob_to_like("50%_off*") == "50\\%\\_off%"
        assert glob_to_like("back\\slash*") == "back\\\\slash%"

    def test_glob_to_regex_is_anchored(self):
        regex = glob_to_regex("hydl-src-site:*")
        assert regex.match("hydl-src-site:pixiv")
        assert not regex.match("x-hydl-src-site:pixiv")
        assert not regex.match("hydl-src-site")


class TestWildcardResolution:
    """Test wildcard resolution against persisted tags."""

    @pytest.fixture
    def make_vocabulary(self, session_factory):
        def make(settings: Settings, blacklist=()):
            return TagVocabulary(
                session_factory, CacheFabric.from_settings(settings), TagBlacklist(blacklist), settings
            )

        return make

    async def test_resolves_most_popular_first(self, factory, settings, make_vocabulary):
        alice = await factory.tag("character:alice", "subject")
        bob = await factory.tag("character:bob", "subject")
        await factory.tag("copyright:wonderland", "source")
        await factory.set_item_count(alice, 3)
        await factory.set_item_count(bob, 7)

        resolution = await make_vocabulary(settings).resolve_wildcard("character:*")

        assert resolution.names == ("character:bob", "character:alice")
        assert resolution.tag_ids == (bob.id, alice.id)
        assert resolution.categories == ("subject", "subject")
        assert resolution.truncated is False

    async def test_truncates_to_the_limit(self, factory, make_vocabulary):
        for i in range(3):
            tag = await factory.tag(f"artist:{i}", "creator")
            await factory.set_item_count(tag, i)
        settings = Settings(_env_file=None, WILDCARD_TAG_LIMIT=2, TAG_BLACKLIST="")

        resolution = await make_vocabulary(settings).resolve_wildcard("artist:*")

        assert resolution.names == ("artist:2", "artist:1")
        assert resolution.truncated is True

    async def test_resolution_is_stable_without_mutation(self, factory, settings, make_vocabulary):
        await factory.tag("red_hair")
        await factory.tag("red_eyes")
        vocabulary = make_vocabulary(settings)

        first = await vocabulary.resolve_wildcard("red*")
        second = await vocabulary.resolve_wildcard("red*")

        assert set(first.tag_ids) == set(second.tag_ids)
        assert first.truncated == second.truncated

    async def test_underscore_matches_literally(self, factory, settings, make_vocabulary):
        await factory.tag("red_hair")
        await factory.tag("redxhair")

        resolution = await make_vocabulary(settings).resolve_wildcard("red_*")

        assert resolution.names == ("red_hair",)

    async def test_blacklisted_tags_never_resolve(self, factory, settings, make_vocabulary):
        await factory.tag("tweet id:123", "meta")
        await factory.tag("tweet of the day")

        resolution = await make_vocabulary(settings, blacklist=["tweet id:*"]).resolve_wildcard("tweet*")

        assert resolution.names == ("tweet of the day",)

    async def test_ambiguous_name_resolves_every_category(self, factory, settings, make_vocabulary):
        as_creator = await factory.tag("alice", "creator")
        as_subject = await factory.tag("alice", "subject")

        ids = await make_vocabulary(settings).resolve_name("alice")

        assert set(ids) == {as_creator.id, as_subject.id}
