"""Tag name patterns that hide tags or items.

``TagBlacklist`` keeps tags out of facet suggestions and search input.
``ItemVisibility`` hides whole items that carry a matching tag.
"""
import logging
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from sqlalchemy import and_, exists, not_, or_, select, true
from sqlalchemy.sql.elements import ColumnElement

from gallery.db.models import Item, ItemTag, Tag
from gallery.services.wildcard import glob_to_like, glob_to_regex, is_wildcard

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TagPatternSet:
    """A set of plain or ``*`` glob tag-name patterns."""

    def __init__(self, patterns: Iterable[str] = ()):
        self._set_patterns(patterns)

    def _set_patterns(self, patterns: Iterable[str]) -> None:
        normalized = []
        for pattern in patterns:
            pattern = pattern.strip().lower()
            if pattern and pattern not in normalized:
                normalized.append(pattern)
        self._patterns = tuple(normalized)
        self._exact = frozenset(p for p in self._patterns if not is_wildcard(p))
        self._regexes = [glob_to_regex(p) for p in self._patterns if is_wildcard(p)]

    @property
    def patterns(self) -> tuple:
        return self._patterns

    def __bool__(self) -> bool:
        return bool(self._patterns)

    def matches(self, name: str) -> bool:
        name = name.strip().lower()
        if name in self._exact:
            return True
        return any(regex.match(name) for regex in self._regexes)

    def name_condition(self, column=Tag.name) -> Optional[ColumnElement]:
        """SQL condition true when ``column`` matches any pattern."""
        if not self._patterns:
            return None
        clauses = []
        if self._exact:
            clauses.append(column.in_(sorted(self._exact)))
        for pattern in self._patterns:
            if is_wildcard(pattern):
                clauses.append(column.like(glob_to_like(pattern), escape="\\"))
        return or_(*clauses)


class TagBlacklist(TagPatternSet):
    """Tags that must never be suggested or searched for."""

    def __init__(self, patterns: Iterable[str] = ()):
        super().__init__(patterns)
        self._listeners: List[Callable[[], None]] = []

    def is_blacklisted(self, name: str) -> bool:
        return self.matches(name)

    def filter_tags(self, tags: Sequence[T], key: Callable[[T], str] = lambda t: t.name) -> List[T]:
        """Drop blacklisted entries from an in-memory list."""
        return [t for t in tags if not self.is_blacklisted(key(t))]

    def with_blacklist_filter(self, condition: Optional[ColumnElement] = None, column=Tag.name) -> ColumnElement:
        """Extend a tag query condition so that blacklisted tags are excluded.

        Args:
            condition: Existing condition to AND with, or None
            column: Tag name column to test

        Returns:
            Combined condition
        """
        matches = self.name_condition(column)
        parts = [c for c in (condition, not_(matches) if matches is not None else None) if c is not None]
        if not parts:
            return true()
        return and_(*parts)

    def add_listener(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def replace(self, patterns: Iterable[str]) -> None:
        """Swap in a new pattern list and notify listeners."""
        self._set_patterns(patterns)
        logger.info(f"Tag blacklist replaced: {len(self._patterns)} patterns")
        for callback in self._listeners:
            callback()


class ItemVisibility:
    """Which items may appear in any result set."""

    def __init__(self, hidden_tag_patterns: Iterable[str] = ()):
        self.hidden_tags = TagPatternSet(hidden_tag_patterns)

    def condition(self) -> ColumnElement:
        """SQL condition on ``Item`` selecting visible items."""
        visible = Item.is_hidden.is_(False)
        matches = self.hidden_tags.name_condition(Tag.name)
        if matches is None:
            return visible
        carries_hidden_tag = exists(
            select(ItemTag.item_id)
            .join(Tag, Tag.id == ItemTag.tag_id)
            .where(ItemTag.item_id == Item.id, matches)
        )
        return and_(visible, not_(carries_hidden_tag))
