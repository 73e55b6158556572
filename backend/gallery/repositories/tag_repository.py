"""Tag repository: name lookup, pattern matching and co-occurrence counts."""
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from gallery.db.models import ItemTag, Tag
from gallery.repositories.base_repository import BaseRepository
from gallery.services.wildcard import escape_like


def name_contains(text: str) -> ColumnElement:
    """Substring filter on tag names.

    Names are stored lowercase, so the bare column is compared and the
    trigram index on ``tags.name`` stays usable.
    """
    return Tag.name.like(f"%{escape_like(text.strip().lower())}%", escape="\\")


class TagRepository(BaseRepository[Tag]):
    """Repository for Tag model."""

    def __init__(self, session: AsyncSession):
        """Initialize tag repository.

        Args:
            session: Async database session
        """
        super().__init__(Tag, session)

    async def list_by_names(self, names: Sequence[str]) -> List[Tag]:
        """Get every tag row for the given names, across all categories.

        Args:
            names: Normalized tag names

        Returns:
            List of Tag instances
        """
        if not names:
            return []
        result = await self.session.execute(
            select(Tag).where(Tag.name.in_(list(names))).order_by(Tag.item_count.desc(), Tag.id)
        )
        return list(result.scalars().all())

    async def find_by_like(
        self, like_pattern: str, limit: int, condition: Optional[ColumnElement] = None
    ) -> List[Tag]:
        """Find tags whose name matches a LIKE pattern, most used first.

        Args:
            like_pattern: LIKE pattern using ``\\`` as escape character
            limit: Maximum rows to return
            condition: Extra filter, e.g. the blacklist exclusion

        Returns:
            List of Tag instances ordered by item count descending
        """
        query = select(Tag).where(Tag.name.like(like_pattern, escape="\\"))
        if condition is not None:
            query = query.where(condition)
        query = query.order_by(Tag.item_count.desc(), Tag.name, Tag.id).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def top_tags(
        self,
        limit: int,
        category: Optional[str] = None,
        text_filter: Optional[str] = None,
        condition: Optional[ColumnElement] = None,
    ) -> List[Tag]:
        """List tags by stored item count.

        Args:
            limit: Maximum rows to return
            category: Optional category filter
            text_filter: Optional case-insensitive substring of the name
            condition: Extra filter, e.g. the blacklist exclusion

        Returns:
            List of Tag instances with a positive item count
        """
        query = select(Tag).where(Tag.item_count > 0)
        if category:
            query = query.where(Tag.category == category)
        if text_filter:
            query = query.where(name_contains(text_filter))
        if condition is not None:
            query = query.where(condition)
        query = query.order_by(Tag.item_count.desc(), Tag.name, Tag.id).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def cooccurrence(
        self,
        matching_items: Select,
        limit: int,
        exclude_tag_ids: Sequence[int] = (),
        category: Optional[str] = None,
        text_filter: Optional[str] = None,
        condition: Optional[ColumnElement] = None,
        below_count: Optional[int] = None,
    ) -> List[Tuple[Tag, int]]:
        """Count, per tag, how many of the matching items carry it.

        Args:
            matching_items: Select producing one ``id`` column of matching items
            limit: Maximum rows to return
            exclude_tag_ids: Tags never to report
            category: Optional category filter
            text_filter: Optional case-insensitive substring of the name
            condition: Extra filter, e.g. the blacklist exclusion
            below_count: If set, only tags carried by fewer items than this

        Returns:
            List of (Tag, count) ordered by count descending
        """
        match_ids = matching_items.subquery("matching_items")
        item_count = func.count(ItemTag.item_id).label("match_count")

        query = (
            select(Tag, item_count)
            .join(ItemTag, ItemTag.tag_id == Tag.id)
            .where(ItemTag.item_id.in_(select(match_ids.c.id)))
        )
        if exclude_tag_ids:
            query = query.where(Tag.id.not_in(list(exclude_tag_ids)))
        if category:
            query = query.where(Tag.category == category)
        if text_filter:
            query = query.where(name_contains(text_filter))
        if condition is not None:
            query = query.where(condition)

        query = query.group_by(Tag.id, Tag.name, Tag.category, Tag.item_count)
        if below_count is not None:
            query = query.having(func.count(ItemTag.item_id) < below_count)
        query = query.order_by(item_count.desc(), Tag.name, Tag.id).limit(limit)

        result = await self.session.execute(query)
        return [(tag, int(count)) for tag, count in result.all()]
