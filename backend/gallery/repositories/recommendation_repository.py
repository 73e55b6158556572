"""Tag-overlap similarity queries."""
from typing import Any, List, Sequence

from sqlalchemy import Float, and_, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from gallery.db.models import Item, ItemGroup, ItemTag, Tag


class RecommendationRepository:
    """Jaccard similarity over discriminating tags, computed in the store."""

    def __init__(self, session: AsyncSession):
        """Initialize recommendation repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def count_discriminating_tags(self, item_id: int, popularity_ceiling: int) -> int:
        """Count the item's tags whose item count is at or below the ceiling.

        Args:
            item_id: Source item id
            popularity_ceiling: Maximum tag item count that still discriminates

        Returns:
            Number of discriminating tags
        """
        result = await self.session.execute(
            select(func.count(ItemTag.tag_id))
            .join(Tag, Tag.id == ItemTag.tag_id)
            .where(ItemTag.item_id == item_id, Tag.item_count <= popularity_ceiling)
        )
        return int(result.scalar_one())

    async def similar_items(
        self,
        item_id: int,
        source_tag_count: int,
        popularity_ceiling: int,
        min_similarity: float,
        limit: int,
        visible: ColumnElement,
        exclude_group_ids: Sequence[int] = (),
    ) -> List[Any]:
        """Rank items sharing discriminating tags with the source item.

        Args:
            item_id: Source item id
            source_tag_count: Number of discriminating tags on the source item
            popularity_ceiling: Maximum tag item count that still discriminates
            min_similarity: Lowest similarity to return
            limit: Maximum rows
            visible: Item visibility condition
            exclude_group_ids: Members of these groups are never returned

        Returns:
            Rows of ``Item`` columns plus ``shared`` and ``similarity``,
            ordered by similarity, shared count and id, all descending
        """
        source_tags = (
            select(ItemTag.tag_id)
            .join(Tag, Tag.id == ItemTag.tag_id)
            .where(ItemTag.item_id == item_id, Tag.item_count <= popularity_ceiling)
            .cte("source_tags")
        )
        shared = (
            select(ItemTag.item_id.label("item_id"), func.count(ItemTag.tag_id).label("shared"))
            .where(ItemTag.tag_id.in_(select(source_tags.c.tag_id)), ItemTag.item_id != item_id)
            .group_by(ItemTag.item_id)
            .cte("shared")
        )
        totals = (
            select(ItemTag.item_id.label("item_id"), func.count(ItemTag.tag_id).label("total"))
            .join(Tag, Tag.id == ItemTag.tag_id)
            .where(Tag.item_count <= popularity_ceiling, ItemTag.item_id.in_(select(shared.c.item_id)))
            .group_by(ItemTag.item_id)
            .cte("totals")
        )

        union_size = source_tag_count + totals.c.total - shared.c.shared
        similarity = (cast(shared.c.shared, Float) / cast(union_size, Float)).label("similarity")

        query = (
            select(
                Item.id,
                Item.hash,
                Item.width,
                Item.height,
                Item.blurhash,
                Item.mime_type,
                shared.c.shared.label("shared"),
                similarity,
            )
            .join(shared, shared.c.item_id == Item.id)
            .join(totals, totals.c.item_id == Item.id)
            .where(
                and_(
                    visible,
                    shared.c.shared < union_size,
                    cast(shared.c.shared, Float) / cast(union_size, Float) >= min_similarity,
                )
            )
        )
        if exclude_group_ids:
            query = query.where(
                Item.id.not_in(select(ItemGroup.item_id).where(ItemGroup.group_id.in_(list(exclude_group_ids))))
            )
        query = query.order_by(similarity.desc(), shared.c.shared.desc(), Item.id.desc()).limit(limit)

        result = await self.session.execute(query)
        return list(result.all())
