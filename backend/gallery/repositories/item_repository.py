"""Item repository."""
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from gallery.db.models import Item, ItemGroup
from gallery.repositories.base_repository import BaseRepository


class ItemRepository(BaseRepository[Item]):
    """Repository for Item model."""

    def __init__(self, session: AsyncSession):
        """Initialize item repository.

        Args:
            session: Async database session
        """
        super().__init__(Item, session)

    async def get_by_hash(self, hash: str) -> Optional[Item]:
        """Get item by content hash.

        Args:
            hash: 64-character hex content hash

        Returns:
            Item instance or None if not found
        """
        result = await self.session.execute(select(Item).where(Item.hash == hash))
        return result.scalar_one_or_none()

    async def count_matching(self, condition: ColumnElement) -> int:
        """Count items satisfying a condition.

        Args:
            condition: Condition over ``Item``

        Returns:
            Number of items
        """
        result = await self.session.execute(select(func.count(Item.id)).where(condition))
        return int(result.scalar_one())

    async def list_matching_ids(self, condition: ColumnElement) -> List[int]:
        """List ids of items satisfying a condition, newest import first.

        Args:
            condition: Condition over ``Item``

        Returns:
            Item ids ordered by import time then id, descending
        """
        result = await self.session.execute(
            select(Item.id).where(condition).order_by(Item.imported_at.desc(), Item.id.desc())
        )
        return list(result.scalars().all())

    async def first_members(self, group_ids: Sequence[int], condition: ColumnElement) -> Dict[int, Item]:
        """Find the first member of each group that satisfies a condition.

        Args:
            group_ids: Group ids
            condition: Condition over ``Item``, usually visibility

        Returns:
            Mapping of group id to its lowest-position qualifying item
        """
        if not group_ids:
            return {}
        result = await self.session.execute(
            select(ItemGroup.group_id, Item)
            .join(Item, Item.id == ItemGroup.item_id)
            .where(ItemGroup.group_id.in_(list(group_ids)), condition)
            .order_by(ItemGroup.group_id, ItemGroup.position, Item.id)
        )
        members: Dict[int, Item] = {}
        for group_id, item in result.all():
            members.setdefault(group_id, item)
        return members
