"""Base repository with common read operations."""
from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gallery.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic base repository for read-only access to one model.

    The search engine never writes; mutation belongs to the sync subsystem.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        """Initialize repository.

        Args:
            model: SQLAlchemy model class
            session: Async database session
        """
        self.model = model
        self.session = session

    async def get_by_id(self, id: Any) -> Optional[ModelType]:
        """Get model by primary key ID.

        Args:
            id: Primary key value

        Returns:
            Model instance or None if not found
        """
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def list_by_ids(self, ids: Sequence[Any]) -> List[ModelType]:
        """Get models by primary key, preserving the order of ``ids``.

        Args:
            ids: Primary key values; unknown ids are skipped

        Returns:
            List of model instances
        """
        if not ids:
            return []
        result = await self.session.execute(select(self.model).where(self.model.id.in_(list(ids))))
        by_id = {obj.id: obj for obj in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]
