"""Note and group-title text repository."""
from typing import Any, Callable, List, Optional

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from gallery.db.models import ContentTranslation, Group, Item, Note
from gallery.repositories.base_repository import BaseRepository

TextCondition = Callable[[Any], ColumnElement]


class NoteRepository(BaseRepository[Note]):
    """Repository for free-text candidates.

    Each search method takes ``text_condition``, a callable building the
    prefilter for a given text column, and returns rows whose ``text``
    column holds the matched text (original or translation). Rows come in
    descending id order; pass the last id of a batch as ``before_id`` to
    fetch the next one.
    """

    def __init__(self, session: AsyncSession):
        """Initialize note repository.

        Args:
            session: Async database session
        """
        super().__init__(Note, session)

    def _note_columns(self):
        return (
            Note.id,
            Note.item_id,
            Note.name,
            Note.content,
            Note.content_hash,
            Item.hash.label("item_hash"),
            Item.imported_at,
        )

    async def _batch(self, query: Select, id_column, limit: int, before_id: Optional[int]) -> List[Any]:
        if before_id is not None:
            query = query.where(id_column < before_id)
        result = await self.session.execute(query.order_by(id_column.desc()).limit(limit))
        return list(result.all())

    async def search_content(
        self,
        text_condition: TextCondition,
        visible: ColumnElement,
        limit: int,
        before_id: Optional[int] = None,
    ) -> List[Any]:
        """Find notes whose original content passes the prefilter.

        Args:
            text_condition: Prefilter builder
            visible: Item visibility condition
            limit: Batch size
            before_id: Only notes with a smaller id

        Returns:
            Rows of note columns plus ``text``
        """
        query = (
            select(*self._note_columns(), Note.content.label("text"))
            .join(Item, Item.id == Note.item_id)
            .where(visible, text_condition(Note.content))
        )
        return await self._batch(query, Note.id, limit, before_id)

    async def search_translations(
        self,
        text_condition: TextCondition,
        visible: ColumnElement,
        limit: int,
        before_id: Optional[int] = None,
    ) -> List[Any]:
        """Find notes whose translation passes the prefilter.

        Args:
            text_condition: Prefilter builder
            visible: Item visibility condition
            limit: Batch size
            before_id: Only notes with a smaller id

        Returns:
            Rows of note columns plus ``text`` (the translation)
        """
        query = (
            select(*self._note_columns(), ContentTranslation.translated_content.label("text"))
            .join(Item, Item.id == Note.item_id)
            .join(ContentTranslation, ContentTranslation.content_hash == Note.content_hash)
            .where(visible, text_condition(ContentTranslation.translated_content))
        )
        return await self._batch(query, Note.id, limit, before_id)

    async def search_group_titles(
        self, text_condition: TextCondition, limit: int, before_id: Optional[int] = None
    ) -> List[Any]:
        """Find groups whose title passes the prefilter."""
        query = select(Group.id, Group.title, Group.title_hash, Group.title.label("text")).where(
            Group.title.is_not(None), text_condition(Group.title)
        )
        return await self._batch(query, Group.id, limit, before_id)

    async def search_group_title_translations(
        self, text_condition: TextCondition, limit: int, before_id: Optional[int] = None
    ) -> List[Any]:
        """Find groups whose translated title passes the prefilter."""
        query = (
            select(Group.id, Group.title, Group.title_hash, ContentTranslation.translated_content.label("text"))
            .join(ContentTranslation, ContentTranslation.content_hash == Group.title_hash)
            .where(text_condition(ContentTranslation.translated_content))
        )
        return await self._batch(query, Group.id, limit, before_id)
