"""Ranked free-text search over notes, translations and group titles."""
import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from gallery.core.config import Settings
from gallery.core.errors import ValidationError
from gallery.repositories.item_repository import ItemRepository
from gallery.repositories.note_repository import NoteRepository
from gallery.services.blacklist import ItemVisibility
from gallery.services.content_hash import content_hash
from gallery.services.text_query import (
    TextMatch,
    TextQuery,
    adjust_prefix_highlighting,
    headline,
    match_text,
    parse_text_query,
)
from gallery.services.wildcard import escape_like

logger = logging.getLogger(__name__)

NOTE = "note"
GROUP_TITLE = "group_title"


@dataclass(frozen=True)
class NoteSearchResult:
    kind: str
    id: int
    item_id: int
    item_hash: str
    name: Optional[str]
    content: str
    content_hash: Optional[str]
    headline: str
    rank: float
    imported_at: Optional[datetime]
    translated: bool = False


@dataclass(frozen=True)
class NoteSearchPage:
    results: Tuple[NoteSearchResult, ...]
    total_count: int
    total_pages: int
    page: int


def prefilter(query: TextQuery) -> Callable[[Any], ColumnElement]:
    """Build a case-insensitive substring prefilter for a text column.

    Every clause must hold; within a clause any alternative; within an
    alternative every word. Exclusions are checked in process only.
    """

    def condition(column) -> ColumnElement:
        lowered = func.lower(column)
        return and_(
            *(
                or_(
                    *(
                        and_(*(lowered.like(f"%{escape_like(word)}%", escape="\\") for word in term.words))
                        for term in clause.alternatives
                    )
                )
                for clause in query.clauses
            )
        )

    return condition


class NoteSearchService:
    """Finds and ranks text matches; the store only prefilters candidates."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        visibility: ItemVisibility,
        settings: Settings,
    ):
        self.session_factory = session_factory
        self.visibility = visibility
        self.min_query_length = settings.NOTE_SEARCH_MIN_QUERY_LENGTH
        self.batch_size = max(1, settings.NOTE_SEARCH_BATCH_SIZE)
        self.per_page = settings.NOTES_PER_PAGE
        self.max_page = settings.MAX_PAGE

    def parse(self, query: Optional[str]) -> TextQuery:
        """Parse and validate a note query.

        Raises:
            ValidationError: Query is too short or has no search terms
        """
        query = (query or "").strip()
        if len(query) < self.min_query_length:
            raise ValidationError(f"Query must be at least {self.min_query_length} characters")
        parsed = parse_text_query(query)
        if parsed.is_empty:
            raise ValidationError("Query must contain at least one search term")
        return parsed

    async def _fetch_matches(self, query: TextQuery, method: str, *args) -> List[Tuple[Any, TextMatch]]:
        """Verify every prefiltered candidate, one batch of ids at a time."""
        matches: List[Tuple[Any, TextMatch]] = []
        before_id = None
        while True:
            async with self.session_factory() as session:
                batch = await getattr(NoteRepository(session), method)(*args, self.batch_size, before_id)
            for row in batch:
                match = match_text(query, row.text)
                if match is not None:
                    matches.append((row, match))
            if len(batch) < self.batch_size:
                return matches
            before_id = batch[-1].id

    def _note_results(
        self, query: TextQuery, matches: List[Tuple[Any, TextMatch]], translated: bool
    ) -> List[NoteSearchResult]:
        results = []
        for row, match in matches:
            results.append(
                NoteSearchResult(
                    kind=NOTE,
                    id=row.id,
                    item_id=row.item_id,
                    item_hash=row.item_hash,
                    name=row.name,
                    content=row.content,
                    content_hash=row.content_hash or content_hash(row.content),
                    headline=adjust_prefix_highlighting(headline(row.text, match), query.raw),
                    rank=match.rank,
                    imported_at=row.imported_at,
                    translated=translated,
                )
            )
        return results

    async def _group_results(
        self, query: TextQuery, matched: List[Tuple[Any, bool, TextMatch]]
    ) -> List[NoteSearchResult]:
        if not matched:
            return []

        async with self.session_factory() as session:
            members = await ItemRepository(session).first_members(
                sorted({row.id for row, _, _ in matched}), self.visibility.condition()
            )

        results = []
        for row, translated, match in matched:
            item = members.get(row.id)
            if item is None:
                continue
            results.append(
                NoteSearchResult(
                    kind=GROUP_TITLE,
                    id=row.id,
                    item_id=item.id,
                    item_hash=item.hash,
                    name=None,
                    content=row.title,
                    content_hash=row.title_hash or content_hash(row.title),
                    headline=adjust_prefix_highlighting(headline(row.text, match), query.raw),
                    rank=match.rank,
                    imported_at=item.imported_at,
                    translated=translated,
                )
            )
        return results

    @staticmethod
    def _deduplicate(results: List[NoteSearchResult]) -> List[NoteSearchResult]:
        """Keep the best-ranked variant of each entity, best first."""
        best: Dict[Tuple[str, int], NoteSearchResult] = {}
        for result in results:
            key = (result.kind, result.id)
            if key not in best or result.rank > best[key].rank:
                best[key] = result
        ordered = sorted(best.values(), key=lambda r: (r.kind, r.id))
        ordered.sort(key=lambda r: r.imported_at.timestamp() if r.imported_at else 0.0, reverse=True)
        ordered.sort(key=lambda r: r.rank, reverse=True)
        return ordered

    async def search_notes(self, query: Optional[str], page: int = 1) -> NoteSearchPage:
        """Search note content, translations and group titles.

        Raises:
            ValidationError: Query is too short or has no search terms
        """
        parsed = self.parse(query)
        page = min(max(1, page), self.max_page)
        condition = prefilter(parsed)
        visible = self.visibility.condition()

        notes, note_translations, titles, title_translations = await asyncio.gather(
            self._fetch_matches(parsed, "search_content", condition, visible),
            self._fetch_matches(parsed, "search_translations", condition, visible),
            self._fetch_matches(parsed, "search_group_titles", condition),
            self._fetch_matches(parsed, "search_group_title_translations", condition),
        )

        ranked = self._note_results(parsed, notes, translated=False)
        ranked += self._note_results(parsed, note_translations, translated=True)
        ranked += await self._group_results(
            parsed,
            [(row, False, match) for row, match in titles]
            + [(row, True, match) for row, match in title_translations],
        )
        results = self._deduplicate(ranked)

        total = len(results)
        offset = (page - 1) * self.per_page
        logger.debug(f"Note search '{parsed.raw}' matched {total} entities")
        return NoteSearchPage(
            results=tuple(results[offset : offset + self.per_page]),
            total_count=total,
            total_pages=math.ceil(total / self.per_page) if total else 0,
            page=page,
        )

    async def matching_item_ids(self, query: str) -> Tuple[int, ...]:
        """Ids of visible items with a note (or note translation) matching ``query``.

        Raises:
            ValidationError: Query is too short or has no search terms
        """
        parsed = self.parse(query)
        condition = prefilter(parsed)
        visible = self.visibility.condition()
        notes, note_translations = await asyncio.gather(
            self._fetch_matches(parsed, "search_content", condition, visible),
            self._fetch_matches(parsed, "search_translations", condition, visible),
        )
        item_ids = {row.item_id for row, _ in [*notes, *note_translations]}
        return tuple(sorted(item_ids))
