"""Note search endpoints."""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from gallery.api.dependencies import get_search_engine
from gallery.services.search_engine import SearchEngine

router = APIRouter(prefix="/notes")


class NoteResultResponse(BaseModel):
    """A ranked note or group-title match."""
    kind: str
    id: int
    itemId: int
    itemHash: str
    name: Optional[str] = None
    content: str
    contentHash: Optional[str] = None
    headline: str
    rank: float
    importedAt: Optional[datetime] = None
    translated: bool = False


class NoteSearchResponse(BaseModel):
    """A page of note search results."""
    results: List[NoteResultResponse]
    totalCount: int
    totalPages: int
    page: int


@router.get("/search", response_model=NoteSearchResponse)
async def search_notes(
    q: str = Query("", description="Free-text query"),
    page: int = Query(1, ge=1),
    engine: SearchEngine = Depends(get_search_engine),
):
    """
    Search note content, note translations and group titles.

    Supports `"phrases"`, `or` and `-exclusions`; words match as prefixes.
    """
    result = await engine.search_notes(q, page=page)
    return NoteSearchResponse(
        results=[
            NoteResultResponse(
                kind=r.kind,
                id=r.id,
                itemId=r.item_id,
                itemHash=r.item_hash,
                name=r.name,
                content=r.content,
                contentHash=r.content_hash,
                headline=r.headline,
                rank=r.rank,
                importedAt=r.imported_at,
                translated=r.translated,
            )
            for r in result.results
        ],
        totalCount=result.total_count,
        totalPages=result.total_pages,
        page=result.page,
    )
