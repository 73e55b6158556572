"""Item search endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from gallery.api.dependencies import get_search_engine
from gallery.api.v1.schemas import ItemResponse, ResolvedWildcard
from gallery.services.search_engine import SearchEngine

router = APIRouter(prefix="/items")


class ItemSearchResponse(BaseModel):
    """A page of items matching a tag expression."""
    items: List[ItemResponse]
    totalCount: int
    totalPages: int
    page: int
    resolvedWildcards: List[ResolvedWildcard]
    noCriteria: bool = False


@router.get("/search", response_model=ItemSearchResponse)
async def search_items(
    tags: Optional[str] = Query(None, description="Comma-separated tag expression"),
    notes: Optional[str] = Query(None, description="Free-text filter over item notes"),
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    engine: SearchEngine = Depends(get_search_engine),
):
    """
    Search items by tag expression.

    Tokens are comma separated; `-tag` excludes, `*` is a wildcard and
    meta tags such as `portrait` or `video` filter on media attributes.
    """
    result = await engine.search_items(tags, page=page, page_size=limit, note_query=notes)
    return ItemSearchResponse(
        items=[
            ItemResponse(
                id=item.id,
                hash=item.hash,
                width=item.width,
                height=item.height,
                blurhash=item.blurhash,
                mimeType=item.mime_type,
                importedAt=item.imported_at,
            )
            for item in result.items
        ],
        totalCount=result.total_count,
        totalPages=result.total_pages,
        page=result.page,
        resolvedWildcards=[ResolvedWildcard.from_resolution(r) for r in result.resolved_wildcards],
        noCriteria=result.no_criteria,
    )
