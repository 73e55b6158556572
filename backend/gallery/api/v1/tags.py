"""Tag facet and meta tag endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from gallery.api.dependencies import get_search_engine
from gallery.services.search_engine import SearchEngine

router = APIRouter(prefix="/tags")


class FacetTagResponse(BaseModel):
    """A tag suggestion with how many matching items have or lack it."""
    id: int
    name: str
    category: str
    count: int
    remainingCount: int


class FacetResponse(BaseModel):
    """Facet suggestions for the current selection."""
    tags: List[FacetTagResponse]
    matchingCount: int
    selectedTags: List[str]


class MetaTagResponse(BaseModel):
    """A built-in computed tag."""
    name: str
    description: str


@router.get("/facets", response_model=FacetResponse)
async def facet_tags(
    selected: Optional[str] = Query(None, description="Comma-separated tag expression"),
    category: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Substring filter on tag names"),
    limit: int = Query(50, ge=1, le=100),
    engine: SearchEngine = Depends(get_search_engine),
):
    """Tags co-occurring with the selected ones, for progressive narrowing."""
    result = await engine.facet_tags(selected, category=category, text_filter=q, limit=limit)
    return FacetResponse(
        tags=[
            FacetTagResponse(
                id=tag.id,
                name=tag.name,
                category=tag.category,
                count=tag.count,
                remainingCount=tag.remaining_count,
            )
            for tag in result.tags
        ],
        matchingCount=result.matching_count,
        selectedTags=list(result.selected_tags),
    )


@router.get("/meta", response_model=List[MetaTagResponse])
async def meta_tags(
    q: Optional[str] = Query(None),
    engine: SearchEngine = Depends(get_search_engine),
):
    """List built-in meta tags, optionally filtered for autocomplete."""
    return [MetaTagResponse(name=t.name, description=t.description) for t in engine.list_meta_tags(q)]
