"""Recommendation endpoints."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from gallery.api.dependencies import get_search_engine
from gallery.core.errors import ValidationError
from gallery.services.search_engine import SearchEngine

router = APIRouter(prefix="/recommendations")


class RecommendationResponse(BaseModel):
    """A similar item."""
    id: int
    hash: str
    width: Optional[int] = None
    height: Optional[int] = None
    blurhash: Optional[str] = None
    mimeType: str
    sharedTagCount: int
    similarity: float


def parse_group_ids(raw: Optional[str]) -> List[int]:
    """Parse a comma-separated list of group ids."""
    ids = []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        if not part.isdigit():
            raise ValidationError(f"Invalid group id '{part}'", token=part)
        ids.append(int(part))
    return ids


@router.get("/{item_hash}", response_model=List[RecommendationResponse])
async def recommend(
    item_hash: str,
    exclude_groups: Optional[str] = Query(None, alias="excludeGroups"),
    engine: SearchEngine = Depends(get_search_engine),
):
    """Items with the most similar discriminating tags."""
    results = await engine.recommend_by_hash(item_hash, parse_group_ids(exclude_groups))
    return [
        RecommendationResponse(
            id=r.id,
            hash=r.hash,
            width=r.width,
            height=r.height,
            blurhash=r.blurhash,
            mimeType=r.mime_type,
            sharedTagCount=r.shared_tag_count,
            similarity=r.similarity,
        )
        for r in results
    ]
