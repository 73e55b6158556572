"""Cache control endpoints for the sync and moderation subsystems."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from gallery.api.dependencies import get_search_engine
from gallery.services.search_engine import SearchEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cache")


class InvalidateRequest(BaseModel):
    """Why the caches are being cleared."""
    reason: Optional[str] = None


class InvalidateResponse(BaseModel):
    """Cache state after invalidation."""
    generation: int
    message: str


@router.post("/invalidate", response_model=InvalidateResponse)
async def invalidate_caches(
    request: Optional[InvalidateRequest] = None,
    engine: SearchEngine = Depends(get_search_engine),
):
    """Clear every search cache, e.g. after a library sync completes."""
    reason = (request.reason if request else None) or "api request"
    engine.invalidate_all(reason)
    return InvalidateResponse(generation=engine.cache.generation, message="Caches invalidated")
