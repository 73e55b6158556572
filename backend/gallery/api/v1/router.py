"""API v1 router."""
from fastapi import APIRouter

from gallery.api.v1 import cache, items, notes, recommendations, tags
from gallery.api.v1.schemas import ErrorResponse

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed tag, wildcard or query"},
    500: {"model": ErrorResponse, "description": "Store failure"},
}

api_router: APIRouter = APIRouter(responses=ERROR_RESPONSES)
api_router.include_router(items.router, tags=["items"])
api_router.include_router(tags.router, tags=["tags"])
api_router.include_router(notes.router, tags=["notes"])
api_router.include_router(recommendations.router, tags=["recommendations"])
api_router.include_router(cache.router, tags=["cache"])
