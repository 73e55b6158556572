"""FastAPI dependencies."""
from fastapi import Request

from gallery.services.search_engine import SearchEngine


def get_search_engine(request: Request) -> SearchEngine:
    """Dependency returning the engine created at application startup."""
    return request.app.state.search_engine
