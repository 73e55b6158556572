"""FastAPI application for the gallery search engine."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gallery import __version__ as version
from gallery.api.v1.router import api_router
from gallery.core.config import Settings, settings as default_settings
from gallery.core.errors import GalleryError, NotFoundError, StoreError, ValidationError
from gallery.db.session import create_engine_from_settings, create_session_factory
from gallery.services.search_engine import SearchEngine

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    StoreError: 500,
}


def create_app(search_engine: Optional[SearchEngine] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the application.

    Args:
        search_engine: Engine to serve; created from settings at startup if None
        settings: Settings to use; defaults to the environment-loaded instance

    Returns:
        Configured FastAPI app
    """
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if search_engine is None:
            logger.info("Connecting to database and building search engine")
            engine = create_engine_from_settings(settings)
            app.state.search_engine = SearchEngine(create_session_factory(engine), settings)
        else:
            app.state.search_engine = search_engine

        yield

        if engine is not None:
            logger.info("Shutting down search engine")
            await engine.dispose()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Tag-driven search and recommendations for a media gallery",
        version=version,
        lifespan=lifespan,
    )
    if search_engine is not None:
        app.state.search_engine = search_engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GalleryError)
    async def gallery_error_handler(request: Request, exc: GalleryError):
        status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "query")
        message = first.get("msg", "Invalid request")
        return JSONResponse(status_code=400, content={"error": f"{location}: {message}" if location else message})

    @app.get("/health")
    async def health():
        return {"status": "ok", "version": version}

    app.include_router(api_router, prefix="/api/v1")
    return app
