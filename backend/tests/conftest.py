"""Pytest configuration and fixtures."""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from gallery.core.config import Settings
from gallery.db import models  # noqa: F401
from gallery.db.base import Base
from gallery.services.search_engine import SearchEngine

from factories import GalleryFactory


@pytest.fixture
def settings() -> Settings:
    """Settings with a small, explicit blacklist and no hidden-item patterns."""
    return Settings(
        _env_file=None,
        TAG_BLACKLIST="hydl-src-site:*,tweet id:*,site:pixiv",
        HIDE_ITEMS_WITH_TAGS="",
    )


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh file-backed SQLite database for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gallery.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
def factory(session_factory) -> GalleryFactory:
    return GalleryFactory(session_factory)


@pytest.fixture
def search_engine(session_factory, settings) -> SearchEngine:
    return SearchEngine(session_factory, settings)
