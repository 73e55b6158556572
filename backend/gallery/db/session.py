"""Async engine and session factory construction."""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from gallery.core.config import Settings


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured PostgreSQL database."""
    return create_async_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by every repository.

    Sessions are short-lived, one per group of store round trips, so that
    independent sub-queries of one request can run concurrently.
    """
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
