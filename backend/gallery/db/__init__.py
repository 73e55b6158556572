"""Database package."""
from gallery.db.base import Base
from gallery.db.session import create_engine_from_settings, create_session_factory

__all__ = ["Base", "create_engine_from_settings", "create_session_factory"]
