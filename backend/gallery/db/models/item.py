"""Media item model."""
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String
from sqlalchemy.orm import relationship

from gallery.db.base import Base


class Item(Base):
    """A media entry mirrored from the external tagging store."""

    __tablename__ = "items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    hash = Column(String(64), nullable=False, unique=True)  # SHA-256 of the file, hex

    # Media metadata
    width = Column(Integer)
    height = Column(Integer)
    blurhash = Column(String(100))  # low-resolution placeholder
    mime_type = Column(String(100), nullable=False)
    imported_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    # Moderation
    is_hidden = Column(Boolean, default=False, nullable=False)

    # Relationships
    tags = relationship("ItemTag", back_populates="item", cascade="all, delete-orphan")
    groups = relationship("ItemGroup", back_populates="item", cascade="all, delete-orphan")
    notes = relationship("Note", back_populates="item", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_items_imported_at", "imported_at", "id"),
        Index("idx_items_mime_type", "mime_type"),
    )
