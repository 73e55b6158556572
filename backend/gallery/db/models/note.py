"""Note and translation models."""
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from gallery.db.base import Base


class Note(Base):
    """Free-text note attached to an item."""

    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    content_hash = Column(String(64))  # joins ContentTranslation

    # Relationships
    item = relationship("Item", back_populates="notes")

    __table_args__ = (
        Index("idx_notes_item", "item_id"),
        Index("idx_notes_content_hash", "content_hash"),
    )


class ContentTranslation(Base):
    """Translated text keyed by the content hash of its original.

    Shared by note content and group titles: identical source text is
    translated once.
    """

    __tablename__ = "content_translations"

    content_hash = Column(String(64), primary_key=True)
    source_language = Column(String(20))
    translated_content = Column(Text, nullable=False)
    translated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
