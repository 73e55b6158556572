"""Item-Tag association model."""
from sqlalchemy import Column, ForeignKey, Index, Integer
from sqlalchemy.orm import relationship

from gallery.db.base import Base


class ItemTag(Base):
    """Association between items and tags."""

    __tablename__ = "item_tags"

    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True)

    # Relationships
    item = relationship("Item", back_populates="tags")
    tag = relationship("Tag", back_populates="items")

    __table_args__ = (
        # The primary key covers (item_id, tag_id); this covers tag -> items
        Index("idx_item_tags_tag_item", "tag_id", "item_id"),
    )
