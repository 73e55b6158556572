"""Tag model."""
import enum

from sqlalchemy import Column, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from gallery.db.base import Base


class TagCategory(str, enum.Enum):
    """The five fixed tag categories."""

    CREATOR = "creator"
    SOURCE = "source"
    SUBJECT = "subject"
    GENERAL = "general"
    META = "meta"


class Tag(Base):
    """A normalized label. The same name may exist once per category."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)  # lowercase, may be namespaced with ':'
    category = Column(String(20), nullable=False, default=TagCategory.GENERAL.value)
    item_count = Column(Integer, default=0, nullable=False)  # denormalized, maintained by sync

    # Relationships
    items = relationship("ItemTag", back_populates="tag", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("name", "category", name="uq_tags_name_category"),
        Index("idx_tags_name", "name"),
        Index("idx_tags_item_count", "item_count"),
    )
