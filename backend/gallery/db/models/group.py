"""Group models: items that belong to the same work."""
from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from gallery.db.base import Base


class Group(Base):
    """A cluster of items considered the same work (e.g. a multi-page upload)."""

    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_type = Column(String(50), nullable=False)  # e.g. 'pixiv', 'twitter'
    source_id = Column(String(255), nullable=False)
    title = Column(Text)
    title_hash = Column(String(64))  # content hash of the title, joins translations

    # Relationships
    items = relationship("ItemGroup", back_populates="group", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("source_type", "source_id", name="uq_groups_source"),
        Index("idx_groups_title_hash", "title_hash"),
    )


class ItemGroup(Base):
    """Membership of an item in a group, with its position in the work."""

    __tablename__ = "item_groups"

    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"), primary_key=True)
    group_id = Column(Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, default=0, nullable=False)

    # Relationships
    item = relationship("Item", back_populates="groups")
    group = relationship("Group", back_populates="items")

    __table_args__ = (
        Index("idx_item_groups_group", "group_id", "position"),
    )
