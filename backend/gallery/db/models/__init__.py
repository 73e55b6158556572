"""Database models package."""
from gallery.db.models.group import Group, ItemGroup
from gallery.db.models.item import Item
from gallery.db.models.item_tag import ItemTag
from gallery.db.models.note import ContentTranslation, Note
from gallery.db.models.tag import Tag, TagCategory

__all__ = [
    "Item",
    "Tag",
    "TagCategory",
    "ItemTag",
    "Group",
    "ItemGroup",
    "Note",
    "ContentTranslation",
]
