"""Repositories package."""
from gallery.repositories.base_repository import BaseRepository
from gallery.repositories.item_repository import ItemRepository
from gallery.repositories.note_repository import NoteRepository
from gallery.repositories.recommendation_repository import RecommendationRepository
from gallery.repositories.tag_repository import TagRepository

__all__ = [
    "BaseRepository",
    "ItemRepository",
    "NoteRepository",
    "RecommendationRepository",
    "TagRepository",
]
