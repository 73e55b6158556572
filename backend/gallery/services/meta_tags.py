"""Built-in computed tags: media type, resolution and orientation predicates.

Meta tags are defined here, not in the store. Each has a positive and a
negated SQL condition over ``Item``; the negated form counts items whose
dimensions or type are unknown as "not matching" the positive predicate.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from gallery.db.models import Item

HIGHRES_MIN_SIDE = 1920
LOWRES_MAX_SIDE = 500
ANIMATED_MIME_TYPES = ("image/gif", "image/apng")


@dataclass(frozen=True)
class MetaTag:
    name: str
    description: str
    condition: Callable[[], ColumnElement]
    negated: Callable[[], ColumnElement]


def _dimensions_known() -> ColumnElement:
    return and_(Item.width.is_not(None), Item.height.is_not(None))


def _dimensions_unknown() -> ColumnElement:
    return or_(Item.width.is_(None), Item.height.is_(None))


META_TAGS: Dict[str, MetaTag] = {
    tag.name: tag
    for tag in (
        MetaTag(
            name="video",
            description="Video files",
            condition=lambda: Item.mime_type.like("video/%"),
            negated=lambda: or_(Item.mime_type.is_(None), Item.mime_type.not_like("video/%")),
        ),
        MetaTag(
            name="animated",
            description="Animated images (GIF, APNG)",
            condition=lambda: Item.mime_type.in_(ANIMATED_MIME_TYPES),
            negated=lambda: or_(Item.mime_type.is_(None), Item.mime_type.not_in(ANIMATED_MIME_TYPES)),
        ),
        MetaTag(
            name="portrait",
            description="Taller than wide",
            condition=lambda: and_(_dimensions_known(), Item.height > Item.width),
            negated=lambda: or_(_dimensions_unknown(), Item.height <= Item.width),
        ),
        MetaTag(
            name="landscape",
            description="Wider than tall",
            condition=lambda: and_(_dimensions_known(), Item.width > Item.height),
            negated=lambda: or_(_dimensions_unknown(), Item.width <= Item.height),
        ),
        MetaTag(
            name="square",
            description="Equal width and height",
            condition=lambda: and_(_dimensions_known(), Item.width == Item.height),
            negated=lambda: or_(_dimensions_unknown(), Item.width != Item.height),
        ),
        MetaTag(
            name="highres",
            description=f"Width or height of at least {HIGHRES_MIN_SIDE}px",
            condition=lambda: or_(Item.width >= HIGHRES_MIN_SIDE, Item.height >= HIGHRES_MIN_SIDE),
            negated=lambda: and_(
                or_(Item.width.is_(None), Item.width < HIGHRES_MIN_SIDE),
                or_(Item.height.is_(None), Item.height < HIGHRES_MIN_SIDE),
            ),
        ),
        MetaTag(
            name="lowres",
            description=f"Width and height of at most {LOWRES_MAX_SIDE}px",
            condition=lambda: and_(
                _dimensions_known(), Item.width <= LOWRES_MAX_SIDE, Item.height <= LOWRES_MAX_SIDE
            ),
            negated=lambda: or_(_dimensions_unknown(), Item.width > LOWRES_MAX_SIDE, Item.height > LOWRES_MAX_SIDE),
        ),
    )
}


def is_meta_tag(name: str) -> bool:
    return name in META_TAGS


def meta_condition(name: str, negated: bool = False) -> ColumnElement:
    """SQL condition for a meta tag.

    Raises:
        KeyError: Unknown meta tag name
    """
    tag = META_TAGS[name]
    return tag.negated() if negated else tag.condition()


def search_meta_tags(query: Optional[str] = None) -> List[MetaTag]:
    """Meta tags whose name or description contains ``query``."""
    if not query or not query.strip():
        return list(META_TAGS.values())
    needle = query.strip().lower()
    return [t for t in META_TAGS.values() if needle in t.name or needle in t.description.lower()]
