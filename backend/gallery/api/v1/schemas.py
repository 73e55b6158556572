"""Response models shared by the v1 endpoints."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from gallery.services.wildcard import WildcardResolution


class ItemResponse(BaseModel):
    """Media item summary."""
    id: int
    hash: str
    width: Optional[int] = None
    height: Optional[int] = None
    blurhash: Optional[str] = None
    mimeType: str
    importedAt: Optional[datetime] = None


class ResolvedWildcard(BaseModel):
    """Tags a wildcard pattern resolved to."""
    pattern: str
    tagIds: List[int]
    names: List[str]
    categories: List[str]
    truncated: bool

    @classmethod
    def from_resolution(cls, resolution: WildcardResolution) -> "ResolvedWildcard":
        return cls(
            pattern=resolution.pattern,
            tagIds=list(resolution.tag_ids),
            names=list(resolution.names),
            categories=list(resolution.categories),
            truncated=resolution.truncated,
        )


class ErrorResponse(BaseModel):
    """Error body."""
    error: str
