"""Error taxonomy shared by the search engine and the HTTP layer."""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class GalleryError(Exception):
    """Base class for errors surfaced to callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GalleryError):
    """Malformed tag, wildcard or free-text input.

    The message is safe to show to the caller verbatim.
    """

    def __init__(self, message: str, token: Optional[str] = None):
        super().__init__(message)
        self.token = token


class NotFoundError(GalleryError):
    """A referenced item or id does not exist."""


class StoreError(GalleryError):
    """The relational store failed; details stay in the server log."""


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy failures into a generic StoreError.

    Args:
        operation: Short verb phrase used in the caller-facing message,
            e.g. "search items"
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.error(f"Store failure during '{operation}': {type(e).__name__}", exc_info=True)
        raise StoreError(f"Failed to {operation}") from e
