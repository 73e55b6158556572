"""Content identity for translatable text."""
import hashlib
from typing import Optional


def content_hash(text: Optional[str]) -> Optional[str]:
    """SHA-256 hex digest of the stripped text, or None for blank text.

    Notes and group titles with identical text share one hash and
    therefore one translation.
    """
    if text is None:
        return None
    stripped = text.strip()
    if not stripped:
        return None
    return hashlib.sha256(stripped.encode("utf-8")).hexdigest()
