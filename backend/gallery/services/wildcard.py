"""Tag token validation and glob-to-LIKE translation."""
import re
from dataclasses import dataclass
from typing import Tuple

from gallery.core.config import Settings
from gallery.core.errors import ValidationError

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def is_wildcard(token: str) -> bool:
    return "*" in token


def escape_like(text: str) -> str:
    """Escape LIKE metacharacters so they match literally (escape char ``\\``)."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def glob_to_like(pattern: str) -> str:
    """Convert a ``*`` glob into a LIKE pattern, escaping everything else."""
    return escape_like(pattern).replace("*", "%")


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Compile a ``*`` glob into an anchored regular expression."""
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")


def validate_token(token: str, settings: Settings) -> None:
    """Reject tokens that can never be a tag name.

    Raises:
        ValidationError: Token contains control characters or is too long
    """
    if _CONTROL_CHARS.search(token):
        raise ValidationError(f"Invalid tag '{token}': contains control characters", token=token)
    if len(token) > settings.TAG_TOKEN_MAX_LENGTH:
        raise ValidationError(
            f"Invalid tag '{token[:50]}...': longer than {settings.TAG_TOKEN_MAX_LENGTH} characters",
            token=token,
        )


def validate_wildcard(pattern: str, settings: Settings) -> None:
    """Check a wildcard pattern (without any leading ``-``).

    Raises:
        ValidationError: Pattern is malformed or too broad
    """
    validate_token(pattern, settings)

    stars = pattern.count("*")
    if stars > settings.WILDCARD_MAX_STARS:
        raise ValidationError(
            f"Invalid wildcard '{pattern}': more than {settings.WILDCARD_MAX_STARS} '*' characters",
            token=pattern,
        )

    literal = len(pattern) - stars
    if literal == 0:
        raise ValidationError(f"Invalid wildcard '{pattern}': pattern matches every tag", token=pattern)
    if literal < settings.WILDCARD_MIN_LITERAL_CHARS:
        raise ValidationError(
            f"Invalid wildcard '{pattern}': needs at least {settings.WILDCARD_MIN_LITERAL_CHARS} non-wildcard characters",
            token=pattern,
        )


@dataclass(frozen=True)
class TagRef:
    """A persisted tag as seen by the resolver."""

    id: int
    name: str
    category: str
    item_count: int


@dataclass(frozen=True)
class WildcardResolution:
    """Tags a wildcard pattern resolved to, most popular first.

    ``truncated`` means more tags matched than were kept; the dropped ones
    are the least popular.
    """

    pattern: str
    tags: Tuple[TagRef, ...]
    truncated: bool

    @property
    def tag_ids(self) -> Tuple[int, ...]:
        return tuple(t.id for t in self.tags)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(t.name for t in self.tags)

    @property
    def categories(self) -> Tuple[str, ...]:
        return tuple(t.category for t in self.tags)

    @property
    def estimated_size(self) -> int:
        return sum(t.item_count for t in self.tags)
