"""Compile a comma-separated tag expression into a query plan.

Expression syntax: ``red_hair, -blue_eyes, character:*, portrait``.
Tokens are trimmed and lower-cased; a leading ``-`` (on a token longer
than one character) excludes; ``*`` makes a wildcard; names from the meta
tag catalogue become computed predicates; everything else is a literal
tag name. Blacklisted tokens are dropped silently.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from gallery.core.config import Settings
from gallery.services.blacklist import TagBlacklist
from gallery.services.meta_tags import is_meta_tag
from gallery.services.vocabulary import TagVocabulary
from gallery.services.wildcard import (
    TagRef,
    WildcardResolution,
    is_wildcard,
    validate_token,
    validate_wildcard,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SingleTag:
    """A token that resolved to exactly one tag."""

    tag_id: int
    kind: str = field(default="single", init=False)

    @property
    def tag_ids(self) -> Tuple[int, ...]:
        return (self.tag_id,)


@dataclass(frozen=True)
class TagGroup:
    """A token that resolved to several tags (ambiguous name or wildcard); any one matches."""

    tag_ids: Tuple[int, ...]
    kind: str = field(default="group", init=False)


ResolvedToken = Union[SingleTag, TagGroup]


def resolved_token(tag_ids) -> ResolvedToken:
    ids = tuple(dict.fromkeys(tag_ids))
    if len(ids) == 1:
        return SingleTag(ids[0])
    return TagGroup(ids)


@dataclass(frozen=True)
class IncludeGroup:
    token: str
    resolved: ResolvedToken
    estimated_size: int = 0


@dataclass(frozen=True)
class ExpressionToken:
    name: str
    negated: bool = False

    @property
    def text(self) -> str:
        return f"-{self.name}" if self.negated else self.name


@dataclass(frozen=True)
class QueryPlan:
    """Structured form of a tag expression with every name resolved."""

    include_groups: Tuple[IncludeGroup, ...] = ()
    exclude_tag_ids: Tuple[int, ...] = ()
    meta_include: Tuple[str, ...] = ()
    meta_exclude: Tuple[str, ...] = ()
    note_query: Optional[str] = None
    resolved_wildcards: Tuple[WildcardResolution, ...] = ()
    selected_tags: Tuple[str, ...] = ()
    unsatisfiable: bool = False

    @property
    def include_tag_groups(self) -> List[List[int]]:
        return [list(g.resolved.tag_ids) for g in self.include_groups]

    @property
    def is_empty(self) -> bool:
        """True when the plan has no constraint of any kind."""
        return not (
            self.include_groups
            or self.exclude_tag_ids
            or self.meta_include
            or self.meta_exclude
            or self.note_query
            or self.unsatisfiable
        )

    @property
    def cache_key(self) -> str:
        key = ",".join(sorted(self.selected_tags))
        if self.note_query:
            key += f"#notes:{self.note_query.lower()}"
        return key

    def all_tag_ids(self) -> frozenset:
        ids = set(self.exclude_tag_ids)
        for group in self.include_groups:
            ids.update(group.resolved.tag_ids)
        return frozenset(ids)

    def to_dict(self) -> dict:
        return {
            "includeTagGroups": self.include_tag_groups,
            "excludeTagIds": list(self.exclude_tag_ids),
            "metaInclude": list(self.meta_include),
            "metaExclude": list(self.meta_exclude),
            "noteQuery": self.note_query,
        }


def tokenize(expression: Optional[str]) -> List[ExpressionToken]:
    """Split an expression into normalized, de-duplicated tokens."""
    tokens: Dict[str, ExpressionToken] = {}
    for raw in (expression or "").split(","):
        token = raw.strip().lower()
        if not token:
            continue
        if token.startswith("-") and len(token) > 1:
            parsed = ExpressionToken(token[1:].strip(), negated=True)
            if not parsed.name:
                continue
        else:
            parsed = ExpressionToken(token)
        tokens.setdefault(parsed.text, parsed)
    return list(tokens.values())


class QueryCompiler:
    """Turns tag expressions into ``QueryPlan`` objects."""

    def __init__(self, vocabulary: TagVocabulary, blacklist: TagBlacklist, settings: Settings):
        self.vocabulary = vocabulary
        self.blacklist = blacklist
        self.settings = settings

    async def compile(self, expression: Optional[str], note_query: Optional[str] = None) -> QueryPlan:
        """Compile an expression, resolving names and wildcards concurrently.

        Raises:
            ValidationError: A token is malformed
        """
        names: List[ExpressionToken] = []
        wildcards: List[ExpressionToken] = []
        meta_include: List[str] = []
        meta_exclude: List[str] = []
        selected: List[str] = []

        for token in tokenize(expression):
            validate_token(token.name, self.settings)
            if is_meta_tag(token.name):
                (meta_exclude if token.negated else meta_include).append(token.name)
            elif self.blacklist.is_blacklisted(token.name):
                logger.debug(f"Dropping blacklisted token '{token.text}'")
                continue
            elif is_wildcard(token.name):
                validate_wildcard(token.name, self.settings)
                wildcards.append(token)
            else:
                names.append(token)
            selected.append(token.text)

        name_lookup, *wildcard_results = await asyncio.gather(
            self.vocabulary.lookup_names([t.name for t in names]),
            *(self.vocabulary.resolve_wildcard(t.name) for t in wildcards),
        )

        include_groups: List[IncludeGroup] = []
        exclude_ids: List[int] = []
        unsatisfiable = False

        resolved: List[Tuple[ExpressionToken, Tuple[TagRef, ...]]] = [(t, name_lookup[t.name]) for t in names]
        resolved += [(t, r.tags) for t, r in zip(wildcards, wildcard_results)]

        for token, refs in resolved:
            if token.negated:
                exclude_ids.extend(ref.id for ref in refs)
            elif not refs:
                logger.debug(f"Token '{token.text}' matches no tags; plan is unsatisfiable")
                unsatisfiable = True
            else:
                include_groups.append(
                    IncludeGroup(
                        token=token.name,
                        resolved=resolved_token(ref.id for ref in refs),
                        estimated_size=sum(ref.item_count for ref in refs),
                    )
                )

        note_query = (note_query or "").strip() or None

        return QueryPlan(
            include_groups=tuple(include_groups),
            exclude_tag_ids=tuple(dict.fromkeys(exclude_ids)),
            meta_include=tuple(meta_include),
            meta_exclude=tuple(meta_exclude),
            note_query=note_query,
            resolved_wildcards=tuple(wildcard_results),
            selected_tags=tuple(selected),
            unsatisfiable=unsatisfiable,
        )
