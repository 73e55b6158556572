"""Web-search style free-text queries: parsing, matching, ranking, snippets.

Syntax: bare words are ANDed, ``"quoted text"`` is a phrase, ``or``
between two terms makes them alternatives, and ``-word`` / ``-"phrase"``
excludes. Every query word matches as a word prefix.
"""
import html
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

_WORD_RE = re.compile(r"\w+", re.UNICODE)
_QUERY_TOKEN_RE = re.compile(r'(-?)"([^"]*)"?|(\S+)')
_MARK_RE = re.compile(r"<mark>(.*?)</mark>")
_STRIP_CHARS = "\"()-"

MAX_WORDS = 50
MAX_FRAGMENTS = 2
FRAGMENT_LEAD_WORDS = 10
FRAGMENT_DELIMITER = " ... "


@dataclass(frozen=True)
class Term:
    """One word, or a phrase of consecutive words."""

    words: Tuple[str, ...]


@dataclass(frozen=True)
class Clause:
    """A required clause: at least one alternative must match."""

    alternatives: Tuple[Term, ...]


@dataclass(frozen=True)
class TextQuery:
    raw: str
    clauses: Tuple[Clause, ...]
    excluded: Tuple[Term, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.clauses

    @property
    def positive_terms(self) -> Tuple[Term, ...]:
        return tuple(term for clause in self.clauses for term in clause.alternatives)


@dataclass(frozen=True)
class Token:
    start: int
    end: int
    word: str


@dataclass(frozen=True)
class TextMatch:
    rank: float
    hit_positions: Tuple[int, ...]


def _words(text: str) -> Tuple[str, ...]:
    return tuple(w.lower() for w in _WORD_RE.findall(text))


def parse_text_query(raw: str) -> TextQuery:
    """Parse a free-text query.

    ``or`` at the start or end of the query, or next to an exclusion, is
    ignored.
    """
    clauses: List[List[Term]] = []
    excluded: List[Term] = []
    pending_or = False

    for match in _QUERY_TOKEN_RE.finditer(raw or ""):
        quoted_neg, quoted, bare = match.groups()
        if bare is not None:
            if bare.lower() == "or":
                pending_or = bool(clauses)
                continue
            negated = bare.startswith("-") and len(bare) > 1
            words = _words(bare[1:] if negated else bare)
        else:
            negated = quoted_neg == "-"
            words = _words(quoted)

        if not words:
            continue
        term = Term(words)
        if negated:
            excluded.append(term)
            pending_or = False
        elif pending_or:
            clauses[-1].append(term)
            pending_or = False
        else:
            clauses.append([term])

    return TextQuery(
        raw=raw or "",
        clauses=tuple(Clause(tuple(alts)) for alts in clauses),
        excluded=tuple(excluded),
    )


def tokenize_text(text: str) -> List[Token]:
    return [Token(m.start(), m.end(), m.group().lower()) for m in _WORD_RE.finditer(text or "")]


def _term_hits(term: Term, words: Sequence[str]) -> List[int]:
    """Start positions where every word of ``term`` prefixes consecutive document words."""
    size = len(term.words)
    return [
        i
        for i in range(len(words) - size + 1)
        if all(words[i + k].startswith(qw) for k, qw in enumerate(term.words))
    ]


def _cover_window(hits_per_clause: Sequence[Sequence[Tuple[int, int]]]) -> int:
    """Length in words of the smallest window holding one hit of every clause."""
    events = sorted((start, end, idx) for idx, hits in enumerate(hits_per_clause) for start, end in hits)
    needed = len(hits_per_clause)
    counts = [0] * needed
    formed = 0
    left = 0
    best = math.inf
    for right in range(len(events)):
        idx = events[right][2]
        counts[idx] += 1
        if counts[idx] == 1:
            formed += 1
        while formed == needed:
            window_end = max(end for _, end, _ in events[left : right + 1])
            best = min(best, window_end - events[left][0])
            left_idx = events[left][2]
            counts[left_idx] -= 1
            if counts[left_idx] == 0:
                formed -= 1
            left += 1
    return int(best)


def match_text(query: TextQuery, text: str) -> Optional[TextMatch]:
    """Match and rank ``text`` against ``query``.

    Returns:
        The match, or None when a clause is unsatisfied or an excluded term occurs
    """
    if query.is_empty:
        return None
    words = [token.word for token in tokenize_text(text)]
    if not words:
        return None

    for term in query.excluded:
        if _term_hits(term, words):
            return None

    hits_per_clause: List[List[Tuple[int, int]]] = []
    positions = set()
    for clause in query.clauses:
        clause_hits = []
        for term in clause.alternatives:
            for start in _term_hits(term, words):
                clause_hits.append((start, start + len(term.words)))
                positions.update(range(start, start + len(term.words)))
        if not clause_hits:
            return None
        hits_per_clause.append(clause_hits)

    cover = len(query.clauses) / _cover_window(hits_per_clause)
    total_hits = sum(len(hits) for hits in hits_per_clause)
    frequency = math.log1p(total_hits) / math.log1p(len(words))
    return TextMatch(rank=cover + frequency, hit_positions=tuple(sorted(positions)))


def _fragment_windows(hit_positions: Sequence[int], word_count: int) -> List[Tuple[int, int]]:
    if word_count <= MAX_WORDS:
        return [(0, word_count)]
    windows: List[Tuple[int, int]] = []
    for position in hit_positions:
        if any(start <= position < end for start, end in windows):
            continue
        start = max(0, position - FRAGMENT_LEAD_WORDS)
        end = min(word_count, start + MAX_WORDS)
        windows.append((start, end))
        if len(windows) == MAX_FRAGMENTS:
            break
    return windows or [(0, MAX_WORDS)]


def headline(text: str, match: TextMatch) -> str:
    """HTML snippet of ``text`` with matched words wrapped in ``<mark>``.

    Up to two fragments of at most 50 words; everything else is escaped.
    """
    tokens = tokenize_text(text)
    if not tokens:
        return html.escape(text or "")
    hits = set(match.hit_positions)

    fragments = []
    for start, end in _fragment_windows(match.hit_positions, len(tokens)):
        parts = []
        cursor = 0 if start == 0 else tokens[start].start
        for i in range(start, end):
            token = tokens[i]
            parts.append(html.escape(text[cursor : token.start]))
            word = html.escape(text[token.start : token.end])
            parts.append(f"<mark>{word}</mark>" if i in hits else word)
            cursor = token.end
        if end == len(tokens):
            parts.append(html.escape(text[cursor:]))
        fragments.append("".join(parts).strip())
    return FRAGMENT_DELIMITER.join(fragments)


def highlight_terms(query: str) -> List[str]:
    """Search terms used to trim highlights: longer than one character, not ``or``."""
    terms = []
    for raw in (query or "").split():
        term = raw.strip(_STRIP_CHARS).lower()
        if len(term) >= 2 and term != "or":
            terms.append(term)
    return terms


def adjust_prefix_highlighting(snippet: str, query: str) -> str:
    """Narrow each ``<mark>`` to the query prefix it actually matched.

    ``<mark>background</mark>`` for the query ``back`` becomes
    ``<mark>back</mark>ground``.
    """
    terms = sorted(highlight_terms(query), key=len, reverse=True)
    if not terms:
        return snippet

    def narrow(match: "re.Match[str]") -> str:
        word = match.group(1)
        lowered = word.lower()
        for term in terms:
            if lowered.startswith(term):
                if len(term) < len(word):
                    return f"<mark>{word[: len(term)]}</mark>{word[len(term):]}"
                break
        return match.group(0)

    return _MARK_RE.sub(narrow, snippet)
