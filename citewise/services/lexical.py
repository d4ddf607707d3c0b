"""
Lexical Shortlisting

Cheap textual filter that turns the permitted corpus into a bounded
candidate set before any embedding call is made.

Scoring (per chunk):
    lex_score = max(trigram_similarity(query, document.searchable),
                    SUBSTRING_SCORE if query in chunk.text (case-insensitive))

Chunks pass when ``lex_score > floor`` or when they substring-matched.
The Postgres store computes the same score in SQL via ``pg_trgm``; the
pure-Python functions below mirror it for in-process stores.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from uuid import UUID

from citewise.models.schemas import RetrievalCandidate
from citewise.services.interfaces import CandidateStore

logger = logging.getLogger(__name__)

DEFAULT_SHORTLIST_SIZE: int = 100
DEFAULT_LEXICAL_FLOOR: float = 0.1
DEFAULT_SUBSTRING_SCORE: float = 0.8

# pg_trgm treats every non-alphanumeric character as a word separator
_WORD_RE = re.compile(r"[^\W_]+", re.UNICODE)


def _trigrams(text: str) -> set[str]:
    grams: set[str] = set()
    for word in _WORD_RE.findall(text.lower()):
        padded = f"  {word} "
        grams.update(padded[i : i + 3] for i in range(len(padded) - 2))
    return grams


def trigram_similarity(a: str, b: str) -> float:
    """
    Trigram similarity as computed by ``pg_trgm.similarity()``.

    Returns:
        ``|T(a) ∩ T(b)| / |T(a) ∪ T(b)|`` in [0, 1]; 0.0 if both are empty.
    """
    grams_a = _trigrams(a)
    grams_b = _trigrams(b)
    union = grams_a | grams_b
    if not union:
        return 0.0
    return len(grams_a & grams_b) / len(union)


def substring_match(query: str, text: str) -> bool:
    """Case-insensitive literal containment (``ILIKE '%query%'``)."""
    return query.casefold() in text.casefold()


def lexical_score(
    query: str,
    searchable: str,
    chunk_text: str,
    *,
    substring_score: float = DEFAULT_SUBSTRING_SCORE,
) -> tuple[float, bool]:
    """
    Score one chunk against the query.

    Returns:
        Tuple of (score, substring_matched).
    """
    matched = substring_match(query, chunk_text)
    fuzzy = trigram_similarity(query, searchable)
    return max(fuzzy, substring_score if matched else 0.0), matched


def merge_candidates(
    candidates: Iterable[RetrievalCandidate],
    limit: int,
    *,
    floor: float = DEFAULT_LEXICAL_FLOOR,
    substring_score: float = DEFAULT_SUBSTRING_SCORE,
) -> list[RetrievalCandidate]:
    """
    Apply the shortlist rules to raw store output.

    Drops chunks at or below ``floor`` (a chunk scored with the substring
    bonus always passes), keeps the best score per chunk id, and returns
    the top ``limit`` by score. Ties keep their input order.
    """
    best: dict[UUID, RetrievalCandidate] = {}
    for candidate in candidates:
        if candidate.lex_score <= floor and candidate.lex_score < substring_score:
            continue
        current = best.get(candidate.chunk_id)
        if current is None or candidate.lex_score > current.lex_score:
            best[candidate.chunk_id] = candidate

    # sorted() is stable; dict preserves first-seen order
    ranked = sorted(best.values(), key=lambda c: c.lex_score, reverse=True)
    return ranked[:limit]


class LexicalShortlister:
    """
    Produces the bounded candidate set for one query.

    Usage::

        shortlister = LexicalShortlister(store)
        candidates = await shortlister.shortlist(query, permitted_ids)
    """

    def __init__(
        self,
        store: CandidateStore,
        *,
        limit: int = DEFAULT_SHORTLIST_SIZE,
        floor: float = DEFAULT_LEXICAL_FLOOR,
        substring_score: float = DEFAULT_SUBSTRING_SCORE,
    ) -> None:
        self._store = store
        self._limit = limit
        self._floor = floor
        self._substring_score = substring_score

    async def shortlist(
        self,
        query: str,
        permitted_ids: Sequence[UUID],
        limit: int | None = None,
    ) -> list[RetrievalCandidate]:
        """
        Return up to ``limit`` chunks of permitted documents matching ``query``.

        An empty permission set returns ``[]`` without touching the store.
        """
        if not permitted_ids:
            return []

        limit = self._limit if limit is None else limit
        raw = await self._store.query_lexical_candidates(query, permitted_ids, limit)
        shortlisted = merge_candidates(
            raw,
            limit,
            floor=self._floor,
            substring_score=self._substring_score,
        )
        logger.debug(
            "Lexical shortlist: %d raw → %d kept (permitted docs=%d)",
            len(raw),
            len(shortlisted),
            len(permitted_ids),
        )
        return shortlisted
