"""Parameterized match predicates for the terminology store.

A query such as ``"chest pain left"`` becomes one bound ``ILIKE`` condition per
word, so the number of clauses follows the word count while every user value
stays a bind parameter.  LIKE wildcards typed by the user (``%``, ``_``) are
escaped and therefore matched literally.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from sqlalchemy import case, func, literal
from sqlalchemy.sql.elements import ColumnElement

LIKE_ESCAPE = "\\"

MATCH_RANK_EXACT = 0
MATCH_RANK_PREFIX = 1
MATCH_RANK_CONTAINS = 2


def escape_like(value: str) -> str:
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def split_words(text: str) -> list[str]:
    return [w for w in (text or "").split() if w]


@dataclass(frozen=True)
class WordMatchQuery:
    """All-words-present predicate restricted to a set of semantic tags."""

    text: str
    words: Tuple[str, ...]
    semantic_tags: Tuple[str, ...]

    @classmethod
    def from_text(cls, text: str, semantic_tags: Sequence[str]) -> Optional["WordMatchQuery"]:
        """Build the predicate, or return ``None`` when ``text`` has no words."""
        stripped = (text or "").strip()
        words = split_words(stripped)
        if not words:
            return None
        return cls(text=stripped, words=tuple(words), semantic_tags=tuple(semantic_tags))

    def word_conditions(self, term_col) -> list[ColumnElement[bool]]:
        return [term_col.ilike(f"%{escape_like(word)}%", escape=LIKE_ESCAPE) for word in self.words]

    def match_rank(self, term_col) -> ColumnElement[int]:
        """0 = whole term equals the query, 1 = term starts with it, 2 = other."""
        return case(
            (func.lower(term_col) == self.text.lower(), literal(MATCH_RANK_EXACT)),
            (term_col.ilike(f"{escape_like(self.text)}%", escape=LIKE_ESCAPE), literal(MATCH_RANK_PREFIX)),
            else_=literal(MATCH_RANK_CONTAINS),
        )


@dataclass(frozen=True)
class FuzzyMatchQuery:
    """Trigram-similarity predicate against the whole query text."""

    text: str
    semantic_tags: Tuple[str, ...]
    min_similarity: float

    @classmethod
    def from_text(
        cls,
        text: str,
        semantic_tags: Sequence[str],
        *,
        min_similarity: float,
    ) -> Optional["FuzzyMatchQuery"]:
        stripped = (text or "").strip()
        if not split_words(stripped):
            return None
        return cls(text=stripped, semantic_tags=tuple(semantic_tags), min_similarity=min_similarity)

    def similarity(self, term_col) -> ColumnElement[float]:
        return func.similarity(term_col, self.text)
