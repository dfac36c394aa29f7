"""Ordering and de-duplication rules shared by the search services."""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Sequence, Tuple, TypeVar

from app.repositories.terminology import FuzzyTermMatch, TermMatch

RowT = TypeVar("RowT", TermMatch, FuzzyTermMatch)


def exact_sort_key(row: TermMatch) -> Tuple[int, int, str]:
    return (row.match_rank, row.term_length, row.term)


def fuzzy_sort_key(row: FuzzyTermMatch) -> Tuple[float, int, str]:
    return (-row.score, row.term_length, row.term)


def best_per_concept(rows: Iterable[RowT], key: Callable[[RowT], tuple]) -> List[RowT]:
    """Keep the lowest-``key`` row for every concept."""
    best: Dict[int, RowT] = {}
    for row in rows:
        current = best.get(row.concept_id)
        if current is None or key(row) < key(current):
            best[row.concept_id] = row
    return list(best.values())


def rank_exact_matches(rows: Iterable[TermMatch], limit: int) -> List[TermMatch]:
    """Exact, then prefix, then substring matches; shorter terms first."""
    ranked = sorted(best_per_concept(rows, exact_sort_key), key=exact_sort_key)
    return ranked[: max(limit, 0)]


def rank_fuzzy_matches(rows: Iterable[FuzzyTermMatch], limit: int) -> List[FuzzyTermMatch]:
    ranked = sorted(best_per_concept(rows, fuzzy_sort_key), key=fuzzy_sort_key)
    return ranked[: max(limit, 0)]


def merge_first_seen(batches: Sequence[Sequence[RowT]]) -> List[RowT]:
    """Concatenate batches in order, dropping concepts already seen."""
    seen: set[int] = set()
    merged: List[RowT] = []
    for batch in batches:
        for row in batch:
            if row.concept_id in seen:
                continue
            seen.add(row.concept_id)
            merged.append(row)
    return merged
