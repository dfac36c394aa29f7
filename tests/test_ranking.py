"""Tests for the shared ordering and de-duplication rules."""

from app.repositories.terminology import FuzzyTermMatch, TermMatch
from app.services.ranking import (
    best_per_concept,
    exact_sort_key,
    merge_first_seen,
    rank_exact_matches,
    rank_fuzzy_matches,
)


def _exact(concept_id, term, rank):
    return TermMatch(concept_id=concept_id, term=term, semantic_tag="finding", match_rank=rank, term_length=len(term))


def _fuzzy(concept_id, term, score):
    return FuzzyTermMatch(concept_id=concept_id, term=term, semantic_tag="finding", score=score, term_length=len(term))


class TestExactRanking:
    def test_exact_before_prefix_before_contains(self):
        rows = [
            _exact(3, "Central chest pain", 2),
            _exact(2, "Chest pain on breathing", 1),
            _exact(1, "Chest pain", 0),
        ]
        assert [r.concept_id for r in rank_exact_matches(rows, 10)] == [1, 2, 3]

    def test_shorter_term_wins_within_rank(self):
        rows = [_exact(1, "Chest pain radiating", 1), _exact(2, "Chest pain at rest", 1)]
        assert [r.concept_id for r in rank_exact_matches(rows, 10)] == [2, 1]

    def test_one_row_per_concept_keeps_best(self):
        rows = [_exact(1, "Chest pain (finding)", 1), _exact(1, "Chest pain", 0)]
        ranked = rank_exact_matches(rows, 10)
        assert len(ranked) == 1
        assert ranked[0].term == "Chest pain"

    def test_equal_rank_and_length_ordered_by_term(self):
        rows = [_exact(1, "Pain b", 1), _exact(2, "Pain a", 1)]
        assert [r.term for r in rank_exact_matches(rows, 10)] == ["Pain a", "Pain b"]

    def test_limit(self):
        rows = [_exact(i, f"Pain {i}", 1) for i in range(1, 6)]
        assert len(rank_exact_matches(rows, 3)) == 3
        assert rank_exact_matches(rows, 0) == []


class TestFuzzyRanking:
    def test_highest_score_first(self):
        rows = [_fuzzy(1, "Headache", 0.4), _fuzzy(2, "Head", 0.6), _fuzzy(1, "Cephalgia", 0.5)]
        ranked = rank_fuzzy_matches(rows, 10)
        assert [(r.concept_id, r.score) for r in ranked] == [(2, 0.6), (1, 0.5)]

    def test_equal_scores_shorter_then_alphabetical(self):
        rows = [_fuzzy(1, "Hedache b", 0.5), _fuzzy(2, "Hedache a", 0.5), _fuzzy(3, "Hedache", 0.5)]
        ranked = rank_fuzzy_matches(rows, 10)
        assert [r.term for r in ranked] == ["Hedache", "Hedache a", "Hedache b"]


class TestBestPerConcept:
    def test_first_of_equal_rows_wins(self):
        a, b = _exact(1, "Pain", 0), _exact(1, "Pain", 0)
        assert best_per_concept([a, b], exact_sort_key)[0] is a


class TestMergeFirstSeen:
    def test_earlier_batches_win(self):
        first = [_exact(10, "Headache", 0)]
        second = [_exact(20, "Cranial pain", 0), _exact(10, "Headache (finding)", 1)]
        merged = merge_first_seen([first, second])
        assert [r.concept_id for r in merged] == [10, 20]
        assert merged[0].term == "Headache"

    def test_empty_batches(self):
        assert merge_first_seen([[], []]) == []
