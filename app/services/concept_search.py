"""Chief complaint concept search.

Free text is resolved to SNOMED CT concepts through three tiers; each tier
only runs when every earlier tier returned nothing:

1. **Word-set match**: every query word appears (case-insensitively) in a
   description.  Exact term matches rank before prefix matches, which rank
   before other substring matches; shorter terms win ties.
2. **Fuzzy match**: trigram similarity of a description against the query,
   at least ``similarity_threshold`` (0.3).  Highest score first.
3. **Suggested terms**: a :class:`SuggestionSource` proposes clinical terms;
   each is run through tier 1 in suggestion order and the first hit for a
   concept wins.

Results are de-duplicated by concept and enriched with preferred term and
children count.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from app.core.search_config import DEFAULT_SEARCH_OPTIONS, SearchOptions, SearchTuning, search_tuning
from app.repositories.query_builder import FuzzyMatchQuery, WordMatchQuery
from app.repositories.terminology import ConceptGraph, FuzzyTermMatch, TermIndex, TermMatch
from app.schemas.snomed import ConceptSummary
from app.services.concept_summaries import summarize_concepts
from app.services.ranking import merge_first_seen, rank_exact_matches, rank_fuzzy_matches
from app.services.suggestion_source import SuggestionSource, SuggestionSourceError

logger = logging.getLogger(__name__)

Match = Union[TermMatch, FuzzyTermMatch]

TIER_EXACT = "exact"
TIER_FUZZY = "fuzzy"
TIER_SEMANTIC = "semantic"


@dataclass
class SearchEvent:
    """Lightweight event emitted after every search for structured logging."""

    query: str
    tier: Optional[str]
    semantic_tags: Sequence[str]
    result_count: int
    duration_ms: float
    suggestions: Optional[Sequence[str]] = None


class ConceptSearchService:
    def __init__(
        self,
        term_index: TermIndex,
        concept_graph: ConceptGraph,
        suggestion_source: Optional[SuggestionSource] = None,
        *,
        tuning: SearchTuning = search_tuning,
    ) -> None:
        self._term_index = term_index
        self._concept_graph = concept_graph
        self._suggestion_source = suggestion_source
        self._tuning = tuning

    async def search(
        self,
        query: str,
        *,
        limit: Optional[int] = None,
        options: SearchOptions = DEFAULT_SEARCH_OPTIONS,
    ) -> List[ConceptSummary]:
        t0 = time.perf_counter()
        effective_limit = min(self._tuning.default_limit if limit is None else limit, self._tuning.max_limit)
        if effective_limit < 1:
            return []

        word_query = WordMatchQuery.from_text(query, options.semantic_tags)
        if word_query is None:
            return []

        tier: Optional[str] = TIER_EXACT
        suggestions: Optional[List[str]] = None
        matches: List[Match] = list(await self._exact_tier(word_query, effective_limit))

        if not matches:
            tier = TIER_FUZZY
            matches = list(await self._fuzzy_tier(word_query.text, options.semantic_tags, effective_limit))

        if not matches and options.allow_semantic_fallback and self._suggestion_source is not None:
            tier = TIER_SEMANTIC
            suggestions = await self._suggest(word_query.text)
            matches = list(await self._semantic_tier(suggestions, options.semantic_tags, effective_limit))

        if not matches:
            tier = None

        results = await summarize_concepts(
            self._concept_graph,
            [m.concept_id for m in matches],
            semantic_tags={m.concept_id: m.semantic_tag for m in matches},
        )

        self._emit_search_event(
            SearchEvent(
                query=word_query.text,
                tier=tier,
                semantic_tags=options.semantic_tags,
                result_count=len(results),
                duration_ms=round((time.perf_counter() - t0) * 1000, 2),
                suggestions=suggestions,
            )
        )
        return results

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    async def _exact_tier(self, query: WordMatchQuery, limit: int) -> List[TermMatch]:
        rows = await self._term_index.exact_word_match(query, limit=limit)
        return rank_exact_matches(rows, limit)

    async def _fuzzy_tier(self, text: str, semantic_tags: Sequence[str], limit: int) -> List[FuzzyTermMatch]:
        fuzzy_query = FuzzyMatchQuery.from_text(
            text,
            semantic_tags,
            min_similarity=self._tuning.similarity_threshold,
        )
        if fuzzy_query is None:
            return []
        rows = await self._term_index.fuzzy_match(fuzzy_query, limit=limit)
        return rank_fuzzy_matches(rows, limit)

    async def _suggest(self, text: str) -> List[str]:
        try:
            suggestions = await self._suggestion_source.suggest(
                text,
                max_suggestions=self._tuning.semantic_max_suggestions,
            )
        except SuggestionSourceError:
            logger.warning("concept_search suggestion source unavailable; skipping semantic tier", exc_info=True)
            return []
        return list(suggestions)[: self._tuning.semantic_max_suggestions]

    async def _semantic_tier(
        self,
        suggestions: Sequence[str],
        semantic_tags: Sequence[str],
        limit: int,
    ) -> List[TermMatch]:
        # Sub-searches share one session, so they run one after another.
        batches: List[List[TermMatch]] = []
        for suggestion in suggestions:
            sub_query = WordMatchQuery.from_text(suggestion, semantic_tags)
            if sub_query is None:
                continue
            batches.append(await self._exact_tier(sub_query, self._tuning.semantic_per_suggestion_limit))
        return merge_first_seen(batches)[:limit]

    # ------------------------------------------------------------------
    # Structured logging
    # ------------------------------------------------------------------

    @staticmethod
    def _emit_search_event(event: SearchEvent) -> None:
        logger.info(
            "search_event query=%r tier=%s tags=%s results=%d duration_ms=%.2f suggestions=%s",
            event.query,
            event.tier or "-",
            ",".join(event.semantic_tags),
            event.result_count,
            event.duration_ms,
            list(event.suggestions) if event.suggestions is not None else "-",
        )
