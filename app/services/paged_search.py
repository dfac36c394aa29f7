"""Paged chief complaint search.

Two tiers with exact totals:

- **Word-set**: same all-words predicate as the unpaged search, but ordered by
  ``concept_id`` so page boundaries are stable.
- **Fuzzy**: used only when the word-set total is zero; ordered by best
  similarity desc, then ``concept_id``.

``total_count`` always belongs to the tier that produced the page.  Unlike the
unpaged search there is no suggested-term tier here.

Out-of-range paging input is clamped: ``page`` to at least 1 and ``page_size``
to ``[1, max_page_size]``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence, Union

from app.core.search_config import DEFAULT_SEMANTIC_TAGS, SearchTuning, search_tuning
from app.repositories.query_builder import FuzzyMatchQuery, WordMatchQuery
from app.repositories.terminology import ConceptGraph, FuzzyTermMatch, TermIndex, TermMatch
from app.schemas.snomed import ChiefComplaint, PagedResult

logger = logging.getLogger(__name__)


class SearchCancelledError(Exception):
    """The paged search was aborted because it ran past its timeout."""


class PagedComplaintSearchService:
    def __init__(
        self,
        term_index: TermIndex,
        concept_graph: ConceptGraph,
        *,
        semantic_tags: Sequence[str] = DEFAULT_SEMANTIC_TAGS,
        tuning: SearchTuning = search_tuning,
    ) -> None:
        self._term_index = term_index
        self._concept_graph = concept_graph
        self._semantic_tags = tuple(semantic_tags) or DEFAULT_SEMANTIC_TAGS
        self._tuning = tuning

    async def search_paged(
        self,
        search_term: str,
        page: int = 1,
        page_size: Optional[int] = None,
        *,
        timeout: Optional[float] = None,
    ) -> PagedResult[ChiefComplaint]:
        """Return one page of matches plus the exact number of matching concepts.

        ``timeout`` (seconds) defaults to ``paged_timeout_seconds``; ``0``
        disables it.  Hitting it aborts the in-flight store call and raises
        :class:`SearchCancelledError`.  Cancelling the calling task propagates
        ``asyncio.CancelledError`` unchanged.
        """
        page = max(int(page), 1)
        requested_size = self._tuning.default_page_size if page_size is None else int(page_size)
        page_size = min(max(requested_size, 1), self._tuning.max_page_size)

        word_query = WordMatchQuery.from_text(search_term, self._semantic_tags)
        if word_query is None:
            return PagedResult[ChiefComplaint](items=[], total_count=0, page=page, page_size=page_size)

        effective_timeout = self._tuning.paged_timeout_seconds if timeout is None else timeout
        if not effective_timeout or effective_timeout <= 0:
            return await self._search(word_query, page, page_size)

        try:
            return await asyncio.wait_for(self._search(word_query, page, page_size), timeout=effective_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "paged_search timed out query=%r page=%s page_size=%s timeout=%.2fs",
                word_query.text,
                page,
                page_size,
                effective_timeout,
            )
            raise SearchCancelledError(f"paged search exceeded {effective_timeout}s") from None

    async def _search(self, word_query: WordMatchQuery, page: int, page_size: int) -> PagedResult[ChiefComplaint]:
        offset = (page - 1) * page_size
        tier = "exact"

        rows: List[Union[TermMatch, FuzzyTermMatch]] = []
        total_count = await self._term_index.count_exact_word_match(word_query)
        if total_count > 0:
            rows = list(await self._term_index.page_exact_word_match(word_query, offset=offset, limit=page_size))
        else:
            tier = "fuzzy"
            fuzzy_query = FuzzyMatchQuery.from_text(
                word_query.text,
                self._semantic_tags,
                min_similarity=self._tuning.similarity_threshold,
            )
            total_count = await self._term_index.count_fuzzy_match(fuzzy_query)
            if total_count > 0:
                rows = list(await self._term_index.page_fuzzy_match(fuzzy_query, offset=offset, limit=page_size))

        items = await self._to_chief_complaints(rows)
        logger.info(
            "paged_search query=%r tier=%s page=%s page_size=%s items=%d total=%d",
            word_query.text,
            tier,
            page,
            page_size,
            len(items),
            total_count,
        )
        return PagedResult[ChiefComplaint](items=items, total_count=total_count, page=page, page_size=page_size)

    async def _to_chief_complaints(
        self, rows: Sequence[Union[TermMatch, FuzzyTermMatch]]
    ) -> List[ChiefComplaint]:
        if not rows:
            return []
        terms = await self._concept_graph.preferred_terms([r.concept_id for r in rows])
        return [
            ChiefComplaint(
                concept_id=r.concept_id,
                preferred_term=terms.get(r.concept_id) or r.term,
                semantic_tag=r.semantic_tag,
            )
            for r in rows
        ]
