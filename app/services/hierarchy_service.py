"""Is-a hierarchy browsing and concept details."""

from __future__ import annotations

import logging
from typing import List, Optional

from app.core.search_config import SearchTuning, search_tuning
from app.repositories.terminology import ConceptGraph
from app.schemas.snomed import Concept, ConceptSummary, HierarchyResponse
from app.services.concept_summaries import summarize_concepts

logger = logging.getLogger(__name__)


def _by_preferred_term(summary: ConceptSummary) -> tuple:
    return (summary.preferred_term.casefold(), summary.preferred_term, summary.concept_id)


class ConceptHierarchyService:
    def __init__(self, concept_graph: ConceptGraph, *, tuning: SearchTuning = search_tuning) -> None:
        self._graph = concept_graph
        self._tuning = tuning

    async def get_children(self, concept_id: int, limit: Optional[int] = None) -> HierarchyResponse:
        """Direct is-a children of ``concept_id``, sorted by preferred term, at most ``limit``.

        Missing or inactive concepts have no children.
        """
        limit = self._tuning.children_default_limit if limit is None else limit
        preferred_term = await self._graph.preferred_term(concept_id)
        if not await self._graph.is_active_concept(concept_id):
            return HierarchyResponse(concept_id=concept_id, preferred_term=preferred_term, items=[])
        child_ids = await self._graph.children_of(concept_id)

        items = sorted(await summarize_concepts(self._graph, child_ids), key=_by_preferred_term)
        return HierarchyResponse(
            concept_id=concept_id,
            preferred_term=preferred_term,
            items=items[: max(limit, 0)],
        )

    async def get_parents(self, concept_id: int) -> HierarchyResponse:
        """Direct is-a parents of ``concept_id``, sorted by preferred term; none when inactive."""
        preferred_term = await self._graph.preferred_term(concept_id)
        if not await self._graph.is_active_concept(concept_id):
            return HierarchyResponse(concept_id=concept_id, preferred_term=preferred_term, items=[])
        parent_ids = await self._graph.parents_of(concept_id)

        items = sorted(await summarize_concepts(self._graph, parent_ids), key=_by_preferred_term)
        return HierarchyResponse(concept_id=concept_id, preferred_term=preferred_term, items=items)

    async def get_synonyms(self, concept_id: int) -> List[str]:
        return await self._graph.synonyms(concept_id)

    async def get_concept_details(self, concept_id: int) -> Optional[Concept]:
        """Full concept view, or ``None`` when the concept is missing or inactive."""
        if not await self._graph.is_active_concept(concept_id):
            logger.info("concept_details not found concept_id=%s", concept_id)
            return None

        tag_info = await self._graph.semantic_tag_info(concept_id)
        fsn = tag_info.fully_specified_name if tag_info else None
        synonyms = await self._graph.synonyms(concept_id)
        parents = await self.get_parents(concept_id)

        return Concept(
            concept_id=concept_id,
            active=True,
            fsn=fsn,
            semantic_tag=tag_info.semantic_tag if tag_info else None,
            preferred_term=synonyms[0] if synonyms else (fsn or str(concept_id)),
            synonyms=synonyms,
            definition=await self._graph.definition(concept_id),
            parents=parents.items,
            children_count=await self._graph.child_count(concept_id),
        )
