from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from app.repositories.terminology import ConceptGraph
from app.schemas.snomed import ConceptSummary


async def summarize_concepts(
    graph: ConceptGraph,
    concept_ids: Sequence[int],
    *,
    semantic_tags: Optional[Dict[int, Optional[str]]] = None,
) -> List[ConceptSummary]:
    """Build summaries in ``concept_ids`` order with one batched lookup per field."""
    if not concept_ids:
        return []

    ids = list(concept_ids)
    terms = await graph.preferred_terms(ids)
    counts = await graph.child_counts(ids)
    if semantic_tags is None:
        semantic_tags = await graph.semantic_tags_of(ids)

    return [
        ConceptSummary(
            concept_id=cid,
            preferred_term=terms.get(cid) or str(cid),
            semantic_tag=semantic_tags.get(cid),
            children_count=counts.get(cid, 0),
        )
        for cid in ids
    ]
