from __future__ import annotations

from typing import Dict, Sequence

from app.core.search_config import STATS_SEMANTIC_TAGS
from app.repositories.terminology import ConceptGraph


class SemanticTagStatsService:
    """Concept counts for the clinically meaningful semantic tags."""

    def __init__(self, concept_graph: ConceptGraph, *, allowed_tags: Sequence[str] = STATS_SEMANTIC_TAGS) -> None:
        self._graph = concept_graph
        self._allowed_tags = tuple(allowed_tags)

    async def get_semantic_tag_stats(self) -> Dict[str, int]:
        """Tag -> concept count, largest first; equal counts ordered by tag name."""
        counts = await self._graph.semantic_tag_counts(self._allowed_tags)
        allowed = set(self._allowed_tags)
        ordered = sorted(
            ((tag, count) for tag, count in counts.items() if tag in allowed),
            key=lambda item: (-item[1], item[0]),
        )
        return dict(ordered)
