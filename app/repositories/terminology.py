"""Store contracts used by the search and hierarchy services.

``TermIndex`` answers term matching questions, ``ConceptGraph`` answers
concept/description/relationship questions.  Both only ever see active
concepts, descriptions and relationships.  ``SnomedRepository`` is the
PostgreSQL implementation of both.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from app.repositories.query_builder import FuzzyMatchQuery, WordMatchQuery


class TerminologyStoreError(RuntimeError):
    """The terminology store could not be reached or a query failed."""


# ---------------------------------------------------------------------------
# Data transfer objects
# ---------------------------------------------------------------------------


@dataclass
class TermMatch:
    """A description matching every query word."""

    concept_id: int
    term: str
    semantic_tag: Optional[str]
    match_rank: int
    term_length: int


@dataclass
class FuzzyTermMatch:
    """A description whose trigram similarity passed the threshold."""

    concept_id: int
    term: str
    semantic_tag: Optional[str]
    score: float
    term_length: int


@dataclass
class SemanticTagRecord:
    concept_id: int
    fully_specified_name: Optional[str]
    semantic_tag: Optional[str]


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


class TermIndex(ABC):
    """Word-set and fuzzy matching over concept descriptions."""

    @abstractmethod
    async def exact_word_match(self, query: WordMatchQuery, *, limit: int) -> List[TermMatch]:
        """Return candidate rows for the best-ranked ``limit`` concepts.

        Rows may repeat a concept and may come back in any order; callers own
        the final per-concept selection and ordering.
        """

    @abstractmethod
    async def fuzzy_match(self, query: FuzzyMatchQuery, *, limit: int) -> List[FuzzyTermMatch]:
        """Return candidate rows for the ``limit`` most similar concepts."""

    @abstractmethod
    async def page_exact_word_match(
        self, query: WordMatchQuery, *, offset: int, limit: int
    ) -> List[TermMatch]:
        """One row per matching concept, ordered by ``concept_id``, windowed."""

    @abstractmethod
    async def count_exact_word_match(self, query: WordMatchQuery) -> int:
        """Number of distinct concepts matching ``query``."""

    @abstractmethod
    async def page_fuzzy_match(
        self, query: FuzzyMatchQuery, *, offset: int, limit: int
    ) -> List[FuzzyTermMatch]:
        """One row per concept (its best score), ordered by score desc then ``concept_id``."""

    @abstractmethod
    async def count_fuzzy_match(self, query: FuzzyMatchQuery) -> int:
        """Number of distinct concepts with a description passing the threshold."""


class ConceptGraph(ABC):
    """Concept lookups and is-a traversal."""

    @abstractmethod
    async def is_active_concept(self, concept_id: int) -> bool:
        ...

    @abstractmethod
    async def children_of(self, concept_id: int) -> List[int]:
        """Active concepts with an active is-a edge pointing at ``concept_id``."""

    @abstractmethod
    async def parents_of(self, concept_id: int) -> List[int]:
        """Active concepts that ``concept_id`` has an active is-a edge to."""

    @abstractmethod
    async def preferred_terms(self, concept_ids: Sequence[int]) -> Dict[int, str]:
        """Shortest active synonym, else the FSN.  Unresolvable ids are omitted."""

    @abstractmethod
    async def synonyms(self, concept_id: int) -> List[str]:
        """Distinct active synonym terms, sorted."""

    @abstractmethod
    async def definition(self, concept_id: int) -> Optional[str]:
        ...

    @abstractmethod
    async def child_counts(self, concept_ids: Sequence[int]) -> Dict[int, int]:
        """Active is-a edge count per destination concept.  Zero counts may be omitted."""

    @abstractmethod
    async def semantic_tag_info(self, concept_id: int) -> Optional[SemanticTagRecord]:
        ...

    @abstractmethod
    async def semantic_tags_of(self, concept_ids: Sequence[int]) -> Dict[int, Optional[str]]:
        ...

    @abstractmethod
    async def semantic_tag_counts(self, semantic_tags: Sequence[str]) -> Dict[str, int]:
        """Number of concepts per semantic tag, for the given tags only."""

    async def preferred_term(self, concept_id: int) -> str:
        terms = await self.preferred_terms([concept_id])
        return terms.get(concept_id) or str(concept_id)

    async def child_count(self, concept_id: int) -> int:
        counts = await self.child_counts([concept_id])
        return counts.get(concept_id, 0)
