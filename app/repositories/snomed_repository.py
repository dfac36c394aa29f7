"""PostgreSQL repository for the ``snomed`` schema.

Implements both :class:`TermIndex` and :class:`ConceptGraph` on top of an
``AsyncSession``.  Matching is pushed down to the database:

- word-set matching uses one bound ``ILIKE`` per query word;
- fuzzy matching uses ``pg_trgm`` ``similarity()`` (plus the ``%`` operator so
  the trigram GIN index on ``description.term`` can be used).  ``%`` reads
  ``pg_trgm.similarity_threshold``, so fuzzy queries first pin it to the
  query threshold for the current transaction;
- per-concept best rows are picked with ``DISTINCT ON (concept_id)``.

Any ``SQLAlchemyError`` is logged and re-raised as ``TerminologyStoreError``.
No retry is attempted.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import distinct, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.snomed import (
    IS_A_TYPE_ID,
    SYNONYM_TYPE_ID,
    Concept,
    Description,
    Relationship,
    SemanticTagInfo,
    TextDefinition,
)
from app.repositories.query_builder import FuzzyMatchQuery, WordMatchQuery
from app.repositories.terminology import (
    ConceptGraph,
    FuzzyTermMatch,
    SemanticTagRecord,
    TermIndex,
    TerminologyStoreError,
    TermMatch,
)

logger = logging.getLogger(__name__)

# pg_trgm.similarity_threshold default; the ``%`` operator filters below it.
PG_TRGM_DEFAULT_THRESHOLD = 0.3


class SnomedRepository(TermIndex, ConceptGraph):
    """Async repository over the read-only SNOMED CT tables."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Execution helpers
    # ------------------------------------------------------------------

    async def _all(self, stmt, operation: str) -> list:
        try:
            return list((await self._db.execute(stmt)).all())
        except SQLAlchemyError as exc:
            logger.exception("snomed_repository.%s failed", operation)
            raise TerminologyStoreError(f"terminology store query failed: {operation}") from exc

    async def _scalars(self, stmt, operation: str) -> list:
        try:
            return list((await self._db.execute(stmt)).scalars().all())
        except SQLAlchemyError as exc:
            logger.exception("snomed_repository.%s failed", operation)
            raise TerminologyStoreError(f"terminology store query failed: {operation}") from exc

    async def _scalar(self, stmt, operation: str):
        try:
            return (await self._db.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.exception("snomed_repository.%s failed", operation)
            raise TerminologyStoreError(f"terminology store query failed: {operation}") from exc

    # ------------------------------------------------------------------
    # Statement builders
    # ------------------------------------------------------------------

    @staticmethod
    def _visible_descriptions(*columns, semantic_tags: Sequence[str]):
        """Active descriptions of active concepts carrying one of ``semantic_tags``."""
        return (
            select(*columns)
            .select_from(Description)
            .join(Concept, Concept.concept_id == Description.concept_id)
            .join(SemanticTagInfo, SemanticTagInfo.concept_id == Description.concept_id)
            .where(
                Description.active.is_(True),
                Concept.active.is_(True),
                SemanticTagInfo.semantic_tag.in_(list(semantic_tags)),
            )
        )

    @staticmethod
    def _uses_trgm_operator(query: FuzzyMatchQuery) -> bool:
        return query.min_similarity >= PG_TRGM_DEFAULT_THRESHOLD

    @classmethod
    def _fuzzy_conditions(cls, query: FuzzyMatchQuery) -> list:
        conditions = [query.similarity(Description.term) >= query.min_similarity]
        if cls._uses_trgm_operator(query):
            conditions.append(Description.term.op("%")(query.text))
        return conditions

    async def _pin_trgm_threshold(self, query: FuzzyMatchQuery) -> None:
        """Make ``%`` filter at ``min_similarity`` for the rest of this transaction.

        ``%`` reads ``pg_trgm.similarity_threshold``, which a database or role
        may set above ``min_similarity``.
        """
        if not self._uses_trgm_operator(query):
            return
        stmt = select(
            func.set_config("pg_trgm.similarity_threshold", str(query.min_similarity), True)
        )
        await self._scalar(stmt, "set_similarity_threshold")

    def _best_exact_per_concept(self, query: WordMatchQuery):
        match_rank = query.match_rank(Description.term)
        term_length = func.length(Description.term)
        return (
            self._visible_descriptions(
                Description.concept_id.label("concept_id"),
                Description.term.label("term"),
                SemanticTagInfo.semantic_tag.label("semantic_tag"),
                match_rank.label("match_rank"),
                term_length.label("term_length"),
                semantic_tags=query.semantic_tags,
            )
            .where(*query.word_conditions(Description.term))
            .distinct(Description.concept_id)
            .order_by(Description.concept_id, match_rank, term_length, Description.term)
            .subquery("best_exact")
        )

    def _best_fuzzy_per_concept(self, query: FuzzyMatchQuery):
        score = query.similarity(Description.term)
        term_length = func.length(Description.term)
        return (
            self._visible_descriptions(
                Description.concept_id.label("concept_id"),
                Description.term.label("term"),
                SemanticTagInfo.semantic_tag.label("semantic_tag"),
                score.label("score"),
                term_length.label("term_length"),
                semantic_tags=query.semantic_tags,
            )
            .where(*self._fuzzy_conditions(query))
            .distinct(Description.concept_id)
            .order_by(Description.concept_id, score.desc(), term_length, Description.term)
            .subquery("best_fuzzy")
        )

    @staticmethod
    def _term_matches(rows) -> List[TermMatch]:
        return [
            TermMatch(
                concept_id=int(r.concept_id),
                term=r.term,
                semantic_tag=r.semantic_tag,
                match_rank=int(r.match_rank),
                term_length=int(r.term_length),
            )
            for r in rows
        ]

    @staticmethod
    def _fuzzy_matches(rows) -> List[FuzzyTermMatch]:
        return [
            FuzzyTermMatch(
                concept_id=int(r.concept_id),
                term=r.term,
                semantic_tag=r.semantic_tag,
                score=float(r.score or 0.0),
                term_length=int(r.term_length),
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # TermIndex
    # ------------------------------------------------------------------

    async def exact_word_match(self, query: WordMatchQuery, *, limit: int) -> List[TermMatch]:
        best = self._best_exact_per_concept(query)
        stmt = (
            select(best)
            .order_by(best.c.match_rank, best.c.term_length, best.c.term)
            .limit(limit)
        )
        return self._term_matches(await self._all(stmt, "exact_word_match"))

    async def fuzzy_match(self, query: FuzzyMatchQuery, *, limit: int) -> List[FuzzyTermMatch]:
        best = self._best_fuzzy_per_concept(query)
        stmt = (
            select(best)
            .order_by(best.c.score.desc(), best.c.term_length, best.c.term)
            .limit(limit)
        )
        await self._pin_trgm_threshold(query)
        return self._fuzzy_matches(await self._all(stmt, "fuzzy_match"))

    async def page_exact_word_match(
        self, query: WordMatchQuery, *, offset: int, limit: int
    ) -> List[TermMatch]:
        best = self._best_exact_per_concept(query)
        stmt = select(best).order_by(best.c.concept_id).offset(offset).limit(limit)
        return self._term_matches(await self._all(stmt, "page_exact_word_match"))

    async def count_exact_word_match(self, query: WordMatchQuery) -> int:
        stmt = self._visible_descriptions(
            func.count(distinct(Description.concept_id)),
            semantic_tags=query.semantic_tags,
        ).where(*query.word_conditions(Description.term))
        return int(await self._scalar(stmt, "count_exact_word_match") or 0)

    async def page_fuzzy_match(
        self, query: FuzzyMatchQuery, *, offset: int, limit: int
    ) -> List[FuzzyTermMatch]:
        best = self._best_fuzzy_per_concept(query)
        stmt = (
            select(best)
            .order_by(best.c.score.desc(), best.c.concept_id)
            .offset(offset)
            .limit(limit)
        )
        await self._pin_trgm_threshold(query)
        return self._fuzzy_matches(await self._all(stmt, "page_fuzzy_match"))

    async def count_fuzzy_match(self, query: FuzzyMatchQuery) -> int:
        stmt = self._visible_descriptions(
            func.count(distinct(Description.concept_id)),
            semantic_tags=query.semantic_tags,
        ).where(*self._fuzzy_conditions(query))
        await self._pin_trgm_threshold(query)
        return int(await self._scalar(stmt, "count_fuzzy_match") or 0)

    # ------------------------------------------------------------------
    # ConceptGraph
    # ------------------------------------------------------------------

    async def is_active_concept(self, concept_id: int) -> bool:
        stmt = (
            select(Concept.concept_id)
            .where(Concept.concept_id == concept_id, Concept.active.is_(True))
            .limit(1)
        )
        return await self._scalar(stmt, "is_active_concept") is not None

    async def children_of(self, concept_id: int) -> List[int]:
        stmt = (
            select(Relationship.source_id)
            .join(Concept, Concept.concept_id == Relationship.source_id)
            .where(
                Relationship.destination_id == concept_id,
                Relationship.type_id == IS_A_TYPE_ID,
                Relationship.active.is_(True),
                Concept.active.is_(True),
            )
            .distinct()
            .order_by(Relationship.source_id)
        )
        return [int(v) for v in await self._scalars(stmt, "children_of")]

    async def parents_of(self, concept_id: int) -> List[int]:
        stmt = (
            select(Relationship.destination_id)
            .join(Concept, Concept.concept_id == Relationship.destination_id)
            .where(
                Relationship.source_id == concept_id,
                Relationship.type_id == IS_A_TYPE_ID,
                Relationship.active.is_(True),
                Concept.active.is_(True),
            )
            .distinct()
            .order_by(Relationship.destination_id)
        )
        return [int(v) for v in await self._scalars(stmt, "parents_of")]

    async def preferred_terms(self, concept_ids: Sequence[int]) -> Dict[int, str]:
        ids = sorted(set(concept_ids))
        if not ids:
            return {}

        synonym_stmt = (
            select(Description.concept_id, Description.term)
            .where(
                Description.concept_id.in_(ids),
                Description.active.is_(True),
                Description.type_id == SYNONYM_TYPE_ID,
            )
            .distinct(Description.concept_id)
            .order_by(Description.concept_id, func.length(Description.term), Description.term)
        )
        terms = {int(r.concept_id): r.term for r in await self._all(synonym_stmt, "preferred_terms")}

        missing = [i for i in ids if i not in terms]
        if missing:
            fsn_stmt = select(SemanticTagInfo.concept_id, SemanticTagInfo.fully_specified_name).where(
                SemanticTagInfo.concept_id.in_(missing),
                SemanticTagInfo.fully_specified_name.is_not(None),
            )
            for r in await self._all(fsn_stmt, "preferred_terms.fsn"):
                terms[int(r.concept_id)] = r.fully_specified_name

        return terms

    async def synonyms(self, concept_id: int) -> List[str]:
        stmt = (
            select(Description.term)
            .where(
                Description.concept_id == concept_id,
                Description.active.is_(True),
                Description.type_id == SYNONYM_TYPE_ID,
            )
            .distinct()
            .order_by(Description.term)
        )
        return await self._scalars(stmt, "synonyms")

    async def definition(self, concept_id: int) -> Optional[str]:
        stmt = (
            select(TextDefinition.term)
            .where(TextDefinition.concept_id == concept_id, TextDefinition.active.is_(True))
            .order_by(TextDefinition.definition_id)
            .limit(1)
        )
        return await self._scalar(stmt, "definition")

    async def child_counts(self, concept_ids: Sequence[int]) -> Dict[int, int]:
        ids = sorted(set(concept_ids))
        if not ids:
            return {}

        stmt = (
            select(Relationship.destination_id, func.count().label("children_count"))
            .where(
                Relationship.destination_id.in_(ids),
                Relationship.type_id == IS_A_TYPE_ID,
                Relationship.active.is_(True),
            )
            .group_by(Relationship.destination_id)
        )
        return {
            int(r.destination_id): int(r.children_count)
            for r in await self._all(stmt, "child_counts")
        }

    async def semantic_tag_info(self, concept_id: int) -> Optional[SemanticTagRecord]:
        stmt = select(
            SemanticTagInfo.concept_id,
            SemanticTagInfo.fully_specified_name,
            SemanticTagInfo.semantic_tag,
        ).where(SemanticTagInfo.concept_id == concept_id)
        rows = await self._all(stmt, "semantic_tag_info")
        if not rows:
            return None
        row = rows[0]
        return SemanticTagRecord(
            concept_id=int(row.concept_id),
            fully_specified_name=row.fully_specified_name,
            semantic_tag=row.semantic_tag,
        )

    async def semantic_tags_of(self, concept_ids: Sequence[int]) -> Dict[int, Optional[str]]:
        ids = sorted(set(concept_ids))
        if not ids:
            return {}

        stmt = select(SemanticTagInfo.concept_id, SemanticTagInfo.semantic_tag).where(
            SemanticTagInfo.concept_id.in_(ids)
        )
        return {int(r.concept_id): r.semantic_tag for r in await self._all(stmt, "semantic_tags_of")}

    async def semantic_tag_counts(self, semantic_tags: Sequence[str]) -> Dict[str, int]:
        if not semantic_tags:
            return {}

        stmt = (
            select(SemanticTagInfo.semantic_tag, func.count().label("concept_count"))
            .join(Concept, Concept.concept_id == SemanticTagInfo.concept_id)
            .where(
                Concept.active.is_(True),
                SemanticTagInfo.semantic_tag.in_(list(semantic_tags)),
            )
            .group_by(SemanticTagInfo.semantic_tag)
        )
        return {r.semantic_tag: int(r.concept_count) for r in await self._all(stmt, "semantic_tag_counts")}
