"""In-memory terminology store used by the service and API tests.

Implements the same contracts as ``SnomedRepository`` with plain Python so
tests do not need PostgreSQL.  Trigram similarity follows pg_trgm: words are
lowercased alphanumeric runs padded with two leading blanks and one trailing
blank; similarity is shared trigrams over the union.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from app.models.snomed import FSN_TYPE_ID, IS_A_TYPE_ID, SYNONYM_TYPE_ID
from app.repositories.query_builder import FuzzyMatchQuery, WordMatchQuery
from app.repositories.terminology import (
    ConceptGraph,
    FuzzyTermMatch,
    SemanticTagRecord,
    TermIndex,
    TermMatch,
)
from app.services.ranking import best_per_concept, exact_sort_key, fuzzy_sort_key

_WORD_RE = re.compile(r"[^\W_]+")


def trigrams(text: str) -> set[str]:
    grams: set[str] = set()
    for word in _WORD_RE.findall((text or "").lower()):
        padded = f"  {word} "
        grams.update(padded[i : i + 3] for i in range(len(padded) - 2))
    return grams


def trigram_similarity(a: str, b: str) -> float:
    ga, gb = trigrams(a), trigrams(b)
    if not ga or not gb:
        return 0.0
    return len(ga & gb) / len(ga | gb)


def match_rank(term: str, query: str) -> int:
    t, q = term.lower(), query.lower()
    if t == q:
        return 0
    if t.startswith(q):
        return 1
    return 2


@dataclass
class FakeDescription:
    concept_id: int
    term: str
    type_id: int = SYNONYM_TYPE_ID
    active: bool = True


@dataclass
class FakeRelationship:
    source_id: int
    destination_id: int
    type_id: int = IS_A_TYPE_ID
    active: bool = True


@dataclass
class FakeConcept:
    concept_id: int
    active: bool = True
    fsn: Optional[str] = None
    semantic_tag: Optional[str] = None
    definitions: List[Tuple[str, bool]] = field(default_factory=list)


class FakeTerminologyStore(TermIndex, ConceptGraph):
    def __init__(self) -> None:
        self.concepts: Dict[int, FakeConcept] = {}
        self.descriptions: List[FakeDescription] = []
        self.relationships: List[FakeRelationship] = []
        self.calls: List[str] = []
        self.exact_queries: List[WordMatchQuery] = []

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------

    def add_concept(
        self,
        concept_id: int,
        synonyms: Sequence[str] = (),
        *,
        tag: Optional[str] = "finding",
        fsn: Optional[str] = None,
        active: bool = True,
        inactive_synonyms: Sequence[str] = (),
        definition: Optional[str] = None,
        with_fsn_description: bool = True,
    ) -> "FakeTerminologyStore":
        if fsn is None and synonyms and tag:
            fsn = f"{synonyms[0]} ({tag})"
        concept = FakeConcept(concept_id=concept_id, active=active, fsn=fsn, semantic_tag=tag)
        if definition:
            concept.definitions.append((definition, True))
        self.concepts[concept_id] = concept

        if fsn and with_fsn_description:
            self.descriptions.append(FakeDescription(concept_id, fsn, type_id=FSN_TYPE_ID))
        for term in synonyms:
            self.descriptions.append(FakeDescription(concept_id, term))
        for term in inactive_synonyms:
            self.descriptions.append(FakeDescription(concept_id, term, active=False))
        return self

    def add_is_a(self, child_id: int, parent_id: int, *, active: bool = True) -> "FakeTerminologyStore":
        self.relationships.append(FakeRelationship(child_id, parent_id, active=active))
        return self

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _visible(self, semantic_tags: Sequence[str]):
        for d in self.descriptions:
            concept = self.concepts.get(d.concept_id)
            if concept is None or not concept.active or not d.active:
                continue
            if concept.semantic_tag not in semantic_tags:
                continue
            yield d, concept

    def _exact_rows(self, query: WordMatchQuery) -> List[TermMatch]:
        rows = []
        for d, concept in self._visible(query.semantic_tags):
            lowered = d.term.lower()
            if all(word.lower() in lowered for word in query.words):
                rows.append(
                    TermMatch(
                        concept_id=d.concept_id,
                        term=d.term,
                        semantic_tag=concept.semantic_tag,
                        match_rank=match_rank(d.term, query.text),
                        term_length=len(d.term),
                    )
                )
        return rows

    def _fuzzy_rows(self, query: FuzzyMatchQuery) -> List[FuzzyTermMatch]:
        rows = []
        for d, concept in self._visible(query.semantic_tags):
            score = trigram_similarity(d.term, query.text)
            if score >= query.min_similarity:
                rows.append(
                    FuzzyTermMatch(
                        concept_id=d.concept_id,
                        term=d.term,
                        semantic_tag=concept.semantic_tag,
                        score=score,
                        term_length=len(d.term),
                    )
                )
        return rows

    def _is_a_edges(self):
        for r in self.relationships:
            if r.active and r.type_id == IS_A_TYPE_ID:
                yield r

    def _is_active(self, concept_id: int) -> bool:
        concept = self.concepts.get(concept_id)
        return bool(concept and concept.active)

    # ------------------------------------------------------------------
    # TermIndex
    # ------------------------------------------------------------------

    async def exact_word_match(self, query: WordMatchQuery, *, limit: int) -> List[TermMatch]:
        self.calls.append("exact_word_match")
        self.exact_queries.append(query)
        return self._exact_rows(query)

    async def fuzzy_match(self, query: FuzzyMatchQuery, *, limit: int) -> List[FuzzyTermMatch]:
        self.calls.append("fuzzy_match")
        return self._fuzzy_rows(query)

    async def page_exact_word_match(self, query: WordMatchQuery, *, offset: int, limit: int) -> List[TermMatch]:
        self.calls.append("page_exact_word_match")
        rows = sorted(best_per_concept(self._exact_rows(query), exact_sort_key), key=lambda r: r.concept_id)
        return rows[offset : offset + limit]

    async def count_exact_word_match(self, query: WordMatchQuery) -> int:
        self.calls.append("count_exact_word_match")
        return len({r.concept_id for r in self._exact_rows(query)})

    async def page_fuzzy_match(self, query: FuzzyMatchQuery, *, offset: int, limit: int) -> List[FuzzyTermMatch]:
        self.calls.append("page_fuzzy_match")
        rows = sorted(
            best_per_concept(self._fuzzy_rows(query), fuzzy_sort_key),
            key=lambda r: (-r.score, r.concept_id),
        )
        return rows[offset : offset + limit]

    async def count_fuzzy_match(self, query: FuzzyMatchQuery) -> int:
        self.calls.append("count_fuzzy_match")
        return len({r.concept_id for r in self._fuzzy_rows(query)})

    # ------------------------------------------------------------------
    # ConceptGraph
    # ------------------------------------------------------------------

    async def is_active_concept(self, concept_id: int) -> bool:
        return self._is_active(concept_id)

    async def children_of(self, concept_id: int) -> List[int]:
        return sorted(
            {r.source_id for r in self._is_a_edges() if r.destination_id == concept_id and self._is_active(r.source_id)}
        )

    async def parents_of(self, concept_id: int) -> List[int]:
        return sorted(
            {r.destination_id for r in self._is_a_edges() if r.source_id == concept_id and self._is_active(r.destination_id)}
        )

    async def preferred_terms(self, concept_ids: Sequence[int]) -> Dict[int, str]:
        terms: Dict[int, str] = {}
        for cid in set(concept_ids):
            synonyms = sorted(
                (
                    d.term
                    for d in self.descriptions
                    if d.concept_id == cid and d.active and d.type_id == SYNONYM_TYPE_ID
                ),
                key=lambda t: (len(t), t),
            )
            if synonyms:
                terms[cid] = synonyms[0]
            elif cid in self.concepts and self.concepts[cid].fsn:
                terms[cid] = self.concepts[cid].fsn
        return terms

    async def synonyms(self, concept_id: int) -> List[str]:
        return sorted(
            {
                d.term
                for d in self.descriptions
                if d.concept_id == concept_id and d.active and d.type_id == SYNONYM_TYPE_ID
            }
        )

    async def definition(self, concept_id: int) -> Optional[str]:
        concept = self.concepts.get(concept_id)
        if concept is None:
            return None
        return next((term for term, active in concept.definitions if active), None)

    async def child_counts(self, concept_ids: Sequence[int]) -> Dict[int, int]:
        wanted = set(concept_ids)
        counts: Dict[int, int] = {}
        for r in self._is_a_edges():
            if r.destination_id in wanted:
                counts[r.destination_id] = counts.get(r.destination_id, 0) + 1
        return counts

    async def semantic_tag_info(self, concept_id: int) -> Optional[SemanticTagRecord]:
        concept = self.concepts.get(concept_id)
        if concept is None:
            return None
        return SemanticTagRecord(concept_id, concept.fsn, concept.semantic_tag)

    async def semantic_tags_of(self, concept_ids: Sequence[int]) -> Dict[int, Optional[str]]:
        return {cid: self.concepts[cid].semantic_tag for cid in concept_ids if cid in self.concepts}

    async def semantic_tag_counts(self, semantic_tags: Sequence[str]) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for concept in self.concepts.values():
            if concept.active and concept.semantic_tag in semantic_tags:
                counts[concept.semantic_tag] = counts.get(concept.semantic_tag, 0) + 1
        return counts


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

CLINICAL_FINDING = 404684003
PAIN = 22253000
HEADACHE = 25064002
TENSION_HEADACHE = 398057008
CHEST_PAIN = 29857009
CHEST_PAIN_ON_BREATHING = 23924001
CENTRAL_CHEST_PAIN = 314505008
ABDOMINAL_PAIN = 21522001
INACTIVE_CHEST_PAIN = 99999001
HEADACHE_PROCEDURE = 88888001


def build_sample_store() -> FakeTerminologyStore:
    store = FakeTerminologyStore()
    store.add_concept(CLINICAL_FINDING, ["Clinical finding"], definition="Observation of a clinical state.")
    store.add_concept(PAIN, ["Pain"])
    store.add_concept(HEADACHE, ["Headache", "Cephalgia", "Cephalalgia"], definition="Pain in the head.")
    store.add_concept(TENSION_HEADACHE, ["Tension-type headache", "Tension headache"], tag="disorder")
    store.add_concept(CHEST_PAIN, ["Chest pain"], inactive_synonyms=["Thoracic pain"])
    store.add_concept(CHEST_PAIN_ON_BREATHING, ["Chest pain on breathing"])
    store.add_concept(CENTRAL_CHEST_PAIN, ["Central chest pain"])
    store.add_concept(ABDOMINAL_PAIN, ["Abdominal pain", "Stomach ache"])
    store.add_concept(INACTIVE_CHEST_PAIN, ["Chest pain old"], active=False)
    store.add_concept(HEADACHE_PROCEDURE, ["Headache assessment"], tag="procedure")

    store.add_is_a(PAIN, CLINICAL_FINDING)
    store.add_is_a(HEADACHE, PAIN)
    store.add_is_a(CHEST_PAIN, PAIN)
    store.add_is_a(ABDOMINAL_PAIN, PAIN)
    store.add_is_a(TENSION_HEADACHE, HEADACHE)
    store.add_is_a(CHEST_PAIN_ON_BREATHING, CHEST_PAIN)
    store.add_is_a(CENTRAL_CHEST_PAIN, CHEST_PAIN)
    store.add_is_a(INACTIVE_CHEST_PAIN, CHEST_PAIN)
    store.add_is_a(CHEST_PAIN, CLINICAL_FINDING, active=False)
    return store
