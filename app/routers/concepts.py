"""SNOMED CT concept router.

Endpoints:
- GET /concepts/search?q=...&limit=20&tags=finding&semantic=true
- GET /concepts/stats/semantic-tags
- GET /concepts/{concept_id}
- GET /concepts/{concept_id}/children?limit=50
- GET /concepts/{concept_id}/parents
- GET /concepts/{concept_id}/synonyms
"""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from app.core.search_config import SearchOptions, search_tuning
from app.repositories.terminology import TerminologyStoreError
from app.schemas.snomed import Concept, ConceptSummary, HierarchyResponse
from app.services.concept_search import ConceptSearchService
from app.services.dependencies import (
    get_concept_search_service,
    get_hierarchy_service,
    get_stats_service,
)
from app.services.hierarchy_service import ConceptHierarchyService
from app.services.semantic_tag_stats import SemanticTagStatsService

router = APIRouter(prefix="/concepts", tags=["concepts"])


def _store_unavailable() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="terminology store unavailable",
    )


@router.get("/search", response_model=List[ConceptSummary])
async def search_concepts(
    q: str = Query(default="", description="Free-text complaint"),
    limit: int = Query(default=search_tuning.default_limit, ge=1, le=search_tuning.max_limit),
    tags: Optional[List[str]] = Query(default=None, description="Semantic tags to match (default: finding)"),
    semantic: bool = Query(default=True, description="Allow the suggested-term fallback"),
    service: ConceptSearchService = Depends(get_concept_search_service),
) -> List[ConceptSummary]:
    options = SearchOptions(semantic_tags=tuple(tags or ()), allow_semantic_fallback=semantic)
    try:
        return await service.search(q, limit=limit, options=options)
    except TerminologyStoreError as exc:
        raise _store_unavailable() from exc


@router.get("/stats/semantic-tags", response_model=Dict[str, int])
async def semantic_tag_stats(
    service: SemanticTagStatsService = Depends(get_stats_service),
) -> Dict[str, int]:
    try:
        return await service.get_semantic_tag_stats()
    except TerminologyStoreError as exc:
        raise _store_unavailable() from exc


@router.get("/{concept_id}", response_model=Concept)
async def get_concept(
    concept_id: int = Path(..., gt=0),
    service: ConceptHierarchyService = Depends(get_hierarchy_service),
) -> Concept:
    try:
        concept = await service.get_concept_details(concept_id)
    except TerminologyStoreError as exc:
        raise _store_unavailable() from exc

    if concept is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Concept not found")
    return concept


@router.get("/{concept_id}/children", response_model=HierarchyResponse)
async def get_children(
    concept_id: int = Path(..., gt=0),
    limit: int = Query(default=search_tuning.children_default_limit, ge=1, le=1000),
    service: ConceptHierarchyService = Depends(get_hierarchy_service),
) -> HierarchyResponse:
    try:
        return await service.get_children(concept_id, limit=limit)
    except TerminologyStoreError as exc:
        raise _store_unavailable() from exc


@router.get("/{concept_id}/parents", response_model=HierarchyResponse)
async def get_parents(
    concept_id: int = Path(..., gt=0),
    service: ConceptHierarchyService = Depends(get_hierarchy_service),
) -> HierarchyResponse:
    try:
        return await service.get_parents(concept_id)
    except TerminologyStoreError as exc:
        raise _store_unavailable() from exc


@router.get("/{concept_id}/synonyms", response_model=List[str])
async def get_synonyms(
    concept_id: int = Path(..., gt=0),
    service: ConceptHierarchyService = Depends(get_hierarchy_service),
) -> List[str]:
    try:
        return await service.get_synonyms(concept_id)
    except TerminologyStoreError as exc:
        raise _store_unavailable() from exc
