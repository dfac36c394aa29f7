"""FastAPI dependency wiring.

The one place where the concrete store adapter and suggestion source are
chosen; routers only see the service classes.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.async_session import get_async_db
from app.repositories.snomed_repository import SnomedRepository
from app.services.concept_search import ConceptSearchService
from app.services.hierarchy_service import ConceptHierarchyService
from app.services.paged_search import PagedComplaintSearchService
from app.services.semantic_tag_stats import SemanticTagStatsService
from app.services.suggestion_source import SuggestionSource, build_suggestion_source


def get_snomed_repository(db: AsyncSession = Depends(get_async_db)) -> SnomedRepository:
    return SnomedRepository(db)


@lru_cache(maxsize=1)
def get_suggestion_source() -> Optional[SuggestionSource]:
    return build_suggestion_source()


def get_concept_search_service(
    repository: SnomedRepository = Depends(get_snomed_repository),
    suggestion_source: Optional[SuggestionSource] = Depends(get_suggestion_source),
) -> ConceptSearchService:
    return ConceptSearchService(repository, repository, suggestion_source)


def get_paged_search_service(
    repository: SnomedRepository = Depends(get_snomed_repository),
) -> PagedComplaintSearchService:
    return PagedComplaintSearchService(repository, repository)


def get_hierarchy_service(
    repository: SnomedRepository = Depends(get_snomed_repository),
) -> ConceptHierarchyService:
    return ConceptHierarchyService(repository)


def get_stats_service(
    repository: SnomedRepository = Depends(get_snomed_repository),
) -> SemanticTagStatsService:
    return SemanticTagStatsService(repository)
