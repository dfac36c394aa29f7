"""Paged chief complaint search router.

Endpoint:
- GET /api/chiefcomplaint/search?searchTerm=...&page=1&pageSize=10
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.search_config import search_tuning
from app.repositories.terminology import TerminologyStoreError
from app.schemas.snomed import ChiefComplaint, PagedResult
from app.services.dependencies import get_paged_search_service
from app.services.paged_search import PagedComplaintSearchService, SearchCancelledError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chiefcomplaint", tags=["chief-complaint"])


@router.get("/search", response_model=PagedResult[ChiefComplaint])
async def search_chief_complaints(
    search_term: str = Query(default="", alias="searchTerm", description="Free-text complaint"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(
        default=search_tuning.default_page_size,
        alias="pageSize",
        ge=1,
        le=search_tuning.max_page_size,
    ),
    service: PagedComplaintSearchService = Depends(get_paged_search_service),
) -> PagedResult[ChiefComplaint]:
    try:
        return await service.search_paged(search_term, page, page_size)
    except SearchCancelledError as exc:
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc)) from exc
    except TerminologyStoreError as exc:
        logger.error("chief complaint search failed searchTerm=%r: %s", search_term[:80], exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="terminology store unavailable",
        ) from exc
