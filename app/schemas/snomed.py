from __future__ import annotations

import math
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, computed_field

T = TypeVar("T")


class ConceptSummary(BaseModel):
    concept_id: int
    preferred_term: str
    semantic_tag: Optional[str] = None
    children_count: int = 0

    @computed_field  # type: ignore[misc]
    @property
    def has_children(self) -> bool:
        return self.children_count > 0


class ChiefComplaint(BaseModel):
    concept_id: int
    preferred_term: str
    semantic_tag: Optional[str] = None


class Concept(BaseModel):
    concept_id: int
    active: bool = True
    fsn: Optional[str] = None
    semantic_tag: Optional[str] = None
    preferred_term: str
    synonyms: List[str] = Field(default_factory=list)
    definition: Optional[str] = None
    parents: List[ConceptSummary] = Field(default_factory=list)
    children_count: int = 0


class HierarchyResponse(BaseModel):
    concept_id: int
    preferred_term: str
    items: List[ConceptSummary] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def total(self) -> int:
        return len(self.items)


class PagedResult(BaseModel, Generic[T]):
    items: List[T] = Field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 10

    @computed_field  # type: ignore[misc]
    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)
