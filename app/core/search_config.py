"""Search configuration for SNOMED Search.

Centralizes tuning parameters and the caller-facing search options for the
concept search funnel.  All values are loaded from environment variables
with sensible defaults so the system works out-of-the-box.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Tuple


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


# ---------------------------------------------------------------------------
# Search tuning
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SearchTuning:
    """Operational limits and thresholds."""

    similarity_threshold: float = field(
        default_factory=lambda: _env_float("SEARCH_SIMILARITY_THRESHOLD", 0.30),
    )
    default_limit: int = field(
        default_factory=lambda: _env_int("SEARCH_DEFAULT_LIMIT", 20),
    )
    max_limit: int = field(
        default_factory=lambda: _env_int("SEARCH_MAX_LIMIT", 100),
    )
    # Semantic (AI-suggested term) fallback
    semantic_max_suggestions: int = field(
        default_factory=lambda: _env_int("SEARCH_SEMANTIC_MAX_SUGGESTIONS", 5),
    )
    semantic_per_suggestion_limit: int = field(
        default_factory=lambda: _env_int("SEARCH_SEMANTIC_PER_SUGGESTION_LIMIT", 10),
    )
    # Hierarchy browsing
    children_default_limit: int = field(
        default_factory=lambda: _env_int("HIERARCHY_CHILDREN_DEFAULT_LIMIT", 50),
    )
    # Paged search
    default_page_size: int = field(
        default_factory=lambda: _env_int("SEARCH_DEFAULT_PAGE_SIZE", 10),
    )
    max_page_size: int = field(
        default_factory=lambda: _env_int("SEARCH_MAX_PAGE_SIZE", 100),
    )
    # 0 disables the timeout
    paged_timeout_seconds: float = field(
        default_factory=lambda: _env_float("SEARCH_PAGED_TIMEOUT_SECONDS", 30.0),
    )


# ---------------------------------------------------------------------------
# Caller-facing search options
# ---------------------------------------------------------------------------

DEFAULT_SEMANTIC_TAGS: Tuple[str, ...] = ("finding",)


@dataclass(frozen=True)
class SearchOptions:
    """Per-call options for the unpaged concept search.

    ``semantic_tags``
        Concepts are only matched when their semantic tag is one of these.
        Defaults to ``("finding",)``; an empty collection means the default.
    ``allow_semantic_fallback``
        When ``True`` (default) the AI-suggested term tier runs after the
        exact and fuzzy tiers come back empty.
    """

    semantic_tags: Tuple[str, ...] = DEFAULT_SEMANTIC_TAGS
    allow_semantic_fallback: bool = True

    def __post_init__(self) -> None:
        raw = self.semantic_tags
        if isinstance(raw, str):
            raw = (raw,)
        tags = tuple(t.strip() for t in (raw or ()) if t and t.strip())
        object.__setattr__(self, "semantic_tags", tags or DEFAULT_SEMANTIC_TAGS)


# ---------------------------------------------------------------------------
# Semantic tag statistics
# ---------------------------------------------------------------------------

STATS_SEMANTIC_TAGS: Tuple[str, ...] = (
    "finding",
    "disorder",
    "situation",
    "procedure",
    "body structure",
    "substance",
    "organism",
    "observable entity",
    "physical object",
)


# ---------------------------------------------------------------------------
# Singleton instances (importable)
# ---------------------------------------------------------------------------

search_tuning = SearchTuning()
DEFAULT_SEARCH_OPTIONS = SearchOptions()
