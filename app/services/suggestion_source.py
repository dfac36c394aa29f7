"""Clinical term suggestions for lay chief-complaint text.

The concept search falls back to these suggestions when neither word-set nor
fuzzy matching finds anything, e.g. ``"head pain"`` -> ``["Headache",
"Cranial pain"]``.

Two sources are available:

- :class:`StaticSuggestionSource`: a curated, case-insensitive mapping; unknown
  text is echoed back as the only suggestion.
- :class:`OpenAISuggestionSource`: asks a chat-completions model for clinical
  terms and returns them in the model's order.

Failures surface as :class:`SuggestionSourceError`; the search service treats
that as "no suggestions" and skips the tier.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional, Sequence

from openai import AsyncOpenAI

from app.core.config import Settings, settings

logger = logging.getLogger(__name__)


class SuggestionSourceError(RuntimeError):
    """The suggestion backend is unavailable or returned an unusable answer."""


class SuggestionSource(ABC):
    @abstractmethod
    async def suggest(self, query: str, max_suggestions: int = 5) -> List[str]:
        """Return up to ``max_suggestions`` clinical terms, best first."""


def _dedupe_terms(terms: Sequence[str], max_suggestions: int) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for term in terms:
        cleaned = " ".join(str(term).split())
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        result.append(cleaned)
        if len(result) >= max_suggestions:
            break
    return result


# ---------------------------------------------------------------------------
# Static mapping
# ---------------------------------------------------------------------------

DEFAULT_CLINICAL_TERM_MAP: Dict[str, List[str]] = {
    "stomach ache": ["Abdominal pain", "Epigastric pain", "Stomach ache"],
    "can't speak": ["Aphasia", "Dysarthria", "Difficulty speaking"],
    "head pain": ["Headache", "Cranial pain"],
    "hedake": ["Headache"],
}


class StaticSuggestionSource(SuggestionSource):
    def __init__(self, mapping: Optional[Mapping[str, Sequence[str]]] = None) -> None:
        source = DEFAULT_CLINICAL_TERM_MAP if mapping is None else mapping
        self._mapping = {key.strip().lower(): list(terms) for key, terms in source.items()}

    async def suggest(self, query: str, max_suggestions: int = 5) -> List[str]:
        key = (query or "").strip().lower()
        terms = self._mapping.get(key)
        if terms is None:
            return _dedupe_terms([query], max_suggestions)
        return _dedupe_terms(terms, max_suggestions)


# ---------------------------------------------------------------------------
# OpenAI-backed
# ---------------------------------------------------------------------------

_SUGGESTION_PROMPT = """\
A patient described their reason for the visit as:

"{query}"

List up to {max_suggestions} standard clinical terms (SNOMED CT clinical finding \
preferred terms, in English) that best match this complaint, most likely first. \
Use short terms such as "Headache" or "Abdominal pain"."""

_SUGGESTION_SCHEMA = {
    "type": "json_schema",
    "json_schema": {
        "name": "clinical_terms",
        "strict": True,
        "schema": {
            "type": "object",
            "properties": {
                "terms": {
                    "type": "array",
                    "items": {"type": "string"},
                },
            },
            "required": ["terms"],
            "additionalProperties": False,
        },
    },
}


class OpenAISuggestionSource(SuggestionSource):
    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        *,
        model: str = settings.openai_model,
        timeout: float = settings.suggestion_timeout_seconds,
    ) -> None:
        self._client = client
        self._model = model
        self._timeout = timeout

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=settings.openai_api_key)
        return self._client

    async def suggest(self, query: str, max_suggestions: int = 5) -> List[str]:
        if not (query or "").strip() or max_suggestions < 1:
            return []

        try:
            response = await asyncio.wait_for(
                self._get_client().chat.completions.create(
                    model=self._model,
                    messages=[
                        {
                            "role": "user",
                            "content": _SUGGESTION_PROMPT.format(
                                query=query.strip(), max_suggestions=max_suggestions
                            ),
                        },
                    ],
                    response_format=_SUGGESTION_SCHEMA,
                    temperature=0,
                    max_tokens=200,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise SuggestionSourceError(f"suggestion request timed out after {self._timeout}s") from exc
        except Exception as exc:
            raise SuggestionSourceError("suggestion request failed") from exc

        try:
            raw = response.choices[0].message.content
            terms = json.loads(raw)["terms"]
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            raise SuggestionSourceError("suggestion response could not be parsed") from exc

        if not isinstance(terms, list):
            raise SuggestionSourceError("suggestion response did not contain a term list")

        suggestions = _dedupe_terms(terms, max_suggestions)
        logger.info("openai suggestions query=%r terms=%r", query[:80], suggestions)
        return suggestions


def build_suggestion_source(config: Settings = settings) -> Optional[SuggestionSource]:
    provider = (config.suggestion_provider or "").strip().lower()
    if provider == "static":
        return StaticSuggestionSource()
    if provider == "openai":
        if not config.openai_api_key:
            logger.warning("SUGGESTION_PROVIDER=openai but OPENAI_API_KEY is empty; semantic fallback disabled")
            return None
        return OpenAISuggestionSource(
            AsyncOpenAI(api_key=config.openai_api_key),
            model=config.openai_model,
            timeout=config.suggestion_timeout_seconds,
        )
    if provider not in ("", "none"):
        logger.warning("Unknown SUGGESTION_PROVIDER=%r; semantic fallback disabled", provider)
    return None
