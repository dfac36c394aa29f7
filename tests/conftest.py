"""Pytest configuration and shared fixtures.

This module provides centralized test fixtures for:
- An in-memory terminology store with a small SNOMED CT sample
- HTTP client for API testing, wired to the in-memory store
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.services.dependencies import get_snomed_repository, get_suggestion_source
from app.services.suggestion_source import StaticSuggestionSource
from tests.fakes import FakeTerminologyStore, build_sample_store


# =============================================================================
# Store Fixtures
# =============================================================================


@pytest.fixture
def store() -> FakeTerminologyStore:
    """Sample hierarchy: Clinical finding > Pain > Headache / Chest pain / Abdominal pain."""
    return build_sample_store()


@pytest.fixture
def empty_store() -> FakeTerminologyStore:
    return FakeTerminologyStore()


# =============================================================================
# HTTP Client Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(store):
    """Async test client with the repository replaced by the in-memory store."""
    app.dependency_overrides[get_snomed_repository] = lambda: store
    app.dependency_overrides[get_suggestion_source] = lambda: StaticSuggestionSource()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.pop(get_snomed_repository, None)
    app.dependency_overrides.pop(get_suggestion_source, None)
