"""Async SQLAlchemy engine and session management.

The engine is created on first use and shared by every session; SQLAlchemy's
connection pool hands out connections to concurrent callers.
"""

from __future__ import annotations

import threading
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

_engine_lock = threading.Lock()
_async_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _to_async_uri(uri: str) -> str:
    if uri.startswith("postgresql+asyncpg://"):
        return uri
    if uri.startswith("postgresql+psycopg2://"):
        return uri.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    if uri.startswith("postgresql://"):
        return uri.replace("postgresql://", "postgresql+asyncpg://", 1)
    if uri.startswith("postgres://"):
        return uri.replace("postgres://", "postgresql+asyncpg://", 1)
    return uri


def get_async_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it if needed."""
    global _async_engine
    if _async_engine is None:
        with _engine_lock:
            if _async_engine is None:
                _async_engine = create_async_engine(
                    _to_async_uri(settings.sqlalchemy_database_uri),
                    pool_pre_ping=True,
                    pool_recycle=1800,
                )
    return _async_engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        engine = get_async_engine()
        with _engine_lock:
            if _session_factory is None:
                _session_factory = async_sessionmaker(
                    bind=engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )
    return _session_factory


async def dispose_async_engine() -> None:
    global _async_engine, _session_factory
    with _engine_lock:
        engine, _async_engine, _session_factory = _async_engine, None, None
    if engine is not None:
        await engine.dispose()


async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    async with get_session_factory()() as db:
        yield db
