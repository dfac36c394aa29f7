"""SNOMED Search FastAPI application.

Resolves free-text chief complaints to SNOMED CT concepts and exposes the
is-a hierarchy of a pre-loaded, read-only terminology database.  Loading and
indexing the terminology release happens outside this service.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.db.async_session import dispose_async_engine
from app.routers import chief_complaint, concepts


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await dispose_async_engine()


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title="SNOMED Search",
        version="0.1.0",
        description="Chief complaint to SNOMED CT concept search and hierarchy browsing.",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    app.include_router(chief_complaint.router)
    app.include_router(concepts.router)

    return app


app = create_app()
