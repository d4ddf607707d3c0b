"""
CITEWISE — Application Entry Point

FastAPI application exposing permission-scoped retrieval and grounded
answers.

Start locally:
    uvicorn citewise.main:app --host 0.0.0.0 --port 8001 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from citewise.api.v1.ask import router as ask_router
from citewise.core.config import Settings
from citewise.core.context import build_context
from citewise.core.logging import setup_logging
from citewise.services.pipeline import RetrievalPipeline

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
        1. Load settings and configure logging.
        2. Build the pipeline context (fails fast on missing credentials,
           verifies database connectivity, connects the embedding cache).

    Shutdown:
        1. Close Redis and dispose the database pool.
    """
    settings = Settings()  # type: ignore[call-arg]
    setup_logging(settings)
    logger.info("Starting CITEWISE (environment=%s)...", settings.ENVIRONMENT)

    context = await build_context(settings)
    app.state.context = context
    app.state.pipeline = RetrievalPipeline.from_context(context)
    logger.info("Pipeline ready")

    yield

    await context.aclose()
    logger.info("CITEWISE shutdown complete")


app = FastAPI(
    title="CITEWISE",
    description="Permission-scoped hybrid retrieval and grounded, cited answers.",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(ask_router, prefix="/api/v1", tags=["Ask"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check for load balancers and orchestrators."""
    context = getattr(app.state, "context", None)
    return {
        "status": "ok",
        "service": "citewise",
        "environment": context.settings.ENVIRONMENT if context else "unknown",
    }
