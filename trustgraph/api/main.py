"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance and its lifespan:
storage setup, migrations, domain wiring and the optional expired-token
sweep.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from trustgraph.adapters.repository.memory import MemoryDatabase
from trustgraph.adapters.repository.postgres import run_migrations
from trustgraph.api.dependencies import build_components
from trustgraph.api.v1 import router as v1_router
from trustgraph.config.settings import get_settings
from trustgraph.domain.tokens import VerificationTokenManager

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Identity API v1 - Signup, email verification, login, profiles and follows",
    },
]


async def sweep_expired_tokens(tokens: VerificationTokenManager, interval_seconds: int) -> None:
    """
    Periodically delete expired verification tokens.

    Storage reclamation only: token expiry is enforced at use time, so a
    missed or failed sweep never lets an expired token through.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(tokens.sweep_expired)
        except Exception:
            logger.exception("Expired token sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool and runs migrations (postgres backend)
    - Wires the domain services
    - Starts the expired token sweep
    - Closes connection pool on shutdown
    """
    settings = get_settings()
    pool = None

    logger.info("Starting application (storage: %s)...", settings.storage_backend)

    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            open=True,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
        components = build_components(settings, pool=pool)
    else:
        components = build_components(settings, memory_db=MemoryDatabase())

    app.state.pool = pool
    app.state.components = components

    sweep_task = None
    if settings.token_sweep_interval_seconds > 0:
        sweep_task = asyncio.create_task(
            sweep_expired_tokens(components.tokens, settings.token_sweep_interval_seconds)
        )

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if sweep_task is not None:
        sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweep_task
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="trustgraph",
    description="Identity and access-control API - accounts, verification, sessions and privacy-gated follows",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = request.app.state.pool
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
