"""FastAPI application.

The engine and RLS executor are created at startup and disposed at shutdown
by the lifespan; routes reach them through app.state.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from history_portal.api.routes.admin import router as admin_router
from history_portal.api.routes.cards import router as cards_router
from history_portal.api.routes.health import router as health_router
from history_portal.api.routes.layers import router as layers_router
from history_portal.api.routes.metrics import router as metrics_router
from history_portal.config import get_settings
from history_portal.db.engine import create_async_engine_from_settings, create_rls_executor
from history_portal.utils.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the process-wide connection pool."""
    settings = get_settings()
    configure_logging(settings.log_level)

    engine = create_async_engine_from_settings(settings)
    app.state.engine = engine
    app.state.rls_executor = create_rls_executor(engine, settings)
    try:
        yield
    finally:
        await engine.dispose()


app = FastAPI(title="History Portal API", version="0.1.0", lifespan=lifespan)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(cards_router)
app.include_router(layers_router)
app.include_router(admin_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "History Portal API", "version": "0.1.0"}
