"""Health check endpoints.

- /health: process liveness, always 200
- /healthz: component status, 503 when the database is unreachable
- /api/health/db: database connectivity and server time
"""

import logging
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from history_portal.api.deps import get_engine

router = APIRouter()
logger = logging.getLogger(__name__)


async def check_db(engine: AsyncEngine) -> tuple[bool, str, datetime | None]:
    """Check database connectivity.

    Runs outside any RLS scope; it touches no tables.

    Returns:
        (is_ok, status_message, server_time)
    """
    try:
        async with engine.connect() as conn:
            server_time = await conn.scalar(text("SELECT NOW()"))
        return (True, "ok", server_time)
    except Exception as e:
        logger.error(f"Database health check failed: {type(e).__name__}")
        return (False, f"error: {type(e).__name__}", None)


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(
    engine: Annotated[AsyncEngine, Depends(get_engine)],
) -> dict[str, Any] | JSONResponse:
    """Health check endpoint.

    Returns:
        200 with component status if the database is reachable
        503 otherwise
    """
    db_ok, db_status, _ = await check_db(engine)

    response_body = {
        "status": "ok" if db_ok else "degraded",
        "components": {"db": db_status},
    }

    if not db_ok:
        return JSONResponse(content=response_body, status_code=503)

    return response_body


@router.get("/api/health/db", response_model=None)
async def health_db(
    engine: Annotated[AsyncEngine, Depends(get_engine)],
) -> dict[str, Any] | JSONResponse:
    """Database health check.

    Returns database connection status and server time.
    """
    db_ok, db_status, server_time = await check_db(engine)

    if not db_ok:
        return JSONResponse(
            content={"status": "error", "database": "disconnected", "error": db_status},
            status_code=503,
        )

    return {
        "status": "ok",
        "database": "connected",
        "serverTime": server_time.isoformat() if server_time else None,
    }
