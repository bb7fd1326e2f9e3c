"""Shared dependencies -- executor access, admin check and executor error mapping."""

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine

from history_portal.api.auth import forbidden, get_current_context, unauthorized
from history_portal.db.context import RequestContext
from history_portal.db.errors import (
    InvalidIdentity,
    OperationFailed,
    RLSError,
    TransactionAcquisitionFailed,
)
from history_portal.db.repositories import UserRepository
from history_portal.db.rls import RLSExecutor, RLSTransaction
from history_portal.db.sql_repositories import SqlUserRepository

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
INSUFFICIENT_PRIVILEGE = "42501"
FOREIGN_KEY_VIOLATION = "23503"


def get_rls_executor(request: Request) -> RLSExecutor:
    """Return the executor created by the application lifespan."""
    return request.app.state.rls_executor


def get_engine(request: Request) -> AsyncEngine:
    """Return the engine created by the application lifespan."""
    return request.app.state.engine


async def require_admin(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    executor: Annotated[RLSExecutor, Depends(get_rls_executor)],
) -> RequestContext:
    """Allow only callers whose account role is admin.

    The role is read from the caller's own user row inside a user-scoped
    transaction. This is the authorization decision for run_as_admin; the
    executor itself never checks.

    Raises:
        HTTPException: 401 for a malformed user id, 403 for non-admin callers
    """

    async def read_role(tx: RLSTransaction) -> str | None:
        users: UserRepository = SqlUserRepository(tx)
        return await users.get_role()

    try:
        role = await executor.run_as_user(ctx.user_id, read_role)
    except RLSError as e:
        raise http_error_for(e, "require_admin") from e

    if role != ADMIN_ROLE:
        logger.warning("[require_admin] non-admin caller rejected")
        raise forbidden()

    return RequestContext(user_id=ctx.user_id, is_admin=True)


def http_error_for(error: RLSError, route: str) -> HTTPException:
    """Map an executor error to the HTTP error returned to clients.

    InvalidIdentity becomes a plain 401 so validation details never leak.
    """
    if isinstance(error, InvalidIdentity):
        logger.warning(f"[{route}] rejected malformed user id")
        return unauthorized()

    if isinstance(error, TransactionAcquisitionFailed):
        logger.error(f"[{route}] database unavailable: {error}")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="database unavailable",
        )

    if isinstance(error, OperationFailed):
        logger.error(f"[{route}] commit failed: {error}")

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="internal error",
    )


def sqlstate_of(error: DBAPIError) -> str | None:
    """SQLSTATE of the driver error wrapped by SQLAlchemy (asyncpg or psycopg)."""
    orig = error.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_policy_violation(error: DBAPIError) -> bool:
    """True when Postgres rejected a row under a security policy (42501)."""
    return sqlstate_of(error) == INSUFFICIENT_PRIVILEGE


def is_foreign_key_violation(error: DBAPIError) -> bool:
    """True when a referenced row (user, layer, card) does not exist (23503)."""
    return sqlstate_of(error) == FOREIGN_KEY_VIOLATION


def http_error_for_write(error: DBAPIError, route: str) -> HTTPException:
    """Map a database error raised while writing inside a scoped transaction."""
    if is_policy_violation(error):
        logger.warning(f"[{route}] write rejected by row-level security")
        return forbidden()

    if is_foreign_key_violation(error):
        logger.warning(f"[{route}] write references a missing row")
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")

    logger.error(f"[{route}] write failed: {type(error).__name__}", exc_info=True)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="internal error",
    )
