"""Auth dependencies.

Sessions are issued by the external auth provider, which hands the app an
already-verified user id. Locally the bearer token carries it directly as
``Bearer <user_id>``.

The token only identifies the caller. Whether they may act as admin is read
from their ``user.role`` row (see ``require_admin`` in api.deps).
"""

from typing import Annotated

from fastapi import Header, HTTPException, status

from history_portal.db.context import RequestContext

UNAUTHORIZED_DETAIL = "Unauthorized"
FORBIDDEN_DETAIL = "Forbidden"


def unauthorized() -> HTTPException:
    """Generic 401 that does not reveal why authentication failed."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=UNAUTHORIZED_DETAIL,
        headers={"WWW-Authenticate": "Bearer"},
    )


def forbidden() -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=FORBIDDEN_DETAIL)


async def get_current_context(
    authorization: Annotated[str | None, Header()] = None,
) -> RequestContext:
    """Extract request context from authorization header.

    Args:
        authorization: Authorization header (e.g., "Bearer <token>")

    Returns:
        RequestContext for a regular user; admin status is resolved later

    Raises:
        HTTPException: 401 if the header is missing or malformed
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise unauthorized()

    user_id = authorization[7:].strip()  # Strip "Bearer "
    if not user_id or " " in user_id:
        raise unauthorized()

    return RequestContext(user_id=user_id)
