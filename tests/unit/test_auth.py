"""Unit tests for auth dependencies."""

from collections.abc import Callable

import pytest
from fastapi import HTTPException

from history_portal.api.auth import get_current_context
from history_portal.api.deps import require_admin
from history_portal.db.context import RequestContext
from history_portal.db.rls import RLSExecutor
from tests.fakes import FakePool

USER_ID = "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"


@pytest.mark.asyncio
async def test_get_current_context_no_header_is_unauthorized() -> None:
    """Test that a missing auth header is rejected."""
    with pytest.raises(HTTPException) as exc_info:
        await get_current_context(authorization=None)

    assert exc_info.value.status_code == 401
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


@pytest.mark.asyncio
async def test_get_current_context_user_token() -> None:
    """Test plain user token format."""
    ctx = await get_current_context(authorization=f"Bearer {USER_ID}")

    assert ctx.user_id == USER_ID
    assert ctx.is_admin is False


@pytest.mark.asyncio
async def test_token_suffix_never_grants_admin() -> None:
    """Admin status is not carried by the token."""
    ctx = await get_current_context(authorization=f"Bearer {USER_ID}:admin")

    assert ctx.is_admin is False
    assert ctx.user_id == f"{USER_ID}:admin"


@pytest.mark.asyncio
async def test_get_current_context_passes_user_id_through_unvalidated() -> None:
    """User id format is checked by the executor, not here."""
    ctx = await get_current_context(authorization="Bearer not-a-uuid")

    assert ctx.user_id == "not-a-uuid"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "header",
    ["NotBearer token", "Bearer ", "Bearer    ", f"Bearer {USER_ID} extra", f"bearer {USER_ID}"],
)
async def test_get_current_context_invalid_header(header: str) -> None:
    """Test malformed headers raise a generic 401."""
    with pytest.raises(HTTPException) as exc_info:
        await get_current_context(authorization=header)

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Unauthorized"


class TestRequireAdmin:
    """require_admin reads the caller's role through a user-scoped transaction."""

    @pytest.fixture
    def role_executor(
        self, monkeypatch: pytest.MonkeyPatch, make_executor: Callable[..., RLSExecutor]
    ) -> Callable[[str | None], RLSExecutor]:
        def _make(role: str | None) -> RLSExecutor:
            class StubUserRepository:
                def __init__(self, tx: object) -> None:
                    pass

                async def get_role(self) -> str | None:
                    return role

            monkeypatch.setattr("history_portal.api.deps.SqlUserRepository", StubUserRepository)
            return make_executor(FakePool(size=1))

        return _make

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["user", None])
    async def test_rejects_non_admin_account(
        self, role_executor: Callable[[str | None], RLSExecutor], role: str | None
    ) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await require_admin(RequestContext(user_id=USER_ID), role_executor(role))

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_account_gets_admin_context(
        self, role_executor: Callable[[str | None], RLSExecutor]
    ) -> None:
        ctx = await require_admin(RequestContext(user_id=USER_ID), role_executor("admin"))

        assert ctx == RequestContext(user_id=USER_ID, is_admin=True)

    @pytest.mark.asyncio
    async def test_malformed_user_id_is_unauthorized(
        self, role_executor: Callable[[str | None], RLSExecutor]
    ) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await require_admin(RequestContext(user_id=f"{USER_ID}:admin"), role_executor("admin"))

        assert exc_info.value.status_code == 401
