"""Admin endpoints - unrestricted reads through the admin bypass."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from history_portal.api.deps import get_rls_executor, http_error_for, require_admin
from history_portal.db.context import RequestContext
from history_portal.db.errors import RLSError
from history_portal.db.repositories import CardRecord, CardRepository
from history_portal.db.rls import RLSExecutor, RLSTransaction
from history_portal.db.sql_repositories import SqlCardRepository
from history_portal.models import CardOut, CardsResponse

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.get("/cards", response_model=CardsResponse)
async def list_all_cards(
    ctx: Annotated[RequestContext, Depends(require_admin)],
    executor: Annotated[RLSExecutor, Depends(get_rls_executor)],
) -> CardsResponse:
    """Get every card across all users. Requires user.role = admin."""
    async def operation(tx: RLSTransaction) -> list[CardRecord]:
        cards: CardRepository = SqlCardRepository(tx)
        return await cards.list_all_cards()

    try:
        records = await executor.run_as_admin(operation)
    except RLSError as e:
        raise http_error_for(e, "GET /api/admin/cards") from e

    logger.info(f"[GET /api/admin/cards] returned {len(records)} cards")
    return CardsResponse(cards=[CardOut.model_validate(r, from_attributes=True) for r in records])
