"""Card endpoints - POST /api/cards (list), POST /api/cards/new (create)."""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import DBAPIError

from history_portal.api.auth import get_current_context
from history_portal.api.deps import get_rls_executor, http_error_for, http_error_for_write
from history_portal.db.context import RequestContext
from history_portal.db.errors import RLSError
from history_portal.db.repositories import CardData, CardRecord, CardRepository
from history_portal.db.rls import RLSExecutor, RLSTransaction
from history_portal.db.sql_repositories import SqlCardRepository
from history_portal.models.cards import (
    CardCreate,
    CardCreated,
    CardOut,
    CardsRequest,
    CardsResponse,
)

router = APIRouter(prefix="/api/cards", tags=["cards"])
logger = logging.getLogger(__name__)


@router.post("", response_model=CardsResponse)
async def list_cards(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    executor: Annotated[RLSExecutor, Depends(get_rls_executor)],
    body: CardsRequest | None = None,
) -> CardsResponse:
    """Get all cards accessible to the current user.

    Cards are returned only if they belong to a layer the user has access to;
    the filtering is done by RLS on card, layer and membership tables.

    Args:
        ctx: Request context from auth
        executor: RLS executor
        body: Optional layer filter; empty means all accessible layers

    Returns:
        CardsResponse with one entry per (card, layer) pair
    """
    layer_ids = body.layer_ids if body else None

    async def operation(tx: RLSTransaction) -> list[CardRecord]:
        cards: CardRepository = SqlCardRepository(tx)
        return await cards.list_cards(layer_ids)

    try:
        records = await executor.run_as_user(ctx.user_id, operation)
    except RLSError as e:
        raise http_error_for(e, "POST /api/cards") from e

    logger.info(f"[POST /api/cards] returned {len(records)} cards")
    return CardsResponse(cards=[CardOut.model_validate(r, from_attributes=True) for r in records])


@router.post("/new", response_model=CardCreated, status_code=status.HTTP_201_CREATED)
async def create_card(
    body: CardCreate,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    executor: Annotated[RLSExecutor, Depends(get_rls_executor)],
) -> CardCreated:
    """Create a card in a layer the caller owns or edits.

    Raises:
        HTTPException: 403 when RLS rejects the card-layer link
    """
    data = CardData(
        title=body.title,
        summary=body.summary,
        article=body.article,
        start_year=body.start_year,
        start_month=body.start_month,
        start_day=body.start_day,
        end_year=body.end_year,
        end_month=body.end_month,
        end_day=body.end_day,
    )

    async def operation(tx: RLSTransaction) -> uuid.UUID:
        cards: CardRepository = SqlCardRepository(tx)
        return await cards.create_card(data, body.layer_id)

    try:
        card_id = await executor.run_as_user(ctx.user_id, operation)
    except RLSError as e:
        raise http_error_for(e, "POST /api/cards/new") from e
    except DBAPIError as e:
        raise http_error_for_write(e, "POST /api/cards/new") from e

    logger.info(f"[POST /api/cards/new] card_id={card_id} layer_id={body.layer_id}")
    return CardCreated(id=card_id)
