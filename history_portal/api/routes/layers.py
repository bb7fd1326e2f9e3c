"""Layer endpoints - list, create and share layers."""

import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import DBAPIError

from history_portal.api.auth import get_current_context
from history_portal.api.deps import get_rls_executor, http_error_for, http_error_for_write
from history_portal.db.context import RequestContext
from history_portal.db.errors import RLSError
from history_portal.db.repositories import LayerRecord, LayerRepository
from history_portal.db.rls import RLSExecutor, RLSTransaction
from history_portal.db.sql_repositories import SqlLayerRepository
from history_portal.models.layers import (
    LayerCreate,
    LayerCreated,
    LayerMemberUpsert,
    LayerOut,
    LayersResponse,
)

router = APIRouter(prefix="/api/layers", tags=["layers"])
logger = logging.getLogger(__name__)


@router.get("", response_model=LayersResponse)
async def list_layers(
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    executor: Annotated[RLSExecutor, Depends(get_rls_executor)],
) -> LayersResponse:
    """Get the layers the current user has a role on."""
    async def operation(tx: RLSTransaction) -> list[LayerRecord]:
        layers: LayerRepository = SqlLayerRepository(tx)
        return await layers.list_layers()

    try:
        records = await executor.run_as_user(ctx.user_id, operation)
    except RLSError as e:
        raise http_error_for(e, "GET /api/layers") from e

    return LayersResponse(layers=[LayerOut.model_validate(r, from_attributes=True) for r in records])


@router.post("", response_model=LayerCreated, status_code=status.HTTP_201_CREATED)
async def create_layer(
    body: LayerCreate,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    executor: Annotated[RLSExecutor, Depends(get_rls_executor)],
) -> LayerCreated:
    """Create a layer owned by the current user."""

    async def operation(tx: RLSTransaction) -> uuid.UUID:
        layers: LayerRepository = SqlLayerRepository(tx)
        # Runs only after the executor has validated ctx.user_id
        return await layers.create_layer(body.title, uuid.UUID(ctx.user_id))

    try:
        layer_id = await executor.run_as_user(ctx.user_id, operation)
    except RLSError as e:
        raise http_error_for(e, "POST /api/layers") from e
    except DBAPIError as e:
        raise http_error_for_write(e, "POST /api/layers") from e

    logger.info(f"[POST /api/layers] layer_id={layer_id}")
    return LayerCreated(id=layer_id)


@router.post("/{layer_id}/members", status_code=status.HTTP_204_NO_CONTENT)
async def upsert_layer_member(
    layer_id: uuid.UUID,
    body: LayerMemberUpsert,
    ctx: Annotated[RequestContext, Depends(get_current_context)],
    executor: Annotated[RLSExecutor, Depends(get_rls_executor)],
) -> None:
    """Share a layer with another user, or change their role.

    Only owners pass the membership policy. An unknown user id is a 404.
    """
    async def operation(tx: RLSTransaction) -> None:
        layers: LayerRepository = SqlLayerRepository(tx)
        await layers.share_layer(layer_id, body.user_id, body.role)

    try:
        await executor.run_as_user(ctx.user_id, operation)
    except RLSError as e:
        raise http_error_for(e, "POST /api/layers/members") from e
    except DBAPIError as e:
        raise http_error_for_write(e, "POST /api/layers/members") from e

    logger.info(f"[POST /api/layers/{layer_id}/members] role={body.role.value}")
