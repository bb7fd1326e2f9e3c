"""Layer request/response models."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from history_portal.db.models import LayerRole
from history_portal.models.common import CamelModel


class LayerOut(CamelModel):
    id: UUID
    title: str
    role: LayerRole
    created_at: datetime


class LayersResponse(CamelModel):
    """Response of GET /api/layers."""

    layers: list[LayerOut]


class LayerCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)


class LayerCreated(CamelModel):
    id: UUID


class LayerMemberUpsert(CamelModel):
    """Body of POST /api/layers/{layer_id}/members."""

    user_id: UUID
    role: LayerRole = LayerRole.guest
