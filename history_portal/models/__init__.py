"""Models package - re-exports for convenience."""

from history_portal.models.cards import (
    CardCreate,
    CardCreated,
    CardOut,
    CardsRequest,
    CardsResponse,
)
from history_portal.models.common import CamelModel
from history_portal.models.layers import (
    LayerCreate,
    LayerCreated,
    LayerMemberUpsert,
    LayerOut,
    LayersResponse,
)

__all__ = [
    "CamelModel",
    "CardCreate",
    "CardCreated",
    "CardOut",
    "CardsRequest",
    "CardsResponse",
    "LayerCreate",
    "LayerCreated",
    "LayerMemberUpsert",
    "LayerOut",
    "LayersResponse",
]
