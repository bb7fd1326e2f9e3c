"""Repository protocol interfaces for data access."""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from history_portal.db.models import LayerRole


@dataclass
class CardData:
    """Fields supplied when creating a card."""

    title: str
    start_year: int
    summary: str | None = None
    article: str | None = None
    start_month: int | None = None
    start_day: int | None = None
    end_year: int | None = None
    end_month: int | None = None
    end_day: int | None = None


@dataclass
class CardRecord:
    """Card data record, optionally with the layer it was reached through."""

    id: UUID
    title: str
    summary: str | None
    start_year: int
    start_month: int | None
    start_day: int | None
    end_year: int | None
    end_month: int | None
    end_day: int | None
    created_at: datetime
    layer_id: UUID | None = None
    layer_title: str | None = None
    role: LayerRole | None = None


@dataclass
class LayerRecord:
    """Layer data record with the caller's role."""

    id: UUID
    title: str
    role: LayerRole
    created_at: datetime


@runtime_checkable
class CardRepository(Protocol):
    """Repository for card operations."""

    async def list_cards(self, layer_ids: list[UUID] | None = None) -> list[CardRecord]:
        """List cards in layers the acting user belongs to.

        Args:
            layer_ids: Optional layer filter

        Returns:
            Card records with layer info and role
        """
        ...

    async def list_all_cards(self) -> list[CardRecord]:
        """List every card visible in the current scope."""
        ...

    async def create_card(self, data: CardData, layer_id: UUID) -> UUID:
        """Create a card and link it into a layer.

        Returns:
            Card ID
        """
        ...


@runtime_checkable
class LayerRepository(Protocol):
    """Repository for layer operations."""

    async def list_layers(self) -> list[LayerRecord]:
        """List layers the acting user belongs to."""
        ...

    async def create_layer(self, title: str, owner_id: UUID) -> UUID:
        """Create a layer owned by owner_id.

        Returns:
            Layer ID
        """
        ...

    async def share_layer(self, layer_id: UUID, user_id: UUID, role: LayerRole) -> None:
        """Grant or change a user's role on a layer."""
        ...


@runtime_checkable
class UserRepository(Protocol):
    """Repository for the acting user's account."""

    async def get_role(self) -> str | None:
        """Return the acting user's account role, None if no such user."""
        ...
