"""Card request/response models."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from history_portal.db.models import LayerRole
from history_portal.models.common import CamelModel


class CardsRequest(CamelModel):
    """Body of POST /api/cards."""

    # Empty or missing means all accessible layers
    layer_ids: list[UUID] | None = None


class CardOut(CamelModel):
    """A card as returned to clients."""

    id: UUID
    title: str
    summary: str | None = None
    start_year: int
    start_month: int | None = None
    start_day: int | None = None
    end_year: int | None = None
    end_month: int | None = None
    end_day: int | None = None
    created_at: datetime
    layer_id: UUID | None = None
    layer_title: str | None = None
    role: LayerRole | None = None


class CardsResponse(CamelModel):
    """Response of the card listing endpoints."""

    cards: list[CardOut]


class CardCreate(CamelModel):
    """Body of POST /api/cards/new."""

    layer_id: UUID
    title: str = Field(..., min_length=1, max_length=255)
    summary: str | None = Field(default=None, max_length=500)
    article: str | None = None

    # Negative years are BCE
    start_year: int
    start_month: int | None = Field(default=None, ge=1, le=12)
    start_day: int | None = Field(default=None, ge=1, le=31)
    end_year: int | None = None
    end_month: int | None = Field(default=None, ge=1, le=12)
    end_day: int | None = Field(default=None, ge=1, le=31)

    @model_validator(mode="after")
    def check_date_precision(self) -> "CardCreate":
        """Day requires month, and an end date cannot precede the start year."""
        if self.start_day is not None and self.start_month is None:
            raise ValueError("start_day requires start_month")
        if self.end_day is not None and self.end_month is None:
            raise ValueError("end_day requires end_month")
        if self.end_month is not None and self.end_year is None:
            raise ValueError("end_month requires end_year")
        if self.end_year is not None and self.end_year < self.start_year:
            raise ValueError("end_year must not precede start_year")
        return self


class CardCreated(CamelModel):
    """Response of POST /api/cards/new."""

    id: UUID
