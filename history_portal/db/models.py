"""SQLAlchemy ORM models for users, cards and layers.

Years are stored as integers (negative for BCE, e.g. -4000 for 4000 BCE).
Month and day are optional for partial date precision.

ORM inserts must not use RETURNING, which Postgres checks against SELECT
policies before a new card or layer is linked to the inserting user. Ids and
timestamps therefore have Python-side defaults and eager defaults are off.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    # Never fetch server defaults with INSERT ... RETURNING
    __mapper_args__ = {"eager_defaults": False}


class LayerRole(str, enum.Enum):
    """Role a user holds on a layer."""

    owner = "owner"
    editor = "editor"
    guest = "guest"


class User(Base):
    """User accounts. Written by the auth provider, read by the app."""

    __tablename__ = "user"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "user" | "admin"
    role: Mapped[str] = mapped_column(Text, default="user", server_default="user", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    memberships: Mapped[list["UserLayer"]] = relationship(
        "UserLayer", back_populates="user", cascade="all, delete-orphan"
    )


class Card(Base):
    """Historical event card."""

    __tablename__ = "card"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    summary: Mapped[str | None] = mapped_column(String(500), nullable=True)
    article: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Start date (required year, optional month/day for precision)
    start_year: Mapped[int] = mapped_column(Integer, nullable=False)
    start_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    start_day: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # End date (all optional for ongoing/unknown end dates)
    end_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    end_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    end_day: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class Layer(Base):
    """Collection of cards shared between users."""

    __tablename__ = "layer"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    members: Mapped[list["UserLayer"]] = relationship("UserLayer", back_populates="layer")


class CardLayer(Base):
    """Card-layer junction (many-to-many)."""

    __tablename__ = "card_layer"
    __table_args__ = (Index("idx_card_layer_layer", "layer_id"),)

    card_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("card.id", ondelete="CASCADE"), primary_key=True
    )
    layer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("layer.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class UserLayer(Base):
    """User-layer access with role-based permissions."""

    __tablename__ = "user_layer"
    __table_args__ = (Index("idx_user_layer_layer", "layer_id"),)

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), primary_key=True
    )
    layer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("layer.id", ondelete="CASCADE"), primary_key=True
    )
    role: Mapped[LayerRole] = mapped_column(
        Enum(LayerRole, name="layer_role"),
        default=LayerRole.guest,
        server_default=LayerRole.guest.value,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="memberships")
    layer: Mapped["Layer"] = relationship("Layer", back_populates="members")


# Tables protected by row-level security policies
RLS_TABLES: list[str] = ["card", "layer", "card_layer", "user_layer"]
