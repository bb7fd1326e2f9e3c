"""SQL implementations of repository interfaces.

Repositories run inside an RLSExecutor call and see only what the session
context allows. They never commit; the executor owns the transaction.
"""

import uuid

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert

from history_portal.db.models import Card, CardLayer, Layer, LayerRole, User, UserLayer
from history_portal.db.queries import (
    select_all_cards,
    select_cards_for_current_user,
    select_layers_for_current_user,
)
from history_portal.db.repositories import CardData, CardRecord, LayerRecord
from history_portal.db.rls import RLSTransaction


def _card_record(card: Card, **layer_info: object) -> CardRecord:
    return CardRecord(
        id=card.id,
        title=card.title,
        summary=card.summary,
        start_year=card.start_year,
        start_month=card.start_month,
        start_day=card.start_day,
        end_year=card.end_year,
        end_month=card.end_month,
        end_day=card.end_day,
        created_at=card.created_at,
        **layer_info,  # type: ignore[arg-type]
    )


class SqlCardRepository:
    """SQL implementation of CardRepository."""

    def __init__(self, tx: RLSTransaction) -> None:
        self._tx = tx

    async def list_cards(self, layer_ids: list[uuid.UUID] | None = None) -> list[CardRecord]:
        """List cards in the acting user's layers."""
        result = await self._tx.execute(select_cards_for_current_user(layer_ids))

        return [
            _card_record(card, layer_id=layer_id, layer_title=layer_title, role=role)
            for card, layer_id, layer_title, role in result.all()
        ]

    async def list_all_cards(self) -> list[CardRecord]:
        """List every visible card."""
        cards = await self._tx.scalars(select_all_cards())
        return [_card_record(card) for card in cards.all()]

    async def create_card(self, data: CardData, layer_id: uuid.UUID) -> uuid.UUID:
        """Create a card and link it into a layer."""
        card_id = uuid.uuid4()

        self._tx.add(
            Card(
                id=card_id,
                title=data.title,
                summary=data.summary,
                article=data.article,
                start_year=data.start_year,
                start_month=data.start_month,
                start_day=data.start_day,
                end_year=data.end_year,
                end_month=data.end_month,
                end_day=data.end_day,
            )
        )
        # Card must exist before the link row references it
        await self._tx.flush()

        self._tx.add(CardLayer(card_id=card_id, layer_id=layer_id))
        await self._tx.flush()

        return card_id


class SqlLayerRepository:
    """SQL implementation of LayerRepository."""

    def __init__(self, tx: RLSTransaction) -> None:
        self._tx = tx

    async def list_layers(self) -> list[LayerRecord]:
        """List layers the acting user belongs to."""
        result = await self._tx.execute(select_layers_for_current_user())

        return [
            LayerRecord(id=layer.id, title=layer.title, role=role, created_at=layer.created_at)
            for layer, role in result.all()
        ]

    async def create_layer(self, title: str, owner_id: uuid.UUID) -> uuid.UUID:
        """Create a layer and its owner membership."""
        layer_id = uuid.uuid4()

        self._tx.add(Layer(id=layer_id, title=title))
        await self._tx.flush()

        self._tx.add(UserLayer(user_id=owner_id, layer_id=layer_id, role=LayerRole.owner))
        await self._tx.flush()

        return layer_id

    async def share_layer(self, layer_id: uuid.UUID, user_id: uuid.UUID, role: LayerRole) -> None:
        """Grant or change a user's role on a layer."""
        stmt = insert(UserLayer).values(user_id=user_id, layer_id=layer_id, role=role)
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserLayer.user_id, UserLayer.layer_id],
            set_={"role": stmt.excluded.role},
        )
        await self._tx.execute(stmt)


class SqlUserRepository:
    """SQL implementation of UserRepository."""

    def __init__(self, tx: RLSTransaction) -> None:
        self._tx = tx

    async def get_role(self) -> str | None:
        return await self._tx.scalar(select(User.role).where(User.id == func.current_app_user_id()))
