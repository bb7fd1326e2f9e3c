"""Select builders for card and layer reads.

Row filtering is done by RLS policies. These helpers only shape the result,
e.g. picking the caller's own membership row when joining ``user_layer``.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import Select, func, select

from history_portal.db.models import Card, CardLayer, Layer, UserLayer


def select_cards_for_current_user(layer_ids: Sequence[UUID] | None = None) -> Select:
    """Select cards with their layer and the caller's role on that layer.

    A card linked into several visible layers appears once per layer.

    Args:
        layer_ids: Restrict to these layers; None or empty for all visible layers

    Returns:
        Select yielding (Card, layer id, layer title, role) rows
    """
    stmt = (
        select(Card, Layer.id, Layer.title, UserLayer.role)
        .join(CardLayer, CardLayer.card_id == Card.id)
        .join(Layer, Layer.id == CardLayer.layer_id)
        .join(UserLayer, UserLayer.layer_id == Layer.id)
        .where(UserLayer.user_id == func.current_app_user_id())
    )

    if layer_ids:
        stmt = stmt.where(Layer.id.in_(list(layer_ids)))

    return stmt.order_by(Card.start_year, Card.title)


def select_all_cards() -> Select:
    """Select every visible card, without membership joins."""
    return select(Card).order_by(Card.start_year, Card.title)


def select_layers_for_current_user() -> Select:
    """Select visible layers with the caller's role on each."""
    return (
        select(Layer, UserLayer.role)
        .join(UserLayer, UserLayer.layer_id == Layer.id)
        .where(UserLayer.user_id == func.current_app_user_id())
        .order_by(Layer.title)
    )
