"""Dev seeding helper: fixed test users, their layers and cards.

Runs as the login role (table owner), so RLS does not apply while seeding.

Test users (password handling lives in the auth provider):
- alice: 15 cards in her own layer
- bob: 10 cards in his own layer
- carol: no cards, for empty states
- admin: no cards, sees everything through the admin bypass
"""

import asyncio
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from history_portal.config import get_settings
from history_portal.db.engine import create_async_engine_from_settings
from history_portal.db.models import Card, CardLayer, Layer, LayerRole, User, UserLayer


@dataclass(frozen=True)
class SeedUser:
    id: uuid.UUID
    email: str
    name: str
    role: str
    card_count: int


TEST_USERS: dict[str, SeedUser] = {
    "alice": SeedUser(
        id=uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"),
        email="alice@test.local",
        name="Alice Test",
        role="user",
        card_count=15,
    ),
    "bob": SeedUser(
        id=uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb"),
        email="bob@test.local",
        name="Bob Test",
        role="user",
        card_count=10,
    ),
    "carol": SeedUser(
        id=uuid.UUID("cccccccc-cccc-cccc-cccc-cccccccccccc"),
        email="carol@test.local",
        name="Carol Test",
        role="user",
        card_count=0,
    ),
    "admin": SeedUser(
        id=uuid.UUID("dddddddd-dddd-dddd-dddd-dddddddddddd"),
        email="admin@test.local",
        name="Admin Test",
        role="admin",
        card_count=0,
    ),
}


def build_seed_rows(users: dict[str, SeedUser] = TEST_USERS) -> list[object]:
    """Build ORM rows for the test users, one personal layer each."""
    rows: list[object] = []

    for key, test_user in users.items():
        rows.append(
            User(
                id=test_user.id,
                name=test_user.name,
                email=test_user.email,
                email_verified=True,
                role=test_user.role,
            )
        )

        if test_user.card_count == 0:
            continue

        layer_id = uuid.uuid5(test_user.id, "layer")
        rows.append(Layer(id=layer_id, title=f"{test_user.name} timeline"))
        rows.append(UserLayer(user_id=test_user.id, layer_id=layer_id, role=LayerRole.owner))

        for n in range(test_user.card_count):
            card_id = uuid.uuid5(test_user.id, f"card-{n}")
            rows.append(
                Card(
                    id=card_id,
                    title=f"{key.capitalize()} event {n + 1}",
                    summary=f"Seeded card {n + 1} for {test_user.name}",
                    start_year=-500 + n * 100,
                )
            )
            rows.append(CardLayer(card_id=card_id, layer_id=layer_id))

    return rows


async def insert_seed_rows(session: AsyncSession, users: dict[str, SeedUser] = TEST_USERS) -> None:
    """Add seed rows to the session without committing."""
    rows = build_seed_rows(users)
    # Parents first; flush between groups keeps FK order explicit
    for kind in (User, Layer, UserLayer, Card, CardLayer):
        session.add_all([row for row in rows if isinstance(row, kind)])
        await session.flush()


async def seed_dev_data(engine: AsyncEngine) -> None:
    """Seed test users, layers and cards.

    This function is idempotent - skipped when alice already exists.
    """
    async with AsyncSession(engine) as session:
        existing = await session.scalar(select(User).where(User.id == TEST_USERS["alice"].id))
        if existing is not None:
            print("Dev data already seeded")
            return

        print(f"Seeding {len(TEST_USERS)} test users...")
        await insert_seed_rows(session)
        await session.commit()
        print("✅ Dev seeding complete")


async def main() -> None:
    engine = create_async_engine_from_settings(get_settings())
    try:
        await seed_dev_data(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
