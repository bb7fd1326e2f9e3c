"""SQL repositories satisfy the repository interfaces the routes are typed against."""

import pytest

from history_portal.db.repositories import CardRepository, LayerRepository, UserRepository
from history_portal.db.rls import RLSTransaction
from history_portal.db.sql_repositories import SqlCardRepository, SqlLayerRepository, SqlUserRepository
from tests.fakes import FakePool, FakeSession


@pytest.fixture
def tx() -> RLSTransaction:
    return RLSTransaction(FakeSession(FakePool(size=1)))  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("implementation", "interface"),
    [
        (SqlCardRepository, CardRepository),
        (SqlLayerRepository, LayerRepository),
        (SqlUserRepository, UserRepository),
    ],
)
def test_sql_repository_implements_interface(
    tx: RLSTransaction, implementation: type, interface: type
) -> None:
    assert isinstance(implementation(tx), interface)


def test_card_repository_is_not_a_layer_repository(tx: RLSTransaction) -> None:
    assert not isinstance(SqlCardRepository(tx), LayerRepository)


@pytest.mark.asyncio
async def test_get_role_reads_acting_user_row() -> None:
    session = FakeSession(FakePool(size=1))
    repo = SqlUserRepository(RLSTransaction(session))  # type: ignore[arg-type]

    # Fake backend returns None for unrecognized SELECTs
    assert await repo.get_role() is None
    assert any("current_app_user_id()" in sql for sql in session.pool.statements)
