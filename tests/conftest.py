"""Shared pytest fixtures for all test suites."""

import os
from collections.abc import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from history_portal.db.engine import create_session_factory, normalize_async_url
from history_portal.db.models import Base
from history_portal.db.policies import drop_rls_functions, install_rls
from history_portal.db.rls import RLSExecutor
from history_portal.db.seed_dev import SeedUser, insert_seed_rows
from tests.fakes import FakePool, FakeSessionFactory, RecordingMetrics
from tests.pg_support import ABC_USERS

# ---------------------------------------------------------------------------
# In-process fakes
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_pool() -> FakePool:
    return FakePool(size=5)


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()


@pytest.fixture
def make_executor(metrics: RecordingMetrics) -> Callable[..., RLSExecutor]:
    """Build an executor over a FakePool of the given size."""

    def _make(pool: FakePool, role: str | None = "app_user") -> RLSExecutor:
        return RLSExecutor(FakeSessionFactory(pool), role=role, metrics=metrics)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def executor(fake_pool: FakePool, make_executor: Callable[..., RLSExecutor]) -> RLSExecutor:
    return make_executor(fake_pool)


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------


def _postgres_url() -> str:
    database_url = os.getenv("TEST_DATABASE_URL")
    if not database_url:
        pytest.skip("TEST_DATABASE_URL not set - skipping postgres test")

    if not database_url.startswith(("postgresql://", "postgres://", "postgresql+asyncpg://")):
        pytest.skip(f"TEST_DATABASE_URL is not PostgreSQL: {database_url}")

    return normalize_async_url(database_url)


@pytest_asyncio.fixture
async def postgres_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create schema, RLS policies and the app_user role on a real PostgreSQL.

    Requires TEST_DATABASE_URL. The login role must be able to create roles
    (a superuser in CI). Tests using this fixture should be marked with
    @pytest.mark.postgres.
    """
    engine = create_async_engine(_postgres_url(), poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await drop_rls_functions(conn)
        await conn.run_sync(Base.metadata.drop_all)
    await install_rls(engine)

    yield engine

    async with engine.begin() as conn:
        await drop_rls_functions(conn)
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def abc_dataset(postgres_engine: AsyncEngine) -> dict[str, SeedUser]:
    """Seed users A, B and C with one layer and one card each."""
    session_factory = create_session_factory(postgres_engine)
    async with session_factory() as session:
        await insert_seed_rows(session, ABC_USERS)
        await session.commit()
    return ABC_USERS


@pytest_asyncio.fixture
async def pg_engine_factory() -> AsyncGenerator[Callable[[int], AsyncEngine], None]:
    """Build engines with a real QueuePool of the given size; disposed after the test."""
    engines: list[AsyncEngine] = []

    def _make(pool_size: int) -> AsyncEngine:
        engine = create_async_engine(_postgres_url(), pool_size=pool_size, max_overflow=0)
        engines.append(engine)
        return engine

    yield _make

    for engine in engines:
        await engine.dispose()
