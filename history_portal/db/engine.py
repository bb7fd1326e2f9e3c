"""Database engine, session factory and executor construction.

The engine is created once by the application lifespan and passed down
explicitly; there is no module-level engine.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from history_portal.config import Settings
from history_portal.db.rls import RLSExecutor


def normalize_async_url(database_url: str) -> str:
    """Convert postgresql:// and postgres:// URLs to the asyncpg driver."""
    for prefix in ("postgresql://", "postgres://"):
        if database_url.startswith(prefix):
            return database_url.replace(prefix, "postgresql+asyncpg://", 1)
    return database_url


def create_async_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create the pooled async SQLAlchemy engine from settings.

    Raises:
        ValueError: If DATABASE_URL is unset or empty.
    """
    if not settings.database_url:
        raise ValueError(
            "DATABASE_URL must be set to a valid connection string. "
            "Set it in .env or as an environment variable."
        )

    return create_async_engine(
        normalize_async_url(settings.database_url),
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout_s,
        pool_pre_ping=True,
        echo=settings.db_echo,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create sessionmaker for creating database sessions.

    Args:
        engine: SQLAlchemy async engine

    Returns:
        Sessionmaker bound to the engine
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def create_rls_executor(engine: AsyncEngine, settings: Settings) -> RLSExecutor:
    """Create the RLS executor for an engine, using the configured role."""
    return RLSExecutor(create_session_factory(engine), role=settings.rls_role or None)
