"""Async database engine and session factory construction."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stacks.config import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database.

    SQLite doesn't support pool_size / max_overflow / pool_pre_ping, and an
    in-memory SQLite database must share one connection to be visible across
    sessions.
    """
    engine_kwargs: dict = {"echo": settings.DEBUG and settings.ENVIRONMENT == "development"}
    if settings.is_sqlite:
        if ":memory:" in settings.DATABASE_URL:
            engine_kwargs.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
    else:
        engine_kwargs.update(pool_size=20, max_overflow=10, pool_pre_ping=True)

    return create_async_engine(settings.DATABASE_URL, **engine_kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
