"""Database session management for the reservation booking engine."""

from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import NullPool, StaticPool

from core.config import settings


def normalize_database_url(url: str) -> str:
    """Ensure an async driver is used."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def create_engine(
    url: Optional[str] = None,
    pool_size: int = settings.db_pool_size,
    max_overflow: int = settings.db_max_overflow,
    echo: bool = settings.db_echo,
) -> AsyncEngine:
    """
    Create async SQLAlchemy engine.

    Args:
        url: Database URL (defaults to settings.database_url)
        pool_size: Number of connections to maintain in pool
        max_overflow: Max number of connections to create beyond pool_size
        echo: Whether to log all SQL statements

    Returns:
        Async SQLAlchemy engine
    """
    url = normalize_database_url(url or settings.database_url)

    if url.startswith("sqlite"):
        # SQLite connections are not pooled by size
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def create_test_engine(url: str = "sqlite+aiosqlite:///:memory:") -> AsyncEngine:
    """
    Create async engine for testing.

    In-memory SQLite shares one connection so every session sees the same
    database; other URLs use NullPool.
    """
    url = normalize_database_url(url)
    if ":memory:" in url:
        return create_async_engine(
            url,
            echo=False,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(url, echo=False, poolclass=NullPool)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def get_engine() -> AsyncEngine:
    """Get or create the application engine."""
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the application session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


@asynccontextmanager
async def get_session_context(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for a transactional async session.

    Commits when the block exits normally and rolls back on any exception,
    including cancellation.

    Example:
        async with get_session_context() as session:
            # use session
            pass
    """
    factory = session_factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """Initialize database by creating all tables."""
    from .base import Base
    from . import models_sqlalchemy  # noqa: F401  (registers tables)

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db(engine: Optional[AsyncEngine] = None) -> None:
    """Drop all database tables. Use with caution!"""
    from .base import Base

    async with (engine or get_engine()).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def close_db() -> None:
    """Close database engine and all connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
