"""
Async engine and session management.

The engine and session factory are created lazily from settings. Services
take an ``async_sessionmaker`` so tests and scripts can point them at a
different database without touching the module globals.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from crease.config import get_settings
from crease.database.base import Base

_async_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with pool settings suited to the backend."""
    if database_url.startswith("sqlite"):
        # Writers wait on each other instead of failing with "database is locked"
        return create_async_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": 30},
        )

    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build a session factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


def get_engine() -> AsyncEngine:
    """Get or create the application engine."""
    global _async_engine
    if _async_engine is None:
        settings = get_settings()
        _async_engine = create_engine(settings.database_url, echo=settings.database_echo)
    return _async_engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the application session factory."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = create_session_factory(get_engine())
    return _async_session_factory


async def init_models(engine: Optional[AsyncEngine] = None) -> None:
    """Create all tables that do not exist yet."""
    import crease.models  # noqa: F401  (registers mappers)

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the application engine."""
    global _async_engine, _async_session_factory
    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
    _async_session_factory = None
