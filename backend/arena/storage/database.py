"""
Database engine and session factory.
Any SQLAlchemy async driver works; the default is aiosqlite.
"""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def create_engine(database_url: str, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create an async engine, making sure a file-backed SQLite directory exists."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_async_engine(database_url, echo=echo, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


async def init_database(database_url: str, echo: bool = False) -> async_sessionmaker[AsyncSession]:
    """
    Create the global engine and all tables.

    Returns:
        The session factory used by the message store.
    """
    global _engine, _session_factory

    # Register ORM tables on Base.metadata
    from . import records  # noqa: F401

    _engine = create_engine(database_url, echo=echo)
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    _session_factory = create_session_factory(_engine)
    logger.info(f"Database initialized: {make_url(database_url).render_as_string(hide_password=True)}")
    return _session_factory


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_factory


async def close_database() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
