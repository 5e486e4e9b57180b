from __future__ import annotations

import re
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from tablekit import config


def _to_asyncpg_url(sync_or_async_url: str) -> str:
    """
    Ensure the database URL uses SQLAlchemy's asyncpg dialect.

    Accepts postgresql://, postgres:// and postgresql+asyncpg:// URLs and
    returns one starting with 'postgresql+asyncpg://'.
    """
    if sync_or_async_url.startswith("postgresql+asyncpg://"):
        return sync_or_async_url
    if sync_or_async_url.startswith("postgresql://"):
        return sync_or_async_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if sync_or_async_url.startswith("postgres://"):
        return sync_or_async_url.replace("postgres://", "postgresql+asyncpg://", 1)
    # e.g. postgresql+psycopg2:// handed out by testcontainers
    return re.sub(r"^[a-zA-Z0-9+.-]+://", "postgresql+asyncpg://", sync_or_async_url, count=1)


# Shared MetaData instance used by table models and Alembic.
metadata: MetaData = MetaData()

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def configure_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """(Re)create the async engine; the URL defaults to config.DATABASE_URL."""
    global _engine, _session_factory
    _engine = create_async_engine(
        _to_asyncpg_url(database_url or config.DATABASE_URL),
        echo=config.DEBUG,
        pool_pre_ping=True,
    )
    # expire_on_commit=False so results remain usable after commit.
    _session_factory = async_sessionmaker(bind=_engine, expire_on_commit=False, autoflush=False)
    return _engine


def get_engine() -> AsyncEngine:
    """Engine is created lazily so importing models never opens a pool."""
    if _engine is None:
        return configure_engine()
    return _engine


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a SQLAlchemy AsyncSession bound to the async engine."""
    if _session_factory is None:
        configure_engine()
    async with _session_factory() as session:
        yield session
