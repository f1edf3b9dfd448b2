"""Async SQLAlchemy engine and session factory."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taskdesk_service.db.models import Base
from taskdesk_service.settings import settings

_engine = None
_session_factory = None


async def init_db(url: str | None = None) -> None:
    global _engine, _session_factory
    url = url or settings.database_url
    # SQLite (local runs and tests) doesn't accept QueuePool sizing.
    kwargs = {} if url.startswith("sqlite") else {"pool_size": 10}
    _engine = create_async_engine(url, echo=False, **kwargs)
    _session_factory = async_sessionmaker(_engine, class_=AsyncSession, expire_on_commit=False)


async def create_schema() -> None:
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory
