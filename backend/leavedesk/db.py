"""Async engine and session plumbing.

Services never commit on behalf of their caller except where documented
(per-item batch jobs, the outbox dispatcher). Request handlers get one
session per request through ``SessionDep``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated, Any

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from leavedesk.config import get_settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def engine_options(url: str, *, echo: bool = False) -> dict[str, Any]:
    """Keyword arguments for ``create_async_engine`` suited to the URL's backend."""
    if url.startswith("sqlite"):
        # aiosqlite runs the connection in a worker thread.
        return {"echo": echo, "connect_args": {"check_same_thread": False}}
    return {"echo": echo, "pool_pre_ping": True}


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        url = settings.database_url
        _engine = create_async_engine(url, **engine_options(url, echo=settings.debug))
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Sessions keep attributes loaded after commit so responses can be built from them."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
    return _session_factory


async def get_session() -> AsyncIterator[AsyncSession]:
    async with get_session_factory()() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


@asynccontextmanager
async def session_scope(factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Session for a background job. Rolls back whatever the job left uncommitted."""
    async with factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


async def create_schema() -> None:
    """Create all tables directly, bypassing migrations. Local development only."""
    from leavedesk.models import SQLModel

    async with get_engine().begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
