"""Async SQLAlchemy engine and session wiring.

Provides:
- Base: Declarative base for all clubmeet tables
- Database: Owns one AsyncEngine and hands out AsyncSessions through
  ``session()``, the session_factory callable repositories are built with

A Database is constructed once in the application lifespan (or a script)
and passed to whatever needs it; there is no module-level engine.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for clubmeet models."""


class Database:
    """Engine plus session factory for one database URL.

    Args:
        url: SQLAlchemy async database URL.
        engine_kwargs: Extra keyword arguments for create_async_engine.
    """

    def __init__(self, url: str, **engine_kwargs: Any) -> None:
        if url.startswith("postgresql") and "pool_size" not in engine_kwargs:
            engine_kwargs.setdefault("pool_size", 10)
            engine_kwargs.setdefault("max_overflow", 10)
        self._engine: AsyncEngine = create_async_engine(url, echo=False, **engine_kwargs)
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield an AsyncSession bound to this database."""
        async with self._sessionmaker() as session:
            yield session

    async def create_all(self) -> None:
        """Create all tables (used by tests and local development)."""
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def close(self) -> None:
        """Dispose of the engine and close all connections."""
        await self._engine.dispose()
