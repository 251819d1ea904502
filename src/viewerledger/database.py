"""Async SQLAlchemy engine, bounded connection pool and scoped sessions."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

from viewerledger.db.base import Base
from viewerledger.errors import StoreError, StoreUnavailable

logger = structlog.get_logger()

DEFAULT_POOL_SIZE = 10
DEFAULT_POOL_TIMEOUT = 30.0


class Store:
    """Pooled handle over the relational store.

    The pool has a fixed capacity with no overflow. Waiters are served in
    FIFO order; ``acquire()`` suspends until a connection is free or the pool
    timeout elapses.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = DEFAULT_POOL_SIZE,
        pool_timeout: float = DEFAULT_POOL_TIMEOUT,
    ) -> None:
        self._url = database_url
        self._pool_size = pool_size
        self._pool_timeout = pool_timeout
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def pool_size(self) -> int:
        return self._pool_size

    async def connect(self) -> None:
        """Create the engine and session factory."""
        self._engine = create_async_engine(
            self._url,
            poolclass=AsyncAdaptedQueuePool,
            pool_size=self._pool_size,
            max_overflow=0,
            pool_timeout=self._pool_timeout,
            pool_use_lifo=False,
            pool_pre_ping=True,
            echo=False,
        )
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("store_connected", pool_size=self._pool_size)

    async def close(self) -> None:
        """Dispose of the engine and every pooled connection."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("store_closed")

    def get_engine(self) -> AsyncEngine:
        if self._engine is None:
            msg = "Store not connected. Call connect() first."
            raise RuntimeError(msg)
        return self._engine

    async def create_all(self) -> None:
        """Create every table that does not exist yet."""
        async with self.get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[AsyncSession]:
        """Check a connection out of the pool for the duration of the block.

        The transaction commits when the block exits normally and rolls back
        otherwise. The connection returns to the pool on every path.
        """
        if self._session_factory is None:
            msg = "Store not connected. Call connect() first."
            raise RuntimeError(msg)

        async with self._session_factory() as session:
            try:
                await session.connection()
            except (SQLAlchemyError, OSError) as exc:
                logger.error("store_acquire_failed", error=str(exc))
                raise StoreUnavailable("Could not acquire a database connection") from exc

            try:
                yield session
                await session.commit()
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StoreError(str(exc)) from exc
            except BaseException:
                await session.rollback()
                raise

    async def ping(self) -> None:
        """Round-trip a trivial query through the pool."""
        async with self.acquire() as session:
            await session.execute(text("SELECT 1"))
