"""Store: transaction scope, error wrapping and bounded pool."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import text

from tests.conftest import T0, fetch_user, seed_user
from viewerledger.database import Store
from viewerledger.errors import StoreError, StoreUnavailable
from viewerledger.users import repository


@pytest_asyncio.fixture
async def small_store(tmp_path: Path) -> AsyncGenerator[Store, None]:
    """A Store with a single pooled connection and a short acquisition timeout."""
    s = Store(f"sqlite+aiosqlite:///{tmp_path / 'small.db'}", pool_size=1, pool_timeout=0.3)
    await s.connect()
    await s.create_all()
    yield s
    await s.close()


class TestAcquire:
    async def test_commits_on_normal_exit(self, store: Store):
        async with store.acquire() as db:
            await repository.save(db, repository.create("c1", "Alice", first_seen_at=T0, last_seen_at=T0))

        assert await fetch_user(store, "c1") is not None

    async def test_rolls_back_when_block_raises(self, store: Store):
        with pytest.raises(RuntimeError):
            async with store.acquire() as db:
                await repository.save(db, repository.create("c1", "Alice", first_seen_at=T0, last_seen_at=T0))
                raise RuntimeError("boom")

        assert await fetch_user(store, "c1") is None

    async def test_rollback_keeps_earlier_commits(self, store: Store):
        await seed_user(store, "c1", "Alice", money=5)

        with pytest.raises(RuntimeError):
            async with store.acquire() as db:
                user = await repository.load(db, "c1")
                user.money = 500
                await repository.save(db, user)
                raise RuntimeError("boom")

        assert (await fetch_user(store, "c1")).money == 5

    async def test_database_errors_become_store_errors(self, store: Store):
        with pytest.raises(StoreError, match="no_such_table"):
            async with store.acquire() as db:
                await db.execute(text("SELECT * FROM no_such_table"))

    async def test_not_connected(self):
        with pytest.raises(RuntimeError, match="not connected"):
            async with Store("sqlite+aiosqlite://").acquire():
                pass


class TestPool:
    async def test_exhausted_pool_times_out(self, small_store: Store):
        async with small_store.acquire():
            with pytest.raises(StoreUnavailable):
                async with small_store.acquire():
                    pass

    async def test_waiter_gets_released_connection(self, small_store: Store):
        release = asyncio.Event()

        async def holder() -> None:
            async with small_store.acquire():
                await release.wait()

        task = asyncio.create_task(holder())
        await asyncio.sleep(0.05)
        asyncio.get_running_loop().call_later(0.05, release.set)

        await small_store.ping()
        await task

    async def test_ping(self, store: Store):
        await store.ping()
