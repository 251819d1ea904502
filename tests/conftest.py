"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from viewerledger.api.app import create_app
from viewerledger.clock import ManualClock
from viewerledger.database import Store
from viewerledger.db.models import Group, GroupPermission, GroupUser, User, UserPermission
from viewerledger.ingest.source import ChatMessage
from viewerledger.users import repository

T0 = datetime(2026, 3, 1, 12, 0, 0)


@pytest_asyncio.fixture
async def store(tmp_path: Path) -> AsyncGenerator[Store, None]:
    """A Store over a fresh file-backed SQLite database with all tables created."""
    s = Store(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}", pool_size=5)
    await s.connect()
    await s.create_all()
    yield s
    await s.close()


@pytest_asyncio.fixture
async def client(store: Store) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client talking to the user service in-process."""
    app = create_app(store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(T0)


class FakeSource:
    """Stands in for the upstream subscription."""

    def __init__(self, messages: list[ChatMessage], error: Exception | None = None) -> None:
        self.messages = messages
        self.error = error
        self.closed = False

    async def subscribe(self) -> AsyncGenerator[ChatMessage, None]:
        try:
            for message in self.messages:
                yield message
            if self.error is not None:
                raise self.error
        finally:
            self.closed = True


def message(channel_id: str, display_name: str) -> ChatMessage:
    return ChatMessage(channel_id=channel_id, display_name=display_name)


async def seed_user(store: Store, channel_id: str, display_name: str | None = None, **fields: object) -> User:
    """Persist a user directly, bypassing ingest."""
    values: dict[str, object] = {"first_seen_at": T0, "last_seen_at": T0}
    values.update(fields)
    user = repository.create(channel_id, display_name or channel_id, **values)  # type: ignore[arg-type]
    async with store.acquire() as db:
        return await repository.save(db, user)


async def seed_group(
    store: Store,
    name: str,
    members: list[str],
    permissions: list[str],
) -> int:
    async with store.acquire() as db:
        group = Group(name=name)
        db.add(group)
        await db.flush()
        for channel_id in members:
            db.add(GroupUser(group_id=group.id, channel_id=channel_id))
        for permission in permissions:
            db.add(GroupPermission(group_id=group.id, permission=permission))
        return group.id


async def grant_user_permission(store: Store, channel_id: str, permission: str) -> None:
    async with store.acquire() as db:
        db.add(UserPermission(channel_id=channel_id, permission=permission))


async def fetch_user(store: Store, channel_id: str) -> User | None:
    async with store.acquire() as db:
        return await repository.load(db, channel_id)
