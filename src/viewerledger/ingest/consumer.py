"""Chat-message consumer that keeps the watch-time ledger up to date.

For every message from the upstream source the author is upserted: created
on first contact, otherwise loaded. Their display name is replaced with the
latest one seen, and if the gap since they were last seen exceeds the idle
threshold, the gap is credited as watch-time and currency before
``last_seen_at`` moves forward.

Messages are handled strictly one after another, so per-user writes land
in arrival order. A pool connection is held only while one message is
being applied, never while waiting for the next message.
"""

from __future__ import annotations

import contextlib
from datetime import timedelta
from enum import Enum
from typing import TYPE_CHECKING, Protocol

import structlog

from viewerledger.clock import Clock, SystemClock
from viewerledger.engagement import accrue
from viewerledger.errors import StoreError, UpstreamUnavailable
from viewerledger.users import repository

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from viewerledger.database import Store
    from viewerledger.db.models import User
    from viewerledger.ingest.source import ChatMessage

logger = structlog.get_logger()

DEFAULT_IDLE_THRESHOLD = timedelta(minutes=5)


class IngestState(str, Enum):
    IDLE = "idle"
    SUBSCRIBED = "subscribed"
    STREAMING = "streaming"
    CLOSED = "closed"
    FAILED = "failed"


class ChatSource(Protocol):
    def subscribe(self) -> AsyncGenerator[ChatMessage, None]: ...


class ChatIngestor:
    """Applies the upstream message stream to the user ledger."""

    def __init__(
        self,
        store: Store,
        source: ChatSource,
        clock: Clock | None = None,
        idle_threshold: timedelta = DEFAULT_IDLE_THRESHOLD,
    ) -> None:
        self._store = store
        self._source = source
        self._clock = clock or SystemClock()
        self._idle_threshold = idle_threshold
        self._state = IngestState.IDLE
        self._messages_processed = 0
        self._users_created = 0
        self._accruals = 0

    @property
    def state(self) -> IngestState:
        return self._state

    @property
    def idle_threshold(self) -> timedelta:
        return self._idle_threshold

    async def run(self) -> None:
        """Consume the stream until it ends.

        Returns normally when the upstream closes the stream.

        Raises:
            UpstreamUnavailable: The stream could not be opened or broke.
            StoreError: A ledger write failed; the message was not applied.
        """
        self._state = IngestState.SUBSCRIBED
        logger.info("ingest_started", idle_threshold_seconds=self._idle_threshold.total_seconds())

        try:
            # Closing the generator releases the upstream stream when a message fails.
            async with contextlib.aclosing(self._source.subscribe()) as stream:
                async for message in stream:
                    self._state = IngestState.STREAMING
                    await self.process_message(message)
        except UpstreamUnavailable as exc:
            self._state = IngestState.FAILED
            logger.error("ingest_upstream_failed", error=str(exc), **self.stats)
            raise
        except StoreError as exc:
            self._state = IngestState.FAILED
            logger.error("ingest_store_failed", error=str(exc), **self.stats)
            raise

        self._state = IngestState.CLOSED
        logger.info("ingest_stream_closed", **self.stats)

    async def process_message(self, message: ChatMessage) -> User:
        """Apply one chat message to its author's ledger row in one transaction."""
        created = False
        accrued = False
        async with self._store.acquire() as db:
            now = self._clock.now()

            user = None
            if await repository.exists(db, message.channel_id):
                user = await repository.load(db, message.channel_id)
            if user is None:
                user = repository.create(
                    message.channel_id,
                    message.display_name,
                    first_seen_at=now,
                    last_seen_at=now,
                )
                created = True
                logger.info("user_created", channel_id=message.channel_id, display_name=message.display_name)
            else:
                logger.debug("user_seen", channel_id=message.channel_id)

            user.display_name = message.display_name

            # Compare against last_seen_at before it moves to now.
            if user.last_seen_at + self._idle_threshold < now:
                hours_before, money_before = user.hours_seconds, user.money
                accrual = accrue(user, now)
                accrued = True
                logger.info(
                    "watch_time_accrued",
                    channel_id=user.channel_id,
                    display_name=user.display_name,
                    hours_before=hours_before // 3600,
                    hours_after=user.hours_seconds // 3600,
                    money_before=money_before,
                    money_after=user.money,
                    money_added=accrual.money_added,
                )

            # The wall clock may step backwards; last_seen_at never does.
            user.last_seen_at = max(user.last_seen_at, now)
            user = await repository.save(db, user)

        # Counted only once the transaction has committed.
        self._messages_processed += 1
        if created:
            self._users_created += 1
        if accrued:
            self._accruals += 1
        return user

    @property
    def stats(self) -> dict[str, int]:
        return {
            "messages_processed": self._messages_processed,
            "users_created": self._users_created,
            "accruals": self._accruals,
        }
