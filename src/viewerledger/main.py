"""Process entry point: runs the chat ingest loop next to the user service.

Usage: python -m viewerledger

The two halves have independent lifecycles. If the upstream stream ends or
breaks, ingest stops and the failure is logged, but the user service keeps
answering queries; restarting ingest is left to the process manager. When
the user service shuts down (SIGINT/SIGTERM), ingest is cancelled and the
store is closed.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import Protocol

import structlog
import uvicorn

from viewerledger.api.app import create_app
from viewerledger.config import get_settings
from viewerledger.database import Store
from viewerledger.errors import StoreError, UpstreamUnavailable
from viewerledger.ingest.consumer import ChatIngestor
from viewerledger.ingest.source import MessageSource
from viewerledger.logging import setup_logging

logger = structlog.get_logger()


class Server(Protocol):
    async def serve(self) -> None: ...


class Ingestor(Protocol):
    async def run(self) -> None: ...


class Supervisor:
    """Runs the ingest loop and the query service for the life of the process."""

    def __init__(self, ingestor: Ingestor, server: Server) -> None:
        self._ingestor = ingestor
        self._server = server
        self._ingest_task: asyncio.Task[None] | None = None

    @property
    def ingest_task(self) -> asyncio.Task[None] | None:
        return self._ingest_task

    async def run(self) -> None:
        logger.info("supervisor_starting")
        self._ingest_task = asyncio.create_task(self._run_ingest(), name="ingest")
        try:
            await self._server.serve()
        finally:
            self._ingest_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._ingest_task
            logger.info("supervisor_stopped")

    async def _run_ingest(self) -> None:
        try:
            await self._ingestor.run()
        except (UpstreamUnavailable, StoreError):
            logger.exception("ingest_stopped_with_error")
        except Exception:
            logger.exception("ingest_crashed")
        else:
            logger.warning("ingest_stopped", reason="upstream closed the stream")


async def main() -> None:
    """Wire settings, store, upstream client and HTTP listener together."""
    settings = get_settings()
    setup_logging(settings)
    logger.debug("debug_mode_enabled")

    store = Store(settings.database_url, pool_size=settings.database_pool_size)
    await store.connect()

    source = MessageSource(settings.yts_grpc_address)
    ingestor = ChatIngestor(store, source, idle_threshold=settings.idle_threshold)

    app = create_app(store, debug=settings.debug)
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=settings.listen_host,
            port=settings.listen_port,
            log_config=None,
            lifespan="off",
        )
    )
    logger.info(
        "starting",
        upstream=source.url,
        listen=settings.us_grpc_address,
        pool_size=store.pool_size,
    )

    try:
        await Supervisor(ingestor, server).run()
    finally:
        await source.close()
        await store.close()


def cli() -> None:
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())


if __name__ == "__main__":
    cli()
