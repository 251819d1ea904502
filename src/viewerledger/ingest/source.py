"""Client for the upstream chat-message source.

The upstream exposes a server-streaming "subscribe to messages" call. It is
reached over HTTP: an empty JSON request is posted and the response body is
a stream of newline-delimited JSON messages, one chat message per line.
"""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from viewerledger.errors import UpstreamUnavailable

logger = structlog.get_logger()

SUBSCRIBE_PATH = "/youtubeservice.YouTubeService/SubscribeMessages"


class ChatMessage(BaseModel):
    """A chat message as seen by the ledger. Extra upstream fields are dropped."""

    model_config = ConfigDict(extra="ignore")

    channel_id: str = Field(min_length=1)
    display_name: str


def normalize_address(address: str) -> str:
    """Accept bare ``host:port`` addresses as well as full URLs."""
    if "://" not in address:
        address = f"http://{address}"
    return address.rstrip("/")


class MessageSource:
    """Streaming subscription to the upstream chat source."""

    def __init__(self, address: str, client: httpx.AsyncClient | None = None) -> None:
        self._base_url = normalize_address(address)
        # Streams stay open indefinitely; only bound the connect phase.
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(None, connect=10.0))
        self._owns_client = client is None
        self._messages_received = 0
        self._messages_invalid = 0

    @property
    def url(self) -> str:
        return f"{self._base_url}{SUBSCRIBE_PATH}"

    async def subscribe(self) -> AsyncGenerator[ChatMessage, None]:
        """Yield messages in arrival order until the upstream closes the stream.

        Lines that are not valid messages are logged and skipped.

        Raises:
            UpstreamUnavailable: If the upstream cannot be reached, answers
                with an error status, or drops the stream mid-way.
        """
        try:
            async with self._client.stream("POST", self.url, json={}) as response:
                if response.status_code != httpx.codes.OK:
                    msg = f"Upstream answered {response.status_code} for {self.url}"
                    raise UpstreamUnavailable(msg)
                logger.info("upstream_subscribed", url=self.url)

                async for line in response.aiter_lines():
                    if not line.strip():
                        continue
                    message = self._parse(line)
                    if message is not None:
                        self._messages_received += 1
                        yield message
        except httpx.HTTPError as exc:
            msg = f"Upstream stream at {self.url} failed: {exc}"
            raise UpstreamUnavailable(msg) from exc

    def _parse(self, line: str) -> ChatMessage | None:
        try:
            return ChatMessage.model_validate(json.loads(line))
        except (json.JSONDecodeError, ValidationError) as exc:
            self._messages_invalid += 1
            logger.warning("upstream_message_invalid", error=str(exc), line=line[:200])
            return None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def stats(self) -> dict[str, int]:
        return {
            "received": self._messages_received,
            "invalid": self._messages_invalid,
        }
