"""Shared plumbing for the messaging provider clients."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence

import httpx
import structlog

from ..config import Settings
from ..models import IncomingMessage

LOGGER = structlog.get_logger(__name__)


class ChannelError(RuntimeError):
    """A messaging provider rejected a request or returned something unusable."""


class MessagingChannel(Protocol):
    name: str
    acknowledges_images: bool

    def parse_payload(self, payload: Mapping[str, Any]) -> Sequence[IncomingMessage]:
        ...

    async def fetch_image(self, message: IncomingMessage) -> bytes:
        ...

    async def send_text(self, message: IncomingMessage, text: str) -> None:
        ...


class HttpChannel:
    """Base for channels that talk to their provider over HTTPS."""

    name = "http"
    acknowledges_images = False

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.settings = settings
        self._transport = transport

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.http_timeout_seconds, transport=self._transport)

    async def request(self, method: str, url: str, action: str, **kwargs: Any) -> httpx.Response:
        """Send one request and raise :class:`ChannelError` unless it succeeds."""
        LOGGER.info(f"{self.name}.{action}.start", url=url)
        async with self.client() as client:
            response = await client.request(method, url, **kwargs)
        if response.is_success:
            LOGGER.info(f"{self.name}.{action}.success", status_code=response.status_code)
            return response
        LOGGER.error(
            f"{self.name}.{action}.failed",
            status_code=response.status_code,
            body=response.text[:500],
        )
        raise ChannelError(f"{self.name} {action} failed with {response.status_code}: {response.text}")
