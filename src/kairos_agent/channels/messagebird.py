"""MessageBird Conversations API client."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

import structlog

from ..models import IncomingMessage, MessageKind
from .base import ChannelError, HttpChannel

LOGGER = structlog.get_logger(__name__)


class MessageBirdChannel(HttpChannel):
    name = "messagebird"
    acknowledges_images = True

    def _headers(self) -> Dict[str, str]:
        key = self.settings.messagebird_api_key
        if key is None:
            raise ChannelError("MESSAGEBIRD_API_KEY is not configured")
        return {"Authorization": f"AccessKey {key.get_secret_value()}"}

    def parse_payload(self, payload: Mapping[str, Any]) -> List[IncomingMessage]:
        if payload.get("type") != "message.received":
            return []
        raw = payload.get("message") or {}
        content = raw.get("content") or {}
        conversation_id = (payload.get("conversation") or {}).get("id")
        common = {"channel": self.name, "sender": raw.get("from") or "", "conversation_id": conversation_id}

        if raw.get("type") == "image":
            url = (content.get("image") or {}).get("url")
            return [IncomingMessage(kind=MessageKind.IMAGE, media_ref=url, **common)]
        if raw.get("type") == "text":
            return [IncomingMessage(kind=MessageKind.TEXT, text=content.get("text", ""), **common)]
        return [IncomingMessage(kind=MessageKind.OTHER, **common)]

    async def fetch_image(self, message: IncomingMessage) -> bytes:
        if not message.media_ref:
            raise ChannelError("Image message carries no URL")
        response = await self.request("GET", message.media_ref, "download", headers=self._headers())
        return response.content

    async def send_text(self, message: IncomingMessage, text: str) -> None:
        if self.settings.messagebird_api_key is None:
            LOGGER.error("messagebird.send.skipped", reason="missing credentials")
            return
        if not message.conversation_id:
            LOGGER.error("messagebird.send.skipped", reason="missing conversation id")
            return
        await self.request(
            "POST",
            f"{self.settings.messagebird_api_url}/conversations/{message.conversation_id}/messages",
            "send",
            headers=self._headers(),
            json={"type": "text", "content": {"text": text}},
        )
