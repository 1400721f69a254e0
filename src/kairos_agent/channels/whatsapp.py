"""WhatsApp Cloud API client and webhook payload parsing."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import structlog

from ..models import IncomingMessage, MessageKind
from .base import ChannelError, HttpChannel

LOGGER = structlog.get_logger(__name__)


class WhatsAppChannel(HttpChannel):
    name = "whatsapp"

    def _headers(self) -> Dict[str, str]:
        token = self.settings.whatsapp_api_token
        if token is None:
            raise ChannelError("WHATSAPP_API_TOKEN is not configured")
        return {"Authorization": f"Bearer {token.get_secret_value()}"}

    def verify(self, mode: Optional[str], token: Optional[str], challenge: Optional[str]) -> Optional[str]:
        """Challenge to echo back for a subscription check, or ``None`` to refuse it."""
        expected = self.settings.whatsapp_verify_token
        if mode == "subscribe" and token and expected and token == expected:
            LOGGER.info("whatsapp.webhook.verified")
            return challenge or ""
        LOGGER.warning("whatsapp.webhook.verify_failed", mode=mode)
        return None

    def parse_payload(self, payload: Mapping[str, Any]) -> List[IncomingMessage]:
        messages: List[IncomingMessage] = []
        for entry in payload.get("entry") or []:
            for change in entry.get("changes") or []:
                value = change.get("value") or {}
                contacts = value.get("contacts") or []
                contact_id = contacts[0].get("wa_id") if contacts else None
                for raw in value.get("messages") or []:
                    messages.append(self._to_message(raw, contact_id))
        return messages

    def _to_message(self, raw: Mapping[str, Any], contact_id: Optional[str]) -> IncomingMessage:
        sender = contact_id or raw.get("from") or ""
        kind = raw.get("type")
        if kind == "image":
            return IncomingMessage(
                channel=self.name,
                sender=sender,
                kind=MessageKind.IMAGE,
                media_ref=(raw.get("image") or {}).get("id"),
            )
        if kind == "text":
            return IncomingMessage(
                channel=self.name,
                sender=sender,
                kind=MessageKind.TEXT,
                text=(raw.get("text") or {}).get("body", ""),
            )
        return IncomingMessage(channel=self.name, sender=sender, kind=MessageKind.OTHER)

    async def media_url(self, media_id: str) -> str:
        response = await self.request(
            "GET",
            f"{self.settings.whatsapp_api_url}/{media_id}",
            "media_url",
            headers=self._headers(),
        )
        url = response.json().get("url")
        if not url:
            raise ChannelError("Invalid media response: no URL found")
        return url

    async def fetch_image(self, message: IncomingMessage) -> bytes:
        if not message.media_ref:
            raise ChannelError("Image message carries no media id")
        url = await self.media_url(message.media_ref)
        response = await self.request("GET", url, "download", headers=self._headers())
        return response.content

    async def send_text(self, message: IncomingMessage, text: str) -> None:
        if not (self.settings.whatsapp_api_token and self.settings.whatsapp_phone_number_id):
            LOGGER.error("whatsapp.send.skipped", reason="missing credentials")
            return
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": message.sender.lstrip("+"),
            "type": "text",
            "text": {"preview_url": True, "body": text},
        }
        await self.request(
            "POST",
            f"{self.settings.whatsapp_api_url}/{self.settings.whatsapp_phone_number_id}/messages",
            "send",
            headers=self._headers(),
            json=payload,
        )
