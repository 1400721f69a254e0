"""Twilio WhatsApp messaging: form-encoded webhooks and the Messages REST API."""

from __future__ import annotations

import re
from typing import Any, List, Mapping, Tuple

import structlog

from ..models import IncomingMessage, MessageKind
from .base import ChannelError, HttpChannel

LOGGER = structlog.get_logger(__name__)

WHATSAPP_PREFIX = "whatsapp:"


def format_recipient(number: str) -> str:
    """``whatsapp:+447700900123`` from any of ``+44 7700 900123``, ``whatsapp:447700900123``..."""
    digits = re.sub(r"\s+", "", number)
    if digits.startswith(WHATSAPP_PREFIX):
        digits = digits[len(WHATSAPP_PREFIX):]
    return f"{WHATSAPP_PREFIX}+{digits.lstrip('+')}"


class TwilioChannel(HttpChannel):
    name = "twilio"

    def _auth(self) -> Tuple[str, str]:
        sid = self.settings.twilio_account_sid
        token = self.settings.twilio_auth_token
        if not sid or token is None:
            raise ChannelError("TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN must be configured")
        return sid, token.get_secret_value()

    def parse_payload(self, payload: Mapping[str, Any]) -> List[IncomingMessage]:
        sender = payload.get("From")
        if not sender:
            LOGGER.warning("twilio.webhook.invalid", reason="missing From")
            return []
        sender = str(sender)
        if sender.startswith(WHATSAPP_PREFIX):
            sender = sender[len(WHATSAPP_PREFIX):]

        media_url = payload.get("MediaUrl0")
        content_type = str(payload.get("MediaContentType0") or "")
        if media_url and content_type:
            kind = MessageKind.IMAGE if content_type.startswith("image/") else MessageKind.OTHER
            return [IncomingMessage(channel=self.name, sender=sender, kind=kind, media_ref=str(media_url))]
        return [
            IncomingMessage(
                channel=self.name,
                sender=sender,
                kind=MessageKind.TEXT,
                text=str(payload.get("Body") or ""),
            )
        ]

    async def fetch_image(self, message: IncomingMessage) -> bytes:
        if not message.media_ref:
            raise ChannelError("Media message carries no URL")
        # Twilio answers media URLs with a redirect to the storage bucket.
        response = await self.request(
            "GET",
            message.media_ref,
            "download",
            auth=self._auth(),
            follow_redirects=True,
        )
        return response.content

    async def send_text(self, message: IncomingMessage, text: str) -> None:
        if not (self.settings.twilio_account_sid and self.settings.twilio_auth_token):
            LOGGER.error("twilio.send.skipped", reason="missing credentials")
            return
        sid, token = self._auth()
        response = await self.request(
            "POST",
            f"{self.settings.twilio_api_url}/Accounts/{sid}/Messages.json",
            "send",
            auth=(sid, token),
            data={
                "From": self.settings.twilio_phone_number,
                "To": format_recipient(message.sender),
                "Body": text,
            },
        )
        LOGGER.info("twilio.send.queued", sid=response.json().get("sid"))
