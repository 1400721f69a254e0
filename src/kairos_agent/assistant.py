"""Image -> OCR -> event details -> calendar link -> chat reply."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol

import structlog

from . import replies
from .calendar_links import build_links
from .channels import MessagingChannel
from .config import Settings
from .models import IncomingMessage, MessageKind, ParseResult
from .parser import parse_invitation
from .shorturl import ShortUrlStore
from .utils import get_zone, now_in_timezone

LOGGER = structlog.get_logger(__name__)


class TextSource(Protocol):
    async def extract_text(self, image: bytes) -> Optional[str]:
        ...


@dataclass(frozen=True)
class Analysis:
    """What the assistant made of one OCR transcript."""

    result: ParseResult
    links: Optional[Dict[str, str]] = None

    def as_dict(self) -> Dict[str, Any]:
        details = self.result.details
        return {
            "kind": self.result.kind.value if self.result.kind else None,
            "details": details.as_dict() if details else None,
            "failure": self.result.failure.value if self.result.failure else None,
            "links": self.links,
        }


class InvitationAssistant:
    """Single message-handling flow shared by every messaging channel."""

    def __init__(
        self,
        settings: Settings,
        extractor: TextSource,
        short_urls: Optional[ShortUrlStore] = None,
    ) -> None:
        self.settings = settings
        self.extractor = extractor
        self.short_urls = short_urls
        self.zone = get_zone(settings.timezone)

    def analyse(self, text: Optional[str]) -> Analysis:
        """Parse ``text`` and, when usable, build the provider links for it."""
        result = parse_invitation(text)
        if not result.ok:
            return Analysis(result=result)
        links = build_links(result.details, now=now_in_timezone(self.settings.timezone), zone=self.zone)
        mapping = links.as_dict()
        if self.short_urls is not None:
            mapping = self.short_urls.shorten_links(mapping)
        return Analysis(result=result, links=mapping)

    def reply_for_text(self, text: Optional[str]) -> str:
        analysis = self.analyse(text)
        if analysis.links is None:
            LOGGER.info("assistant.no_event", failure=analysis.result.failure.value)
            return replies.NO_EVENT_MESSAGE
        link = analysis.links.get("google")
        if not link:
            return replies.LINK_ERROR_MESSAGE
        return replies.format_event_detected(analysis.result.details.title, link)

    async def handle_payload(self, channel: MessagingChannel, payload: Mapping[str, Any]) -> int:
        """Handle every message in a webhook body; returns how many were found."""
        messages = channel.parse_payload(payload)
        for message in messages:
            await self.handle_message(channel, message)
        return len(messages)

    async def handle_message(self, channel: MessagingChannel, message: IncomingMessage) -> Optional[str]:
        """Respond to one message and return the reply sent, if any."""
        LOGGER.info("assistant.message", channel=message.channel, kind=message.kind.value)
        if message.kind is MessageKind.TEXT:
            reply = replies.HELP_MESSAGE
        elif message.kind is MessageKind.IMAGE:
            if channel.acknowledges_images:
                await self._send(channel, message, replies.ANALYZING_MESSAGE)
            reply = await self._process_image(channel, message)
        else:
            LOGGER.info("assistant.message.ignored", channel=message.channel)
            return None
        await self._send(channel, message, reply)
        return reply

    async def _process_image(self, channel: MessagingChannel, message: IncomingMessage) -> str:
        try:
            image = await channel.fetch_image(message)
            text = await self.extractor.extract_text(image)
            return self.reply_for_text(text)
        except Exception as exc:
            LOGGER.exception("assistant.image.failed", channel=message.channel, error=str(exc))
            return replies.PROCESSING_ERROR_MESSAGE

    async def _send(self, channel: MessagingChannel, message: IncomingMessage, text: str) -> None:
        try:
            await channel.send_text(message, text)
        except Exception as exc:
            LOGGER.error("assistant.reply.failed", channel=message.channel, error=str(exc))
