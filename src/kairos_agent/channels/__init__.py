"""Messaging providers the assistant can receive invitations from."""

from __future__ import annotations

from typing import Dict, Optional

import httpx

from ..config import Settings
from .base import ChannelError, HttpChannel, MessagingChannel
from .messagebird import MessageBirdChannel
from .twilio import TwilioChannel
from .whatsapp import WhatsAppChannel

__all__ = [
    "ChannelError",
    "HttpChannel",
    "MessageBirdChannel",
    "MessagingChannel",
    "TwilioChannel",
    "WhatsAppChannel",
    "build_channels",
]


def build_channels(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, MessagingChannel]:
    """One client per provider, keyed by channel name."""
    channels = (
        WhatsAppChannel(settings, transport),
        TwilioChannel(settings, transport),
        MessageBirdChannel(settings, transport),
    )
    return {channel.name: channel for channel in channels}
