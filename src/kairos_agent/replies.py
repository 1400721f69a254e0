"""Chat replies sent back to the person who shared an invitation."""

from __future__ import annotations

from typing import Optional

HELP_MESSAGE = (
    "👋 Hello! I'm your WhatsApp Calendar Assistant.\n\n"
    "Send me a screenshot of an event invitation, and I'll extract the details "
    "and create a calendar event for you.\n\n"
    "I'll create a link that you can tap to add the event directly to your calendar!"
)

ANALYZING_MESSAGE = "Got your invitation! 📸 Analyzing the image now..."

NO_EVENT_MESSAGE = (
    "❌ Sorry, I couldn't extract event details from your image. "
    "Please make sure the image contains clear information about the event."
)

PROCESSING_ERROR_MESSAGE = (
    "❌ Sorry, I encountered an error while processing your image. Please try again later."
)

LINK_ERROR_MESSAGE = (
    "❌ Sorry, I encountered an error while creating the Google Calendar link. Please try again later."
)


def format_event_detected(title: Optional[str], link: str) -> str:
    """Success reply carrying a single tappable calendar link."""
    return f'✅ Event detected: "{title or "Event"}"\n\nTap to add to your calendar:\n{link}'
