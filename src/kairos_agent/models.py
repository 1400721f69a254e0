"""Shared data models used across the invitation assistant."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class InvitationKind(str, Enum):
    """Extraction strategy chosen for a piece of OCR text."""

    WEDDING = "wedding"
    FORMAL = "formal"
    GENERIC = "generic"


@dataclass(frozen=True)
class EventDetails:
    """Structured fields pulled out of an invitation.

    ``date`` and ``time`` hold the substrings as they appeared in the text;
    they are only turned into real instants when calendar links are built.
    """

    title: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None

    def as_dict(self) -> dict[str, Optional[str]]:
        return asdict(self)


class ParseFailure(str, Enum):
    """Why a parse did not produce usable event details."""

    EMPTY_TEXT = "empty_text"
    MISSING_TITLE = "missing_title"
    MISSING_DATE = "missing_date"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one OCR transcript.

    Exactly one of ``failure`` being ``None`` (usable ``details``) or set holds.
    ``details`` may still carry partial fields on failure so callers can echo
    what was recognised.
    """

    kind: Optional[InvitationKind]
    details: Optional[EventDetails]
    failure: Optional[ParseFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.details is not None


@dataclass(frozen=True)
class ResolvedEvent:
    """Calendar-ready event with concrete start and end instants (local wall time)."""

    title: str
    start: datetime
    end: datetime
    location: str = ""
    description: str = ""

    def duration_minutes(self) -> int:
        """Get event duration in minutes."""
        delta = self.end - self.start
        return int(delta.total_seconds() / 60)


@dataclass(frozen=True)
class CalendarLinks:
    """Provider-specific "add event" URLs.

    The reduced-fidelity fallback only fills ``google``, ``outlook`` and ``yahoo``.
    """

    google: str
    outlook: str
    yahoo: str
    apple: Optional[str] = None
    ios: Optional[str] = None
    degraded: bool = False

    @property
    def all(self) -> str:
        return self.google

    def as_dict(self) -> dict[str, str]:
        """Provider mapping, including the ``all`` alias, without unset providers."""
        links = {
            "google": self.google,
            "outlook": self.outlook,
            "yahoo": self.yahoo,
            "apple": self.apple,
            "ios": self.ios,
        }
        mapping = {provider: url for provider, url in links.items() if url}
        mapping["all"] = self.all
        return mapping


class MessageKind(str, Enum):
    IMAGE = "image"
    TEXT = "text"
    OTHER = "other"


@dataclass(frozen=True)
class IncomingMessage:
    """A single inbound chat message, normalised across messaging providers."""

    channel: str
    sender: str
    kind: MessageKind
    media_ref: Optional[str] = None
    text: Optional[str] = None
    conversation_id: Optional[str] = None
