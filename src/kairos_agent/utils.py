"""Utility helpers for text handling and time zones."""

from __future__ import annotations

import re
from datetime import datetime, tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from dateutil import tz as dateutil_tz

LOGGER = structlog.get_logger(__name__)

INVITATION_MARKERS = ("=== EVENT INVITATION ===", "=== END OF INVITATION ===")
LOWERCASE_CONNECTORS = frozenset({"and", "of", "to", "the", "at", "du", "de", "la", "le"})


def get_zone(timezone_name: Optional[str]) -> tzinfo:
    """Return the named zone, or the system local zone when unset or unknown."""
    if not timezone_name:
        return dateutil_tz.tzlocal()
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        LOGGER.warning("timezone.unknown", timezone=timezone_name)
        return dateutil_tz.tzlocal()


def now_in_timezone(timezone_name: Optional[str]) -> datetime:
    """Current wall-clock time in the configured zone, without tzinfo attached."""
    return datetime.now(tz=get_zone(timezone_name)).replace(tzinfo=None)


def normalise_whitespace(text: str) -> str:
    """Collapse repeated whitespace into single spaces."""
    return re.sub(r"\s+", " ", text or "").strip()


def strip_invitation_markers(text: str) -> str:
    """Drop the framing lines some callers wrap around OCR output."""
    for marker in INVITATION_MARKERS:
        text = text.replace(marker, "\n")
    return text


def split_lines(text: str) -> List[str]:
    """Trimmed, non-empty lines of ``text``."""
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def proper_case(text: str) -> str:
    """``FLEUR DU CAP`` -> ``Fleur du Cap``; keeps RSVP upper and e-mail addresses lower."""
    words = []
    for position, word in enumerate(text.split()):
        lower = word.lower()
        if lower == "rsvp":
            words.append("RSVP")
        elif "@" in word:
            words.append(lower)
        elif position and lower in LOWERCASE_CONNECTORS:
            words.append(lower)
        else:
            words.append(word[:1].upper() + word[1:].lower())
    return " ".join(words)

