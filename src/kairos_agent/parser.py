"""Turns raw OCR text from an invitation into :class:`EventDetails`."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Dict, Optional, Sequence

import structlog

from . import extractors
from .classifier import classify
from .models import EventDetails, InvitationKind, ParseFailure, ParseResult
from .utils import proper_case, split_lines, strip_invitation_markers

LOGGER = structlog.get_logger(__name__)

Strategy = Callable[[Sequence[str], str], EventDetails]


def _dates(found: Optional[tuple[str, Optional[str]]]) -> tuple[Optional[str], Optional[str]]:
    return found if found else (None, None)


def parse_wedding(lines: Sequence[str], text: str) -> EventDetails:
    date, time = _dates(extractors.find_dates_advanced(lines, text))
    location = extractors.find_location_advanced(lines)
    return EventDetails(
        title=extractors.find_wedding_title(lines),
        date=date,
        time=time,
        location=proper_case(location) if location else None,
        description=extractors.create_wedding_description(lines),
    )


def parse_formal(lines: Sequence[str], text: str) -> EventDetails:
    date, time = _dates(extractors.find_dates_advanced(lines, text))
    details = EventDetails(
        title=extractors.find_formal_title(lines),
        date=date,
        time=time,
        location=extractors.find_location_advanced(lines),
    )
    return replace(details, description=extractors.create_formal_description(lines, details))


def parse_generic(lines: Sequence[str], text: str) -> EventDetails:
    date, time = _dates(extractors.find_dates(lines, text))
    details = EventDetails(
        title=extractors.find_event_title(lines),
        date=date,
        time=time,
        location=extractors.find_location(lines),
    )
    return replace(details, description=extractors.find_description(lines, details))


STRATEGIES: Dict[InvitationKind, Strategy] = {
    InvitationKind.WEDDING: parse_wedding,
    InvitationKind.FORMAL: parse_formal,
    InvitationKind.GENERIC: parse_generic,
}


def parse_invitation(raw_text: Optional[str]) -> ParseResult:
    """Classify ``raw_text`` and run the matching extraction strategy.

    Never raises: unexpected errors are logged and reported as
    ``ParseFailure.INTERNAL_ERROR``.
    """
    kind: Optional[InvitationKind] = None
    try:
        text = strip_invitation_markers(raw_text or "")
        lines = split_lines(text)
        if not lines:
            LOGGER.info("parser.empty_text")
            return ParseResult(kind=None, details=None, failure=ParseFailure.EMPTY_TEXT)

        kind = classify(text, lines)
        LOGGER.info("parser.classified", kind=kind.value, line_count=len(lines))
        details = STRATEGIES[kind](lines, text)
    except Exception as exc:
        LOGGER.exception("parser.failed", error=str(exc))
        return ParseResult(kind=kind, details=None, failure=ParseFailure.INTERNAL_ERROR)

    failure = None
    if not details.title:
        failure = ParseFailure.MISSING_TITLE
    elif not details.date:
        failure = ParseFailure.MISSING_DATE

    LOGGER.info(
        "parser.result",
        kind=kind.value,
        title=details.title,
        date=details.date,
        time=details.time,
        location=details.location,
        failure=failure.value if failure else None,
    )
    return ParseResult(kind=kind, details=details, failure=failure)


def parse(raw_text: Optional[str]) -> Optional[EventDetails]:
    """Usable event details for ``raw_text``, or ``None`` when title or date is missing."""
    result = parse_invitation(raw_text)
    return result.details if result.ok else None
