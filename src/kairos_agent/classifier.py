"""Decides which extraction strategy fits a piece of invitation text."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from .models import InvitationKind
from .utils import normalise_whitespace, split_lines

WEDDING_KEYWORDS: tuple[str, ...] = (
    "marriage of",
    "wedding of",
    "invite you to the wedding",
    "request the pleasure",
    "honour of your presence",
    "honor of your presence",
    "request your presence",
    "joyfully invite you",
    "together with their families",
    "to celebrate the marriage",
    "cordially invite you",
    "request the honour",
    "request the honor",
)

FORMAL_KEYWORDS: tuple[str, ...] = (
    "cordially invite",
    "request the pleasure",
    "honour of your presence",
    "honor of your presence",
    "request your presence",
    "invites you to",
    "pleased to invite",
    "formally invite",
    "invitation to",
)

CONNECTOR_WORDS = frozenset({"THE", "AND", "TO", "OF", "AT", "IN", "ON", "FOR"})

_SINGLE_CAPS_WORD = re.compile(r"^[A-Z]+$")


def is_single_name_line(line: str) -> bool:
    """An ALL-CAPS single word that could be a first name (``ALICE``)."""
    return (
        2 < len(line) < 20
        and bool(_SINGLE_CAPS_WORD.match(line))
        and line not in CONNECTOR_WORDS
    )


def find_couple_block(lines: Sequence[str]) -> Optional[tuple[str, str]]:
    """Find ``NAME`` / ``TO`` / ``NAME`` on three consecutive lines."""
    for index in range(len(lines) - 2):
        first, joiner, second = lines[index], lines[index + 1], lines[index + 2]
        if joiner.upper() == "TO" and is_single_name_line(first) and is_single_name_line(second):
            return first, second
    return None


def _contains_any(haystack: str, keywords: Sequence[str]) -> bool:
    return any(keyword in haystack for keyword in keywords)


def classify(text: str, lines: Optional[Sequence[str]] = None) -> InvitationKind:
    """Pick the extraction strategy for ``text``.

    Matching runs on lower-cased text with line breaks collapsed, so a phrase
    split across OCR lines still counts. Wedding markers win over formal ones.
    """
    if lines is None:
        lines = split_lines(text)
    haystack = normalise_whitespace(text).lower()
    if _contains_any(haystack, WEDDING_KEYWORDS) or find_couple_block(lines) is not None:
        return InvitationKind.WEDDING
    if _contains_any(haystack, FORMAL_KEYWORDS):
        return InvitationKind.FORMAL
    return InvitationKind.GENERIC
