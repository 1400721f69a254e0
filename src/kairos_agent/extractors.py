"""Pattern-based field extractors for invitation text.

Every extractor is a pure function over the trimmed, non-empty lines of the
OCR text (and sometimes the full text). Each returns the field or ``None``.
Multi-step searches are written as ordered ``(name, step)`` tables and the
first step to return a value wins.
"""

from __future__ import annotations

import re
from typing import Callable, Optional, Sequence, Tuple

from .classifier import find_couple_block
from .models import EventDetails
from .utils import proper_case

Lines = Sequence[str]

MONTHS = (
    "January|February|March|April|May|June|July|August|September|October|November|December|"
    "Jan|Feb|Mar|Apr|Jun|Jul|Aug|Sept|Sep|Oct|Nov|Dec"
)
_ORDINAL = r"(?:st|nd|rd|th)?"

DATE_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"\b\d{1,2}[/.\-]\d{1,2}[/.\-]\d{2,4}\b"),
    re.compile(rf"\b(?:{MONTHS})[,\s]+\d{{1,2}}{_ORDINAL}[,\s]+\d{{4}}\b", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}{_ORDINAL}[,\s]+(?:{MONTHS})[,\s]+\d{{4}}\b", re.IGNORECASE),
    re.compile(r"\b\d{4}-\d{1,2}-\d{1,2}\b"),
    re.compile(rf"\b(?:{MONTHS})[,\s]+\d{{1,2}}{_ORDINAL}\b", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}{_ORDINAL}[,\s]+(?:{MONTHS})\b", re.IGNORECASE),
)

DATE_KEYWORD_RE = re.compile(
    r"\b(?:date:|when:|day:|(?:on the|on|scheduled for|event date|start date|begins on|starting on)\b)",
    re.IGNORECASE,
)

_MERIDIEM = r"[ap]\.?m\.?(?![a-z])"

TIME_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(rf"\b\d{{1,2}}:\d{{2}}(?:\s*{_MERIDIEM})?", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}\s*{_MERIDIEM}", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}\.\d{{2}}(?:\s*{_MERIDIEM})?", re.IGNORECASE),
    re.compile(r"\b\d{1,2}[.:]\d{2}\s*(?:hrs|hours|h)\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}\s*o'?clock\b", re.IGNORECASE),
    re.compile(r"\b\d{2}:\d{2}\b"),
)

# Used by the wedding/formal strategies when the date line carried no time.
LOOSE_TIME_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(rf"\b\d{{1,2}}\.\d{{2}}\s*{_MERIDIEM}", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}:\d{{2}}\s*{_MERIDIEM}", re.IGNORECASE),
    re.compile(rf"\b\d{{1,2}}\s*{_MERIDIEM}", re.IGNORECASE),
    re.compile(r"\b\d{1,2}\.\d{2}\b"),
    re.compile(r"\b\d{1,2}:\d{2}\b"),
)

EVENT_KEYWORDS: Tuple[str, ...] = (
    "wedding", "invitation", "celebration", "party", "ceremony", "event",
    "invites you", "meeting", "conference", "webinar", "seminar",
    "concert", "festival", "gathering", "birthday", "anniversary",
    "graduation", "lunch", "dinner", "brunch", "breakfast", "reception",
    "workshop", "class", "training", "appointment", "interview",
)

FORMAL_TITLE_KEYWORDS: Tuple[str, ...] = (
    "conference", "meeting", "celebration", "ceremony", "gala", "dinner", "lunch", "reception",
)

TITLE_SKIP_RE = re.compile(r"^(?:at|on|when|where|date|time)\b|^\d+\s+[A-Za-z]", re.IGNORECASE)

WEDDING_FALLBACK_TITLE = "Wedding Celebration"
COUPLE_TRIGGERS: Tuple[str, ...] = ("marriage of", "wedding of")
COUPLE_WINDOW = 5

_NAME = r"[A-Z][A-Za-z'\-]*"
_NAMES = rf"{_NAME}(?:\s+{_NAME}){{0,2}}"
COUPLE_LINE_RE = re.compile(rf"^(?P<first>{_NAMES})\s+(?:[Aa][Nn][Dd]|&)\s+(?P<second>{_NAMES})$")
COUPLE_WORDS_RE = re.compile(r"\b(?P<first>[A-Z]\w+)\s+(?:and|&)\s+(?P<second>[A-Z]\w+)\b")
NAMES_RE = re.compile(rf"^{_NAMES}$")
TO_SPLIT_RE = re.compile(r"\s+to\s+", re.IGNORECASE)

VENUE_NAME_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"\b[A-Z][a-z]+\s+(?:du|de|la|le)\s+[A-Z][a-z]+\b"),
    re.compile(
        r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\s+(?:Hotel|Resort|Club|Hall|Center|Centre|Manor|Estate)\b",
        re.IGNORECASE,
    ),
    re.compile(
        r"\b(?:The\s+)?[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\s+(?:Hotel|Resort|Club|Hall|Center|Centre|Manor|Estate)\b",
        re.IGNORECASE,
    ),
)

CAPS_LINE_RE = re.compile(r"^[A-Z\s]+$")
WEEKDAY_PREFIX_RE = re.compile(r"^(?:MONDAY|TUESDAY|WEDNESDAY|THURSDAY|FRIDAY|SATURDAY|SUNDAY)")
MONTH_PREFIX_RE = re.compile(
    r"^(?:JANUARY|FEBRUARY|MARCH|APRIL|MAY|JUNE|JULY|AUGUST|SEPTEMBER|OCTOBER|NOVEMBER|DECEMBER)"
)
HOST_NAMES_RE = re.compile(r"^[A-Z]+\s+AND\s+[A-Z]+")
LOCATION_STOP_LINES = frozenset({
    "THE", "AND", "TO", "OF", "AT", "IN", "ON", "FOR", "REQUEST", "PLEASURE",
    "COMPANY", "MARRIAGE", "WEDDING", "FOLLOWED", "RSVP", "DRESS", "CODE",
})
LOCATION_BOILERPLATE_WORDS = frozenset({
    "INVITATION", "INVITE", "INVITES", "INVITED", "WEDDING", "MARRIAGE", "RSVP", "DATE",
})
CAPS_VENUE_KEYWORDS: Tuple[str, ...] = (
    "CAP", "HOTEL", "RESORT", "CLUB", "HALL", "CENTER", "CENTRE", "MANOR", "ESTATE", "GARDEN", "HOUSE", "VILLA",
)
MAX_CAPS_VENUE_LINE = 40
EXCLUDED_NAMES = frozenset({"ALICE", "ANTON", "THIERRY", "ODILE", "RIVIER", "JOHANN", "GAYNOR", "RUPERT"})

LOCATION_LABEL_RE = re.compile(r"\b(?:location|venue|place|address|where)\s*:\s*(?P<value>.*)$", re.IGNORECASE)
LOCATION_PHRASE_RE = re.compile(
    r"\b(?:will take place at|taking place at|held at|hosted at|join us at|meet at|"
    r"located at|happening at|will be at|at)\s+",
    re.IGNORECASE,
)
NOT_A_PLACE_RE = re.compile(
    rf"^(?:\d{{1,2}}(?:[:.]\d{{2}})?\s*(?:{_MERIDIEM}|o'?clock|hrs|h\b)|\d{{1,2}}[:.]\d{{2}}\b|noon\b|midnight\b)",
    re.IGNORECASE,
)

ADDRESS_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"\d+\s+[A-Za-z\s]+,\s*[A-Za-z\s]+"),
    re.compile(r"[A-Za-z\s]+,\s*[A-Za-z\s]+,\s*[A-Z]{2}\b"),
    re.compile(r"\b[A-Z]{1,2}\d[A-Z\d]?\s*\d[A-Z]{2}\b"),
    re.compile(r"\b\d{5}(?:-\d{4})?\b"),
)

VENUE_WORD_RE = re.compile(
    r"\b(?:hotel|restaurant|café|cafe|hall|center|centre|room|building|plaza|park|garden|"
    r"theater|theatre|stadium|arena|conference|gallery|museum|campus|house|villa|manor|estate|resort|club)s?\b",
    re.IGNORECASE,
)
MAX_VENUE_LINE = 100

DESCRIPTION_LABEL_RE = re.compile(
    r"\b(?:description|details|info|information|about|agenda|program|schedule)\s*:\s*(?P<value>.+)$",
    re.IGNORECASE,
)
BOILERPLATE_PREFIX_RE = re.compile(r"^(?:rsvp|dress code|please|contact|more information|invited by)", re.IGNORECASE)
MIN_DESCRIPTION_LINE = 6

HOST_LINE_RE = re.compile(
    r"^[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?\s+(?:and|AND|&)\s+[A-Z][a-z]+(?:\s+[A-Z][a-z]+){0,2}$"
)
HOST_SCAN_LINES = 4
WEDDING_DETAIL_KEYWORDS: Tuple[str, ...] = (
    "followed by", "dress code", "cocktail", "dinner", "dancing", "reception", "rsvp", "@",
)
WEDDING_FALLBACK_DESCRIPTION = "Wedding celebration invitation"
FORMAL_FALLBACK_DESCRIPTION = "Formal event invitation"


# Dates and times ---------------------------------------------------------

def mask_dates(text: str) -> str:
    """Blank out date substrings so ``03.01.2015`` is never read as a time."""
    for pattern in DATE_PATTERNS:
        text = pattern.sub(" ", text)
    return text


def find_time(text: str, patterns: Sequence[re.Pattern] = TIME_PATTERNS) -> Optional[str]:
    """First time-of-day substring in ``text`` (dates are ignored)."""
    masked = mask_dates(text)
    for pattern in patterns:
        match = pattern.search(masked)
        if match:
            return match.group(0).strip()
    return None


def _first_date(text: str) -> Optional[str]:
    for pattern in DATE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None


def find_dates(lines: Lines, text: str) -> Optional[Tuple[str, Optional[str]]]:
    """Raw ``(date, time)`` substrings.

    Lines carrying a date keyword are searched first, then every line, then the
    full text (which catches dates broken across lines). The time is taken from
    the same scope as the date.
    """
    scopes = (
        [line for line in lines if DATE_KEYWORD_RE.search(line)],
        list(lines),
        [text],
    )
    for scope in scopes:
        for chunk in scope:
            found = _first_date(chunk)
            if found:
                return found, find_time(chunk)
    return None


def find_dates_advanced(lines: Lines, text: str) -> Optional[Tuple[str, Optional[str]]]:
    """Like :func:`find_dates`, but look for a time on any line if the date line had none."""
    found = find_dates(lines, text)
    if found is None or found[1]:
        return found
    for line in lines:
        clock = find_time(line, LOOSE_TIME_PATTERNS)
        if clock:
            return found[0], clock
    return found


# Titles -------------------------------------------------------------------

def _looks_like_names(value: str) -> bool:
    return bool(NAMES_RE.match(value.strip()))


def _after_trigger(line: str) -> str:
    lower = line.lower()
    for trigger in COUPLE_TRIGGERS:
        index = lower.find(trigger)
        if index != -1:
            return line[index + len(trigger):].strip()
    return line


def _names_from_line(line: str) -> Optional[Tuple[str, str]]:
    parts = TO_SPLIT_RE.split(line)
    if len(parts) == 2 and all(_looks_like_names(part) for part in parts):
        return parts[0].strip(), parts[1].strip()
    match = COUPLE_LINE_RE.match(line) or COUPLE_WORDS_RE.search(line)
    if match:
        return match.group("first"), match.group("second")
    return None


def _starts_trigger(lines: Lines, index: int) -> bool:
    """Line ``index`` holds a trigger phrase, or begins one that OCR split onto the next line."""
    line = lines[index].lower()
    following = lines[index + 1].lower() if index + 1 < len(lines) else ""
    joined = f"{line} {following}"
    return any(
        trigger in line or (trigger in joined and trigger not in following)
        for trigger in COUPLE_TRIGGERS
    )


def find_couple_names(lines: Lines) -> Optional[Tuple[str, str]]:
    """The couple named after "marriage of"/"wedding of", or a NAME/TO/NAME block."""
    for index in range(len(lines)):
        if not _starts_trigger(lines, index):
            continue
        for candidate in lines[index:index + COUPLE_WINDOW]:
            candidate = _after_trigger(candidate)
            if not candidate:
                continue
            names = _names_from_line(candidate)
            if names:
                return names
    return find_couple_block(lines)


def find_wedding_title(lines: Lines) -> str:
    names = find_couple_names(lines)
    if not names:
        return WEDDING_FALLBACK_TITLE
    first, second = (proper_case(name) for name in names)
    return f"Wedding of {first} and {second}"


def _title_with_keyword(lines: Lines) -> Optional[str]:
    for line in lines:
        lower = line.lower()
        if any(keyword in lower for keyword in EVENT_KEYWORDS):
            return line
    return None


def _title_in_caps(lines: Lines) -> Optional[str]:
    for line in lines:
        if line == line.upper() and len(line) > 3 and any(ch.isalpha() for ch in line):
            return line
    return None


def _title_with_names(lines: Lines) -> Optional[str]:
    for line in lines:
        if (" and " in line or " & " in line) and not re.search(r"\d", line):
            return line
    return None


def _title_short_line(lines: Lines) -> Optional[str]:
    for line in lines[:5]:
        if 3 < len(line) < 50 and not line[0].isdigit() and not TITLE_SKIP_RE.match(line):
            return line
    return None


TITLE_PASSES: Sequence[Tuple[str, Callable[[Lines], Optional[str]]]] = (
    ("keyword", lambda lines: _title_with_keyword(lines[:10])),
    ("all_caps", lambda lines: _title_in_caps(lines[:10])),
    ("names", lambda lines: _title_with_names(lines[:10])),
    ("short_line", _title_short_line),
)


def find_event_title(lines: Lines) -> Optional[str]:
    for _name, step in TITLE_PASSES:
        title = step(lines)
        if title:
            return title
    return lines[0] if lines else None


def find_formal_title(lines: Lines) -> Optional[str]:
    for line in lines:
        lower = line.lower()
        if any(keyword in lower for keyword in FORMAL_TITLE_KEYWORDS):
            return line
    return find_event_title(lines)


# Locations ---------------------------------------------------------------

def _venue_by_name(lines: Lines) -> Optional[str]:
    for line in lines:
        for pattern in VENUE_NAME_PATTERNS:
            match = pattern.search(line)
            if match:
                return match.group(0)
    return None


def _is_caps_location_candidate(line: str) -> bool:
    if not (3 < len(line) < 50 and CAPS_LINE_RE.match(line)):
        return False
    if WEEKDAY_PREFIX_RE.match(line) or MONTH_PREFIX_RE.match(line):
        return False
    if line.strip() in LOCATION_STOP_LINES or " AND " in line or HOST_NAMES_RE.match(line):
        return False
    return not any(word in LOCATION_BOILERPLATE_WORDS for word in line.split())


def _venue_multi_word_caps(lines: Lines) -> Optional[str]:
    for line in lines:
        if _is_caps_location_candidate(line) and 2 <= len(line.split()) <= 4:
            return line
    return None


def _venue_keyword_caps(lines: Lines) -> Optional[str]:
    for line in lines:
        if (
            len(line) < MAX_CAPS_VENUE_LINE
            and CAPS_LINE_RE.match(line)
            and " AND " not in line
            and any(keyword in line for keyword in CAPS_VENUE_KEYWORDS)
        ):
            return line
    return None


def _venue_single_word_caps(lines: Lines) -> Optional[str]:
    couple = set(find_couple_block(lines) or ())
    for line in lines:
        if (
            _is_caps_location_candidate(line)
            and len(line.split()) == 1
            and len(line) > 4
            and line not in EXCLUDED_NAMES
            and line not in couple
        ):
            return line
    return None


def _venue_after_keyword(lines: Lines) -> Optional[str]:
    for index, line in enumerate(lines):
        label = LOCATION_LABEL_RE.search(line)
        if label:
            value = label.group("value").strip()
            if value:
                return value
            if index + 1 < len(lines):
                return lines[index + 1]
            continue
        # "at 7pm at The Crown": a time after one "at" does not end the search.
        for phrase in LOCATION_PHRASE_RE.finditer(line):
            value = line[phrase.end():].strip()
            if value and "@" not in value and not NOT_A_PLACE_RE.match(value):
                return value
    return None


def _venue_by_address(lines: Lines) -> Optional[str]:
    for line in lines:
        if any(pattern.search(line) for pattern in ADDRESS_PATTERNS):
            return line
    return None


def _venue_by_word(lines: Lines) -> Optional[str]:
    for line in lines:
        if len(line) < MAX_VENUE_LINE and VENUE_WORD_RE.search(line):
            return line
    return None


LOCATION_STEPS: Sequence[Tuple[str, Callable[[Lines], Optional[str]]]] = (
    ("keyword", _venue_after_keyword),
    ("address", _venue_by_address),
    ("venue_word", _venue_by_word),
)

ADVANCED_LOCATION_STEPS: Sequence[Tuple[str, Callable[[Lines], Optional[str]]]] = (
    ("venue_name", _venue_by_name),
    ("multi_word_caps", _venue_multi_word_caps),
    ("venue_keyword_caps", _venue_keyword_caps),
    ("single_word_caps", _venue_single_word_caps),
) + tuple(LOCATION_STEPS)


def _run_steps(lines: Lines, steps: Sequence[Tuple[str, Callable[[Lines], Optional[str]]]]) -> Optional[str]:
    for _name, step in steps:
        value = step(lines)
        if value:
            return value
    return None


def find_location(lines: Lines) -> Optional[str]:
    """Labelled location, then an address, then a line naming a venue type."""
    return _run_steps(lines, LOCATION_STEPS)


def find_location_advanced(lines: Lines) -> Optional[str]:
    """Venue names and ALL-CAPS venue lines first, then :func:`find_location`."""
    return _run_steps(lines, ADVANCED_LOCATION_STEPS)


# Descriptions ------------------------------------------------------------

def find_description(lines: Lines, claimed: EventDetails) -> Optional[str]:
    """A labelled description, else the lines no other field used."""
    for line in lines:
        label = DESCRIPTION_LABEL_RE.search(line)
        if label:
            return label.group("value").strip()

    used = [
        value.lower()
        for value in (claimed.title, claimed.date, claimed.time, claimed.location)
        if value
    ]
    leftovers = [
        line
        for line in lines
        if len(line) >= MIN_DESCRIPTION_LINE
        and not BOILERPLATE_PREFIX_RE.match(line)
        and not any(value in line.lower() for value in used)
    ]
    return " ".join(leftovers) or None


def find_hosts(lines: Lines) -> list[str]:
    """Host lines such as ``Mr and Mrs John Smith`` near the top of the card."""
    return [proper_case(line) for line in lines[:HOST_SCAN_LINES] if HOST_LINE_RE.match(line)]


def create_wedding_description(lines: Lines) -> str:
    parts = []
    hosts = find_hosts(lines)
    if hosts:
        parts.append(f"Hosted by {' and '.join(hosts)}")
    details = [
        proper_case(line)
        for line in lines
        if any(keyword in line.lower() for keyword in WEDDING_DETAIL_KEYWORDS)
    ]
    if details:
        parts.append("\n".join(details))
    return "\n\n".join(parts) or WEDDING_FALLBACK_DESCRIPTION


def create_formal_description(lines: Lines, claimed: EventDetails) -> str:
    return find_description(lines, claimed) or FORMAL_FALLBACK_DESCRIPTION
