"""Date/time normalisation for raw substrings lifted from invitations.

Dates and times are resolved through ordered stage tables. Each stage returns
``None`` when it cannot produce a value and the next one is tried; the final
stage always answers, so normalisation never fails outright. Unparseable input
quietly becomes "tomorrow at noon", which keeps a calendar link available even
when the invitation could not be read properly.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Generic, Optional, Sequence, Tuple, TypeVar

import structlog
from dateutil import parser as dateutil_parser

LOGGER = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_HOUR = 12
MIN_PLAUSIBLE_YEAR = 2000
MAX_PLAUSIBLE_YEAR = 2100

ORDINAL_RE = re.compile(r"(?<=\d)(st|nd|rd|th)\b", re.IGNORECASE)
SEPT_RE = re.compile(r"\bsept\b", re.IGNORECASE)
NUMERIC_TRIPLET_RE = re.compile(r"(\d{1,4})[/\-.](\d{1,2})[/\-.](\d{1,4})")
DESCRIPTION_DATE_RE = re.compile(r"(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2,4})")

# Day-first variants come before month-first ones.
DATE_TEMPLATES: Tuple[str, ...] = (
    "%d %B %Y",
    "%d %b %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%A %d %B %Y",
    "%A %d %b %Y",
    "%A %B %d %Y",
    "%d.%m.%Y",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%m.%d.%Y",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d.%m.%y",
    "%d/%m/%y",
    "%d-%m-%y",
    "%m/%d/%y",
)

# Parsed with the reference year appended.
YEARLESS_TEMPLATES: Tuple[str, ...] = (
    "%d %B",
    "%d %b",
    "%B %d",
    "%b %d",
)

# (name, (year, month, day) picker) in priority order.
TRIPLET_ORDERS: Tuple[Tuple[str, Callable[[int, int, int], Tuple[int, int, int]]], ...] = (
    ("day_month_year", lambda a, b, c: (c, b, a)),
    ("month_day_year", lambda a, b, c: (c, a, b)),
    ("year_month_day", lambda a, b, c: (a, b, c)),
)

_MERIDIEM = r"(?P<meridiem>[ap]\.?m\.?)(?![a-z])"

TIME_FIELD_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"(?P<hour>\d{1,2})[:.](?P<minute>\d{2})\s*(?:" + _MERIDIEM + r")?", re.IGNORECASE),
    re.compile(r"(?P<hour>\d{1,2})\s*" + _MERIDIEM, re.IGNORECASE),
    re.compile(r"(?P<hour>\d{2}):(?P<minute>\d{2})"),
)

DESCRIPTION_TIME_PATTERNS: Tuple[re.Pattern, ...] = (
    re.compile(r"(?P<hour>\d{1,2})[.:](?P<minute>\d{2})\s*" + _MERIDIEM, re.IGNORECASE),
    re.compile(r"(?P<hour>\d{1,2})\s*" + _MERIDIEM, re.IGNORECASE),
    re.compile(r"(?P<hour>\d{2}):(?P<minute>\d{2})"),
    re.compile(
        r"\bat\s+(?P<hour>\d{1,2})(?:\s*[:.]\s*(?P<minute>\d{2}))?\s*" + _MERIDIEM,
        re.IGNORECASE,
    ),
)

# First keyword found in the title or description decides the hour.
MEAL_HOURS: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("breakfast",), 8),
    (("lunch",), 12),
    (("dinner", "evening"), 19),
)


@dataclass(frozen=True)
class Resolution(Generic[T]):
    """A resolved value plus the name of the stage that produced it."""

    value: T
    stage: str


def strip_ordinals(text: str) -> str:
    """``29TH DECEMBER 2022`` -> ``29 DECEMBER 2022``."""
    return ORDINAL_RE.sub("", text)


def clean_date_text(text: str) -> str:
    """Ordinal-free, comma-free, single-spaced date text ready for the templates."""
    cleaned = strip_ordinals(text).replace(",", " ")
    cleaned = SEPT_RE.sub("Sep", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def tomorrow_noon(now: Optional[datetime] = None) -> datetime:
    """Default start used whenever nothing better can be worked out."""
    now = now or datetime.now()
    tomorrow = (now + timedelta(days=1)).date()
    return datetime(tomorrow.year, tomorrow.month, tomorrow.day, DEFAULT_HOUR, 0)


def apply_meridiem(hour: int, meridiem: Optional[str]) -> int:
    """Convert a 12-hour clock reading to 24-hour."""
    if not meridiem:
        return hour
    period = meridiem.replace(".", "").lower()
    if period == "pm" and hour < 12:
        return hour + 12
    if period == "am" and hour == 12:
        return 0
    return hour


def _plausible_year(year: int) -> bool:
    return MIN_PLAUSIBLE_YEAR < year < MAX_PLAUSIBLE_YEAR


def _from_triplet(a: int, b: int, c: int) -> Optional[date]:
    for name, pick in TRIPLET_ORDERS:
        year, month, day = pick(a, b, c)
        if not _plausible_year(year):
            continue
        try:
            resolved = date(year, month, day)
        except ValueError:
            continue
        LOGGER.debug("datetime.triplet_order", order=name)
        return resolved
    return None


# Date stages --------------------------------------------------------------

def _date_from_templates(raw: Optional[str], description: Optional[str], now: datetime) -> Optional[date]:
    if not raw:
        return None
    cleaned = clean_date_text(raw)
    for template in DATE_TEMPLATES:
        try:
            return datetime.strptime(cleaned, template).date()
        except ValueError:
            continue
    for template in YEARLESS_TEMPLATES:
        try:
            return datetime.strptime(f"{cleaned} {now.year}", f"{template} %Y").date()
        except ValueError:
            continue
    return None


def _date_from_generic_parse(raw: Optional[str], description: Optional[str], now: datetime) -> Optional[date]:
    if not raw:
        return None
    default = datetime(now.year, now.month, now.day)
    try:
        return dateutil_parser.parse(raw, dayfirst=True, default=default).date()
    except (ValueError, OverflowError, TypeError) as exc:
        LOGGER.debug("datetime.generic_parse_failed", raw=raw, error=str(exc))
        return None


def _date_from_numeric_triplet(raw: Optional[str], description: Optional[str], now: datetime) -> Optional[date]:
    if not raw:
        return None
    match = NUMERIC_TRIPLET_RE.search(raw)
    if not match:
        return None
    return _from_triplet(*(int(part) for part in match.groups()))


def _date_from_description(raw: Optional[str], description: Optional[str], now: datetime) -> Optional[date]:
    if not description:
        return None
    match = DESCRIPTION_DATE_RE.search(description)
    if not match:
        return None
    first, second, year = (int(part) for part in match.groups())
    if year < 100:
        year += 2000
    return _from_triplet(first, second, year)


def _date_default(raw: Optional[str], description: Optional[str], now: datetime) -> Optional[date]:
    return tomorrow_noon(now).date()


DateStage = Callable[[Optional[str], Optional[str], datetime], Optional[date]]

DATE_STAGES: Sequence[Tuple[str, DateStage]] = (
    ("templates", _date_from_templates),
    ("generic", _date_from_generic_parse),
    ("numeric_triplet", _date_from_numeric_triplet),
    ("description", _date_from_description),
    ("default", _date_default),
)


def resolve_date(
    date_text: Optional[str],
    description: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Resolution[date]:
    """Run the date fallback chain; the first stage that answers wins."""
    now = now or datetime.now()
    for name, stage in DATE_STAGES:
        value = stage(date_text, description, now)
        if value is not None:
            LOGGER.debug("datetime.date_resolved", stage=name, raw=date_text, value=value.isoformat())
            return Resolution(value, name)
    raise AssertionError("default date stage always resolves")  # pragma: no cover


# Time stages --------------------------------------------------------------

def _clock_from_match(match: re.Match) -> Tuple[int, int]:
    groups = match.groupdict()
    hour = int(groups["hour"])
    minute = int(groups.get("minute") or 0)
    return apply_meridiem(hour, groups.get("meridiem")), minute


def _search_clock(text: Optional[str], patterns: Sequence[re.Pattern]) -> Optional[Tuple[int, int]]:
    if not text:
        return None
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return _clock_from_match(match)
    return None


def infer_hour(title: Optional[str], description: Optional[str]) -> int:
    """Hour implied by meal/evening keywords, noon otherwise."""
    haystack = f"{title or ''} {description or ''}".lower()
    for keywords, hour in MEAL_HOURS:
        if any(keyword in haystack for keyword in keywords):
            return hour
    return DEFAULT_HOUR


def resolve_time(
    time_text: Optional[str],
    description: Optional[str] = None,
    title: Optional[str] = None,
) -> Resolution[Tuple[int, int]]:
    """Resolve ``(hour, minute)``; values are not range-checked here."""
    clock = _search_clock(time_text, TIME_FIELD_PATTERNS)
    if clock is not None:
        return Resolution(clock, "time_field")
    clock = _search_clock(description, DESCRIPTION_TIME_PATTERNS)
    if clock is not None:
        return Resolution(clock, "description")
    return Resolution((infer_hour(title, description), 0), "keyword_default")


def normalize(
    date_text: Optional[str],
    time_text: Optional[str] = None,
    *,
    description: Optional[str] = None,
    title: Optional[str] = None,
    now: Optional[datetime] = None,
) -> datetime:
    """Combine raw date and time substrings into one naive local start instant."""
    now = now or datetime.now()
    day = resolve_date(date_text, description, now)
    clock = resolve_time(time_text, description, title)
    hour, minute = clock.value
    try:
        start = datetime(day.value.year, day.value.month, day.value.day, hour, minute)
    except ValueError:
        LOGGER.warning(
            "datetime.invalid_composite",
            date=day.value.isoformat(),
            hour=hour,
            minute=minute,
        )
        start = tomorrow_noon(now)
    LOGGER.info(
        "datetime.normalized",
        date_stage=day.stage,
        time_stage=clock.stage,
        start=start.isoformat(),
    )
    return start
