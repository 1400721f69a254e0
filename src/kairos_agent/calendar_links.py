"""Calendar "add event" links for Google, Outlook, Yahoo, Apple and iOS.

``build_links`` resolves the raw strings in :class:`EventDetails` to concrete
instants, fills gaps with defaults and renders one URL per provider. Start and
end times are local wall-clock times; only the Outlook link carries UTC
instants, converted with the configured zone.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Tuple
from urllib.parse import quote

import structlog
from dateutil import tz as dateutil_tz

from .datetime_normalizer import normalize, tomorrow_noon
from .models import CalendarLinks, EventDetails, ResolvedEvent

LOGGER = structlog.get_logger(__name__)

GOOGLE_RENDER_URL = "https://calendar.google.com/calendar/render"
GOOGLE_ICAL_URL = "https://calendar.google.com/calendar/ical"
OUTLOOK_COMPOSE_URL = "https://outlook.office.com/calendar/action/compose"
OUTLOOK_DEEPLINK_URL = "https://outlook.live.com/calendar/0/deeplink/compose"
YAHOO_URL = "https://calendar.yahoo.com/"
IOS_CALENDAR_URL = "calshow://"

DURATION_RULES: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("wedding", "reception"), 4),
    (("conference", "workshop"), 6),
    (("meeting",), 1),
    (("lunch", "dinner"), 2),
)
DEFAULT_DURATION_HOURS = 2

DEFAULT_TITLE = "Event"
FALLBACK_TITLE = "Calendar Event"
FALLBACK_DESCRIPTION = "Event details could not be fully processed. Please update the details manually."

BOILERPLATE_LOCATION_WORDS: Tuple[str, ...] = ("marriage", "wedding", "invite")
LOCATION_HINT_TOKENS = frozenset({"AT", "VENUE:", "LOCATION:", "PLACE:"})
VENUE_PHRASE_RE = re.compile(r"\b(?:at|venue|location)\s+([A-Za-z\s]+)", re.IGNORECASE)

# Characters encodeURIComponent leaves alone.
_URI_SAFE = "-_.!~*'()"


def encode(value: Optional[str]) -> str:
    return quote(value or "", safe=_URI_SAFE)


def format_local(moment: datetime) -> str:
    """``20150103T160000``: floating local time, as Google/Yahoo/iOS expect."""
    return moment.strftime("%Y%m%dT%H%M%S")


def _to_utc(moment: datetime, zone: tzinfo) -> datetime:
    return moment.replace(tzinfo=zone).astimezone(timezone.utc)


def format_utc_iso(moment: datetime, zone: tzinfo) -> str:
    """``2015-01-03T15:00:00.000Z`` for Outlook."""
    return _to_utc(moment, zone).strftime("%Y-%m-%dT%H:%M:%S.000Z")


def format_utc_compact(moment: datetime, zone: tzinfo) -> str:
    return _to_utc(moment, zone).strftime("%Y%m%dT%H%M%SZ")


def estimate_duration(title: Optional[str]) -> timedelta:
    """Event length guessed from the kind of event named in the title."""
    lower = (title or "").lower()
    for keywords, hours in DURATION_RULES:
        if any(keyword in lower for keyword in keywords):
            return timedelta(hours=hours)
    return timedelta(hours=DEFAULT_DURATION_HOURS)


def _venue_from_description(description: str) -> Optional[str]:
    tokens = description.split()
    for index, token in enumerate(tokens[:-1]):
        if token.upper() not in LOCATION_HINT_TOKENS:
            continue
        candidate = tokens[index + 1]
        if len(candidate) > 3 and candidate[:1].isupper() and not candidate[0].isdigit():
            return candidate
    match = VENUE_PHRASE_RE.search(description)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return None


def pick_location(details: EventDetails) -> str:
    """The location to put on the links.

    Wedding cards often leave words like "MARRIAGE" where the venue should be;
    in that case the description is searched for a venue instead.
    """
    location = details.location or ""
    title = (details.title or "").lower()
    if (
        "wedding" in title
        and details.description
        and any(word in location.lower() for word in BOILERPLATE_LOCATION_WORDS)
    ):
        better = _venue_from_description(details.description)
        if better:
            LOGGER.info("links.location_replaced", original=location, replacement=better)
            return better
    return location


def compose_description(details: EventDetails) -> str:
    """Free-text description followed by the fields exactly as they were read."""
    description = ""
    if details.description:
        description += f"{details.description}\n\n"
    description += "Event Details:\n"
    if details.date:
        description += f"Date: {details.date}\n"
    if details.time:
        description += f"Time: {details.time}\n"
    if details.location:
        description += f"Location: {details.location}\n"
    return description


def resolve_event(details: EventDetails, now: Optional[datetime] = None) -> ResolvedEvent:
    """Fill in defaults and compute concrete start/end instants."""
    start = normalize(
        details.date,
        details.time,
        description=details.description,
        title=details.title,
        now=now,
    )
    end = start + estimate_duration(details.title)

    location = pick_location(details)
    title = details.title or DEFAULT_TITLE
    if location and location.lower() not in title.lower():
        title = f"{title} at {location}"

    return ResolvedEvent(
        title=title,
        start=start,
        end=end,
        location=location,
        description=compose_description(details),
    )


def render_links(event: ResolvedEvent, zone: Optional[tzinfo] = None) -> CalendarLinks:
    zone = zone or dateutil_tz.tzlocal()
    title = encode(event.title)
    description = encode(event.description)
    location = encode(event.location)
    start = format_local(event.start)
    end = format_local(event.end)

    google = (
        f"{GOOGLE_RENDER_URL}?action=TEMPLATE&text={title}&dates={start}/{end}"
        f"&location={location}&details={description}&sf=true&output=xml"
    )
    outlook = (
        f"{OUTLOOK_COMPOSE_URL}?subject={title}"
        f"&startdt={format_utc_iso(event.start, zone)}&enddt={format_utc_iso(event.end, zone)}"
        f"&body={description}&location={location}"
    )
    yahoo = f"{YAHOO_URL}?title={title}&st={start}&et={end}&desc={description}&in_loc={location}"
    apple = (
        f"{GOOGLE_ICAL_URL}/{title}/{start}/{end}.ics?ctz=local&action=TEMPLATE"
        f"&dates={start}/{end}&text={title}&details={description}&location={location}"
    )
    ios = f"{IOS_CALENDAR_URL}?title={title}&start={start}&end={end}&notes={description}&location={location}"

    return CalendarLinks(google=google, outlook=outlook, yahoo=yahoo, apple=apple, ios=ios)


def fallback_links(
    details: Optional[EventDetails],
    now: Optional[datetime] = None,
    zone: Optional[tzinfo] = None,
) -> CalendarLinks:
    """Reduced link set: tomorrow at noon for two hours with a generic description."""
    zone = zone or dateutil_tz.tzlocal()
    start = tomorrow_noon(now)
    end = start + timedelta(hours=DEFAULT_DURATION_HOURS)
    raw_title = getattr(details, "title", None)
    title = encode(raw_title if isinstance(raw_title, str) and raw_title else FALLBACK_TITLE)
    body = encode(FALLBACK_DESCRIPTION)
    start_utc = format_utc_compact(start, zone)
    end_utc = format_utc_compact(end, zone)

    return CalendarLinks(
        google=f"{GOOGLE_RENDER_URL}?action=TEMPLATE&text={title}&dates={start_utc}/{end_utc}&details={body}",
        outlook=(
            f"{OUTLOOK_DEEPLINK_URL}?subject={title}"
            f"&startdt={format_utc_iso(start, zone)}&enddt={format_utc_iso(end, zone)}&body={body}"
        ),
        yahoo=f"{YAHOO_URL}?title={title}&st={start_utc}&et={end_utc}&desc={body}",
        degraded=True,
    )


def build_links(
    details: EventDetails,
    *,
    now: Optional[datetime] = None,
    zone: Optional[tzinfo] = None,
) -> CalendarLinks:
    """Provider links for ``details``; never raises."""
    zone = zone or dateutil_tz.tzlocal()
    now = now or datetime.now(zone).replace(tzinfo=None)
    try:
        event = resolve_event(details, now)
        links = render_links(event, zone)
    except Exception as exc:
        LOGGER.exception("links.failed", error=str(exc))
        return fallback_links(details, now, zone)

    LOGGER.info(
        "links.built",
        title=event.title,
        start=event.start.isoformat(),
        end=event.end.isoformat(),
        duration_min=event.duration_minutes(),
    )
    return links
