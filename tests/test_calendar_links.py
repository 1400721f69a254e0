from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import pytest

from conftest import WEDDING_CARD
from kairos_agent import calendar_links
from kairos_agent.models import EventDetails
from kairos_agent.parser import parse

SAST = timezone(timedelta(hours=2))


def query(url: str) -> dict:
    return {key: values[0] for key, values in parse_qs(urlsplit(url).query).items()}


def test_wedding_card_links(now):
    links = calendar_links.build_links(parse(WEDDING_CARD), now=now, zone=timezone.utc)

    google = query(links.google)
    assert google["dates"] == "20150103T160000/20150103T200000"
    assert google["text"] == "Wedding of Silvia and James Edmund at Landtscap"
    assert google["location"] == "Landtscap"
    assert "Date: 03.01.2015" in google["details"]
    assert links.google.startswith("https://calendar.google.com/calendar/render?action=TEMPLATE")
    assert not links.degraded


def test_outlook_uses_utc_instants(now):
    details = EventDetails(title="Team meeting", date="03.01.2015", time="4 pm")
    links = calendar_links.build_links(details, now=now, zone=SAST)

    outlook = query(links.outlook)
    assert outlook["startdt"] == "2015-01-03T14:00:00.000Z"
    assert outlook["enddt"] == "2015-01-03T15:00:00.000Z"


def test_every_provider_is_present(now):
    links = calendar_links.build_links(EventDetails(title="Book club", date="June 5"), now=now)
    mapping = links.as_dict()

    assert set(mapping) == {"google", "outlook", "yahoo", "apple", "ios", "all"}
    assert mapping["all"] == mapping["google"]
    assert all(mapping.values())
    assert links.ios.startswith("calshow://?title=Book%20club")
    assert query(links.yahoo)["st"] == "20240605T120000"


def test_missing_date_falls_back_to_tomorrow_noon(now):
    event = calendar_links.resolve_event(EventDetails(title="Team sync"), now)

    assert event.start == datetime(2024, 5, 11, 12, 0)
    assert event.end == datetime(2024, 5, 11, 14, 0)
    assert event.title == "Team sync"


def test_dinner_without_time_starts_at_seven(now):
    event = calendar_links.resolve_event(EventDetails(title="Dinner Invitation", date="12 June 2024"), now)

    assert event.start == datetime(2024, 6, 12, 19, 0)
    assert event.duration_minutes() == 120


@pytest.mark.parametrize(
    "title, hours",
    [
        ("Wedding of A and B", 4),
        ("Evening reception", 4),
        ("Developer conference", 6),
        ("Pottery workshop", 6),
        ("Board meeting", 1),
        ("Sunday lunch", 2),
        ("Book club", 2),
        (None, 2),
    ],
)
def test_estimate_duration(title, hours):
    assert calendar_links.estimate_duration(title) == timedelta(hours=hours)


def test_wedding_boilerplate_location_replaced_from_description():
    details = EventDetails(
        title="Wedding of Silvia and James",
        date="1 June 2024",
        location="MARRIAGE",
        description="Reception at Rosebank Manor",
    )
    assert calendar_links.pick_location(details) == "Rosebank"


def test_location_not_repeated_in_title(now):
    details = EventDetails(title="Picnic at Hyde Park", date="1 June 2024", location="Hyde Park")
    assert calendar_links.resolve_event(details, now).title == "Picnic at Hyde Park"


def test_compose_description():
    details = EventDetails(
        title="Quiz",
        date="1 June 2024",
        time="7pm",
        location="The Crown",
        description="Teams of four",
    )
    assert calendar_links.compose_description(details) == (
        "Teams of four\n\nEvent Details:\nDate: 1 June 2024\nTime: 7pm\nLocation: The Crown\n"
    )


def test_encode_matches_uri_component_rules():
    assert calendar_links.encode("Tom & Jerry's (party)!") == "Tom%20%26%20Jerry's%20(party)!"
    assert calendar_links.encode(None) == ""


def test_failures_produce_degraded_links(monkeypatch, now):
    def boom(*args, **kwargs):
        raise ValueError("cannot resolve")

    monkeypatch.setattr(calendar_links, "resolve_event", boom)

    links = calendar_links.build_links(EventDetails(title="Gala", date="soon"), now=now, zone=timezone.utc)

    assert links.degraded
    assert links.apple is None and links.ios is None
    assert set(links.as_dict()) == {"google", "outlook", "yahoo", "all"}
    assert query(links.google)["dates"] == "20240511T120000Z/20240511T140000Z"
    assert "could not be fully processed" in query(links.yahoo)["desc"]
    assert links.outlook.startswith("https://outlook.live.com/calendar/0/deeplink/compose?subject=Gala")
