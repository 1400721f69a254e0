from datetime import date, datetime

import pytest

from kairos_agent.datetime_normalizer import (
    apply_meridiem,
    clean_date_text,
    infer_hour,
    normalize,
    resolve_date,
    resolve_time,
    strip_ordinals,
    tomorrow_noon,
)


def test_strip_ordinals_keeps_month_names():
    assert strip_ordinals("29TH DECEMBER 2022") == "29 DECEMBER 2022"
    assert strip_ordinals("1st of August") == "1 of August"


def test_clean_date_text_handles_commas_and_sept():
    assert clean_date_text("Friday, 14th Sept,  2025") == "Friday 14 Sep 2025"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("29TH DECEMBER 2022", date(2022, 12, 29)),
        ("December 29, 2022", date(2022, 12, 29)),
        ("03.01.2015", date(2015, 1, 3)),
        ("05/06/2024", date(2024, 6, 5)),
        ("12/25/2024", date(2024, 12, 25)),
        ("2024-07-04", date(2024, 7, 4)),
        ("Saturday 12th June 2021", date(2021, 6, 12)),
    ],
)
def test_resolve_date_known_formats(raw, expected, now):
    assert resolve_date(raw, now=now).value == expected


def test_day_first_wins_for_ambiguous_numeric_dates(now):
    resolved = resolve_date("03.01.2015", now=now)
    assert resolved.value == date(2015, 1, 3)
    assert resolved.stage == "templates"


def test_yearless_dates_use_reference_year(now):
    assert resolve_date("June 5", now=now).value == date(2024, 6, 5)


def test_description_date_used_when_field_missing(now):
    resolved = resolve_date(None, "Join us on 25/12/2024 for carols", now)
    assert resolved.value == date(2024, 12, 25)
    assert resolved.stage == "description"


def test_unreadable_date_defaults_to_tomorrow(now):
    resolved = resolve_date("no date here", now=now)
    assert resolved.value == date(2024, 5, 11)
    assert resolved.stage == "default"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("7:30 PM", (19, 30)),
        ("4 pm", (16, 0)),
        ("12 am", (0, 0)),
        ("12 p.m.", (12, 0)),
        ("18:45", (18, 45)),
        ("9.15am", (9, 15)),
    ],
)
def test_resolve_time_from_time_field(raw, expected):
    resolved = resolve_time(raw)
    assert resolved.value == expected
    assert resolved.stage == "time_field"


def test_resolve_time_from_description():
    resolved = resolve_time(None, "Doors open at 8.15 pm sharp")
    assert resolved.value == (20, 15)
    assert resolved.stage == "description"


@pytest.mark.parametrize(
    "title, expected",
    [
        ("Dinner Invitation", 19),
        ("Breakfast briefing", 8),
        ("Team lunch", 12),
        ("An evening of jazz", 19),
        ("Quarterly review", 12),
    ],
)
def test_infer_hour_from_keywords(title, expected):
    assert infer_hour(title, None) == expected


def test_dinner_without_time_resolves_to_seven_pm():
    assert resolve_time(None, None, "Dinner Invitation").value == (19, 0)


def test_apply_meridiem():
    assert apply_meridiem(4, "pm") == 16
    assert apply_meridiem(12, "PM") == 12
    assert apply_meridiem(12, "a.m.") == 0
    assert apply_meridiem(9, None) == 9


def test_normalize_combines_date_and_time(now):
    assert normalize("03.01.2015", "4 pm", now=now) == datetime(2015, 1, 3, 16, 0)


def test_normalize_without_anything_is_tomorrow_noon(now):
    assert normalize(None, None, now=now) == datetime(2024, 5, 11, 12, 0)


def test_impossible_clock_falls_back_to_tomorrow_noon(now):
    assert normalize("03.01.2015", "25:00", now=now) == tomorrow_noon(now)


def test_tomorrow_noon_crosses_month_end():
    assert tomorrow_noon(datetime(2024, 1, 31, 23, 59)) == datetime(2024, 2, 1, 12, 0)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("25/12/2024 tbc", date(2024, 12, 25)),
        ("ref 12/25/2024 x", date(2024, 12, 25)),
        ("ref 2024.12.25 x", date(2024, 12, 25)),
    ],
)
def test_numeric_triplet_orders(raw, expected, now):
    resolved = resolve_date(raw, now=now)
    assert resolved.value == expected
    assert resolved.stage == "numeric_triplet"


@pytest.mark.parametrize("raw", ["25/12/2100 tbc", "ref 2000.12.25 x", "13/13/2024 tbc"])
def test_numeric_triplet_rejects_implausible_dates(raw, now):
    resolved = resolve_date(raw, now=now)
    assert resolved.value == date(2024, 5, 11)
    assert resolved.stage == "default"
