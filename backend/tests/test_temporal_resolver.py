"""
Date/time resolution for calendar events.
"""
import datetime

import pytest

from app.services.temporal_resolver import (
    WEEKDAYS,
    ClockTime,
    ResolvedDateTime,
    bare_hour_time,
    resolve,
)

# Friday
NOW = datetime.datetime(2026, 5, 1, 9, 30)


def test_tomorrow_is_exactly_one_day_later():
    resolved = resolve("tomorrow at 2pm", now=NOW)
    assert resolved.date == NOW.date() + datetime.timedelta(days=1)
    assert resolved.time == ClockTime(2, 0, "PM")


def test_tomorrow_without_time_has_no_time():
    resolved = resolve("Tomorrow", now=NOW)
    assert resolved.date == datetime.date(2026, 5, 2)
    assert resolved.time is None


def test_today_and_next_week():
    assert resolve("today", now=NOW).date == NOW.date()
    assert resolve("sometime next week", now=NOW).date == datetime.date(2026, 5, 8)


@pytest.mark.parametrize("weekday", WEEKDAYS)
def test_bare_weekday_is_strictly_in_the_future(weekday):
    delta = (resolve(f"on {weekday}", now=NOW).date - NOW.date()).days
    assert 1 <= delta <= 7


def test_bare_weekday_equal_to_today_is_a_week_out():
    assert resolve("friday", now=NOW).date == datetime.date(2026, 5, 8)


@pytest.mark.parametrize("weekday", WEEKDAYS)
def test_next_weekday_is_at_least_a_week_out(weekday):
    delta = (resolve(f"next {weekday} at noon", now=NOW).date - NOW.date()).days
    assert 7 <= delta <= 13


def test_in_n_days():
    assert resolve("in 3 days", now=NOW).date == datetime.date(2026, 5, 4)


def test_month_day_in_future_keeps_current_year():
    assert resolve("June 10th", now=NOW).date == datetime.date(2026, 6, 10)


def test_month_day_in_past_rolls_forward_exactly_one_year():
    assert resolve("march 3", now=NOW).date == datetime.date(2027, 3, 3)
    assert resolve("Apr 30", now=NOW).date == datetime.date(2027, 4, 30)


def test_slash_date():
    assert resolve("6/10 at 3", now=NOW).date == datetime.date(2026, 6, 10)


def test_unrecognized_text_defaults_to_today_without_time():
    assert resolve("whenever works", now=NOW) == ResolvedDateTime(NOW.date(), None)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("at 2pm", ClockTime(2, 0, "PM")),
        ("at noon", ClockTime(12, 0, "PM")),
        ("at midnight", ClockTime(12, 0, "AM")),
        ("at 9", ClockTime(9, 0, "AM")),
        ("at 3", ClockTime(3, 0, "PM")),
        ("at 2:30 pm", ClockTime(2, 30, "PM")),
        ("at 10:15am", ClockTime(10, 15, "AM")),
        ("at 15", ClockTime(3, 0, "PM")),
    ],
)
def test_time_parsing(text, expected):
    assert resolve(text, now=NOW).time == expected


def test_bare_hour_table():
    assert bare_hour_time(12) == ClockTime(12, 0, "PM")
    assert [bare_hour_time(h).meridiem for h in range(1, 7)] == ["PM"] * 6
    assert [bare_hour_time(h).meridiem for h in range(7, 12)] == ["AM"] * 5
    assert bare_hour_time(0) is None
    assert bare_hour_time(9, 75) is None


@pytest.mark.parametrize(
    "start, end",
    [
        (ClockTime(11, 0, "AM"), ClockTime(12, 0, "PM")),
        (ClockTime(12, 0, "PM"), ClockTime(1, 0, "PM")),
        (ClockTime(11, 0, "PM"), ClockTime(12, 0, "AM")),
        (ClockTime(12, 0, "AM"), ClockTime(1, 0, "AM")),
        (ClockTime(3, 45, "PM"), ClockTime(4, 45, "PM")),
    ],
)
def test_end_time_is_one_hour_later(start, end):
    assert start.one_hour_later() == end


def test_lunch_on_june_tenth_scenario():
    resolved = resolve("Create calendar event 'Lunch' on June 10th at 12", now=NOW)
    assert resolved.date == datetime.date(2026, 6, 10)
    assert resolved.time == ClockTime(12, 0, "PM")
    assert resolved.typed_date == "June, 10, 2026"
    assert resolved.time.typed == "12:00 PM"
    assert resolved.end_time.typed == "1:00 PM"
