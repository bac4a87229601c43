from __future__ import annotations

from datetime import date, timedelta

import pytest

from app.services.day_scheduler import (
    WEEKDAY_CODES,
    available_days_for_partial_week,
    correct_past_day,
    current_weekday_code,
    normalize_day_code,
    round_robin_day,
    week_start_date,
    weekday_index,
)

# 2024-01-07 is a Sunday; the following six days cover Mon..Sat.
SUNDAY = date(2024, 1, 7)
WEEK = [SUNDAY + timedelta(days=offset) for offset in range(7)]


def test_weekday_index_is_sunday_first() -> None:
    assert [weekday_index(day) for day in WEEK] == list(range(7))
    assert [current_weekday_code(day) for day in WEEK] == list(WEEKDAY_CODES)


def test_partial_week_days_always_include_sunday() -> None:
    wednesday = date(2024, 1, 10)
    saturday = date(2024, 1, 13)

    assert available_days_for_partial_week(SUNDAY) == list(WEEKDAY_CODES)
    assert available_days_for_partial_week(wednesday) == ["Wed", "Thu", "Fri", "Sat", "Sun"]
    assert available_days_for_partial_week(saturday) == ["Sat", "Sun"]


@pytest.mark.parametrize("today", WEEK)
@pytest.mark.parametrize("day_code", WEEKDAY_CODES)
def test_correct_past_day_moves_only_earlier_weekdays(day_code: str, today: date) -> None:
    today_index = weekday_index(today)
    corrected = correct_past_day(day_code, today)

    if day_code != "Sun" and WEEKDAY_CODES.index(day_code) < today_index:
        assert corrected == WEEKDAY_CODES[today_index]
    else:
        assert corrected == day_code


def test_thursday_reassigns_monday_but_keeps_sunday() -> None:
    thursday = date(2024, 1, 4)

    assert correct_past_day("Mon", thursday) == "Thu"
    assert correct_past_day("Sun", thursday) == "Sun"
    assert correct_past_day("Fri", thursday) == "Fri"


def test_unknown_day_code_is_left_alone() -> None:
    assert correct_past_day("Someday", date(2024, 1, 4)) == "Someday"


@pytest.mark.parametrize("today", WEEK)
def test_week_start_dates_are_monotonic(today: date) -> None:
    assert week_start_date(today, 1) == today
    second = week_start_date(today, 2)
    assert second.weekday() == 0
    assert today < second <= today + timedelta(days=7)
    for week_number in range(3, 12):
        previous = week_start_date(today, week_number - 1)
        current = week_start_date(today, week_number)
        assert current == previous + timedelta(days=7)
        assert current.weekday() == 0


def test_second_week_starts_on_next_monday() -> None:
    wednesday = date(2024, 1, 10)

    assert week_start_date(wednesday, 2) == date(2024, 1, 15)
    assert week_start_date(wednesday, 3) == date(2024, 1, 22)
    assert week_start_date(SUNDAY, 2) == date(2024, 1, 8)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("Mon", "Mon"),
        ("MON", "Mon"),
        (" tuesday ", "Tue"),
        ("Saturday", "Sat"),
        (1, "Sun"),
        ("7", "Sat"),
        (0, None),
        (8, None),
        ("funday", None),
        ("", None),
        (None, None),
        (True, None),
    ],
)
def test_normalize_day_code(value, expected) -> None:
    assert normalize_day_code(value) == expected


def test_round_robin_day_wraps() -> None:
    assert round_robin_day(0) == "Sun"
    assert round_robin_day(8) == "Mon"
