"""Calendar helpers for placing plan tasks on weekdays.

Weekdays are three-letter codes in Sunday-first order. Sunday is never treated
as "in the past": it doubles as the closing day of the current week, so a task
on Sunday is always still reachable.

Nothing here reads the clock; callers pass ``today``.
"""
from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional

WEEKDAY_CODES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
SUNDAY = "Sun"

_FULL_NAMES = {
    "sunday": "Sun",
    "monday": "Mon",
    "tuesday": "Tue",
    "wednesday": "Wed",
    "thursday": "Thu",
    "friday": "Fri",
    "saturday": "Sat",
}


def weekday_index(today: date) -> int:
    """Return 0 for Sunday through 6 for Saturday."""
    return (today.weekday() + 1) % 7


def current_weekday_code(today: date) -> str:
    return WEEKDAY_CODES[weekday_index(today)]


def available_days_for_partial_week(today: date) -> List[str]:
    """Days still usable in the first journey week, Sunday always included."""
    index = weekday_index(today)
    if index == 0:
        return list(WEEKDAY_CODES)
    return [*WEEKDAY_CODES[index:], SUNDAY]


def correct_past_day(day_code: str, today: date) -> str:
    """Move a task scheduled earlier this week onto today."""
    if day_code == SUNDAY or day_code not in WEEKDAY_CODES:
        return day_code
    today_index = weekday_index(today)
    if WEEKDAY_CODES.index(day_code) < today_index:
        return WEEKDAY_CODES[today_index]
    return day_code


def week_start_date(today: date, week_number: int) -> date:
    """Week 1 starts today; later weeks start on Mondays after today."""
    if week_number <= 1:
        return today
    days_to_next_monday = 7 - today.weekday()
    first_monday = today + timedelta(days=days_to_next_monday)
    return first_monday + timedelta(days=(week_number - 2) * 7)


def normalize_day_code(value) -> Optional[str]:
    """Map 'Mon', 'MON', 'monday' or a 1-based day number to a weekday code."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        if 1 <= value <= 7:
            return WEEKDAY_CODES[value - 1]
        return None
    if not isinstance(value, str):
        return None
    cleaned = value.strip().lower()
    if not cleaned:
        return None
    if cleaned.isdigit():
        return normalize_day_code(int(cleaned))
    if cleaned in _FULL_NAMES:
        return _FULL_NAMES[cleaned]
    for code in WEEKDAY_CODES:
        if cleaned == code.lower():
            return code
    return None


def round_robin_day(position: int) -> str:
    return WEEKDAY_CODES[position % 7]
