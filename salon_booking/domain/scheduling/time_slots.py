"""Time parsing and slot primitives for salon availability"""

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import NamedTuple, Optional

SLOT_MINUTES = 60

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_CLOCK_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*(AM|PM)\s*$", re.IGNORECASE)
_RANGE_SEPARATOR_RE = re.compile(r"\s*-\s*")


class InvalidTimeFormat(ValueError):
    """Raised when an hours string can't be parsed"""


class ClockTime(NamedTuple):
    hour: int  # 0-23
    minute: int


def utcnow() -> datetime:
    """Current instant as naive UTC, matching the DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_clock_time(value: str) -> ClockTime:
    """
    Parse a 12-hour clock time such as "9:00 AM" or "12:30 PM".

    12 AM is hour 0, 12 PM stays 12, other PM hours add 12.
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Expected a time string, got {value!r}")

    match = _CLOCK_TIME_RE.match(value)
    if not match:
        raise InvalidTimeFormat(f"Invalid time format: {value!r} (expected 'h:mm AM|PM')")

    hour = int(match.group(1))
    minute = int(match.group(2))
    period = match.group(3).upper()

    if not 1 <= hour <= 12 or not 0 <= minute <= 59:
        raise InvalidTimeFormat(f"Time out of range: {value!r}")

    if period == "AM" and hour == 12:
        hour = 0
    elif period == "PM" and hour != 12:
        hour += 12

    return ClockTime(hour, minute)


def parse_hours_range(value: Optional[str]) -> Optional[tuple[ClockTime, ClockTime]]:
    """
    Parse a day's opening hours ("9:00 AM - 8:00 PM").

    Returns None when the salon is closed that day (missing or "closed").
    """
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Expected an hours string, got {value!r}")
    if not value.strip() or value.strip().lower() == "closed":
        return None

    parts = _RANGE_SEPARATOR_RE.split(value.strip())
    if len(parts) != 2:
        raise InvalidTimeFormat(f"Invalid hours range: {value!r} (expected '<start> - <end>')")

    return parse_clock_time(parts[0]), parse_clock_time(parts[1])


def generate_time_slots(start: ClockTime, end: ClockTime) -> list[str]:
    """
    Whole-hour slot labels from the opening hour up to, not including, the closing hour.

    Minutes are ignored. Overnight ranges (end <= start) yield no slots.
    """
    return [f"{hour:02d}:00" for hour in range(start.hour, end.hour)]


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open interval intersection; touching intervals don't overlap"""
    return a_start < b_end and a_end > b_start


def slot_interval(day: date, slot_label: str) -> tuple[datetime, datetime]:
    """Anchor an "HH:00" slot to the day at UTC midnight"""
    hour = int(slot_label.split(":")[0])
    slot_start = datetime.combine(day, time(hour=hour))
    return slot_start, slot_start + timedelta(minutes=SLOT_MINUTES)


def weekday_name(day: date) -> str:
    """Lowercase English weekday name, independent of the process locale"""
    return WEEKDAY_NAMES[day.weekday()]
