from datetime import date, datetime

import pytest

from salon_booking.domain.scheduling.time_slots import (
    ClockTime,
    InvalidTimeFormat,
    generate_time_slots,
    intervals_overlap,
    parse_clock_time,
    parse_hours_range,
    slot_interval,
    to_naive_utc,
    weekday_name,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("9:00 AM", ClockTime(9, 0)),
        ("09:15 AM", ClockTime(9, 15)),
        ("12:00 AM", ClockTime(0, 0)),
        ("12:30 PM", ClockTime(12, 30)),
        ("1:00 PM", ClockTime(13, 0)),
        ("8:00 PM", ClockTime(20, 0)),
        ("11:59 PM", ClockTime(23, 59)),
        ("7:00 am", ClockTime(7, 0)),
    ],
)
def test_parse_clock_time(value, expected):
    assert parse_clock_time(value) == expected


@pytest.mark.parametrize("value", ["9:00", "9 AM", "13:00 PM", "0:00 AM", "9:60 AM", "", "noon", None, 900])
def test_parse_clock_time_rejects_malformed_input(value):
    with pytest.raises(InvalidTimeFormat):
        parse_clock_time(value)


def test_invalid_time_format_is_a_value_error():
    assert issubclass(InvalidTimeFormat, ValueError)


def test_generate_slots_business_day():
    slots = generate_time_slots(parse_clock_time("9:00 AM"), parse_clock_time("5:00 PM"))

    assert slots == ["09:00", "10:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00"]
    assert "17:00" not in slots


def test_generate_slots_is_deterministic():
    start, end = parse_clock_time("10:00 AM"), parse_clock_time("2:00 PM")

    assert generate_time_slots(start, end) == generate_time_slots(start, end)


def test_generate_slots_ignores_minutes():
    slots = generate_time_slots(parse_clock_time("9:30 AM"), parse_clock_time("11:45 AM"))

    assert slots == ["09:00", "10:00"]


def test_generate_slots_from_midnight():
    slots = generate_time_slots(parse_clock_time("12:00 AM"), parse_clock_time("3:00 AM"))

    assert slots == ["00:00", "01:00", "02:00"]


@pytest.mark.parametrize("start,end", [("8:00 PM", "2:00 AM"), ("9:00 AM", "9:00 AM")])
def test_generate_slots_empty_when_end_not_after_start(start, end):
    assert generate_time_slots(parse_clock_time(start), parse_clock_time(end)) == []


@pytest.mark.parametrize("value", [None, "closed", "Closed", "CLOSED", "  closed ", ""])
def test_parse_hours_range_closed(value):
    assert parse_hours_range(value) is None


@pytest.mark.parametrize("value", ["9:00 AM - 8:00 PM", "9:00 AM-8:00 PM", " 9:00 AM  -  8:00 PM "])
def test_parse_hours_range(value):
    assert parse_hours_range(value) == (ClockTime(9, 0), ClockTime(20, 0))


@pytest.mark.parametrize("value", ["9 to 5", "9:00 AM", "9:00 - 17:00", "9:00 AM - 5:00 PM - 8:00 PM"])
def test_parse_hours_range_rejects_malformed_input(value):
    with pytest.raises(InvalidTimeFormat):
        parse_hours_range(value)


def test_intervals_overlap():
    ten, eleven, noon = datetime(2030, 1, 7, 10), datetime(2030, 1, 7, 11), datetime(2030, 1, 7, 12)
    half_past_ten = datetime(2030, 1, 7, 10, 30)

    assert intervals_overlap(ten, eleven, ten, eleven)
    assert intervals_overlap(ten, noon, half_past_ten, eleven)
    assert intervals_overlap(half_past_ten, eleven, ten, noon)
    assert intervals_overlap(ten, eleven, half_past_ten, noon)


def test_touching_intervals_do_not_overlap():
    ten, eleven, noon = datetime(2030, 1, 7, 10), datetime(2030, 1, 7, 11), datetime(2030, 1, 7, 12)

    assert not intervals_overlap(ten, eleven, eleven, noon)
    assert not intervals_overlap(eleven, noon, ten, eleven)


def test_slot_interval_is_one_hour_from_utc_midnight():
    start, end = slot_interval(date(2030, 1, 7), "14:00")

    assert start == datetime(2030, 1, 7, 14)
    assert end == datetime(2030, 1, 7, 15)


def test_weekday_name():
    assert weekday_name(date(2024, 1, 1)) == "monday"
    assert weekday_name(date(2024, 1, 7)) == "sunday"


def test_to_naive_utc():
    aware = datetime.fromisoformat("2030-01-07T12:00:00+02:00")

    assert to_naive_utc(aware) == datetime(2030, 1, 7, 10)
    assert to_naive_utc(datetime(2030, 1, 7, 10)) == datetime(2030, 1, 7, 10)
