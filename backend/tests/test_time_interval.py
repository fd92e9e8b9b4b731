"""
Test suite for the Time Interval Model

Half-open [start, end) semantics:
- back-to-back intervals never overlap and are adjacent
- any shared minute is an overlap
"""

from datetime import date, time
from decimal import Decimal

import pytest

from courtbook.services.booking_errors import BookingValidationError
from courtbook.services.time_interval import TimeInterval, parse_date, parse_time, time_to_minutes

DAY = date(2025, 1, 6)


def iv(start: str, end: str, day: date = DAY) -> TimeInterval:
    return TimeInterval.from_times(day, start, end)


def test_minutes_since_midnight():
    interval = iv("09:30", "11:00")
    assert interval.start == 570
    assert interval.end == 660
    assert interval.duration_minutes == 90
    assert interval.duration_hours == Decimal("1.5")


def test_hour_boundaries_compare_numerically():
    """'9:00' and '10:00' would sort wrongly as strings"""
    assert iv("9:00", "10:00").start < iv("10:00", "11:00").start


def test_end_must_be_after_start():
    with pytest.raises(BookingValidationError):
        iv("11:00", "11:00")
    with pytest.raises(BookingValidationError):
        iv("12:00", "11:00")


def test_seconds_are_rejected():
    with pytest.raises(BookingValidationError):
        time_to_minutes(time(10, 0, 30))


def test_back_to_back_is_adjacent_not_overlapping():
    first = iv("10:00", "11:00")
    second = iv("11:00", "12:00")
    assert not first.overlaps(second)
    assert not second.overlaps(first)
    assert first.is_adjacent_to(second)
    assert second.is_adjacent_to(first)


@pytest.mark.parametrize(
    "start,end",
    [
        ("10:00", "11:00"),  # duplicate
        ("10:30", "11:30"),  # right edge
        ("09:30", "10:30"),  # left edge
        ("10:15", "10:45"),  # contained
        ("09:00", "12:00"),  # containing
    ],
)
def test_overlap_cases(start, end):
    existing = iv("10:00", "11:00")
    candidate = iv(start, end)
    assert candidate.overlaps(existing)
    assert existing.overlaps(candidate)


def test_different_days_never_overlap():
    assert not iv("10:00", "11:00").overlaps(iv("10:00", "11:00", day=date(2025, 1, 7)))


def test_contains_and_label():
    outer = iv("08:00", "12:00")
    assert outer.contains(iv("09:00", "10:00"))
    assert not outer.contains(iv("11:00", "13:00"))
    assert outer.label() == "08:00-12:00"
    assert str(outer) == "2025-01-06 08:00-12:00"


def test_parsers_reject_garbage():
    with pytest.raises(BookingValidationError):
        parse_time("ten o'clock")
    with pytest.raises(BookingValidationError):
        parse_date("06/01/2025")
    assert parse_date("2025-01-06") == DAY
    assert parse_time("07:05") == time(7, 5)
