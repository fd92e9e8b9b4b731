"""
Time Interval Model

A booking occupies the half-open range [start, end) on one calendar day.
Times are held as minutes since midnight so comparisons never depend on
string formatting ("9:00" vs "09:00" vs "09:00:00").

- overlaps(): start < other.end and other.start < end
- Back-to-back intervals (end == other.start) do not overlap and are
  adjacent, which makes them eligible for merging in the aggregator.
"""

from dataclasses import dataclass
from datetime import date, time
from decimal import Decimal
from typing import Union

from courtbook.services.booking_errors import BookingValidationError

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(value: time) -> int:
    """Minutes since midnight. Seconds are not allowed (minute granularity)."""
    if value.second or value.microsecond:
        raise BookingValidationError(f"Time {value.isoformat()} must be on a whole minute")
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise BookingValidationError(f"Minute offset {minutes} is outside a single day")
    return time(minutes // 60, minutes % 60)


def parse_time(value: Union[str, time]) -> time:
    """Accept a ``time`` or an "HH:MM" string."""
    if isinstance(value, time):
        return value
    try:
        hours, minutes = str(value).strip().split(":")[:2]
        return time(int(hours), int(minutes))
    except (TypeError, ValueError):
        raise BookingValidationError(f"Invalid time '{value}'. Use HH:MM")


def parse_date(value: Union[str, date]) -> date:
    """Accept a ``date`` or a "YYYY-MM-DD" string."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise BookingValidationError(f"Invalid date '{value}'. Use YYYY-MM-DD")


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class TimeInterval:
    day: date
    start: int  # minutes since midnight
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end > MINUTES_PER_DAY:
            raise BookingValidationError("Interval must fall within a single day")
        if self.end <= self.start:
            raise BookingValidationError(
                f"end_time ({format_minutes(self.end)}) must be after start_time ({format_minutes(self.start)})"
            )

    @classmethod
    def from_times(cls, day: Union[str, date], start: Union[str, time], end: Union[str, time]) -> "TimeInterval":
        return cls(
            day=parse_date(day),
            start=time_to_minutes(parse_time(start)),
            end=time_to_minutes(parse_time(end)),
        )

    @property
    def start_time(self) -> time:
        return minutes_to_time(self.start)

    @property
    def end_time(self) -> time:
        return minutes_to_time(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    @property
    def duration_hours(self) -> Decimal:
        return Decimal(self.duration_minutes) / Decimal(60)

    def overlaps(self, other: "TimeInterval") -> bool:
        if self.day != other.day:
            return False
        return self.start < other.end and other.start < self.end

    def is_adjacent_to(self, other: "TimeInterval") -> bool:
        """True when one interval ends exactly where the other starts."""
        if self.day != other.day:
            return False
        return self.end == other.start or other.end == self.start

    def contains(self, other: "TimeInterval") -> bool:
        return self.day == other.day and self.start <= other.start and other.end <= self.end

    def label(self) -> str:
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"

    def __str__(self) -> str:
        return f"{self.day.isoformat()} {self.label()}"
