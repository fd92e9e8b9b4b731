"""
Recurrence Expander

Turns a recurrence rule plus an anchor date into the ordered list of
occurrence dates. The anchor itself is occurrence #1.

Rules:
- daily +1 day, weekly +7, biweekly +14, monthly +1 calendar month
- monthly steps are taken from the anchor (anchor + k months) and clamped to
  the last day of shorter months, so Jan 31 -> Feb 28/29 -> Mar 31
- generation stops once end_date is passed or `occurrences` dates exist
- never more than RECURRENCE_MAX_OCCURRENCES dates, whatever the rule says;
  the result reports whether that cap cut the series short
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from courtbook.services.booking_errors import BookingValidationError
from courtbook.services.time_interval import parse_date
from courtbook.settings import RECURRENCE_MAX_OCCURRENCES

logger = logging.getLogger(__name__)

FREQUENCIES = ("daily", "weekly", "biweekly", "monthly")
_DAY_STEPS = {"daily": 1, "weekly": 7, "biweekly": 14}


@dataclass(frozen=True)
class RecurrenceRule:
    frequency: str
    end_date: Optional[date] = None
    occurrences: Optional[int] = None

    def __post_init__(self):
        if self.frequency not in FREQUENCIES:
            raise BookingValidationError(f"frequency must be one of {list(FREQUENCIES)}")
        if self.occurrences is not None and self.occurrences < 1:
            raise BookingValidationError("occurrences must be >= 1")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RecurrenceRule":
        end_date = data.get("end_date")
        return cls(
            frequency=data.get("frequency"),
            end_date=parse_date(end_date) if end_date else None,
            occurrences=data.get("occurrences"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frequency": self.frequency,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "occurrences": self.occurrences,
        }


@dataclass
class ExpansionResult:
    dates: List[date]
    truncated: bool  # True when the hard cap stopped generation early


def add_months(anchor: date, months: int) -> date:
    month_index = anchor.month - 1 + months
    year = anchor.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(anchor.day, last_day))


def occurrence_date(anchor: date, rule: RecurrenceRule, index: int) -> date:
    """Date of the ``index``-th occurrence (0 = anchor)."""
    if rule.frequency == "monthly":
        return add_months(anchor, index)
    return anchor + timedelta(days=_DAY_STEPS[rule.frequency] * index)


def expand_dates(anchor: date, rule: RecurrenceRule, cap: int = RECURRENCE_MAX_OCCURRENCES) -> ExpansionResult:
    if rule.end_date is not None and rule.end_date < anchor:
        raise BookingValidationError("Recurrence end_date must be on or after the first occurrence")

    requested = rule.occurrences
    limit = min(requested, cap) if requested is not None else cap

    dates: List[date] = []
    index = 0
    while len(dates) < limit:
        current = occurrence_date(anchor, rule, index)
        if rule.end_date is not None and current > rule.end_date:
            break
        dates.append(current)
        index += 1

    truncated = False
    if len(dates) == cap:
        if requested is not None and requested > cap:
            truncated = True
        elif requested is None and rule.end_date is not None:
            truncated = occurrence_date(anchor, rule, cap) <= rule.end_date
        elif requested is None:
            # Open-ended rule: the cap is the only terminator
            truncated = True

    if truncated:
        logger.warning(
            "Recurrence %s from %s truncated at %d occurrences", rule.frequency, anchor.isoformat(), cap
        )
    return ExpansionResult(dates=dates, truncated=truncated)


def date_matches_rule(candidate: date, anchor: date, rule: RecurrenceRule) -> bool:
    """Whether ``candidate`` is one of the dates the rule generates from ``anchor``."""
    return candidate in expand_dates(anchor, rule).dates
