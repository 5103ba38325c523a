"""Cadence labels and next-occurrence arithmetic for recurring tasks.

Everything here is pure: callers pass ``now`` explicitly and get plain values
back. Two string sentinels stand in for a date when none can be computed:
``PAUSED`` for inactive recurrences and ``UNKNOWN`` for unrecognised
frequencies.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional, Union

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

PAUSED = "Paused"
UNKNOWN = "Unknown"

# Index 0 is Sunday, matching the stored day_of_week column.
WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


# relativedelta clamps month arithmetic to the last day of shorter months (Jan 31 -> Feb 28/29).
FREQUENCY_STEPS = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.BIWEEKLY: relativedelta(weeks=2),
    Frequency.MONTHLY: relativedelta(months=1),
}

NextOccurrence = Union[datetime, date, str]


@dataclass(frozen=True)
class RecurrenceSpec:
    frequency: str
    day_of_week: Optional[int] = None
    day_of_month: Optional[int] = None
    is_active: bool = True
    next_generation_at: Any = None

    @classmethod
    def from_record(cls, record: Any) -> "RecurrenceSpec":
        """Build a spec from any object exposing the recurring task columns."""
        return cls(
            frequency=record.frequency,
            day_of_week=record.day_of_week,
            day_of_month=record.day_of_month,
            is_active=bool(record.is_active),
            next_generation_at=record.next_generation_at,
        )


def parse_frequency(value: Any) -> Optional[Frequency]:
    """Return the matching Frequency or None for anything unrecognised."""
    if isinstance(value, Frequency):
        return value
    try:
        return Frequency(value)
    except ValueError:
        return None


def ordinal_suffix(day: int) -> str:
    """English ordinal suffix for a day of month (1-31 only, no mod-100 rule)."""
    if day in (1, 21, 31):
        return "st"
    if day in (2, 22):
        return "nd"
    if day in (3, 23):
        return "rd"
    return "th"


def weekday_name(day_of_week: Optional[int]) -> Optional[str]:
    if day_of_week is None or isinstance(day_of_week, bool):
        return None
    if 0 <= day_of_week < len(WEEKDAY_NAMES):
        return WEEKDAY_NAMES[day_of_week]
    return None


def describe_frequency(
    frequency: Any,
    day_of_week: Optional[int] = None,
    day_of_month: Optional[int] = None,
) -> str:
    """Human sentence for a cadence, e.g. "Every 2 weeks on Friday".

    Only the day field relevant to the frequency is consulted. An unrecognised
    frequency is echoed back as-is.
    """
    parsed = parse_frequency(frequency)

    if parsed is Frequency.DAILY:
        return "Every day"
    if parsed is Frequency.WEEKLY:
        name = weekday_name(day_of_week)
        return f"Every {name}" if name else "Every week"
    if parsed is Frequency.BIWEEKLY:
        name = weekday_name(day_of_week)
        return f"Every 2 weeks on {name}" if name else "Every 2 weeks"
    if parsed is Frequency.MONTHLY:
        if day_of_month:
            return f"Monthly on the {day_of_month}{ordinal_suffix(day_of_month)}"
        return "Monthly"
    return str(frequency) if frequency else UNKNOWN


def compute_next_occurrence(spec: RecurrenceSpec, now: datetime | date) -> NextOccurrence:
    """Next scheduled run for ``spec`` relative to ``now``.

    A stored ``next_generation_at`` wins and is returned untouched. Otherwise the
    step for the frequency is added to ``now``; the weekday and day-of-month
    targets are not used to snap to a calendar date.
    """
    if not spec.is_active:
        return PAUSED
    if spec.next_generation_at:
        return spec.next_generation_at

    parsed = parse_frequency(spec.frequency)
    if parsed is None:
        return UNKNOWN
    return now + FREQUENCY_STEPS[parsed]


def format_next_run(value: NextOccurrence) -> str:
    """Display form like "Mar 10, 2025"; sentinels are returned unchanged."""
    if isinstance(value, str):
        if value in (PAUSED, UNKNOWN):
            return value
        try:
            value = isoparse(value)
        except ValueError:
            return value
    return f"{value:%b} {value.day}, {value.year}"
