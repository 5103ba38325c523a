"""Tests for cadence labels and next-occurrence arithmetic."""
from __future__ import annotations

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from opsdesk.services.recurrence import (
    PAUSED,
    UNKNOWN,
    Frequency,
    RecurrenceSpec,
    compute_next_occurrence,
    describe_frequency,
    format_next_run,
    ordinal_suffix,
)

# A Friday at the end of a 31-day month.
NOW = datetime(2025, 1, 31, 9, 30, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "day, expected",
    [
        (1, "1st"),
        (2, "2nd"),
        (3, "3rd"),
        (4, "4th"),
        (10, "10th"),
        (11, "11th"),
        (12, "12th"),
        (13, "13th"),
        (20, "20th"),
        (21, "21st"),
        (22, "22nd"),
        (23, "23rd"),
        (30, "30th"),
        (31, "31st"),
    ],
)
def test_monthly_label_uses_ordinal_suffix(day: int, expected: str) -> None:
    assert describe_frequency("monthly", None, day) == f"Monthly on the {expected}"


def test_ordinal_suffix_teens_fall_through_to_th() -> None:
    assert [ordinal_suffix(day) for day in range(11, 20)] == ["th"] * 9


@pytest.mark.parametrize(
    "frequency, day_of_week, day_of_month, expected",
    [
        ("daily", None, None, "Every day"),
        ("daily", 3, 12, "Every day"),
        ("weekly", 1, None, "Every Monday"),
        ("weekly", 0, None, "Every Sunday"),
        ("weekly", None, None, "Every week"),
        ("weekly", None, 15, "Every week"),
        ("biweekly", 5, None, "Every 2 weeks on Friday"),
        ("biweekly", None, None, "Every 2 weeks"),
        ("monthly", None, None, "Monthly"),
        ("monthly", 2, None, "Monthly"),
        (Frequency.WEEKLY, 6, None, "Every Saturday"),
    ],
)
def test_describe_frequency(frequency, day_of_week, day_of_month, expected) -> None:
    assert describe_frequency(frequency, day_of_week, day_of_month) == expected


def test_describe_frequency_out_of_range_weekday_falls_back() -> None:
    assert describe_frequency("weekly", 9) == "Every week"
    assert describe_frequency("biweekly", -1) == "Every 2 weeks"


def test_describe_frequency_unknown_value_is_echoed() -> None:
    assert describe_frequency("quarterly") == "quarterly"
    assert describe_frequency("") == UNKNOWN
    assert describe_frequency(None) == UNKNOWN


def test_inactive_spec_is_paused_regardless_of_now() -> None:
    spec = RecurrenceSpec(frequency="weekly", day_of_week=1, is_active=False)

    assert compute_next_occurrence(spec, NOW) == PAUSED
    assert compute_next_occurrence(spec, datetime(1999, 12, 31, tzinfo=timezone.utc)) == PAUSED


def test_paused_wins_over_stored_next_generation() -> None:
    spec = RecurrenceSpec(frequency="daily", is_active=False, next_generation_at="2025-03-10")

    assert compute_next_occurrence(spec, NOW) == PAUSED


def test_stored_next_generation_is_returned_verbatim() -> None:
    spec = RecurrenceSpec(frequency="daily", is_active=True, next_generation_at="2025-03-10")

    assert compute_next_occurrence(spec, NOW) == "2025-03-10"

    stored = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)
    spec = RecurrenceSpec(frequency="monthly", day_of_month=15, next_generation_at=stored)
    assert compute_next_occurrence(spec, NOW) is stored


@pytest.mark.parametrize(
    "frequency, expected",
    [
        ("daily", datetime(2025, 2, 1, 9, 30, tzinfo=timezone.utc)),
        ("weekly", datetime(2025, 2, 7, 9, 30, tzinfo=timezone.utc)),
        ("biweekly", datetime(2025, 2, 14, 9, 30, tzinfo=timezone.utc)),
        ("monthly", datetime(2025, 2, 28, 9, 30, tzinfo=timezone.utc)),
    ],
)
def test_next_occurrence_advances_from_now(frequency: str, expected: datetime) -> None:
    assert compute_next_occurrence(RecurrenceSpec(frequency=frequency), NOW) == expected


def test_monthly_advance_clamps_to_leap_day() -> None:
    now = datetime(2024, 1, 31, tzinfo=timezone.utc)

    assert compute_next_occurrence(RecurrenceSpec(frequency="monthly"), now) == datetime(2024, 2, 29, tzinfo=timezone.utc)


def test_weekday_target_does_not_snap_next_occurrence() -> None:
    # NOW is a Friday; a Monday target still advances exactly one week.
    spec = RecurrenceSpec(frequency="weekly", day_of_week=1)

    assert compute_next_occurrence(spec, NOW) == datetime(2025, 2, 7, 9, 30, tzinfo=timezone.utc)


def test_next_occurrence_accepts_plain_dates() -> None:
    assert compute_next_occurrence(RecurrenceSpec(frequency="monthly"), date(2025, 3, 15)) == date(2025, 4, 15)


def test_unknown_frequency_degrades_to_unknown() -> None:
    assert compute_next_occurrence(RecurrenceSpec(frequency="quarterly"), NOW) == UNKNOWN


def test_spec_from_record_reads_columns() -> None:
    record = SimpleNamespace(
        frequency="biweekly",
        day_of_week=3,
        day_of_month=None,
        is_active=1,
        next_generation_at=None,
    )

    spec = RecurrenceSpec.from_record(record)

    assert spec == RecurrenceSpec(frequency="biweekly", day_of_week=3, is_active=True)


@pytest.mark.parametrize(
    "value, expected",
    [
        (datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc), "Mar 10, 2025"),
        (date(2025, 12, 1), "Dec 1, 2025"),
        ("2025-03-10", "Mar 10, 2025"),
        ("2025-07-04T08:15:00+00:00", "Jul 4, 2025"),
        (PAUSED, PAUSED),
        (UNKNOWN, UNKNOWN),
    ],
)
def test_format_next_run(value, expected: str) -> None:
    assert format_next_run(value) == expected
