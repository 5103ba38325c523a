"""Persistence helpers for recurring task definitions."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from opsdesk.db.models.recurring_task import RecurringTask
from opsdesk.services.recurrence import (
    Frequency,
    RecurrenceSpec,
    compute_next_occurrence,
    describe_frequency,
    format_next_run,
    parse_frequency,
)

WEEKDAY_FREQUENCIES = {Frequency.WEEKLY, Frequency.BIWEEKLY}

UPDATABLE_FIELDS = (
    "name",
    "description",
    "frequency",
    "day_of_week",
    "day_of_month",
    "assigned_to",
    "client",
    "priority",
    "is_active",
    "next_generation_at",
)


@dataclass
class RecurrenceSummary:
    frequency_label: str
    next_run: str
    next_run_display: str


def normalize_day_fields(
    frequency: Any,
    day_of_week: Optional[int],
    day_of_month: Optional[int],
) -> Tuple[Optional[int], Optional[int]]:
    """Keep only the day field that the frequency uses; null the other."""
    parsed = parse_frequency(frequency)
    return (
        day_of_week if parsed in WEEKDAY_FREQUENCIES else None,
        day_of_month if parsed is Frequency.MONTHLY else None,
    )


def build_recurring_task(values: Dict[str, Any]) -> RecurringTask:
    day_of_week, day_of_month = normalize_day_fields(
        values["frequency"], values.get("day_of_week"), values.get("day_of_month")
    )
    return RecurringTask(
        name=values["name"].strip(),
        description=values.get("description"),
        frequency=values["frequency"],
        day_of_week=day_of_week,
        day_of_month=day_of_month,
        assigned_to=values.get("assigned_to"),
        client=values.get("client"),
        priority=values.get("priority") or "medium",
        is_active=values.get("is_active", True),
        next_generation_at=values.get("next_generation_at"),
        created_by=values.get("created_by"),
    )


def apply_recurring_task_changes(recurring: RecurringTask, changes: Dict[str, Any]) -> bool:
    """Apply a partial update in place; returns True when any column changed.

    Day fields are re-normalized against the effective frequency so switching
    from weekly to monthly drops the stale weekday.
    """
    changed = False
    for field_name in UPDATABLE_FIELDS:
        if field_name not in changes:
            continue
        value = changes[field_name]
        if field_name == "name" and isinstance(value, str):
            value = value.strip()
        if getattr(recurring, field_name) != value:
            setattr(recurring, field_name, value)
            changed = True

    day_of_week, day_of_month = normalize_day_fields(
        recurring.frequency, recurring.day_of_week, recurring.day_of_month
    )
    if (day_of_week, day_of_month) != (recurring.day_of_week, recurring.day_of_month):
        recurring.day_of_week = day_of_week
        recurring.day_of_month = day_of_month
        changed = True
    return changed


def summarize_recurrence(recurring: Any, now: datetime) -> RecurrenceSummary:
    next_run = compute_next_occurrence(RecurrenceSpec.from_record(recurring), now)
    return RecurrenceSummary(
        frequency_label=describe_frequency(recurring.frequency, recurring.day_of_week, recurring.day_of_month),
        next_run=next_run if isinstance(next_run, str) else next_run.isoformat(),
        next_run_display=format_next_run(next_run),
    )
