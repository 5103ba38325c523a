"""Parse pasted task lists and spread them across upcoming days."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, timedelta
import re
from typing import Iterable, List, Optional

from opsdesk.core.clock import local_today

# "[Project] rest of title"; the bracket must open the line.
PROJECT_TAG_RE = re.compile(r"^\[([^\]]*)\]\s*(.*)$")


@dataclass(frozen=True)
class ParsedBulkTask:
    title: str
    original_index: int
    project_tag: Optional[str] = None
    due_date: Optional[date] = None


@dataclass
class BulkImportPreview:
    tasks: List[ParsedBulkTask] = field(default_factory=list)

    @property
    def total_tasks(self) -> int:
        return len(self.tasks)

    @property
    def days_spanned(self) -> int:
        return len({task.due_date for task in self.tasks if task.due_date is not None})


def parse_bulk_text(raw_text: Optional[str]) -> List[ParsedBulkTask]:
    """Turn one-task-per-line text into tasks.

    Blank lines are skipped and do not consume an index. ``original_index`` is
    assigned here once and is never renumbered afterwards.
    """
    if not raw_text:
        return []

    tasks: List[ParsedBulkTask] = []
    for line in raw_text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        title, project_tag = _split_project_tag(stripped)
        tasks.append(ParsedBulkTask(title=title, project_tag=project_tag, original_index=len(tasks)))
    return tasks


def _split_project_tag(line: str) -> tuple[str, Optional[str]]:
    match = PROJECT_TAG_RE.match(line)
    if not match:
        return line, None
    tag = match.group(1).strip()
    remainder = match.group(2).strip()
    # "[]" or a bare "[Tag]" line: keep the whole line as the title.
    if not tag or not remainder:
        return line, None
    return remainder, tag


def distribute_due_dates(
    tasks: Iterable[ParsedBulkTask],
    tasks_per_day: int,
    start_date: Optional[date] = None,
) -> List[ParsedBulkTask]:
    """Assign ``start_date + position // tasks_per_day`` days to each task.

    Position is the 0-based index within ``tasks`` (not ``original_index``), so
    excluded tasks never leave gaps. Every calendar day is used.
    """
    if isinstance(tasks_per_day, bool) or not isinstance(tasks_per_day, int) or tasks_per_day <= 0:
        raise ValueError(f"tasks_per_day must be a positive integer, got {tasks_per_day!r}")

    start = start_date or local_today()
    return [
        replace(task, due_date=start + timedelta(days=position // tasks_per_day))
        for position, task in enumerate(tasks)
    ]


def exclude_task(tasks: Iterable[ParsedBulkTask], original_index: int) -> List[ParsedBulkTask]:
    return [task for task in tasks if task.original_index != original_index]


def exclude_tasks(tasks: Iterable[ParsedBulkTask], original_indices: Iterable[int]) -> List[ParsedBulkTask]:
    excluded = set(original_indices)
    return [task for task in tasks if task.original_index not in excluded]


def build_preview(
    raw_text: Optional[str],
    tasks_per_day: int,
    exclude_indices: Iterable[int] = (),
    start_date: Optional[date] = None,
) -> BulkImportPreview:
    """Parse, drop excluded entries, then schedule what is left."""
    remaining = exclude_tasks(parse_bulk_text(raw_text), exclude_indices)
    return BulkImportPreview(tasks=distribute_due_dates(remaining, tasks_per_day, start_date))
