"""Batch job that materializes tasks from recurring task definitions."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from opsdesk.core.clock import as_utc, local_today, utc_now
from opsdesk.db.models.activity_log import TaskActivityLog
from opsdesk.db.models.recurring_task import RecurringTask
from opsdesk.db.models.task import Task
from opsdesk.services.recurrence import RecurrenceSpec, compute_next_occurrence


logger = logging.getLogger(__name__)

OUTCOME_GENERATED = "generated"
OUTCOME_SCHEDULED = "scheduled"
OUTCOME_SKIPPED = "skipped"


@dataclass
class JobRunResult:
    processed: int = 0
    generated: int = 0
    scheduled: int = 0
    skipped: int = 0
    failed: int = 0


def _active_recurring_tasks(db: Session, ids: Optional[List[UUID]]) -> List[RecurringTask]:
    query = db.query(RecurringTask).filter(RecurringTask.is_active.is_(True))
    if ids is not None:
        query = query.filter(RecurringTask.id.in_(ids))
    return query.order_by(RecurringTask.created_at).all()


def _advance(recurring: RecurringTask, now: datetime) -> Optional[datetime]:
    # Drop the stored timestamp so the calculator derives a fresh one from now.
    spec = replace(RecurrenceSpec.from_record(recurring), next_generation_at=None)
    next_run = compute_next_occurrence(spec, now)
    if isinstance(next_run, str):
        return None
    return next_run


def process_recurring_task(
    db: Session,
    recurring: RecurringTask,
    *,
    now: datetime,
    force: bool = False,
) -> str:
    """Generate, schedule or skip one recurring task and commit the result."""
    if recurring.created_by is None:
        logger.warning("Recurring task %s has no owner; skipping", recurring.id)
        return OUTCOME_SKIPPED

    next_run = _advance(recurring, now)
    if next_run is None:
        logger.warning("Recurring task %s has unknown frequency %r; skipping", recurring.id, recurring.frequency)
        return OUTCOME_SKIPPED

    due_at = as_utc(recurring.next_generation_at)
    if due_at is None and not force:
        recurring.next_generation_at = next_run
        db.add(recurring)
        db.commit()
        logger.debug("Scheduled recurring task %s for %s", recurring.id, next_run.isoformat())
        return OUTCOME_SCHEDULED

    if not force and due_at > now:
        return OUTCOME_SKIPPED

    task = Task(
        user_id=recurring.created_by,
        recurring_task_id=recurring.id,
        title=recurring.name,
        description=recurring.description,
        client=recurring.client,
        assigned_to=recurring.assigned_to,
        priority=recurring.priority or "medium",
        status="pending",
        due_date=local_today(),
        metadata_json={"source": "recurring"},
    )
    db.add(task)
    db.flush()

    recurring.last_generated_at = now
    recurring.next_generation_at = next_run
    db.add(recurring)
    db.add(
        TaskActivityLog(
            user_id=recurring.created_by,
            action_type="recurring_task_generated",
            action_payload={
                "recurring_task_id": str(recurring.id),
                "task_id": str(task.id),
                "frequency": recurring.frequency,
                "next_generation_at": next_run.isoformat(),
                "forced": force,
            },
            reason="Recurring task instance generated",
        )
    )
    db.commit()
    logger.info("Generated task %s from recurring task %s", task.id, recurring.id)
    return OUTCOME_GENERATED


def run_recurring_generation(
    db: Session,
    *,
    recurring_task_ids: Optional[Iterable[UUID]] = None,
    now: Optional[datetime] = None,
    force: bool = False,
) -> JobRunResult:
    moment = as_utc(now) if now is not None else utc_now()
    ids = list(dict.fromkeys(recurring_task_ids)) if recurring_task_ids is not None else None
    result = JobRunResult()

    for recurring in _active_recurring_tasks(db, ids):
        try:
            outcome = process_recurring_task(db, recurring, now=moment, force=force)
        except Exception:
            db.rollback()
            result.failed += 1
            logger.exception("Recurring generation failed for %s", recurring.id)
            continue
        result.processed += 1
        if outcome == OUTCOME_GENERATED:
            result.generated += 1
        elif outcome == OUTCOME_SCHEDULED:
            result.scheduled += 1
        else:
            result.skipped += 1
    return result
