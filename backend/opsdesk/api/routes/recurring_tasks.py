"""Recurring task API routes."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy import desc
from sqlalchemy.orm import Session

from opsdesk.api.schemas.recurring_task import (
    RecurrencePreviewResponse,
    RecurringTaskCreate,
    RecurringTaskResponse,
    RecurringTaskUpdate,
)
from opsdesk.db.deps import get_db
from opsdesk.db.models.recurring_task import RecurringTask
from opsdesk.observability.metrics import log_metric
from opsdesk.observability.tracing import trace
from opsdesk.services.recurrence import RecurrenceSpec
from opsdesk.services.recurring_tasks import (
    apply_recurring_task_changes,
    build_recurring_task,
    normalize_day_fields,
    summarize_recurrence,
)
from opsdesk.services.user_service import get_or_create_user

router = APIRouter()

NON_NULLABLE_FIELDS = {"name", "frequency", "priority", "is_active"}


@router.get("/recurring-tasks/preview", response_model=RecurrencePreviewResponse, tags=["recurring-tasks"])
def preview_recurrence(
    http_request: Request,
    frequency: str = Query(..., min_length=1),
    day_of_week: Optional[int] = Query(default=None, alias="dayOfWeek", ge=0, le=6),
    day_of_month: Optional[int] = Query(default=None, alias="dayOfMonth", ge=1, le=31),
) -> RecurrencePreviewResponse:
    """Describe a cadence and its next run from now without saving anything."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "recurring_task.preview",
        metadata={"route": "/recurring-tasks/preview", "frequency": frequency},
        request_id=request_id,
    ):
        day_of_week, day_of_month = normalize_day_fields(frequency, day_of_week, day_of_month)
        spec = RecurrenceSpec(frequency=frequency, day_of_week=day_of_week, day_of_month=day_of_month)
        summary = summarize_recurrence(spec, datetime.now(timezone.utc))

    return RecurrencePreviewResponse(
        frequency=frequency,
        frequency_label=summary.frequency_label,
        next_run=summary.next_run,
        next_run_display=summary.next_run_display,
        request_id=request_id or "",
    )


@router.get("/recurring-tasks", response_model=List[RecurringTaskResponse], tags=["recurring-tasks"])
def list_recurring_tasks(
    http_request: Request,
    created_by: Optional[UUID] = Query(default=None, alias="createdBy"),
    db: Session = Depends(get_db),
) -> List[RecurringTaskResponse]:
    """List recurring task definitions, newest first."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/recurring-tasks",
        "created_by": str(created_by) if created_by else None,
    }

    with trace("recurring_task.list", metadata=metadata, request_id=request_id):
        query = db.query(RecurringTask)
        if created_by:
            query = query.filter(RecurringTask.created_by == created_by)
        records = query.order_by(desc(RecurringTask.created_at)).all()

    log_metric("recurring_task.list.count", len(records))
    now = datetime.now(timezone.utc)
    return [_serialize_recurring_task(record, now) for record in records]


@router.post(
    "/recurring-tasks",
    response_model=RecurringTaskResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["recurring-tasks"],
)
def create_recurring_task(
    payload: RecurringTaskCreate,
    http_request: Request,
    db: Session = Depends(get_db),
) -> RecurringTaskResponse:
    """Create a recurring task; only the day field matching the frequency is kept."""
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="name must not be empty")

    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "recurring_task.create",
        metadata={"route": "/recurring-tasks", "frequency": payload.frequency},
        user_id=str(payload.created_by),
        request_id=request_id,
    ):
        try:
            get_or_create_user(db, payload.created_by)
            recurring = build_recurring_task(payload.model_dump())
            db.add(recurring)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(recurring)

    log_metric("recurring_task.create.success", 1, metadata={"frequency": payload.frequency})
    return _serialize_recurring_task(recurring, datetime.now(timezone.utc))


@router.get("/recurring-tasks/{recurring_task_id}", response_model=RecurringTaskResponse, tags=["recurring-tasks"])
def get_recurring_task(
    recurring_task_id: UUID,
    db: Session = Depends(get_db),
) -> RecurringTaskResponse:
    recurring = _get_or_404(db, recurring_task_id)
    return _serialize_recurring_task(recurring, datetime.now(timezone.utc))


@router.patch("/recurring-tasks/{recurring_task_id}", response_model=RecurringTaskResponse, tags=["recurring-tasks"])
def update_recurring_task(
    recurring_task_id: UUID,
    payload: RecurringTaskUpdate,
    http_request: Request,
    db: Session = Depends(get_db),
) -> RecurringTaskResponse:
    """Partially update a recurring task, including pausing and resuming it."""
    recurring = _get_or_404(db, recurring_task_id)
    changes = payload.model_dump(exclude_unset=True)
    null_fields = sorted(name for name in NON_NULLABLE_FIELDS if name in changes and changes[name] is None)
    if null_fields:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Fields cannot be null: {', '.join(null_fields)}",
        )

    request_id = getattr(http_request.state, "request_id", None)
    changed = False
    with trace(
        "recurring_task.update",
        metadata={
            "route": f"/recurring-tasks/{recurring_task_id}",
            "fields": sorted(changes),
        },
        request_id=request_id,
    ):
        try:
            changed = apply_recurring_task_changes(recurring, changes)
            if changed:
                db.add(recurring)
                db.commit()
        except Exception:
            db.rollback()
            raise
        if changed:
            db.refresh(recurring)

    log_metric("recurring_task.update.changed", 1 if changed else 0, metadata={"id": str(recurring_task_id)})
    return _serialize_recurring_task(recurring, datetime.now(timezone.utc))


@router.delete(
    "/recurring-tasks/{recurring_task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["recurring-tasks"],
)
def delete_recurring_task(
    recurring_task_id: UUID,
    http_request: Request,
    db: Session = Depends(get_db),
) -> Response:
    recurring = _get_or_404(db, recurring_task_id)
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "recurring_task.delete",
        metadata={"route": f"/recurring-tasks/{recurring_task_id}"},
        request_id=request_id,
    ):
        try:
            db.delete(recurring)
            db.commit()
        except Exception:
            db.rollback()
            raise

    log_metric("recurring_task.delete.success", 1)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _get_or_404(db: Session, recurring_task_id: UUID) -> RecurringTask:
    recurring = db.get(RecurringTask, recurring_task_id)
    if not recurring:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recurring task not found")
    return recurring


def _serialize_recurring_task(recurring: RecurringTask, now: datetime) -> RecurringTaskResponse:
    summary = summarize_recurrence(recurring, now)
    return RecurringTaskResponse(
        id=recurring.id,
        name=recurring.name,
        description=recurring.description,
        frequency=recurring.frequency,
        day_of_week=recurring.day_of_week,
        day_of_month=recurring.day_of_month,
        assigned_to=recurring.assigned_to,
        client=recurring.client,
        priority=recurring.priority or "medium",
        is_active=bool(recurring.is_active),
        last_generated_at=recurring.last_generated_at,
        next_generation_at=recurring.next_generation_at,
        created_by=recurring.created_by,
        created_at=recurring.created_at,
        frequency_label=summary.frequency_label,
        next_run=summary.next_run,
        next_run_display=summary.next_run_display,
    )
