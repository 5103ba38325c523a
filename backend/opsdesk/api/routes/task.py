"""Task API routes: listing, status changes and bulk import."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import asc, nulls_last
from sqlalchemy.orm import Session

from opsdesk.api.schemas.bulk_import import (
    BulkImportConfirmRequest,
    BulkImportConfirmResponse,
    BulkImportPreviewResponse,
    BulkImportRequest,
    BulkImportTaskPreview,
)
from opsdesk.api.schemas.task import TaskStatusUpdateRequest, TaskStatusUpdateResponse, TaskSummary
from opsdesk.core.clock import local_today
from opsdesk.db.deps import get_db
from opsdesk.db.models.activity_log import TaskActivityLog
from opsdesk.db.models.task import Task
from opsdesk.observability.metrics import log_metric
from opsdesk.observability.tracing import trace
from opsdesk.services.bulk_import import BulkImportPreview, build_preview
from opsdesk.services.user_service import get_or_create_user

router = APIRouter()

KNOWN_SOURCES = {"bulk_import", "recurring", "manual"}


@router.get("/tasks", response_model=List[TaskSummary], tags=["tasks"])
def list_tasks(
    http_request: Request,
    user_id: UUID = Query(..., alias="userId", description="User ID owning the tasks"),
    status_filter: str = Query("all", alias="status", pattern="^(pending|in_progress|completed|open|all)$"),
    from_: Optional[date] = Query(default=None, alias="from"),
    to: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
) -> List[TaskSummary]:
    """List a user's tasks ordered by due date, optionally filtered by status and due window."""
    request_id = getattr(http_request.state, "request_id", None)

    metadata: Dict[str, Any] = {
        "route": "/tasks",
        "status": status_filter,
        "from": from_.isoformat() if from_ else None,
        "to": to.isoformat() if to else None,
    }

    with trace("task.list", metadata=metadata, user_id=str(user_id), request_id=request_id):
        query = db.query(Task).filter(Task.user_id == user_id)
        if status_filter == "open":
            query = query.filter(Task.status != "completed")
        elif status_filter != "all":
            query = query.filter(Task.status == status_filter)
        if from_:
            query = query.filter(Task.due_date >= from_)
        if to:
            query = query.filter(Task.due_date <= to)

        tasks = query.order_by(nulls_last(asc(Task.due_date)), asc(Task.created_at)).all()

    log_metric("task.list.count", len(tasks), metadata={"user_id": str(user_id), "status": status_filter})
    return [_serialize_task(task) for task in tasks]


@router.patch("/tasks/{task_id}", response_model=TaskStatusUpdateResponse, tags=["tasks"])
def update_task_status(
    task_id: UUID,
    payload: TaskStatusUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskStatusUpdateResponse:
    """Move a task between pending, in progress and completed."""
    task = db.get(Task, task_id)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    if task.user_id != payload.user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task does not belong to user")

    request_id = getattr(http_request.state, "request_id", None)
    previous_status = task.status
    changed = previous_status != payload.status

    try:
        with trace(
            "task.status",
            metadata={"route": f"/tasks/{task_id}", "status": payload.status, "changed": changed},
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            if changed:
                task.status = payload.status
                task.completed_at = datetime.now(timezone.utc) if payload.status == "completed" else None
                db.add(
                    TaskActivityLog(
                        user_id=payload.user_id,
                        action_type="task_status_changed",
                        action_payload={
                            "task_id": str(task.id),
                            "from": previous_status,
                            "to": payload.status,
                            "request_id": request_id,
                        },
                        reason="Task status updated",
                    )
                )
                db.add(task)
                db.commit()
    except Exception:
        db.rollback()
        raise

    log_metric("task.status.changed", 1 if changed else 0, metadata={"task_id": str(task_id)})
    return TaskStatusUpdateResponse(
        id=task.id,
        status=task.status,
        completed_at=task.completed_at,
        request_id=request_id or "",
    )


@router.post("/tasks/bulk-import", response_model=BulkImportPreviewResponse, tags=["tasks"])
def preview_bulk_import(payload: BulkImportRequest, http_request: Request) -> BulkImportPreviewResponse:
    """Parse pasted text and show where each task would land; nothing is saved."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "task.bulk_import.preview",
        metadata={
            "route": "/tasks/bulk-import",
            "text_length": len(payload.raw_text),
            "tasks_per_day": payload.tasks_per_day,
        },
        request_id=request_id,
    ):
        preview = _build_preview(payload)

    log_metric("task.bulk_import.preview.count", preview.total_tasks)
    return BulkImportPreviewResponse(
        preview=[
            BulkImportTaskPreview(
                title=task.title,
                project_tag=task.project_tag,
                due_date=task.due_date,
                original_index=task.original_index,
            )
            for task in preview.tasks
        ],
        total_tasks=preview.total_tasks,
        days_spanned=preview.days_spanned,
        request_id=request_id or "",
    )


@router.post(
    "/tasks/bulk-import/confirm",
    response_model=BulkImportConfirmResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["tasks"],
)
def confirm_bulk_import(
    payload: BulkImportConfirmRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> BulkImportConfirmResponse:
    """Persist the previewed tasks minus the excluded entries."""
    request_id = getattr(http_request.state, "request_id", None)
    preview = _build_preview(payload)
    if not preview.tasks:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="No tasks to import")

    created: List[Task] = []
    try:
        with trace(
            "task.bulk_import.confirm",
            metadata={
                "route": "/tasks/bulk-import/confirm",
                "total_tasks": preview.total_tasks,
                "excluded": len(payload.exclude_indices),
                "days_spanned": preview.days_spanned,
            },
            user_id=str(payload.user_id),
            request_id=request_id,
        ):
            get_or_create_user(db, payload.user_id)
            for parsed in preview.tasks:
                task = Task(
                    user_id=payload.user_id,
                    title=parsed.title,
                    project_tag=parsed.project_tag,
                    due_date=parsed.due_date,
                    status="pending",
                    metadata_json={"source": "bulk_import", "original_index": parsed.original_index},
                )
                db.add(task)
                created.append(task)
            db.flush()
            db.add(
                TaskActivityLog(
                    user_id=payload.user_id,
                    action_type="tasks_bulk_imported",
                    action_payload={
                        "task_ids": [str(task.id) for task in created],
                        "tasks_per_day": payload.tasks_per_day,
                        "excluded_indices": sorted(set(payload.exclude_indices)),
                        "days_spanned": preview.days_spanned,
                        "request_id": request_id,
                    },
                    reason="Bulk import confirmed",
                )
            )
            db.commit()
    except Exception:
        db.rollback()
        raise

    for task in created:
        db.refresh(task)

    log_metric("task.bulk_import.created", len(created), metadata={"user_id": str(payload.user_id)})
    return BulkImportConfirmResponse(
        created=len(created),
        tasks=[_serialize_task(task) for task in created],
        request_id=request_id or "",
    )


def _build_preview(payload: BulkImportRequest) -> BulkImportPreview:
    return build_preview(
        payload.raw_text,
        payload.tasks_per_day,
        exclude_indices=payload.exclude_indices,
        start_date=payload.start_date or local_today(),
    )


def _serialize_task(task: Task) -> TaskSummary:
    metadata = task.metadata_json or {}
    source = metadata.get("source") or "manual"
    if source not in KNOWN_SOURCES:
        source = "manual"

    return TaskSummary(
        id=task.id,
        user_id=task.user_id,
        recurring_task_id=task.recurring_task_id,
        title=task.title,
        description=task.description,
        project_tag=task.project_tag,
        client=task.client,
        assigned_to=task.assigned_to,
        priority=task.priority or "medium",
        status=task.status or "pending",
        due_date=task.due_date,
        completed_at=task.completed_at,
        source=source,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )
