"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from opsdesk.api.schemas.jobs import JobRunRequest, JobRunResponse
from opsdesk.core.config import settings
from opsdesk.db.deps import get_db
from opsdesk.db.models.recurring_task import RecurringTask
from opsdesk.observability.metrics import log_metric
from opsdesk.observability.tracing import trace
from opsdesk.services.job_runner import run_recurring_generation

router = APIRouter()


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("jobs.config", metadata={"request_id": request_id}, request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "recurring_tasks_interval_minutes": settings.generation_interval_minutes,
            },
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    db: Session = Depends(get_db),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    ids = None
    if payload.recurring_task_id:
        if not db.get(RecurringTask, payload.recurring_task_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recurring task not found")
        ids = [payload.recurring_task_id]

    request_id = getattr(request.state, "request_id", None)
    metadata = {"job": payload.job, "force": payload.force, "request_id": request_id}
    start = perf_counter()
    with trace("jobs.run_now", metadata=metadata, request_id=request_id):
        result = run_recurring_generation(db, recurring_task_ids=ids, force=payload.force)

    latency_ms = (perf_counter() - start) * 1000
    log_metric("jobs.run_now.generated", result.generated, metadata={"job": payload.job})
    log_metric("jobs.run_now.latency_ms", latency_ms, metadata={"job": payload.job})

    return JobRunResponse(
        job=payload.job,
        processed=result.processed,
        generated=result.generated,
        scheduled=result.scheduled,
        skipped=result.skipped,
        failed=result.failed,
        request_id=request_id or "",
    )
