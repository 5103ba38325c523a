"""Schemas for job operations endpoints."""
from __future__ import annotations

from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["recurring_tasks"] = "recurring_tasks"
    recurring_task_id: Optional[UUID] = None
    force: bool = False


class JobRunResponse(BaseModel):
    job: str
    processed: int
    generated: int
    scheduled: int
    skipped: int
    failed: int
    request_id: str
