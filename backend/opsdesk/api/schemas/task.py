"""Schemas for task listing and status changes."""
from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from opsdesk.api.schemas.base import CamelModel

TaskStatusValue = Literal["pending", "in_progress", "completed"]


class TaskSummary(CamelModel):
    id: UUID
    user_id: UUID
    recurring_task_id: Optional[UUID]
    title: str
    description: Optional[str]
    project_tag: Optional[str]
    client: Optional[str]
    assigned_to: Optional[str]
    priority: str
    status: str
    due_date: Optional[date]
    completed_at: Optional[datetime]
    source: str
    created_at: datetime
    updated_at: datetime


class TaskStatusUpdateRequest(CamelModel):
    user_id: UUID
    status: TaskStatusValue


class TaskStatusUpdateResponse(CamelModel):
    id: UUID
    status: str
    completed_at: Optional[datetime]
    request_id: str
