"""Schemas for the bulk task import workflow."""
from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import Field, field_validator

from opsdesk.api.schemas.base import CamelModel
from opsdesk.api.schemas.task import TaskSummary
from opsdesk.core.config import settings


class BulkImportRequest(CamelModel):
    raw_text: str = Field(..., max_length=200_000)
    tasks_per_day: int = Field(3, ge=1)
    exclude_indices: List[int] = Field(default_factory=list)
    start_date: Optional[date] = None

    @field_validator("tasks_per_day")
    @classmethod
    def _cap_tasks_per_day(cls, value: int) -> int:
        limit = settings.bulk_import_max_tasks_per_day
        if value > limit:
            raise ValueError(f"tasksPerDay must be at most {limit}")
        return value


class BulkImportConfirmRequest(BulkImportRequest):
    user_id: UUID


class BulkImportTaskPreview(CamelModel):
    title: str
    project_tag: Optional[str]
    due_date: date
    original_index: int


class BulkImportPreviewResponse(CamelModel):
    preview: List[BulkImportTaskPreview]
    total_tasks: int
    days_spanned: int
    request_id: str


class BulkImportConfirmResponse(CamelModel):
    created: int
    tasks: List[TaskSummary]
    request_id: str
