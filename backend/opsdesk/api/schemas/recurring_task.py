"""Schemas for recurring task endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import Field

from opsdesk.api.schemas.base import CamelModel

FrequencyValue = Literal["daily", "weekly", "biweekly", "monthly"]
PriorityValue = Literal["low", "medium", "high", "urgent"]


class RecurringTaskCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    frequency: FrequencyValue
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    assigned_to: Optional[str] = Field(default=None, max_length=255)
    client: Optional[str] = Field(default=None, max_length=255)
    priority: PriorityValue = "medium"
    is_active: bool = True
    next_generation_at: Optional[datetime] = None
    created_by: UUID


class RecurringTaskUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    frequency: Optional[FrequencyValue] = None
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    assigned_to: Optional[str] = Field(default=None, max_length=255)
    client: Optional[str] = Field(default=None, max_length=255)
    priority: Optional[PriorityValue] = None
    is_active: Optional[bool] = None
    next_generation_at: Optional[datetime] = None


class RecurringTaskResponse(CamelModel):
    id: UUID
    name: str
    description: Optional[str]
    frequency: str
    day_of_week: Optional[int]
    day_of_month: Optional[int]
    assigned_to: Optional[str]
    client: Optional[str]
    priority: str
    is_active: bool
    last_generated_at: Optional[datetime]
    next_generation_at: Optional[datetime]
    created_by: Optional[UUID]
    created_at: Optional[datetime]
    frequency_label: str
    next_run: str
    next_run_display: str


class RecurrencePreviewResponse(CamelModel):
    frequency: str
    frequency_label: str
    next_run: str
    next_run_display: str
    request_id: str
