"""Recurring task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from opsdesk.db.base import Base


class RecurringTask(Base):
    """Configuration from which the generator materializes task instances."""

    __tablename__ = "recurring_tasks"
    __table_args__ = (
        Index("ix_recurring_tasks_created_by", "created_by"),
        Index("ix_recurring_tasks_is_active", "is_active"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(length=255), nullable=False)
    description = Column(Text, nullable=True)
    frequency = Column(String(length=50), nullable=False)
    day_of_week = Column(Integer, nullable=True)  # 0-6, Sunday first
    day_of_month = Column(Integer, nullable=True)  # 1-31
    assigned_to = Column(String(length=255), nullable=True)
    client = Column(String(length=255), nullable=True)
    priority = Column(String(length=20), nullable=False, server_default=sa_text("'medium'"))
    is_active = Column(Boolean, nullable=False, server_default=sa_text("true"))
    last_generated_at = Column(DateTime(timezone=True), nullable=True)
    next_generation_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
