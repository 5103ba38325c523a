"""Task ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, String, Text, func, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from opsdesk.db.base import Base
from opsdesk.db.types import JSONBCompat


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_id", "user_id"),
        Index("ix_tasks_recurring_task_id", "recurring_task_id"),
        Index("ix_tasks_due_date", "due_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recurring_task_id = Column(
        UUID(as_uuid=True),
        ForeignKey("recurring_tasks.id", ondelete="SET NULL"),
        nullable=True,
    )
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    project_tag = Column(String(length=255), nullable=True)
    client = Column(String(length=255), nullable=True)
    assigned_to = Column(String(length=255), nullable=True)
    priority = Column(String(length=20), nullable=False, server_default=sa_text("'medium'"))
    status = Column(String(length=30), nullable=False, server_default=sa_text("'pending'"))
    due_date = Column(Date, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    # Column named "metadata" but attribute renamed to avoid Base.metadata collisions.
    metadata_json = Column("metadata", JSONBCompat, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
