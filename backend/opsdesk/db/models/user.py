"""User ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.dialects.postgresql import UUID

from opsdesk.db.base import Base


class User(Base):
    """Workspace member; rows are created lazily the first time a user id is seen."""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    display_name = Column(String(length=255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
