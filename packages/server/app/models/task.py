"""Task model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = (
        sa.Index("ix_tasks_project_created", "project_id", "created_at", "id"),
    )

    project_id: uuid.UUID = Field(
        foreign_key="projects.id", nullable=False, index=True, ondelete="CASCADE"
    )
    title: str = Field(nullable=False)
    description: Optional[str] = None
    status: str = Field(nullable=False, default="TODO")  # TODO | IN_PROGRESS | IN_REVIEW | DONE
    priority: str = Field(nullable=False, default="MEDIUM")  # LOW | MEDIUM | HIGH | URGENT
    assignee_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)
    creator_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    due_date: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
