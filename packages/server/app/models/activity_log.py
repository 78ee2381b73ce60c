"""Activity log model (immutable, scoped through the parent task)."""

import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class ActivityLog(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "activity_logs"
    __table_args__ = (
        sa.Index("ix_activity_logs_task_created", "task_id", "created_at", "id"),
    )

    task_id: uuid.UUID = Field(
        foreign_key="tasks.id", nullable=False, index=True, ondelete="CASCADE"
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    action: str = Field(nullable=False)  # CREATED | UPDATED | STATUS_CHANGED | ...
    details: dict = Field(default_factory=dict, sa_type=sa.JSON, nullable=False)
