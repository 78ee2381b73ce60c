"""Notification model (owned by a principal, not a project)."""

from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Notification(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "notifications"
    __table_args__ = (
        sa.Index("ix_notifications_user_created", "user_id", "created_at", "id"),
    )

    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    type: str = Field(nullable=False)  # TASK_ASSIGNED | TASK_STATUS_CHANGED | PROJECT_INVITE
    title: str = Field(nullable=False)
    message: str = Field(nullable=False)
    read: bool = Field(default=False, nullable=False)
    task_id: Optional[uuid.UUID] = Field(default=None, foreign_key="tasks.id", ondelete="SET NULL")
