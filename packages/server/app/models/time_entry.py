"""Time entry model (owned by a principal)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class TimeEntry(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "time_entries"
    __table_args__ = (
        # at most one running timer per user
        sa.Index(
            "ux_time_entries_active_timer",
            "user_id",
            unique=True,
            postgresql_where=sa.text("end_time IS NULL"),
            sqlite_where=sa.text("end_time IS NULL"),
        ),
    )

    task_id: uuid.UUID = Field(
        foreign_key="tasks.id", nullable=False, index=True, ondelete="CASCADE"
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    start_time: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
    end_time: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
    duration: Optional[int] = None  # seconds; null while the timer runs
    description: Optional[str] = None
