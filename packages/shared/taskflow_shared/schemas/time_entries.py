"""Time tracking schemas: manual entries, timers, aggregate stats."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field, model_validator

from .common import CamelModel, TaskStatus


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class TimeEntryCreate(CamelModel):
    task_id: UUID
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=1)  # seconds
    description: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _end_after_start(self) -> "TimeEntryCreate":
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("endTime must not be before startTime")
        return self


class TimeEntryUpdate(CamelModel):
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=1)
    description: Optional[str] = Field(default=None, max_length=500)


class TimerStart(CamelModel):
    task_id: UUID
    description: Optional[str] = Field(default=None, max_length=500)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class TimeEntryTask(CamelModel):
    id: UUID
    title: str
    status: TaskStatus
    project_id: UUID


class TimeEntryRead(CamelModel):
    id: UUID
    task_id: UUID
    user_id: UUID
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    description: Optional[str] = None
    task: Optional[TimeEntryTask] = None
    created_at: datetime


class TaskTimeTotal(CamelModel):
    task_id: UUID
    title: str
    seconds: int


class DayTimeTotal(CamelModel):
    day: date = Field(alias="date")
    seconds: int


class TimeStats(CamelModel):
    total_seconds: int
    entry_count: int
    by_task: List[TaskTimeTotal] = Field(default_factory=list)
    by_day: List[DayTimeTotal] = Field(default_factory=list)
