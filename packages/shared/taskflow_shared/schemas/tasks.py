"""Task-related Pydantic schemas for shared use across server and frontend codegen."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from .common import (
    ActivityAction,
    CamelModel,
    ProjectSummary,
    TaskPriority,
    TaskStatus,
    UserSummary,
)


# ---------------------------------------------------------------------------
# Task CRUD
# ---------------------------------------------------------------------------

class TaskBase(CamelModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None


class TaskCreate(TaskBase):
    project_id: UUID
    assignee_id: Optional[UUID] = None


class TaskUpdate(CamelModel):
    """Partial update. The owning project cannot be changed."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    assignee_id: Optional[UUID] = None


class TaskRead(CamelModel):
    id: UUID
    project_id: UUID
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    assignee_id: Optional[UUID] = None
    creator_id: UUID
    project: Optional[ProjectSummary] = None
    creator: Optional[UserSummary] = None
    assignee: Optional[UserSummary] = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Bulk status
# ---------------------------------------------------------------------------

class BulkStatusUpdate(CamelModel):
    """Request body for PATCH /tasks/bulk-status."""
    task_ids: List[UUID] = Field(min_length=1, max_length=100)
    status: TaskStatus


class BulkStatusResult(CamelModel):
    updated: int
    skipped: int


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------

class ActivityLogRead(CamelModel):
    id: UUID
    task_id: UUID
    user_id: UUID
    action: ActivityAction
    details: dict = Field(default_factory=dict)
    created_at: datetime
