from __future__ import annotations

from enum import Enum
from typing import Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base for wire schemas: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


# Workflow/severity order, used when sorting by status or priority
TASK_STATUS_ORDER: list["TaskStatus"] = [
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.IN_REVIEW,
    TaskStatus.DONE,
]

TASK_PRIORITY_ORDER: list["TaskPriority"] = [
    TaskPriority.LOW,
    TaskPriority.MEDIUM,
    TaskPriority.HIGH,
    TaskPriority.URGENT,
]


class ProjectRole(str, Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


class NotificationType(str, Enum):
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_STATUS_CHANGED = "TASK_STATUS_CHANGED"
    PROJECT_INVITE = "PROJECT_INVITE"


class ActivityAction(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    PRIORITY_CHANGED = "PRIORITY_CHANGED"
    ASSIGNED = "ASSIGNED"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


# ---------------------------------------------------------------------------
# Pagination envelopes
# ---------------------------------------------------------------------------

class OffsetPagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class CursorPagination(CamelModel):
    limit: int
    total: int
    has_more: bool
    next_cursor: Optional[str] = None


class OffsetPage(CamelModel, Generic[T]):
    data: List[T]
    pagination: OffsetPagination


class CursorPage(CamelModel, Generic[T]):
    data: List[T]
    pagination: CursorPagination


class UserSummary(CamelModel):
    id: UUID
    email: str
    name: str


class ProjectSummary(CamelModel):
    id: UUID
    name: str
