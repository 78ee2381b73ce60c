from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from .common import CamelModel, ProjectRole


class ProjectBase(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)


class ProjectCreate(ProjectBase):
    pass


class ProjectUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)


class ProjectRead(ProjectBase):
    id: UUID
    owner_id: UUID
    role: Optional[ProjectRole] = None  # the requesting principal's role
    task_count: int = 0
    member_count: int = 0
    created_at: datetime
    updated_at: datetime


class ProjectMemberAdd(CamelModel):
    user_id: UUID
    role: ProjectRole = ProjectRole.MEMBER


class ProjectMemberUpdate(CamelModel):
    role: ProjectRole


class ProjectMemberRead(CamelModel):
    user_id: UUID
    email: str
    name: str
    role: ProjectRole
    joined_at: datetime


def validate_member_role(role: ProjectRole) -> tuple[bool, str]:
    """Validate a role assigned through the membership endpoints.

    Ownership is fixed at project creation, so OWNER can never be granted
    or assigned afterwards.

    Returns (is_valid, error_message).
    """
    if role == ProjectRole.OWNER:
        return False, "The OWNER role is assigned at project creation and cannot be granted"
    return True, ""
