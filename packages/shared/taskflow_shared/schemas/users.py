"""User schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import Field

from .common import CamelModel, ProjectRole


class MembershipRead(CamelModel):
    project_id: UUID
    role: ProjectRole


class UserRead(CamelModel):
    id: UUID
    email: str
    name: str
    created_at: datetime
    memberships: List[MembershipRead] = Field(default_factory=list)
