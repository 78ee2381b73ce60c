"""Project and membership models."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin, utcnow


class Project(UUIDMixin, TimestampMixin, SQLModel, table=True):
    __tablename__ = "projects"

    name: str = Field(nullable=False)
    description: Optional[str] = None
    owner_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)


class ProjectMember(SQLModel, table=True):
    """One row per (project, principal); the composite key forbids duplicates."""

    __tablename__ = "project_members"

    project_id: uuid.UUID = Field(
        foreign_key="projects.id", primary_key=True, ondelete="CASCADE"
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", primary_key=True, index=True)
    role: str = Field(nullable=False, default="MEMBER")  # OWNER | ADMIN | MEMBER | VIEWER
    joined_at: datetime = Field(
        default_factory=utcnow,
        nullable=False,
        sa_type=sa.DateTime(timezone=True),
    )
