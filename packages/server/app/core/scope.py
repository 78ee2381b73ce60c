"""
Access scope: which rows a principal may see, and what they may do there.

Visibility is a query predicate, not a post-filter. Project-bound resources
are visible through a ``project_members`` row; personal resources through
``user_id``. The predicate is applied before any caller filter so no filter
can widen it.

Lookups go through ``scoped_get`` only. A row outside the principal's scope
raises ``NotFound`` exactly like a missing row, so existence never leaks.
``Forbidden`` is reserved for members whose role lacks a capability.
"""

from __future__ import annotations

import uuid
from typing import Any, Callable, Optional, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select
from sqlmodel import select

from app.core.auth import Principal
from app.core.errors import Forbidden, NotFound
from app.core.roles import Operation, can_modify, can_perform
from app.models.activity_log import ActivityLog
from app.models.notification import Notification
from app.models.project import Project, ProjectMember
from app.models.task import Task
from app.models.time_entry import TimeEntry
from taskflow_shared.schemas.common import ProjectRole

M = TypeVar("M")


def member_project_ids(user_id: uuid.UUID) -> Select:
    """Subquery of the project ids ``user_id`` is a member of."""
    return select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)


def _task_ids_in_scope(user_id: uuid.UUID) -> Select:
    return select(Task.id).where(Task.project_id.in_(member_project_ids(user_id)))


_SCOPES: dict[type, Callable[[uuid.UUID], Any]] = {
    Project: lambda uid: Project.id.in_(member_project_ids(uid)),
    Task: lambda uid: Task.project_id.in_(member_project_ids(uid)),
    ActivityLog: lambda uid: ActivityLog.task_id.in_(_task_ids_in_scope(uid)),
    Notification: lambda uid: Notification.user_id == uid,
    TimeEntry: lambda uid: TimeEntry.user_id == uid,
}


def resolve_scope(principal: Principal, model: type):
    """Visibility predicate for ``model`` rows as seen by ``principal``."""
    try:
        build = _SCOPES[model]
    except KeyError:
        raise TypeError(f"No access scope registered for {model.__name__}") from None
    return build(principal.id)


def scoped_select(principal: Principal, model: Type[M]) -> Select:
    """``SELECT model`` already restricted to the principal's scope."""
    return select(model).where(resolve_scope(principal, model))


async def scoped_get(
    session: AsyncSession,
    model: Type[M],
    row_id: uuid.UUID,
    principal: Principal,
    *,
    detail: Optional[str] = None,
) -> M:
    """Fetch one row inside the principal's scope or raise NotFound."""
    stmt = scoped_select(principal, model).where(model.id == row_id)
    row = (await session.execute(stmt)).scalars().first()
    if row is None:
        raise NotFound(detail or f"{model.__name__} not found")
    return row


# ---------------------------------------------------------------------------
# Membership and capability checks
# ---------------------------------------------------------------------------

async def get_membership(
    session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID
) -> Optional[ProjectMember]:
    return await session.get(ProjectMember, (project_id, user_id))


async def require_membership(
    session: AsyncSession, project_id: uuid.UUID, principal: Principal
) -> ProjectMember:
    """Membership for a project the principal can see.

    Callers reach this after a scoped lookup, so a missing row here means the
    project is not visible and is reported as NotFound.
    """
    membership = await get_membership(session, project_id, principal.id)
    if membership is None:
        raise NotFound("Project not found")
    return membership


def authorize(role: str | ProjectRole, operation: Operation) -> None:
    if not can_perform(role, operation):
        raise Forbidden()


def authorize_modify(
    role: str | ProjectRole,
    action: tuple[Operation, Operation],
    *,
    is_creator: bool,
) -> None:
    if not can_modify(role, action, is_creator=is_creator):
        raise Forbidden()
