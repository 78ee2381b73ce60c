"""
Notification service: emission from task/project events, read-state changes.

Notifications belong to a principal, not a project. They are created as a side
effect of other writes in the same session, so they commit or roll back with
the change that caused them.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Principal
from app.core.filters import parse_bool
from app.core.pagination import OrderingKey
from app.core.scope import resolve_scope, scoped_get, scoped_select
from app.models.notification import Notification
from app.models.project import Project
from app.models.task import Task
from taskflow_shared.schemas.common import NotificationType

log = structlog.get_logger()

NOTIFICATION_KEY = OrderingKey(Notification.created_at, Notification.id)


# ---------------------------------------------------------------------------
# Emission
# ---------------------------------------------------------------------------

def notify(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    type: NotificationType,
    title: str,
    message: str,
    task_id: Optional[uuid.UUID] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
        task_id=task_id,
    )
    session.add(notification)
    log.info("notification.created", user_id=str(user_id), type=type.value)
    return notification


def notify_task_assigned(
    session: AsyncSession, task: Task, actor_id: uuid.UUID
) -> Optional[Notification]:
    """Tell the assignee about a new assignment, unless they assigned themselves."""
    if task.assignee_id is None or task.assignee_id == actor_id:
        return None
    return notify(
        session,
        user_id=task.assignee_id,
        type=NotificationType.TASK_ASSIGNED,
        title="Task assigned",
        message=f'You have been assigned to "{task.title}"',
        task_id=task.id,
    )


def notify_status_changed(
    session: AsyncSession, task: Task, actor_id: uuid.UUID
) -> Optional[Notification]:
    if task.assignee_id is None or task.assignee_id == actor_id:
        return None
    return notify(
        session,
        user_id=task.assignee_id,
        type=NotificationType.TASK_STATUS_CHANGED,
        title="Task status changed",
        message=f'"{task.title}" moved to {task.status}',
        task_id=task.id,
    )


def notify_project_invite(
    session: AsyncSession, project: Project, user_id: uuid.UUID, role: str
) -> Notification:
    return notify(
        session,
        user_id=user_id,
        type=NotificationType.PROJECT_INVITE,
        title="Added to project",
        message=f'You were added to "{project.name}" as {role}',
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def notification_query(principal: Principal, unread_only: Optional[str] = None):
    stmt = scoped_select(principal, Notification)
    if parse_bool(unread_only):
        stmt = stmt.where(Notification.read == False)  # noqa: E712
    return stmt


async def unread_count(session: AsyncSession, principal: Principal) -> int:
    stmt = select(func.count()).select_from(Notification).where(
        resolve_scope(principal, Notification),
        Notification.read == False,  # noqa: E712
    )
    return (await session.execute(stmt)).scalar_one()


async def mark_read(
    session: AsyncSession, notification_id: uuid.UUID, principal: Principal
) -> Notification:
    notification = await scoped_get(
        session, Notification, notification_id, principal, detail="Notification not found"
    )
    notification.read = True
    session.add(notification)
    await session.flush()
    return notification


async def mark_all_read(session: AsyncSession, principal: Principal) -> int:
    result = await session.execute(
        update(Notification)
        .where(resolve_scope(principal, Notification), Notification.read == False)  # noqa: E712
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    await session.flush()
    log.info("notification.read_all", updated=result.rowcount)
    return result.rowcount
