"""
Task service layer: scoped queries, CRUD, bulk status, enrichment.

Handles:
- Task list statement (scope first, then the caller's filters)
- Create/update/delete gated by the role matrix
- Activity log entries and assignment/status notifications on change
- Batched enrichment of tasks with project and user summaries
"""

from __future__ import annotations

import uuid
from typing import Any, Optional, Sequence

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Principal
from app.core.errors import UnprocessableEntity
from app.core.filters import (
    combine,
    parse_datetime,
    parse_enum,
    parse_uuid,
    ranked,
    resolve_sort,
)
from app.core.pagination import OrderingKey
from app.core.roles import UPDATE, DELETE, Operation, can_modify
from app.core.scope import (
    authorize,
    authorize_modify,
    get_membership,
    require_membership,
    scoped_get,
    scoped_select,
)
from app.models.base import utcnow
from app.models.project import Project, ProjectMember
from app.models.task import Task
from app.models.user import User
from app.services import activity
from app.services.notifications import notify_status_changed, notify_task_assigned
from taskflow_shared.schemas.common import (
    TASK_PRIORITY_ORDER,
    TASK_STATUS_ORDER,
    ProjectSummary,
    TaskPriority,
    TaskStatus,
    UserSummary,
)
from taskflow_shared.schemas.tasks import (
    BulkStatusResult,
    BulkStatusUpdate,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)

log = structlog.get_logger()

TASK_KEY = OrderingKey(Task.created_at, Task.id)

SORT_FIELDS = {
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
    "dueDate": Task.due_date,
    "title": Task.title,
    "status": ranked(Task.status, TASK_STATUS_ORDER),
    "priority": ranked(Task.priority, TASK_PRIORITY_ORDER),
}

# Columns that cannot be cleared through a partial update
_NOT_NULLABLE = {"title", "status", "priority"}


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def task_query(
    principal: Principal,
    *,
    project_id: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    assignee_id: Optional[str] = None,
    creator_id: Optional[str] = None,
    due_from: Optional[str] = None,
    due_to: Optional[str] = None,
):
    """Scoped task statement with the caller's filters ANDed on.

    Filter values arrive raw; anything that does not parse is not applied.
    """
    project = parse_uuid(project_id)
    status_value = parse_enum(TaskStatus, status)
    priority_value = parse_enum(TaskPriority, priority)
    assignee = parse_uuid(assignee_id)
    creator = parse_uuid(creator_id)
    due_after = parse_datetime(due_from)
    due_before = parse_datetime(due_to)

    clauses = combine([
        Task.project_id == project if project else None,
        Task.status == status_value.value if status_value else None,
        Task.priority == priority_value.value if priority_value else None,
        Task.assignee_id == assignee if assignee else None,
        Task.creator_id == creator if creator else None,
        Task.due_date >= due_after if due_after else None,
        Task.due_date <= due_before if due_before else None,
    ])
    return scoped_select(principal, Task).where(*clauses)


def task_ordering(sort_by: Optional[str], order: Optional[str]) -> list:
    return resolve_sort(
        sort_by, order, SORT_FIELDS, default_field="createdAt", tie_break=Task.id
    )


async def get_task(session: AsyncSession, task_id: uuid.UUID, principal: Principal) -> Task:
    return await scoped_get(session, Task, task_id, principal, detail="Task not found")


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------


async def _users_by_id(session: AsyncSession, ids: set[uuid.UUID]) -> dict[uuid.UUID, User]:
    if not ids:
        return {}
    result = await session.execute(select(User).where(User.id.in_(ids)))
    return {u.id: u for u in result.scalars().all()}


async def _projects_by_id(
    session: AsyncSession, ids: set[uuid.UUID]
) -> dict[uuid.UUID, Project]:
    if not ids:
        return {}
    result = await session.execute(select(Project).where(Project.id.in_(ids)))
    return {p.id: p for p in result.scalars().all()}


def _summary(user: Optional[User]) -> Optional[UserSummary]:
    return UserSummary.model_validate(user) if user else None


async def enrich_tasks(session: AsyncSession, tasks: Sequence[Task]) -> list[TaskRead]:
    """Convert tasks to TaskRead with two lookups for the whole batch."""
    user_ids = {t.creator_id for t in tasks} | {t.assignee_id for t in tasks if t.assignee_id}
    users = await _users_by_id(session, user_ids)
    projects = await _projects_by_id(session, {t.project_id for t in tasks})

    enriched = []
    for task in tasks:
        project = projects.get(task.project_id)
        enriched.append(
            TaskRead(
                id=task.id,
                project_id=task.project_id,
                title=task.title,
                description=task.description,
                status=task.status,
                priority=task.priority,
                due_date=task.due_date,
                assignee_id=task.assignee_id,
                creator_id=task.creator_id,
                project=ProjectSummary.model_validate(project) if project else None,
                creator=_summary(users.get(task.creator_id)),
                assignee=_summary(users.get(task.assignee_id)) if task.assignee_id else None,
                created_at=task.created_at,
                updated_at=task.updated_at,
            )
        )
    return enriched


async def enrich_task(session: AsyncSession, task: Task) -> TaskRead:
    return (await enrich_tasks(session, [task]))[0]


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def _require_assignable(
    session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID
) -> None:
    if await get_membership(session, project_id, user_id) is None:
        raise UnprocessableEntity("Assignee must be a member of the project")


async def create_task(
    session: AsyncSession,
    principal: Principal,
    task_in: TaskCreate,
) -> Task:
    project = await scoped_get(
        session, Project, task_in.project_id, principal, detail="Project not found"
    )
    membership = await require_membership(session, project.id, principal)
    authorize(membership.role, Operation.CREATE_RESOURCE)

    if task_in.assignee_id:
        await _require_assignable(session, project.id, task_in.assignee_id)

    task = Task(
        project_id=project.id,
        title=task_in.title,
        description=task_in.description,
        status=task_in.status.value,
        priority=task_in.priority.value,
        due_date=task_in.due_date,
        assignee_id=task_in.assignee_id,
        creator_id=principal.id,
    )
    session.add(task)
    await session.flush()

    activity.record_created(session, task, principal.id)
    notify_task_assigned(session, task, principal.id)
    await session.flush()

    log.info("task.created", task_id=str(task.id), project_id=str(project.id))
    return task


def _apply(task: Task, data: dict[str, Any]) -> dict[str, tuple[Any, Any]]:
    """Set changed fields on ``task``; return {field: (old, new)} for those that changed."""
    changes = {}
    for key, value in data.items():
        if key in _NOT_NULLABLE and value is None:
            continue
        if hasattr(value, "value"):
            value = value.value
        old = getattr(task, key)
        if old != value:
            setattr(task, key, value)
            changes[key] = (old, value)
    if changes:
        task.updated_at = utcnow()
    return changes


async def update_task(
    session: AsyncSession,
    principal: Principal,
    task_id: uuid.UUID,
    task_in: TaskUpdate,
) -> Task:
    task = await get_task(session, task_id, principal)
    membership = await require_membership(session, task.project_id, principal)
    authorize_modify(membership.role, UPDATE, is_creator=task.creator_id == principal.id)

    data = task_in.model_dump(exclude_unset=True)
    if data.get("assignee_id") is not None:
        await _require_assignable(session, task.project_id, data["assignee_id"])

    changes = _apply(task, data)
    if changes:
        activity.record_changes(session, task, principal.id, changes)
        if "assignee_id" in changes:
            notify_task_assigned(session, task, principal.id)
        if "status" in changes:
            notify_status_changed(session, task, principal.id)
        session.add(task)
        await session.flush()
        log.info("task.updated", task_id=str(task.id), fields=sorted(changes))
    return task


async def delete_task(
    session: AsyncSession,
    principal: Principal,
    task_id: uuid.UUID,
) -> None:
    task = await get_task(session, task_id, principal)
    membership = await require_membership(session, task.project_id, principal)
    authorize_modify(membership.role, DELETE, is_creator=task.creator_id == principal.id)

    await session.delete(task)
    await session.flush()
    log.info("task.deleted", task_id=str(task_id))


async def bulk_update_status(
    session: AsyncSession,
    principal: Principal,
    body: BulkStatusUpdate,
) -> BulkStatusResult:
    """Set one status on many tasks, skipping those the principal cannot update.

    Invisible ids and ids the role does not allow are counted as skipped;
    neither is distinguished from a missing id.
    """
    requested = set(body.task_ids)
    result = await session.execute(
        scoped_select(principal, Task).where(Task.id.in_(requested))
    )
    tasks = list(result.scalars().all())

    roles = {}
    project_ids = {t.project_id for t in tasks}
    if project_ids:
        rows = await session.execute(
            select(ProjectMember).where(
                ProjectMember.user_id == principal.id,
                ProjectMember.project_id.in_(project_ids),
            )
        )
        roles = {m.project_id: m.role for m in rows.scalars().all()}

    updated = 0
    for task in tasks:
        role = roles.get(task.project_id)
        if role is None or not can_modify(role, UPDATE, is_creator=task.creator_id == principal.id):
            continue
        changes = _apply(task, {"status": body.status})
        if changes:
            activity.record_changes(session, task, principal.id, changes)
            notify_status_changed(session, task, principal.id)
            session.add(task)
        updated += 1

    await session.flush()
    skipped = len(requested) - updated
    log.info("task.bulk_status", status=body.status.value, updated=updated, skipped=skipped)
    return BulkStatusResult(updated=updated, skipped=skipped)
