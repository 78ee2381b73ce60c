"""
Project service layer: scoped project queries, CRUD, membership management.

Creating a project makes the creator its OWNER through a membership row; the
OWNER role cannot be granted, changed or removed afterwards.
"""

from __future__ import annotations

import uuid
from typing import Sequence

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Principal
from app.core.errors import Conflict, NotFound, UnprocessableEntity
from app.core.pagination import OrderingKey
from app.core.roles import DELETE, UPDATE, Operation, role_rank
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
from app.services.notifications import notify_project_invite
from taskflow_shared.schemas.common import ProjectRole
from taskflow_shared.schemas.projects import (
    ProjectCreate,
    ProjectMemberAdd,
    ProjectMemberRead,
    ProjectMemberUpdate,
    ProjectRead,
    ProjectUpdate,
    validate_member_role,
)

log = structlog.get_logger()

PROJECT_KEY = OrderingKey(Project.created_at, Project.id)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def project_query(principal: Principal):
    return scoped_select(principal, Project)


async def get_project(
    session: AsyncSession, project_id: uuid.UUID, principal: Principal
) -> Project:
    return await scoped_get(session, Project, project_id, principal, detail="Project not found")


async def _counts(
    session: AsyncSession, column, project_ids: list[uuid.UUID]
) -> dict[uuid.UUID, int]:
    result = await session.execute(
        select(column, func.count().label("cnt"))
        .where(column.in_(project_ids))
        .group_by(column)
    )
    return {row[0]: row[1] for row in result.all()}


async def enrich_projects(
    session: AsyncSession, principal: Principal, projects: Sequence[Project]
) -> list[ProjectRead]:
    """Attach task/member counts and the requester's role to each project."""
    if not projects:
        return []
    project_ids = [p.id for p in projects]

    task_counts = await _counts(session, Task.project_id, project_ids)
    member_counts = await _counts(session, ProjectMember.project_id, project_ids)
    roles_result = await session.execute(
        select(ProjectMember.project_id, ProjectMember.role).where(
            ProjectMember.user_id == principal.id,
            ProjectMember.project_id.in_(project_ids),
        )
    )
    roles = {row[0]: row[1] for row in roles_result.all()}

    return [
        ProjectRead(
            id=p.id,
            name=p.name,
            description=p.description,
            owner_id=p.owner_id,
            role=roles.get(p.id),
            task_count=task_counts.get(p.id, 0),
            member_count=member_counts.get(p.id, 0),
            created_at=p.created_at,
            updated_at=p.updated_at,
        )
        for p in projects
    ]


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


async def create_project(
    session: AsyncSession, principal: Principal, project_in: ProjectCreate
) -> Project:
    project = Project(
        name=project_in.name,
        description=project_in.description,
        owner_id=principal.id,
    )
    session.add(project)
    await session.flush()

    session.add(
        ProjectMember(project_id=project.id, user_id=principal.id, role=ProjectRole.OWNER.value)
    )
    await session.flush()
    log.info("project.created", project_id=str(project.id))
    return project


async def update_project(
    session: AsyncSession,
    principal: Principal,
    project_id: uuid.UUID,
    project_in: ProjectUpdate,
) -> Project:
    project = await get_project(session, project_id, principal)
    membership = await require_membership(session, project.id, principal)
    authorize_modify(membership.role, UPDATE, is_creator=project.owner_id == principal.id)

    data = project_in.model_dump(exclude_unset=True)
    if data.get("name", "") is None:
        data.pop("name")
    for key, value in data.items():
        setattr(project, key, value)
    if data:
        project.updated_at = utcnow()
    session.add(project)
    await session.flush()
    return project


async def delete_project(
    session: AsyncSession, principal: Principal, project_id: uuid.UUID
) -> None:
    project = await get_project(session, project_id, principal)
    membership = await require_membership(session, project.id, principal)
    authorize_modify(membership.role, DELETE, is_creator=project.owner_id == principal.id)

    await session.delete(project)
    await session.flush()
    log.info("project.deleted", project_id=str(project_id))


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


async def list_members(
    session: AsyncSession, principal: Principal, project_id: uuid.UUID
) -> list[ProjectMemberRead]:
    """Members in display order: most privileged first, then by join time."""
    project = await get_project(session, project_id, principal)
    result = await session.execute(
        select(ProjectMember, User)
        .join(User, User.id == ProjectMember.user_id)
        .where(ProjectMember.project_id == project.id)
        .order_by(ProjectMember.joined_at)
    )
    rows = sorted(result.all(), key=lambda r: role_rank(r[0].role))
    return [
        ProjectMemberRead(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=member.role,
            joined_at=member.joined_at,
        )
        for member, user in rows
    ]


async def _managed_project(
    session: AsyncSession, principal: Principal, project_id: uuid.UUID
) -> Project:
    project = await get_project(session, project_id, principal)
    membership = await require_membership(session, project.id, principal)
    authorize(membership.role, Operation.MANAGE_MEMBERS)
    return project


def _check_role(role: ProjectRole) -> None:
    ok, error = validate_member_role(role)
    if not ok:
        raise UnprocessableEntity(error)


async def _target_membership(
    session: AsyncSession, project_id: uuid.UUID, user_id: uuid.UUID
) -> ProjectMember:
    member = await get_membership(session, project_id, user_id)
    if member is None:
        raise NotFound("Member not found")
    if member.role == ProjectRole.OWNER.value:
        raise UnprocessableEntity("The project owner's membership cannot be changed")
    return member


async def add_member(
    session: AsyncSession,
    principal: Principal,
    project_id: uuid.UUID,
    body: ProjectMemberAdd,
) -> ProjectMember:
    project = await _managed_project(session, principal, project_id)
    _check_role(body.role)

    if await session.get(User, body.user_id) is None:
        raise NotFound("User not found")
    if await get_membership(session, project.id, body.user_id) is not None:
        raise Conflict("User is already a member of this project")

    member = ProjectMember(project_id=project.id, user_id=body.user_id, role=body.role.value)
    session.add(member)
    notify_project_invite(session, project, body.user_id, body.role.value)
    await session.flush()
    log.info("project.member_added", project_id=str(project.id), user_id=str(body.user_id))
    return member


async def update_member(
    session: AsyncSession,
    principal: Principal,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    body: ProjectMemberUpdate,
) -> ProjectMember:
    project = await _managed_project(session, principal, project_id)
    _check_role(body.role)
    member = await _target_membership(session, project.id, user_id)

    member.role = body.role.value
    session.add(member)
    await session.flush()
    log.info("project.member_updated", project_id=str(project.id), user_id=str(user_id))
    return member


async def remove_member(
    session: AsyncSession,
    principal: Principal,
    project_id: uuid.UUID,
    user_id: uuid.UUID,
) -> None:
    project = await _managed_project(session, principal, project_id)
    member = await _target_membership(session, project.id, user_id)

    await session.delete(member)
    await session.flush()
    log.info("project.member_removed", project_id=str(project.id), user_id=str(user_id))


async def member_read(session: AsyncSession, member: ProjectMember) -> ProjectMemberRead:
    user = await session.get(User, member.user_id)
    return ProjectMemberRead(
        user_id=member.user_id,
        email=user.email,
        name=user.name,
        role=member.role,
        joined_at=member.joined_at,
    )
