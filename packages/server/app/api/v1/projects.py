"""
Project endpoints: list, CRUD, membership.

Projects are visible through membership only. The creator becomes OWNER;
OWNER and ADMIN manage members, and nobody can grant, change or remove the
OWNER role through these endpoints.
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, get_principal
from app.core.database import get_session
from app.core.pagination import PROJECT_LIMITS, PageRequest, page_request, paginate
from app.services.projects import (
    PROJECT_KEY,
    add_member,
    create_project,
    delete_project,
    enrich_projects,
    get_project,
    list_members,
    member_read,
    project_query,
    remove_member,
    update_member,
    update_project,
)
from taskflow_shared.schemas.projects import (
    ProjectCreate,
    ProjectMemberAdd,
    ProjectMemberRead,
    ProjectMemberUpdate,
    ProjectRead,
    ProjectUpdate,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# Project CRUD
# ---------------------------------------------------------------------------


@router.get("", response_model=None)
async def list_projects_endpoint(
    page_req: PageRequest = Depends(page_request(PROJECT_LIMITS)),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """List projects the principal is a member of."""
    page = await paginate(session, project_query(principal), page_req, key=PROJECT_KEY)
    items = await enrich_projects(session, principal, page.items)
    return page.with_items(items).render(ProjectRead)


@router.post("", response_model=ProjectRead, status_code=201)
async def create_project_endpoint(
    project_in: ProjectCreate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    project = await create_project(session, principal, project_in)
    await session.commit()
    return (await enrich_projects(session, principal, [project]))[0]


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project_endpoint(
    project_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    project = await get_project(session, project_id, principal)
    return (await enrich_projects(session, principal, [project]))[0]


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project_endpoint(
    project_id: uuid.UUID,
    project_in: ProjectUpdate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    project = await update_project(session, principal, project_id, project_in)
    await session.commit()
    return (await enrich_projects(session, principal, [project]))[0]


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project_endpoint(
    project_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """Delete a project with its tasks and memberships."""
    await delete_project(session, principal, project_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


@router.get("/{project_id}/members", response_model=List[ProjectMemberRead])
async def list_members_endpoint(
    project_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    return await list_members(session, principal, project_id)


@router.post("/{project_id}/members", response_model=ProjectMemberRead, status_code=201)
async def add_member_endpoint(
    project_id: uuid.UUID,
    body: ProjectMemberAdd,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """Add a user to the project. Notifies the new member."""
    member = await add_member(session, principal, project_id, body)
    await session.commit()
    return await member_read(session, member)


@router.patch("/{project_id}/members/{user_id}", response_model=ProjectMemberRead)
async def update_member_endpoint(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    body: ProjectMemberUpdate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    member = await update_member(session, principal, project_id, user_id, body)
    await session.commit()
    return await member_read(session, member)


@router.delete("/{project_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member_endpoint(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    await remove_member(session, principal, project_id, user_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
