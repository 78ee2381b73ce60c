"""
Task endpoints: list (raw / offset / cursor), CRUD, bulk status, activity.

Every list and lookup is scoped to the projects the principal belongs to; a
task outside that scope answers 404 exactly like a missing one. Writes then
check the principal's role in the task's project and answer 403 if it falls
short.
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, get_principal
from app.core.database import get_session
from app.core.pagination import ACTIVITY_LIMITS, TASK_LIMITS, PageRequest, page_request, paginate
from app.services.activity import ACTIVITY_KEY, activity_query
from app.services.tasks import (
    TASK_KEY,
    bulk_update_status,
    create_task,
    delete_task,
    enrich_task,
    enrich_tasks,
    get_task,
    task_ordering,
    task_query,
    update_task,
)
from taskflow_shared.schemas.tasks import (
    ActivityLogRead,
    BulkStatusResult,
    BulkStatusUpdate,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)

router = APIRouter()


# ---------------------------------------------------------------------------
# List / create
# ---------------------------------------------------------------------------


@router.get("", response_model=None)
async def list_tasks_endpoint(
    project_id: Optional[str] = Query(None, alias="projectId"),
    task_status: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = None,
    assignee_id: Optional[str] = Query(None, alias="assigneeId"),
    creator_id: Optional[str] = Query(None, alias="creatorId"),
    due_from: Optional[str] = Query(None, alias="dueFrom"),
    due_to: Optional[str] = Query(None, alias="dueTo"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    order: Optional[str] = None,
    page_req: PageRequest = Depends(page_request(TASK_LIMITS)),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """List visible tasks.

    No ``page``/``cursor`` returns a bare array; ``page`` returns an offset
    envelope; ``cursor`` (even empty) returns a cursor envelope.
    """
    stmt = task_query(
        principal,
        project_id=project_id,
        status=task_status,
        priority=priority,
        assignee_id=assignee_id,
        creator_id=creator_id,
        due_from=due_from,
        due_to=due_to,
    )
    page = await paginate(
        session, stmt, page_req, key=TASK_KEY, order_by=task_ordering(sort_by, order)
    )
    return page.with_items(await enrich_tasks(session, page.items)).render(TaskRead)


@router.post("", response_model=TaskRead, status_code=201)
async def create_task_endpoint(
    task_in: TaskCreate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """Create a task in a project the principal belongs to."""
    task = await create_task(session, principal, task_in)
    await session.commit()
    return await enrich_task(session, task)


@router.patch("/bulk-status", response_model=BulkStatusResult)
async def bulk_status_endpoint(
    body: BulkStatusUpdate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """Set one status on many tasks. Tasks the principal cannot update are skipped."""
    result = await bulk_update_status(session, principal, body)
    await session.commit()
    return result


# ---------------------------------------------------------------------------
# Single task
# ---------------------------------------------------------------------------


@router.get("/{task_id}", response_model=TaskRead)
async def get_task_endpoint(
    task_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    task = await get_task(session, task_id, principal)
    return await enrich_task(session, task)


@router.put("/{task_id}", response_model=TaskRead)
@router.patch("/{task_id}", response_model=TaskRead)
async def update_task_endpoint(
    task_id: uuid.UUID,
    task_in: TaskUpdate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """Update task fields. Only the fields present in the body change."""
    task = await update_task(session, principal, task_id, task_in)
    await session.commit()
    return await enrich_task(session, task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task_endpoint(
    task_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    await delete_task(session, principal, task_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


@router.get("/{task_id}/activity", response_model=None)
async def task_activity_endpoint(
    task_id: uuid.UUID,
    page_req: PageRequest = Depends(page_request(ACTIVITY_LIMITS)),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """Activity history for one task, newest first."""
    task = await get_task(session, task_id, principal)
    page = await paginate(session, activity_query(principal, task.id), page_req, key=ACTIVITY_KEY)
    items = [ActivityLogRead.model_validate(entry) for entry in page.items]
    return page.with_items(items).render(ActivityLogRead)
