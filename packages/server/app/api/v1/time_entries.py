"""
Time entry endpoints: manual entries, timer start/stop, stats.

Entries are personal. Another principal's entry answers 404, and time can
only be logged against tasks the principal can see.
"""

from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, get_principal
from app.core.database import get_session
from app.services.time_entries import (
    active_entry,
    create_entry,
    delete_entry,
    enrich_entries,
    enrich_entry,
    entry_filters,
    entry_query,
    get_entry,
    list_entries,
    start_timer,
    stop_timer,
    time_stats,
    update_entry,
)
from taskflow_shared.schemas.time_entries import (
    TimeEntryCreate,
    TimeEntryRead,
    TimeEntryUpdate,
    TimerStart,
    TimeStats,
)

router = APIRouter()


@router.get("", response_model=List[TimeEntryRead])
async def list_entries_endpoint(
    task_id: Optional[str] = Query(None, alias="taskId"),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """The principal's entries, most recent start first."""
    filters = entry_filters(task_id=task_id, date_from=date_from, date_to=date_to)
    entries = await list_entries(session, entry_query(principal, filters))
    return await enrich_entries(session, entries)


@router.get("/active", response_model=Optional[TimeEntryRead])
async def active_entry_endpoint(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """The running timer, or null."""
    entry = await active_entry(session, principal)
    if entry is None:
        return None
    return await enrich_entry(session, entry)


@router.get("/stats", response_model=TimeStats)
async def stats_endpoint(
    task_id: Optional[str] = Query(None, alias="taskId"),
    project_id: Optional[str] = Query(None, alias="projectId"),
    date_from: Optional[str] = Query(None, alias="dateFrom"),
    date_to: Optional[str] = Query(None, alias="dateTo"),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """Totals per task and per day over completed entries."""
    filters = entry_filters(
        task_id=task_id, project_id=project_id, date_from=date_from, date_to=date_to
    )
    return await time_stats(session, principal, filters)


@router.post("", response_model=TimeEntryRead, status_code=201)
async def create_entry_endpoint(
    entry_in: TimeEntryCreate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """Log time manually. Duration is derived from the range when omitted."""
    entry = await create_entry(session, principal, entry_in)
    await session.commit()
    return await enrich_entry(session, entry)


@router.post("/start", response_model=TimeEntryRead, status_code=201)
async def start_timer_endpoint(
    body: TimerStart,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    entry = await start_timer(session, principal, body)
    await session.commit()
    return await enrich_entry(session, entry)


@router.post("/{entry_id}/stop", response_model=TimeEntryRead)
async def stop_timer_endpoint(
    entry_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    entry = await stop_timer(session, principal, entry_id)
    await session.commit()
    return await enrich_entry(session, entry)


@router.get("/{entry_id}", response_model=TimeEntryRead)
async def get_entry_endpoint(
    entry_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    entry = await get_entry(session, entry_id, principal)
    return await enrich_entry(session, entry)


@router.put("/{entry_id}", response_model=TimeEntryRead)
async def update_entry_endpoint(
    entry_id: uuid.UUID,
    entry_in: TimeEntryUpdate,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    entry = await update_entry(session, principal, entry_id, entry_in)
    await session.commit()
    return await enrich_entry(session, entry)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_entry_endpoint(
    entry_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    await delete_entry(session, principal, entry_id)
    await session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
