"""Notification endpoints. Notifications are personal to the principal."""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, get_principal
from app.core.database import get_session
from app.core.pagination import NOTIFICATION_LIMITS, PageRequest, page_request, paginate
from app.services.notifications import (
    NOTIFICATION_KEY,
    mark_all_read,
    mark_read,
    notification_query,
    unread_count,
)
from taskflow_shared.schemas.notifications import (
    MarkAllReadResult,
    NotificationRead,
    UnreadCount,
)

router = APIRouter()


@router.get("", response_model=None)
async def list_notifications_endpoint(
    unread_only: Optional[str] = Query(None, alias="unreadOnly"),
    page_req: PageRequest = Depends(page_request(NOTIFICATION_LIMITS)),
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """List the principal's notifications, newest first."""
    stmt = notification_query(principal, unread_only)
    page = await paginate(session, stmt, page_req, key=NOTIFICATION_KEY)
    items = [NotificationRead.model_validate(n) for n in page.items]
    return page.with_items(items).render(NotificationRead)


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count_endpoint(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    return UnreadCount(count=await unread_count(session, principal))


@router.patch("/read-all", response_model=MarkAllReadResult)
async def mark_all_read_endpoint(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    updated = await mark_all_read(session, principal)
    await session.commit()
    return MarkAllReadResult(updated=updated)


@router.patch("/{notification_id}/read", response_model=NotificationRead)
async def mark_read_endpoint(
    notification_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    notification = await mark_read(session, notification_id, principal)
    await session.commit()
    return NotificationRead.model_validate(notification)
