"""Notification schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from .common import CamelModel, NotificationType


class NotificationRead(CamelModel):
    id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    read: bool
    task_id: Optional[UUID] = None
    created_at: datetime


class UnreadCount(CamelModel):
    count: int


class MarkAllReadResult(CamelModel):
    updated: int
