"""Activity log: an append-only history of changes to a task."""

from __future__ import annotations

import uuid
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal
from app.core.pagination import OrderingKey
from app.core.scope import scoped_select
from app.models.activity_log import ActivityLog
from app.models.task import Task
from taskflow_shared.schemas.common import ActivityAction

ACTIVITY_KEY = OrderingKey(ActivityLog.created_at, ActivityLog.id)

# Fields whose change gets its own action instead of a generic UPDATED entry
_FIELD_ACTIONS = {
    "status": ActivityAction.STATUS_CHANGED,
    "priority": ActivityAction.PRIORITY_CHANGED,
    "assignee_id": ActivityAction.ASSIGNED,
}


def _jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


def record(
    session: AsyncSession,
    task_id: uuid.UUID,
    user_id: uuid.UUID,
    action: ActivityAction,
    details: Optional[dict] = None,
) -> ActivityLog:
    entry = ActivityLog(
        task_id=task_id,
        user_id=user_id,
        action=action.value,
        details=details or {},
    )
    session.add(entry)
    return entry


def record_created(session: AsyncSession, task: Task, user_id: uuid.UUID) -> ActivityLog:
    return record(session, task.id, user_id, ActivityAction.CREATED, {"title": task.title})


def record_changes(
    session: AsyncSession,
    task: Task,
    user_id: uuid.UUID,
    changes: dict[str, tuple[Any, Any]],
) -> list[ActivityLog]:
    """One entry per tracked field change, plus one UPDATED entry for the rest.

    ``changes`` maps field name to (old, new) and only holds fields whose
    value actually changed.
    """
    entries = []
    generic = {}
    for field, (old, new) in changes.items():
        action = _FIELD_ACTIONS.get(field)
        if action is None:
            generic[field] = _jsonable(new)
            continue
        entries.append(
            record(session, task.id, user_id, action, {"from": _jsonable(old), "to": _jsonable(new)})
        )
    if generic:
        entries.append(record(session, task.id, user_id, ActivityAction.UPDATED, generic))
    return entries


def activity_query(principal: Principal, task_id: uuid.UUID):
    """Scoped activity for one task; callers confirm the task is visible first."""
    return scoped_select(principal, ActivityLog).where(ActivityLog.task_id == task_id)
