"""
Time tracking service: manual entries, a single running timer, stats.

Entries are personal: every lookup is scoped to the principal, so another
user's entry is reported as missing. Logging time against a task requires the
task to be visible, i.e. a membership in its project.
"""

from __future__ import annotations

import uuid
from collections import OrderedDict
from datetime import date, datetime, timezone
from typing import Optional, Sequence

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Principal
from app.core.errors import Conflict
from app.core.filters import combine, parse_datetime, parse_uuid
from app.core.scope import resolve_scope, scoped_get, scoped_select
from app.models.base import utcnow
from app.models.task import Task
from app.models.time_entry import TimeEntry
from app.services.tasks import get_task
from taskflow_shared.schemas.time_entries import (
    DayTimeTotal,
    TaskTimeTotal,
    TimeEntryCreate,
    TimeEntryRead,
    TimeEntryTask,
    TimeEntryUpdate,
    TimerStart,
    TimeStats,
)

log = structlog.get_logger()


def duration_seconds(start: datetime, end: datetime) -> int:
    return round((_aware(end) - _aware(start)).total_seconds())


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive values; everything is stored in UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def entry_filters(
    *,
    task_id: Optional[str] = None,
    project_id: Optional[str] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
):
    task = parse_uuid(task_id)
    project = parse_uuid(project_id)
    start_after = parse_datetime(date_from)
    start_before = parse_datetime(date_to)

    return combine([
        TimeEntry.task_id == task if task else None,
        TimeEntry.task_id.in_(select(Task.id).where(Task.project_id == project)) if project else None,
        TimeEntry.start_time >= start_after if start_after else None,
        TimeEntry.start_time <= start_before if start_before else None,
    ])


def entry_query(principal: Principal, filters: list):
    return scoped_select(principal, TimeEntry).where(*filters)


async def list_entries(session: AsyncSession, stmt) -> list[TimeEntry]:
    result = await session.execute(
        stmt.order_by(TimeEntry.start_time.desc(), TimeEntry.id.desc())
    )
    return list(result.scalars().all())


async def get_entry(
    session: AsyncSession, entry_id: uuid.UUID, principal: Principal
) -> TimeEntry:
    return await scoped_get(session, TimeEntry, entry_id, principal, detail="Time entry not found")


async def active_entry(session: AsyncSession, principal: Principal) -> Optional[TimeEntry]:
    result = await session.execute(
        scoped_select(principal, TimeEntry).where(TimeEntry.end_time.is_(None))
    )
    return result.scalars().first()


async def enrich_entries(
    session: AsyncSession, entries: Sequence[TimeEntry]
) -> list[TimeEntryRead]:
    task_ids = {e.task_id for e in entries}
    tasks = {}
    if task_ids:
        result = await session.execute(select(Task).where(Task.id.in_(task_ids)))
        tasks = {t.id: t for t in result.scalars().all()}

    return [
        TimeEntryRead(
            id=e.id,
            task_id=e.task_id,
            user_id=e.user_id,
            start_time=e.start_time,
            end_time=e.end_time,
            duration=e.duration,
            description=e.description,
            task=TimeEntryTask.model_validate(tasks[e.task_id]) if e.task_id in tasks else None,
            created_at=e.created_at,
        )
        for e in entries
    ]


async def enrich_entry(session: AsyncSession, entry: TimeEntry) -> TimeEntryRead:
    return (await enrich_entries(session, [entry]))[0]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

TIMER_RUNNING = "You already have an active timer. Stop it before starting a new one."


async def _ensure_no_running_timer(session: AsyncSession, principal: Principal) -> None:
    if await active_entry(session, principal) is not None:
        raise Conflict(TIMER_RUNNING)


async def _flush_entry(session: AsyncSession, entry: TimeEntry) -> None:
    session.add(entry)
    try:
        await session.flush()
    except IntegrityError as exc:
        # lost a race against another running entry (partial unique index)
        raise Conflict(TIMER_RUNNING) from exc


async def create_entry(
    session: AsyncSession, principal: Principal, entry_in: TimeEntryCreate
) -> TimeEntry:
    task = await get_task(session, entry_in.task_id, principal)
    if entry_in.end_time is None:
        await _ensure_no_running_timer(session, principal)

    duration = entry_in.duration
    if entry_in.end_time is not None and duration is None:
        duration = duration_seconds(entry_in.start_time, entry_in.end_time)

    entry = TimeEntry(
        task_id=task.id,
        user_id=principal.id,
        start_time=entry_in.start_time,
        end_time=entry_in.end_time,
        duration=duration,
        description=entry_in.description,
    )
    await _flush_entry(session, entry)
    log.info("time_entry.created", entry_id=str(entry.id), task_id=str(task.id))
    return entry


async def update_entry(
    session: AsyncSession,
    principal: Principal,
    entry_id: uuid.UUID,
    entry_in: TimeEntryUpdate,
) -> TimeEntry:
    entry = await get_entry(session, entry_id, principal)
    data = entry_in.model_dump(exclude_unset=True)
    if data.get("start_time", entry.start_time) is None:
        data.pop("start_time")

    # Clearing the end time turns a finished entry back into a running one
    if "end_time" in data and data["end_time"] is None and entry.end_time is not None:
        await _ensure_no_running_timer(session, principal)
        data.setdefault("duration", None)

    for key, value in data.items():
        setattr(entry, key, value)

    # An explicit duration wins over one derived from the time range
    if "end_time" in data and "duration" not in data and entry.end_time is not None:
        entry.duration = duration_seconds(entry.start_time, entry.end_time)

    await _flush_entry(session, entry)
    return entry


async def delete_entry(
    session: AsyncSession, principal: Principal, entry_id: uuid.UUID
) -> None:
    entry = await get_entry(session, entry_id, principal)
    await session.delete(entry)
    await session.flush()
    log.info("time_entry.deleted", entry_id=str(entry_id))


async def start_timer(
    session: AsyncSession, principal: Principal, body: TimerStart
) -> TimeEntry:
    """Start a timer. At most one timer per principal may be running."""
    await _ensure_no_running_timer(session, principal)

    task = await get_task(session, body.task_id, principal)
    entry = TimeEntry(
        task_id=task.id,
        user_id=principal.id,
        start_time=utcnow(),
        description=body.description,
    )
    await _flush_entry(session, entry)
    log.info("time_entry.timer_started", entry_id=str(entry.id), task_id=str(task.id))
    return entry


async def stop_timer(
    session: AsyncSession, principal: Principal, entry_id: uuid.UUID
) -> TimeEntry:
    entry = await get_entry(session, entry_id, principal)
    if entry.end_time is not None:
        raise Conflict("This time entry has already been stopped")

    entry.end_time = utcnow()
    entry.duration = duration_seconds(entry.start_time, entry.end_time)
    session.add(entry)
    await session.flush()
    log.info("time_entry.timer_stopped", entry_id=str(entry.id), duration=entry.duration)
    return entry


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


async def time_stats(
    session: AsyncSession, principal: Principal, filters: list
) -> TimeStats:
    """Totals over completed entries only; running timers have no duration yet."""
    result = await session.execute(
        select(TimeEntry, Task.title)
        .join(Task, Task.id == TimeEntry.task_id)
        .where(
            resolve_scope(principal, TimeEntry),
            TimeEntry.end_time.is_not(None),
            TimeEntry.duration.is_not(None),
            *filters,
        )
        .order_by(TimeEntry.start_time)
    )

    total = 0
    count = 0
    by_task: OrderedDict[uuid.UUID, list] = OrderedDict()
    by_day: dict[date, int] = {}
    for entry, title in result.all():
        seconds = entry.duration
        total += seconds
        count += 1

        by_task.setdefault(entry.task_id, [title, 0])[1] += seconds
        day = _aware(entry.start_time).date()
        by_day[day] = by_day.get(day, 0) + seconds

    return TimeStats(
        total_seconds=total,
        entry_count=count,
        by_task=[
            TaskTimeTotal(task_id=task_id, title=title, seconds=seconds)
            for task_id, (title, seconds) in by_task.items()
        ],
        by_day=[DayTimeTotal(day=d, seconds=s) for d, s in sorted(by_day.items())],
    )
