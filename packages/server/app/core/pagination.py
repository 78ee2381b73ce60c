"""
Pagination engine shared by every list endpoint.

One endpoint serves three response shapes for backward compatibility, chosen
by which query parameters are present:

* neither ``page`` nor ``cursor`` -> raw mode: the whole filtered set as a bare list
* ``page``                        -> offset mode: ``{data, pagination: {page, limit, total, totalPages}}``
* ``cursor`` (even empty)         -> cursor mode: ``{data, pagination: {limit, total, hasMore, nextCursor}}``

``parse_page_request`` classifies the request once into a tagged union;
``paginate`` runs the caller's already-scoped, already-filtered statement in
the chosen mode. Scope and filters therefore live in exactly one place per
endpoint, whatever the mode.

Cursor mode is keyset pagination over (created_at, id) descending. ``total``
is recomputed on every call without a snapshot, so it can move between pages
when rows are inserted or deleted mid-traversal; a deleted row is simply not
returned and a row inserted ahead of the cursor is not revisited.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Generic, Optional, Sequence, TypeVar, Union

import structlog
from fastapi import Query
from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import InstrumentedAttribute
from sqlalchemy.sql import Select

from app.core.cursor import CursorKey, decode_cursor, encode_cursor
from app.core.errors import MalformedCursor
from app.core.filters import parse_int
from taskflow_shared.schemas.common import (
    CursorPage,
    CursorPagination,
    OffsetPage,
    OffsetPagination,
)

log = structlog.get_logger()

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ListLimits:
    default: int
    maximum: int

    def clamp(self, raw: Optional[str]) -> int:
        """Missing, non-numeric or non-positive -> default; above maximum -> maximum."""
        value = parse_int(raw)
        if value is None or value <= 0:
            return self.default
        return min(value, self.maximum)


TASK_LIMITS = ListLimits(default=20, maximum=100)
NOTIFICATION_LIMITS = ListLimits(default=20, maximum=100)
PROJECT_LIMITS = ListLimits(default=20, maximum=100)
ACTIVITY_LIMITS = ListLimits(default=50, maximum=200)


# ---------------------------------------------------------------------------
# Page requests (tagged union)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RawRequest:
    pass


@dataclass(frozen=True)
class OffsetRequest:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class CursorRequest:
    cursor: str  # "" means first page
    limit: int


PageRequest = Union[RawRequest, OffsetRequest, CursorRequest]


def parse_page_request(
    page: Optional[str],
    limit: Optional[str],
    cursor: Optional[str],
    limits: ListLimits,
) -> PageRequest:
    """Classify raw query parameters. Cursor takes precedence over page."""
    if cursor is not None:
        return CursorRequest(cursor=cursor.strip(), limit=limits.clamp(limit))
    if page is not None:
        page_number = parse_int(page)
        if page_number is None or page_number < 1:
            page_number = 1
        return OffsetRequest(page=page_number, limit=limits.clamp(limit))
    return RawRequest()


def page_request(limits: ListLimits) -> Callable[..., PageRequest]:
    """Build a FastAPI dependency that parses page/limit/cursor for ``limits``.

    Parameters are declared as strings so a bad value is corrected rather
    than rejected with a 422.
    """

    def dependency(
        page: Optional[str] = Query(None, description="1-based page number; selects offset mode"),
        limit: Optional[str] = Query(
            None, description=f"Page size (default {limits.default}, max {limits.maximum})"
        ),
        cursor: Optional[str] = Query(
            None, description="Opaque cursor; present (even empty) selects cursor mode"
        ),
    ) -> PageRequest:
        return parse_page_request(page, limit, cursor, limits)

    return dependency


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class PageResult(Generic[T]):
    items: list[T]
    pagination: Optional[Union[OffsetPagination, CursorPagination]] = None

    @property
    def is_raw(self) -> bool:
        return self.pagination is None

    def with_items(self, items: Sequence[Any]) -> "PageResult[Any]":
        return replace(self, items=list(items))

    def render(self, item_model: type) -> Any:
        """Serialize to the response shape for the mode that produced this page."""
        if isinstance(self.pagination, OffsetPagination):
            return OffsetPage[item_model](data=self.items, pagination=self.pagination)
        if isinstance(self.pagination, CursorPagination):
            return CursorPage[item_model](data=self.items, pagination=self.pagination)
        return self.items


@dataclass(frozen=True)
class OrderingKey:
    """The (timestamp, id) columns giving a strict total order for keyset paging."""

    timestamp: InstrumentedAttribute
    id: InstrumentedAttribute
    parse_id: Callable[[str], Any] = field(default=uuid.UUID)

    def descending(self) -> list:
        return [self.timestamp.desc(), self.id.desc()]

    def after(self, key: CursorKey, row_id: Any):
        """Rows strictly after ``key`` in descending order."""
        return or_(
            self.timestamp < key.timestamp,
            and_(self.timestamp == key.timestamp, self.id < row_id),
        )

    def cursor_for(self, row: Any) -> str:
        return encode_cursor(getattr(row, self.timestamp.key), getattr(row, self.id.key))


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

async def count_rows(session: AsyncSession, stmt: Select) -> int:
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    return (await session.execute(count_stmt)).scalar_one()


def _decode(request: CursorRequest, key: OrderingKey) -> Optional[tuple[CursorKey, Any]]:
    if not request.cursor:
        return None
    try:
        decoded = decode_cursor(request.cursor)
        try:
            row_id = key.parse_id(decoded.id)
        except (TypeError, ValueError) as exc:
            raise MalformedCursor(str(exc)) from exc
    except MalformedCursor as exc:
        # Stale or corrupted client state restarts from the first page.
        log.debug("pagination.malformed_cursor", error=str(exc))
        return None
    return decoded, row_id


async def paginate(
    session: AsyncSession,
    stmt: Select,
    request: PageRequest,
    *,
    key: OrderingKey,
    order_by: Optional[Sequence[Any]] = None,
) -> PageResult:
    """Execute ``stmt`` (scope and filters already applied) in the requested mode.

    ``order_by`` applies to raw and offset modes and defaults to the ordering
    key descending. Cursor mode always uses the ordering key.
    """
    ordering = list(order_by) if order_by else key.descending()

    if isinstance(request, CursorRequest):
        total = await count_rows(session, stmt)
        page_stmt = stmt
        position = _decode(request, key)
        if position is not None:
            page_stmt = page_stmt.where(key.after(*position))
        page_stmt = page_stmt.order_by(*key.descending()).limit(request.limit + 1)
        rows = list((await session.execute(page_stmt)).scalars().all())

        has_more = len(rows) > request.limit
        rows = rows[: request.limit]
        next_cursor = key.cursor_for(rows[-1]) if has_more and rows else None
        return PageResult(
            items=rows,
            pagination=CursorPagination(
                limit=request.limit,
                total=total,
                has_more=has_more,
                next_cursor=next_cursor,
            ),
        )

    if isinstance(request, OffsetRequest):
        total = await count_rows(session, stmt)
        rows = []
        # Pages past the end never reach the database; huge offsets overflow it
        if request.skip < total:
            page_stmt = stmt.order_by(*ordering).offset(request.skip).limit(request.limit)
            rows = list((await session.execute(page_stmt)).scalars().all())
        return PageResult(
            items=rows,
            pagination=OffsetPagination(
                page=request.page,
                limit=request.limit,
                total=total,
                total_pages=math.ceil(total / request.limit),
            ),
        )

    rows = list((await session.execute(stmt.order_by(*ordering))).scalars().all())
    return PageResult(items=rows)
