"""
Tests for the pagination engine: request classification and the three modes
executed against a real (SQLite) session.

Tests cover:
- Cursor beats page; empty cursor is the first page; raw when neither
- Limit and page correction
- Offset data length and metadata, including pages far past the end
- Cursor traversal visits every row exactly once, even with equal timestamps
- Malformed cursors restart from the beginning
- Keyset traversal while rows are deleted or inserted mid-way
"""

from __future__ import annotations

import math
from datetime import timedelta

import pytest
from sqlalchemy import delete
from sqlmodel import select

from app.core.cursor import encode_cursor
from app.core.pagination import (
    ACTIVITY_LIMITS,
    TASK_LIMITS,
    CursorRequest,
    ListLimits,
    OffsetRequest,
    RawRequest,
    paginate,
    parse_page_request,
)
from app.models.task import Task
from app.services.tasks import TASK_KEY
from taskflow_shared.schemas.common import CursorPage, CursorPagination, OffsetPage, OffsetPagination

from conftest import BASE_TIME


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestParsePageRequest:
    def test_no_params_is_raw(self):
        assert parse_page_request(None, None, None, TASK_LIMITS) == RawRequest()

    def test_limit_alone_is_raw(self):
        assert isinstance(parse_page_request(None, "5", None, TASK_LIMITS), RawRequest)

    def test_page_is_offset(self):
        assert parse_page_request("2", "10", None, TASK_LIMITS) == OffsetRequest(page=2, limit=10)

    def test_cursor_wins_over_page(self):
        req = parse_page_request("3", "10", "abc", TASK_LIMITS)
        assert req == CursorRequest(cursor="abc", limit=10)

    def test_empty_cursor_is_cursor_mode(self):
        assert parse_page_request(None, None, "", TASK_LIMITS) == CursorRequest(cursor="", limit=20)

    @pytest.mark.parametrize("page", ["0", "-4", "abc", ""])
    def test_bad_page_becomes_one(self, page):
        assert parse_page_request(page, None, None, TASK_LIMITS).page == 1

    @pytest.mark.parametrize(
        "limit, expected",
        [(None, 20), ("0", 20), ("-1", 20), ("x", 20), ("5", 5), ("100", 100), ("1000", 100)],
    )
    def test_task_limit_correction(self, limit, expected):
        assert parse_page_request("1", limit, None, TASK_LIMITS).limit == expected

    def test_activity_limits(self):
        assert parse_page_request("1", None, None, ACTIVITY_LIMITS).limit == 50
        assert parse_page_request(None, "500", "", ACTIVITY_LIMITS).limit == 200

    def test_offset_skip(self):
        assert OffsetRequest(page=3, limit=10).skip == 20

    def test_custom_limits(self):
        limits = ListLimits(default=7, maximum=9)
        assert limits.clamp(None) == 7
        assert limits.clamp("12") == 9


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


@pytest.fixture
async def project_tasks(seed):
    owner = await seed.user("owner")
    project = await seed.project(owner)
    tasks = await seed.tasks(project, owner, 25)
    return project, tasks


def _stmt(project):
    return select(Task).where(Task.project_id == project.id)


async def _walk(session, stmt, limit: int) -> list[list[Task]]:
    pages = []
    cursor = ""
    while True:
        page = await paginate(session, stmt, CursorRequest(cursor=cursor, limit=limit), key=TASK_KEY)
        pages.append(page.items)
        if not page.pagination.has_more:
            assert page.pagination.next_cursor is None
            return pages
        cursor = page.pagination.next_cursor
        assert len(pages) < 50, "cursor traversal did not terminate"


class TestRawMode:
    async def test_returns_all_rows_newest_first(self, session, project_tasks):
        project, tasks = project_tasks
        page = await paginate(session, _stmt(project), RawRequest(), key=TASK_KEY)
        assert page.is_raw
        assert [t.title for t in page.items] == [f"T{i}" for i in range(24, -1, -1)]

    async def test_render_is_a_plain_list(self, session, project_tasks):
        project, _ = project_tasks
        page = await paginate(session, _stmt(project), RawRequest(), key=TASK_KEY)
        assert isinstance(page.render(object), list)


class TestOffsetMode:
    @pytest.mark.parametrize("page_number, expected", [(1, 10), (2, 10), (3, 5), (4, 0)])
    async def test_page_lengths(self, session, project_tasks, page_number, expected):
        project, _ = project_tasks
        page = await paginate(
            session, _stmt(project), OffsetRequest(page=page_number, limit=10), key=TASK_KEY
        )
        assert len(page.items) == expected
        assert page.pagination == OffsetPagination(page=page_number, limit=10, total=25, total_pages=3)

    async def test_data_length_formula(self, session, project_tasks):
        project, _ = project_tasks
        total = 25
        for limit in (1, 4, 7, 25, 30):
            for page_number in range(1, math.ceil(total / limit) + 2):
                page = await paginate(
                    session, _stmt(project), OffsetRequest(page=page_number, limit=limit), key=TASK_KEY
                )
                expected = max(0, min(limit, total - (page_number - 1) * limit))
                assert len(page.items) == expected

    async def test_custom_order(self, session, project_tasks):
        project, _ = project_tasks
        page = await paginate(
            session,
            _stmt(project),
            OffsetRequest(page=1, limit=3),
            key=TASK_KEY,
            order_by=[Task.created_at.asc(), Task.id.asc()],
        )
        assert [t.title for t in page.items] == ["T0", "T1", "T2"]

    async def test_render_builds_envelope(self, session, project_tasks):
        project, _ = project_tasks
        page = await paginate(session, _stmt(project), OffsetRequest(page=1, limit=2), key=TASK_KEY)
        rendered = page.with_items([t.title for t in page.items]).render(str)
        assert isinstance(rendered, OffsetPage)
        assert rendered.model_dump(by_alias=True)["pagination"]["totalPages"] == 13

    async def test_page_far_past_the_end(self, session, project_tasks):
        project, _ = project_tasks
        huge = 10**20
        page = await paginate(session, _stmt(project), OffsetRequest(page=huge, limit=10), key=TASK_KEY)
        assert page.items == []
        assert page.pagination == OffsetPagination(page=huge, limit=10, total=25, total_pages=3)

    async def test_empty_set(self, session, seed):
        owner = await seed.user()
        project = await seed.project(owner)
        page = await paginate(session, _stmt(project), OffsetRequest(page=1, limit=10), key=TASK_KEY)
        assert page.items == []
        assert page.pagination.total == 0
        assert page.pagination.total_pages == 0


class TestCursorMode:
    async def test_first_page(self, session, project_tasks):
        project, _ = project_tasks
        page = await paginate(session, _stmt(project), CursorRequest(cursor="", limit=10), key=TASK_KEY)
        assert [t.title for t in page.items] == [f"T{i}" for i in range(24, 14, -1)]
        assert page.pagination.has_more is True
        assert page.pagination.total == 25
        assert page.pagination.next_cursor

    async def test_traversal_visits_every_row_once(self, session, project_tasks):
        project, tasks = project_tasks
        pages = await _walk(session, _stmt(project), 10)
        assert [len(p) for p in pages] == [10, 10, 5]
        seen = [t.id for p in pages for t in p]
        assert len(seen) == len(set(seen)) == 25
        assert set(seen) == {t.id for t in tasks}

    async def test_exact_multiple_of_limit(self, session, project_tasks):
        project, _ = project_tasks
        pages = await _walk(session, _stmt(project), 5)
        assert [len(p) for p in pages] == [5, 5, 5, 5, 5]

    async def test_equal_timestamps_break_ties_by_id(self, session, seed):
        owner = await seed.user()
        project = await seed.project(owner)
        tasks = await seed.tasks(project, owner, 7, step=timedelta(0))

        pages = await _walk(session, _stmt(project), 3)
        assert [len(p) for p in pages] == [3, 3, 1]
        seen = [t.id for p in pages for t in p]
        assert seen == sorted((t.id for t in tasks), key=lambda i: i.hex, reverse=True)

    async def test_sub_second_timestamps(self, session, seed):
        owner = await seed.user()
        project = await seed.project(owner)
        await seed.tasks(project, owner, 6, step=timedelta(microseconds=1))

        pages = await _walk(session, _stmt(project), 4)
        assert [t.title for p in pages for t in p] == ["T5", "T4", "T3", "T2", "T1", "T0"]

    async def test_malformed_cursor_restarts(self, session, project_tasks):
        project, _ = project_tasks
        first = await paginate(session, _stmt(project), CursorRequest(cursor="", limit=10), key=TASK_KEY)
        for bad in ("garbage", encode_cursor(BASE_TIME, "not-a-uuid")):
            page = await paginate(
                session, _stmt(project), CursorRequest(cursor=bad, limit=10), key=TASK_KEY
            )
            assert [t.id for t in page.items] == [t.id for t in first.items]

    async def test_render_builds_envelope(self, session, project_tasks):
        project, _ = project_tasks
        page = await paginate(session, _stmt(project), CursorRequest(cursor="", limit=30), key=TASK_KEY)
        assert page.pagination == CursorPagination(limit=30, total=25, has_more=False, next_cursor=None)
        rendered = page.with_items([t.title for t in page.items]).render(str)
        assert isinstance(rendered, CursorPage)
        dumped = rendered.model_dump(by_alias=True)
        assert dumped["pagination"] == {"limit": 30, "total": 25, "hasMore": False, "nextCursor": None}

    async def test_deletion_during_traversal(self, session, seed, project_tasks):
        """Deleted rows are skipped and total moves; nothing is returned twice."""
        project, tasks = project_tasks
        first = await paginate(session, _stmt(project), CursorRequest(cursor="", limit=10), key=TASK_KEY)
        assert first.pagination.total == 25

        # Remove one row already returned and two rows not yet reached
        doomed = {tasks[24].id, tasks[3].id, tasks[2].id}
        async with seed.factory() as other:
            await other.execute(delete(Task).where(Task.id.in_(doomed)))
            await other.commit()

        second = await paginate(
            session,
            _stmt(project),
            CursorRequest(cursor=first.pagination.next_cursor, limit=10),
            key=TASK_KEY,
        )
        assert second.pagination.total == 22
        assert [t.title for t in second.items] == [f"T{i}" for i in range(14, 4, -1)]

        third = await paginate(
            session,
            _stmt(project),
            CursorRequest(cursor=second.pagination.next_cursor, limit=10),
            key=TASK_KEY,
        )
        assert [t.title for t in third.items] == ["T4", "T1", "T0"]
        assert third.pagination.has_more is False

        seen = [t.id for t in first.items + second.items + third.items]
        assert len(seen) == len(set(seen))
        assert not (set(seen) - {t.id for t in tasks})

    async def test_insertion_during_traversal(self, session, seed, project_tasks):
        """Rows inserted below the cursor show up later; rows above it never do. Total grows."""
        project, _ = project_tasks
        first = await paginate(session, _stmt(project), CursorRequest(cursor="", limit=10), key=TASK_KEY)
        assert [t.title for t in first.items] == [f"T{i}" for i in range(24, 14, -1)]

        author = await seed.user()
        late = await seed.task(
            project, author, title="late", created_at=BASE_TIME + timedelta(minutes=7, seconds=30)
        )
        fresh = await seed.task(project, author, title="fresh", created_at=BASE_TIME + timedelta(hours=1))

        second = await paginate(
            session,
            _stmt(project),
            CursorRequest(cursor=first.pagination.next_cursor, limit=10),
            key=TASK_KEY,
        )
        assert second.pagination.total == 27
        assert [t.title for t in second.items] == [
            "T14", "T13", "T12", "T11", "T10", "T9", "T8", "late", "T7", "T6",
        ]

        third = await paginate(
            session,
            _stmt(project),
            CursorRequest(cursor=second.pagination.next_cursor, limit=10),
            key=TASK_KEY,
        )
        assert [t.title for t in third.items] == ["T5", "T4", "T3", "T2", "T1", "T0"]
        assert third.pagination.has_more is False

        seen = [t.id for t in first.items + second.items + third.items]
        assert late.id in seen
        assert fresh.id not in seen
        assert len(seen) == len(set(seen)) == 26
