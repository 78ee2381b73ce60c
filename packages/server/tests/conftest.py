"""
Shared fixtures: in-memory SQLite database, HTTP client, data seeding.

Each test gets a fresh database. Seeding helpers commit through their own
short-lived session, so the rows are visible to the per-request sessions the
API opens.
"""

from __future__ import annotations

import os

os.environ.setdefault("TF_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TF_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("TF_LOG_LEVEL", "warning")
os.environ.setdefault("TF_LOG_FORMAT", "console")

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.auth import create_jwt
from app.core.database import build_engine, get_session, init_db
from app.main import app
from app.models.notification import Notification
from app.models.project import Project, ProjectMember
from app.models.task import Task
from app.models.time_entry import TimeEntry
from app.models.user import User
from taskflow_shared.schemas.common import ProjectRole

BASE_TIME = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


def auth_headers(user: User) -> dict[str, str]:
    token, _ = create_jwt(user.id)
    return {"Authorization": f"Bearer {token}"}


class Seeder:
    """Insert rows directly, bypassing the API."""

    def __init__(self, factory: sessionmaker):
        self.factory = factory
        self._count = 0

    async def add(self, *rows):
        async with self.factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows[0] if len(rows) == 1 else rows

    async def user(self, name: Optional[str] = None) -> User:
        self._count += 1
        name = name or f"user{self._count}"
        return await self.add(User(email=f"{name}@example.com", name=name))

    async def project(self, owner: User, name: str = "Project") -> Project:
        project = Project(name=name, owner_id=owner.id)
        async with self.factory() as session:
            session.add(project)
            await session.flush()
            session.add(
                ProjectMember(project_id=project.id, user_id=owner.id, role=ProjectRole.OWNER.value)
            )
            await session.commit()
        return project

    async def member(self, project: Project, user: User, role: ProjectRole) -> ProjectMember:
        return await self.add(ProjectMember(project_id=project.id, user_id=user.id, role=role.value))

    async def task(
        self,
        project: Project,
        creator: User,
        *,
        title: str = "Task",
        created_at: Optional[datetime] = None,
        status: str = "TODO",
        priority: str = "MEDIUM",
        assignee: Optional[User] = None,
        **fields,
    ) -> Task:
        if created_at:
            fields.update(created_at=created_at, updated_at=created_at)
        return await self.add(
            Task(
                project_id=project.id,
                creator_id=creator.id,
                title=title,
                status=status,
                priority=priority,
                assignee_id=assignee.id if assignee else None,
                **fields,
            )
        )

    async def tasks(
        self,
        project: Project,
        creator: User,
        count: int,
        *,
        start: datetime = BASE_TIME,
        step: timedelta = timedelta(minutes=1),
    ) -> list[Task]:
        """``count`` tasks created ``step`` apart; task i is titled ``T{i}``."""
        rows = [
            Task(
                project_id=project.id,
                creator_id=creator.id,
                title=f"T{i}",
                created_at=start + step * i,
                updated_at=start + step * i,
            )
            for i in range(count)
        ]
        async with self.factory() as session:
            session.add_all(rows)
            await session.commit()
        return rows

    async def notification(
        self, user: User, *, read: bool = False, title: str = "Hello", **fields
    ) -> Notification:
        return await self.add(
            Notification(
                user_id=user.id, type="TASK_ASSIGNED", title=title, message=title, read=read, **fields
            )
        )

    async def time_entry(self, task: Task, user: User, **fields) -> TimeEntry:
        return await self.add(TimeEntry(task_id=task.id, user_id=user.id, **fields))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine():
    test_engine = build_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_db(bind=test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def team(seed):
    """One project with a user in every role, plus an outsider."""
    owner = await seed.user("owner")
    project = await seed.project(owner, "Apollo")
    admin = await seed.user("admin")
    member = await seed.user("member")
    viewer = await seed.user("viewer")
    outsider = await seed.user("outsider")
    await seed.member(project, admin, ProjectRole.ADMIN)
    await seed.member(project, member, ProjectRole.MEMBER)
    await seed.member(project, viewer, ProjectRole.VIEWER)
    return SimpleNamespace(
        project=project,
        owner=owner,
        admin=admin,
        member=member,
        viewer=viewer,
        outsider=outsider,
    )
