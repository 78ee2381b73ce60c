"""
Database engine and per-request sessions.

The session is the entity store for the list-access layer: every list and
lookup runs as a SQLAlchemy statement through it. PostgreSQL (asyncpg) in
production; SQLite (aiosqlite) works for local runs and the test suite.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from app.core.config import get_settings

settings = get_settings()


def build_engine(url: str, *, echo: bool = False, **kwargs) -> AsyncEngine:
    """Create an async engine with dialect-appropriate options."""
    if not url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, pool_pre_ping=True, **kwargs)

    async_engine = create_async_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False},
        **kwargs,
    )

    # SQLite ignores ON DELETE clauses unless foreign keys are switched on per connection
    @event.listens_for(async_engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return async_engine


engine = build_engine(settings.database_url, echo=settings.debug)

async_session_factory = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create all tables (local development and tests; use Alembic in production)."""
    import app.models  # noqa: F401  populate metadata

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, committed on success."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for scripts running outside the request lifecycle."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
