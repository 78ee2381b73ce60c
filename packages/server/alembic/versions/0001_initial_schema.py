"""Initial schema: users, projects, memberships, tasks, notifications, activity, time.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID = postgresql.UUID(as_uuid=True)


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=None if nullable else sa.text("now()"),
    )


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # users
    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        _timestamp("created_at"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_created_at", "users", ["created_at"])

    # projects
    op.create_table(
        "projects",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("owner_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_projects_owner_id", "projects", ["owner_id"])
    op.create_index("ix_projects_created_at", "projects", ["created_at"])

    # project_members: one membership per (project, user)
    op.create_table(
        "project_members",
        sa.Column(
            "project_id", UUID, sa.ForeignKey("projects.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("role", sa.Text(), nullable=False, server_default="MEMBER"),
        _timestamp("joined_at"),
        sa.CheckConstraint(
            "role IN ('OWNER', 'ADMIN', 'MEMBER', 'VIEWER')", name="ck_project_members_role"
        ),
    )
    op.create_index("ix_project_members_user_id", "project_members", ["user_id"])

    # tasks
    op.create_table(
        "tasks",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "project_id", UUID, sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="TODO"),
        sa.Column("priority", sa.Text(), nullable=False, server_default="MEDIUM"),
        sa.Column("assignee_id", UUID, sa.ForeignKey("users.id"), nullable=True),
        sa.Column("creator_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        _timestamp("due_date", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_assignee_id", "tasks", ["assignee_id"])
    op.create_index("ix_tasks_creator_id", "tasks", ["creator_id"])
    op.create_index("ix_tasks_created_at", "tasks", ["created_at"])
    # Keyset pagination within a project
    op.create_index("ix_tasks_project_created", "tasks", ["project_id", "created_at", "id"])

    # notifications
    op.create_table(
        "notifications",
        sa.Column("id", UUID, primary_key=True),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("task_id", UUID, sa.ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])
    op.create_index(
        "ix_notifications_user_created", "notifications", ["user_id", "created_at", "id"]
    )

    # activity_logs (append-only)
    op.create_table(
        "activity_logs",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "task_id", UUID, sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("details", postgresql.JSONB(), nullable=False, server_default="{}"),
        _timestamp("created_at"),
    )
    op.create_index("ix_activity_logs_task_id", "activity_logs", ["task_id"])
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"])
    op.create_index(
        "ix_activity_logs_task_created", "activity_logs", ["task_id", "created_at", "id"]
    )

    # time_entries
    op.create_table(
        "time_entries",
        sa.Column("id", UUID, primary_key=True),
        sa.Column(
            "task_id", UUID, sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        _timestamp("start_time"),
        _timestamp("end_time", nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_time_entries_task_id", "time_entries", ["task_id"])
    op.create_index("ix_time_entries_user_id", "time_entries", ["user_id"])
    op.create_index("ix_time_entries_created_at", "time_entries", ["created_at"])
    # At most one running timer per user
    op.create_index(
        "ux_time_entries_active_timer",
        "time_entries",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("end_time IS NULL"),
    )


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    op.drop_index("ux_time_entries_active_timer", table_name="time_entries")
    for table in (
        "time_entries",
        "activity_logs",
        "notifications",
        "tasks",
        "project_members",
        "projects",
        "users",
    ):
        op.drop_table(table)
