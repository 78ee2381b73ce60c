# SQLModel definitions: imported here so metadata is populated for Alembic.
from .base import CreatedAtMixin, TimestampMixin, UUIDMixin  # noqa: F401
from .user import User  # noqa: F401
from .project import Project, ProjectMember  # noqa: F401
from .task import Task  # noqa: F401
from .notification import Notification  # noqa: F401
from .activity_log import ActivityLog  # noqa: F401
from .time_entry import TimeEntry  # noqa: F401
