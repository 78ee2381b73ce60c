"""
API v1 Router

All resource endpoints live under /api/v1 and require an authenticated principal.
"""

from fastapi import APIRouter
from . import notifications, projects, tasks, time_entries

router = APIRouter()

router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(time_entries.router, prefix="/time-entries", tags=["Time Entries"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/projects",
            "/tasks",
            "/notifications",
            "/time-entries",
        ],
    }
