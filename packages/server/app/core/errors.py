"""
Error taxonomy for the API.

Each error is an ``HTTPException`` so services can raise it directly and
FastAPI renders it without extra handlers. Read paths never raise
``Forbidden`` for resources outside the principal's scope: an invisible
resource and a missing resource both surface as ``NotFound``.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class NotFound(HTTPException):
    """Resource absent, or not visible to the principal."""

    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Forbidden(HTTPException):
    """Principal is a member but the role lacks the capability."""

    def __init__(self, detail: str = "Insufficient permissions") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class Unauthenticated(HTTPException):
    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class Conflict(HTTPException):
    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class UnprocessableEntity(HTTPException):
    """Well-formed request that violates a business rule."""

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=422, detail=detail)


class MalformedCursor(ValueError):
    """Raised by the cursor codec; recovered inside the pagination engine."""
