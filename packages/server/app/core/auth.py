"""
Authentication for Taskflow.

Sessions are issued elsewhere; this module only verifies them. A request
carries a signed JWT either as ``Authorization: Bearer <token>`` (API
clients) or in the session cookie (browser). The token subject must name an
existing user, which becomes the request's ``Principal``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_session
from app.core.errors import Unauthenticated
from app.models.user import User

log = structlog.get_logger()
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed session token. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# Principal
# ---------------------------------------------------------------------------

class Principal:
    """The authenticated actor for one request."""

    def __init__(self, user: User):
        self.user = user
        self.id = user.id

    def __repr__(self) -> str:
        return f"Principal(id={self.id})"


def _extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    if credentials and credentials.scheme.lower() == "bearer":
        return credentials.credentials.strip()
    return request.cookies.get(settings.session_cookie_name)


async def get_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> Principal:
    """Main authentication dependency. Bearer token first, then session cookie."""
    token = _extract_token(request, credentials)
    if not token:
        raise Unauthenticated()

    try:
        payload = decode_jwt(token)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        log.info("auth.invalid_token", path=request.url.path)
        raise Unauthenticated("Invalid or expired session")

    user = await session.get(User, user_id)
    if not user:
        log.info("auth.unknown_subject", user_id=str(user_id))
        raise Unauthenticated("User not found")

    structlog.contextvars.bind_contextvars(principal_id=str(user.id))
    return Principal(user)
