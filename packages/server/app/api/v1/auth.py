"""
Auth endpoints.

Sessions are issued by the identity provider; the API only reports who the
presented session belongs to.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.auth import Principal, get_principal
from app.core.database import get_session
from app.models.project import ProjectMember
from taskflow_shared.schemas.users import MembershipRead, UserRead

router = APIRouter()


@router.get("/me", response_model=UserRead)
async def me(
    principal: Principal = Depends(get_principal),
    session: AsyncSession = Depends(get_session),
):
    """The authenticated user with their project memberships."""
    result = await session.execute(
        select(ProjectMember)
        .where(ProjectMember.user_id == principal.id)
        .order_by(ProjectMember.joined_at)
    )
    user = principal.user
    return UserRead(
        id=user.id,
        email=user.email,
        name=user.name,
        created_at=user.created_at,
        memberships=[MembershipRead.model_validate(m) for m in result.scalars().all()],
    )
