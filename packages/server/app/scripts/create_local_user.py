"""
Script to create a local user (optionally with a starter project) and print a
session token for calling the API during development.
"""

import argparse
import asyncio
from typing import Optional

from sqlmodel import select

from app.core.auth import create_jwt
from app.core.database import init_db, session_scope
from app.models.project import Project, ProjectMember
from app.models.user import User
from taskflow_shared.schemas.common import ProjectRole


async def create_user(email: str, name: str, project_name: Optional[str]) -> str:
    await init_db()

    async with session_scope() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user:
            user = User(email=email, name=name)
            session.add(user)
            await session.flush()
            print(f"Created user: {email}")
        else:
            print(f"User {email} already exists.")

        if project_name:
            project = Project(name=project_name, owner_id=user.id)
            session.add(project)
            await session.flush()
            session.add(
                ProjectMember(project_id=project.id, user_id=user.id, role=ProjectRole.OWNER.value)
            )
            print(f"Created project '{project_name}' owned by {email}.")

        token, _ = create_jwt(user.id)
    return token


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a local user and print a session token.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--name", default=None, help="Display name (defaults to the email local part)")
    parser.add_argument("--project", default=None, help="Also create a project owned by the user")

    args = parser.parse_args()

    token = asyncio.run(create_user(args.email, args.name or args.email.split("@")[0], args.project))
    print(f"Authorization: Bearer {token}")


if __name__ == "__main__":
    main()
