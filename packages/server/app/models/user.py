"""User model. Credentials live with the identity provider, not here."""

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class User(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "users"

    email: str = Field(unique=True, index=True, nullable=False)
    name: str = Field(nullable=False)
