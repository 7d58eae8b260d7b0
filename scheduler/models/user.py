"""User model."""

from typing import Optional

from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class User(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "users"

    username: str = Field(unique=True, nullable=False, index=True)
    email: Optional[str] = Field(default=None, unique=True, index=True)
    password_hash: str = Field(nullable=False)  # bcrypt
    # Informational label only; the membership role governs access inside an org.
    role: str = Field(default="user", nullable=False)
    stripe_customer_id: Optional[str] = Field(default=None, unique=True, index=True)
