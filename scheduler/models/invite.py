"""Pending organization invite."""

from datetime import datetime
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Invite(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "team_invites"

    organization_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid,
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    email: str = Field(nullable=False, index=True)  # stored lower-cased
    role: str = Field(default="user", nullable=False)
    invited_by: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    token: str = Field(unique=True, nullable=False, index=True)
    expires_at: datetime = Field(nullable=False, sa_type=sa.DateTime(timezone=True))
