"""Organization (tenant) model."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


class Organization(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "organizations"

    name: str = Field(nullable=False)
    owner_id: uuid.UUID = Field(foreign_key="users.id", nullable=False, index=True)
    plan: str = Field(default="starter", nullable=False)  # starter | pro
    subscription_status: str = Field(default="trialing", nullable=False)
    stripe_subscription_id: Optional[str] = Field(default=None, index=True)
    trial_ends_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))
