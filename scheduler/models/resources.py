"""Tenant-scoped scheduling resources: depots, crews, employees, vehicles."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import CreatedAtMixin, UUIDMixin


def _org_fk() -> sa.Column:
    return sa.Column(
        sa.Uuid,
        sa.ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _depot_fk() -> sa.Column:
    return sa.Column(
        sa.Uuid,
        sa.ForeignKey("depots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


class Depot(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "depots"

    organization_id: uuid.UUID = Field(sa_column=_org_fk())
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)  # creator
    name: str = Field(nullable=False)
    address: str = Field(nullable=False)
    archived_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class Crew(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "crews"

    organization_id: uuid.UUID = Field(sa_column=_org_fk())
    depot_id: uuid.UUID = Field(sa_column=_depot_fk())
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    name: str = Field(nullable=False)
    shift: str = Field(default="day", nullable=False)  # day | night
    archived_at: Optional[datetime] = Field(default=None, sa_type=sa.DateTime(timezone=True))


class Employee(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "employees"

    organization_id: uuid.UUID = Field(sa_column=_org_fk())
    depot_id: uuid.UUID = Field(sa_column=_depot_fk())
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    name: str = Field(nullable=False)
    status: str = Field(default="active", nullable=False)
    job_role: str = Field(default="operative", nullable=False)
    email: Optional[str] = None
    home_postcode: Optional[str] = None
    starts_from_home: bool = Field(default=False, nullable=False)


class Vehicle(UUIDMixin, CreatedAtMixin, SQLModel, table=True):
    __tablename__ = "vehicles"

    organization_id: uuid.UUID = Field(sa_column=_org_fk())
    depot_id: uuid.UUID = Field(sa_column=_depot_fk())
    user_id: uuid.UUID = Field(foreign_key="users.id", nullable=False)
    name: str = Field(nullable=False)
    vehicle_type: str = Field(nullable=False)
    status: str = Field(default="active", nullable=False)
    category: Optional[str] = None
    color: Optional[str] = None
