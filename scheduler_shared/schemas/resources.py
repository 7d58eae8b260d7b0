"""Depot, crew, employee and vehicle schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import EmailStr, Field

from .common import CamelModel


class Shift(str, Enum):
    DAY = "day"
    NIGHT = "night"


class ResourceStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    HOLIDAY = "holiday"
    SICK = "sick"
    MAINTENANCE = "maintenance"


# ---------------------------------------------------------------------------
# Depots
# ---------------------------------------------------------------------------

class DepotCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    address: str = Field(min_length=1, max_length=500)


class DepotUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    address: Optional[str] = Field(default=None, min_length=1, max_length=500)


class DepotResponse(CamelModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    name: str
    address: str
    archived_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Crews
# ---------------------------------------------------------------------------

class CrewCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    depot_id: uuid.UUID
    shift: Shift = Shift.DAY


class CrewUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    shift: Optional[Shift] = None


class CrewResponse(CamelModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    depot_id: uuid.UUID
    name: str
    shift: str
    archived_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Employees
# ---------------------------------------------------------------------------

class EmployeeCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    depot_id: uuid.UUID
    status: ResourceStatus = ResourceStatus.ACTIVE
    job_role: str = Field(default="operative", max_length=100)
    email: Optional[EmailStr] = None
    home_postcode: Optional[str] = Field(default=None, max_length=10)
    starts_from_home: bool = False


class EmployeeUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    status: Optional[ResourceStatus] = None
    job_role: Optional[str] = Field(default=None, max_length=100)
    email: Optional[EmailStr] = None
    home_postcode: Optional[str] = Field(default=None, max_length=10)
    starts_from_home: Optional[bool] = None


class EmployeeResponse(CamelModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    depot_id: uuid.UUID
    name: str
    status: str
    job_role: str
    email: Optional[str] = None
    home_postcode: Optional[str] = None
    starts_from_home: bool = False


# ---------------------------------------------------------------------------
# Vehicles
# ---------------------------------------------------------------------------

class VehicleCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    depot_id: uuid.UUID
    vehicle_type: str = Field(min_length=1, max_length=100)
    status: ResourceStatus = ResourceStatus.ACTIVE
    category: Optional[str] = Field(default=None, max_length=100)
    color: Optional[str] = Field(default=None, max_length=20)


class VehicleUpdateRequest(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    vehicle_type: Optional[str] = Field(default=None, min_length=1, max_length=100)
    status: Optional[ResourceStatus] = None
    category: Optional[str] = Field(default=None, max_length=100)
    color: Optional[str] = Field(default=None, max_length=20)


class VehicleResponse(CamelModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    depot_id: uuid.UUID
    name: str
    vehicle_type: str
    status: str
    category: Optional[str] = None
    color: Optional[str] = None


# ---------------------------------------------------------------------------
# Travel time
# ---------------------------------------------------------------------------

class TravelEstimateResponse(CamelModel):
    from_postcode: Optional[str] = None
    to_postcode: Optional[str] = None
    travel_minutes: int
    start_time: Optional[str] = None
