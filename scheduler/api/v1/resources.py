"""
Scheduling resource endpoints. Reads are open to every member; writes
require the admin or operations role.

/api/depots     GET, POST, PATCH /{id}, DELETE /{id} (archive), POST /{id}/restore
/api/crews      GET, POST, PATCH /{id}, DELETE /{id} (archive)
/api/employees  GET, POST, PATCH /{id}, DELETE /{id}
/api/vehicles   GET, POST, PATCH /{id}, DELETE /{id}
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.core.auth import RequestContext, get_request_context, manager_context
from scheduler.core.database import get_session
from scheduler.services import resources as resource_service
from scheduler_shared.schemas.common import SuccessResponse
from scheduler_shared.schemas.resources import (
    CrewCreateRequest,
    CrewResponse,
    CrewUpdateRequest,
    DepotCreateRequest,
    DepotResponse,
    DepotUpdateRequest,
    EmployeeCreateRequest,
    EmployeeResponse,
    EmployeeUpdateRequest,
    VehicleCreateRequest,
    VehicleResponse,
    VehicleUpdateRequest,
)

depots_router = APIRouter()
crews_router = APIRouter()
employees_router = APIRouter()
vehicles_router = APIRouter()


# ---------------------------------------------------------------------------
# Depots
# ---------------------------------------------------------------------------

@depots_router.get("", response_model=list[DepotResponse])
async def list_depots(
    include_archived: bool = False,
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    depots = await resource_service.list_depots(
        ctx.organization_id, session, include_archived=include_archived
    )
    return [DepotResponse.model_validate(d) for d in depots]


@depots_router.post("", response_model=DepotResponse, status_code=201)
async def create_depot(
    body: DepotCreateRequest,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    """Also creates the depot's Day Shift and Night Shift crews."""
    depot = await resource_service.create_depot(
        session,
        organization_id=ctx.organization_id,
        user_id=ctx.user_id,
        name=body.name,
        address=body.address,
        plan=ctx.plan,
    )
    return DepotResponse.model_validate(depot)


@depots_router.patch("/{depotId}", response_model=DepotResponse)
async def update_depot(
    depotId: uuid.UUID,
    body: DepotUpdateRequest,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    depot = await resource_service.update_depot(
        depotId, body.model_dump(exclude_unset=True), ctx, session
    )
    return DepotResponse.model_validate(depot)


@depots_router.delete("/{depotId}", response_model=DepotResponse)
async def archive_depot(
    depotId: uuid.UUID,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    depot = await resource_service.archive_depot(depotId, ctx, session)
    return DepotResponse.model_validate(depot)


@depots_router.post("/{depotId}/restore", response_model=DepotResponse)
async def restore_depot(
    depotId: uuid.UUID,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    depot = await resource_service.restore_depot(depotId, ctx, session)
    return DepotResponse.model_validate(depot)


# ---------------------------------------------------------------------------
# Crews
# ---------------------------------------------------------------------------

@crews_router.get("", response_model=list[CrewResponse])
async def list_crews(
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    crews = await resource_service.list_crews(ctx.organization_id, session)
    return [CrewResponse.model_validate(c) for c in crews]


@crews_router.post("", response_model=CrewResponse, status_code=201)
async def create_crew(
    body: CrewCreateRequest,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    crew = await resource_service.create_crew(
        body.depot_id, body.name, body.shift.value, ctx, session
    )
    return CrewResponse.model_validate(crew)


@crews_router.patch("/{crewId}", response_model=CrewResponse)
async def update_crew(
    crewId: uuid.UUID,
    body: CrewUpdateRequest,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    crew = await resource_service.update_crew(
        crewId, body.model_dump(exclude_unset=True), ctx, session
    )
    return CrewResponse.model_validate(crew)


@crews_router.delete("/{crewId}", response_model=CrewResponse)
async def archive_crew(
    crewId: uuid.UUID,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    crew = await resource_service.archive_crew(crewId, ctx, session)
    return CrewResponse.model_validate(crew)


# ---------------------------------------------------------------------------
# Employees
# ---------------------------------------------------------------------------

@employees_router.get("", response_model=list[EmployeeResponse])
async def list_employees(
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    employees = await resource_service.list_employees(ctx.organization_id, session)
    return [EmployeeResponse.model_validate(e) for e in employees]


@employees_router.post("", response_model=EmployeeResponse, status_code=201)
async def create_employee(
    body: EmployeeCreateRequest,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    employee = await resource_service.create_employee(body.model_dump(), ctx, session)
    return EmployeeResponse.model_validate(employee)


@employees_router.patch("/{employeeId}", response_model=EmployeeResponse)
async def update_employee(
    employeeId: uuid.UUID,
    body: EmployeeUpdateRequest,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    employee = await resource_service.update_employee(
        employeeId, body.model_dump(exclude_unset=True), ctx, session
    )
    return EmployeeResponse.model_validate(employee)


@employees_router.delete("/{employeeId}", response_model=SuccessResponse)
async def delete_employee(
    employeeId: uuid.UUID,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    await resource_service.delete_employee(employeeId, ctx, session)
    return SuccessResponse()


# ---------------------------------------------------------------------------
# Vehicles
# ---------------------------------------------------------------------------

@vehicles_router.get("", response_model=list[VehicleResponse])
async def list_vehicles(
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    vehicles = await resource_service.list_vehicles(ctx.organization_id, session)
    return [VehicleResponse.model_validate(v) for v in vehicles]


@vehicles_router.post("", response_model=VehicleResponse, status_code=201)
async def create_vehicle(
    body: VehicleCreateRequest,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    vehicle = await resource_service.create_vehicle(body.model_dump(), ctx, session)
    return VehicleResponse.model_validate(vehicle)


@vehicles_router.patch("/{vehicleId}", response_model=VehicleResponse)
async def update_vehicle(
    vehicleId: uuid.UUID,
    body: VehicleUpdateRequest,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    vehicle = await resource_service.update_vehicle(
        vehicleId, body.model_dump(exclude_unset=True), ctx, session
    )
    return VehicleResponse.model_validate(vehicle)


@vehicles_router.delete("/{vehicleId}", response_model=SuccessResponse)
async def delete_vehicle(
    vehicleId: uuid.UUID,
    ctx: RequestContext = Depends(manager_context),
    session: AsyncSession = Depends(get_session),
):
    await resource_service.delete_vehicle(vehicleId, ctx, session)
    return SuccessResponse()
