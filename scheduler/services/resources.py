"""
Scheduling resources: depots, crews, employees and vehicles.

Every lookup is scoped to the caller's organization; an id that belongs to
another organization is reported as not found.
"""

from __future__ import annotations

import uuid
from typing import Optional, TypeVar

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from scheduler.core import errors
from scheduler.core.auth import RequestContext
from scheduler.models.base import utcnow
from scheduler.models.resources import Crew, Depot, Employee, Vehicle
from scheduler.services import quotas
from scheduler_shared.schemas.common import QuotaResource
from scheduler_shared.schemas.resources import Shift

log = structlog.get_logger()

T = TypeVar("T", bound=SQLModel)

DEFAULT_CREWS = (("Day Shift", Shift.DAY), ("Night Shift", Shift.NIGHT))


async def _get_scoped(
    model: type[T], resource_id: uuid.UUID, organization_id: uuid.UUID, session: AsyncSession
) -> T:
    result = await session.execute(
        select(model).where(model.id == resource_id, model.organization_id == organization_id)
    )
    obj = result.scalar_one_or_none()
    if not obj:
        raise errors.NotFound(f"{model.__name__} not found")
    return obj


def _apply(obj: SQLModel, changes: dict) -> None:
    for key, value in changes.items():
        if hasattr(value, "value"):
            value = value.value
        setattr(obj, key, value)


# ---------------------------------------------------------------------------
# Depots
# ---------------------------------------------------------------------------

async def list_depots(
    organization_id: uuid.UUID, session: AsyncSession, *, include_archived: bool = False
) -> list[Depot]:
    stmt = select(Depot).where(Depot.organization_id == organization_id)
    if not include_archived:
        stmt = stmt.where(Depot.archived_at.is_(None))
    result = await session.execute(stmt.order_by(Depot.created_at, Depot.name))
    return list(result.scalars().all())


async def create_depot(
    session: AsyncSession,
    *,
    organization_id: uuid.UUID,
    user_id: uuid.UUID,
    name: str,
    address: str,
    plan: Optional[str] = None,
    enforce_quota: bool = True,
) -> Depot:
    """Create a depot together with its day and night crews."""
    if enforce_quota:
        await quotas.check_quota(QuotaResource.DEPOTS, organization_id, plan, session)

    depot = Depot(organization_id=organization_id, user_id=user_id, name=name, address=address)
    session.add(depot)
    await session.flush()

    for crew_name, shift in DEFAULT_CREWS:
        session.add(
            Crew(
                organization_id=organization_id,
                depot_id=depot.id,
                user_id=user_id,
                name=crew_name,
                shift=shift.value,
            )
        )
    await session.flush()

    log.info("depot.created", depot_id=str(depot.id), org_id=str(organization_id))
    return depot


async def update_depot(
    depot_id: uuid.UUID, changes: dict, ctx: RequestContext, session: AsyncSession
) -> Depot:
    depot = await _get_scoped(Depot, depot_id, ctx.organization_id, session)
    _apply(depot, changes)
    session.add(depot)
    await session.flush()
    return depot


async def archive_depot(
    depot_id: uuid.UUID, ctx: RequestContext, session: AsyncSession
) -> Depot:
    """Soft-delete a depot and archive its active crews."""
    depot = await _get_scoped(Depot, depot_id, ctx.organization_id, session)
    now = utcnow()
    depot.archived_at = now
    session.add(depot)

    result = await session.execute(
        select(Crew).where(Crew.depot_id == depot.id, Crew.archived_at.is_(None))
    )
    for crew in result.scalars().all():
        crew.archived_at = now
        session.add(crew)
    await session.flush()

    log.info("depot.archived", depot_id=str(depot.id), org_id=str(ctx.organization_id))
    return depot


async def restore_depot(
    depot_id: uuid.UUID, ctx: RequestContext, session: AsyncSession
) -> Depot:
    depot = await _get_scoped(Depot, depot_id, ctx.organization_id, session)
    if depot.archived_at is None:
        return depot

    await quotas.check_quota(QuotaResource.DEPOTS, ctx.organization_id, ctx.plan, session)
    depot.archived_at = None
    session.add(depot)
    await session.flush()

    log.info("depot.restored", depot_id=str(depot.id), org_id=str(ctx.organization_id))
    return depot


# ---------------------------------------------------------------------------
# Crews
# ---------------------------------------------------------------------------

async def list_crews(organization_id: uuid.UUID, session: AsyncSession) -> list[Crew]:
    result = await session.execute(
        select(Crew)
        .where(Crew.organization_id == organization_id, Crew.archived_at.is_(None))
        .order_by(Crew.created_at, Crew.name)
    )
    return list(result.scalars().all())


async def create_crew(
    depot_id: uuid.UUID, name: str, shift: str, ctx: RequestContext, session: AsyncSession
) -> Crew:
    await _get_scoped(Depot, depot_id, ctx.organization_id, session)
    await quotas.check_quota(QuotaResource.CREWS, ctx.organization_id, ctx.plan, session)

    crew = Crew(
        organization_id=ctx.organization_id,
        depot_id=depot_id,
        user_id=ctx.user_id,
        name=name,
        shift=shift,
    )
    session.add(crew)
    await session.flush()
    log.info("crew.created", crew_id=str(crew.id), org_id=str(ctx.organization_id))
    return crew


async def update_crew(
    crew_id: uuid.UUID, changes: dict, ctx: RequestContext, session: AsyncSession
) -> Crew:
    crew = await _get_scoped(Crew, crew_id, ctx.organization_id, session)
    _apply(crew, changes)
    session.add(crew)
    await session.flush()
    return crew


async def archive_crew(
    crew_id: uuid.UUID, ctx: RequestContext, session: AsyncSession
) -> Crew:
    crew = await _get_scoped(Crew, crew_id, ctx.organization_id, session)
    crew.archived_at = utcnow()
    session.add(crew)
    await session.flush()
    log.info("crew.archived", crew_id=str(crew.id), org_id=str(ctx.organization_id))
    return crew


# ---------------------------------------------------------------------------
# Employees and vehicles (hard delete)
# ---------------------------------------------------------------------------

async def list_employees(organization_id: uuid.UUID, session: AsyncSession) -> list[Employee]:
    result = await session.execute(
        select(Employee).where(Employee.organization_id == organization_id).order_by(Employee.name)
    )
    return list(result.scalars().all())


async def create_employee(
    fields: dict, ctx: RequestContext, session: AsyncSession
) -> Employee:
    await _get_scoped(Depot, fields["depot_id"], ctx.organization_id, session)
    await quotas.check_quota(QuotaResource.EMPLOYEES, ctx.organization_id, ctx.plan, session)

    employee = Employee(organization_id=ctx.organization_id, user_id=ctx.user_id)
    _apply(employee, fields)
    session.add(employee)
    await session.flush()
    log.info("employee.created", employee_id=str(employee.id), org_id=str(ctx.organization_id))
    return employee


async def update_employee(
    employee_id: uuid.UUID, changes: dict, ctx: RequestContext, session: AsyncSession
) -> Employee:
    employee = await _get_scoped(Employee, employee_id, ctx.organization_id, session)
    _apply(employee, changes)
    session.add(employee)
    await session.flush()
    return employee


async def delete_employee(
    employee_id: uuid.UUID, ctx: RequestContext, session: AsyncSession
) -> None:
    employee = await _get_scoped(Employee, employee_id, ctx.organization_id, session)
    await session.delete(employee)
    await session.flush()
    log.info("employee.deleted", employee_id=str(employee_id), org_id=str(ctx.organization_id))


async def list_vehicles(organization_id: uuid.UUID, session: AsyncSession) -> list[Vehicle]:
    result = await session.execute(
        select(Vehicle).where(Vehicle.organization_id == organization_id).order_by(Vehicle.name)
    )
    return list(result.scalars().all())


async def create_vehicle(
    fields: dict, ctx: RequestContext, session: AsyncSession
) -> Vehicle:
    await _get_scoped(Depot, fields["depot_id"], ctx.organization_id, session)
    await quotas.check_quota(QuotaResource.VEHICLES, ctx.organization_id, ctx.plan, session)

    vehicle = Vehicle(organization_id=ctx.organization_id, user_id=ctx.user_id)
    _apply(vehicle, fields)
    session.add(vehicle)
    await session.flush()
    log.info("vehicle.created", vehicle_id=str(vehicle.id), org_id=str(ctx.organization_id))
    return vehicle


async def update_vehicle(
    vehicle_id: uuid.UUID, changes: dict, ctx: RequestContext, session: AsyncSession
) -> Vehicle:
    vehicle = await _get_scoped(Vehicle, vehicle_id, ctx.organization_id, session)
    _apply(vehicle, changes)
    session.add(vehicle)
    await session.flush()
    return vehicle


async def delete_vehicle(
    vehicle_id: uuid.UUID, ctx: RequestContext, session: AsyncSession
) -> None:
    vehicle = await _get_scoped(Vehicle, vehicle_id, ctx.organization_id, session)
    await session.delete(vehicle)
    await session.flush()
    log.info("vehicle.deleted", vehicle_id=str(vehicle_id), org_id=str(ctx.organization_id))
