"""
Plan limits: usage counting and enforcement per organization.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from scheduler.core import errors
from scheduler.models.base import utcnow
from scheduler.models.invite import Invite
from scheduler.models.membership import Membership
from scheduler.models.resources import Crew, Depot, Employee, Vehicle
from scheduler_shared.schemas.common import PLAN_LIMITS, UNLIMITED, PlanType, QuotaResource

log = structlog.get_logger()

QUOTA_LABELS = {
    QuotaResource.DEPOTS: "depots",
    QuotaResource.CREWS: "crews",
    QuotaResource.EMPLOYEES: "employees",
    QuotaResource.VEHICLES: "vehicles",
    QuotaResource.TEAM_MEMBERS: "team members",
}


def limits_for(plan: Optional[str]) -> dict[QuotaResource, int]:
    """Unknown plan tags get starter limits."""
    try:
        return PLAN_LIMITS[PlanType(plan)]
    except ValueError:
        return PLAN_LIMITS[PlanType.STARTER]


async def _count(session: AsyncSession, stmt) -> int:
    result = await session.execute(stmt)
    return result.scalar_one()


async def count_usage(
    resource: QuotaResource,
    organization_id: uuid.UUID,
    session: AsyncSession,
    *,
    now: datetime | None = None,
) -> int:
    """Current usage of one resource. Archived depots and crews do not count."""
    if resource == QuotaResource.DEPOTS:
        stmt = select(func.count()).select_from(Depot).where(
            Depot.organization_id == organization_id, Depot.archived_at.is_(None)
        )
    elif resource == QuotaResource.CREWS:
        stmt = select(func.count()).select_from(Crew).where(
            Crew.organization_id == organization_id, Crew.archived_at.is_(None)
        )
    elif resource == QuotaResource.EMPLOYEES:
        stmt = select(func.count()).select_from(Employee).where(
            Employee.organization_id == organization_id
        )
    elif resource == QuotaResource.VEHICLES:
        stmt = select(func.count()).select_from(Vehicle).where(
            Vehicle.organization_id == organization_id
        )
    else:
        # Pending invites hold a seat until they expire
        members = await _count(
            session,
            select(func.count()).select_from(Membership).where(
                Membership.organization_id == organization_id
            ),
        )
        pending = await _count(
            session,
            select(func.count()).select_from(Invite).where(
                Invite.organization_id == organization_id,
                Invite.expires_at >= (now or utcnow()),
            ),
        )
        return members + pending
    return await _count(session, stmt)


async def check_quota(
    resource: QuotaResource,
    organization_id: uuid.UUID,
    plan: Optional[str],
    session: AsyncSession,
) -> None:
    """Raise QuotaExceeded if creating one more ``resource`` would pass the plan limit."""
    limit = limits_for(plan)[resource]
    if limit == UNLIMITED:
        return

    used = await count_usage(resource, organization_id, session)
    if used >= limit:
        log.info(
            "quota.exceeded",
            org_id=str(organization_id),
            resource=resource.value,
            used=used,
            limit=limit,
        )
        raise errors.QuotaExceeded(
            f"Your plan allows up to {limit} {QUOTA_LABELS[resource]}. "
            "Upgrade your plan to add more.",
            resource=resource.value,
            currentUsage=used,
            limit=limit,
        )


async def usage_report(
    organization_id: uuid.UUID, plan: Optional[str], session: AsyncSession
) -> dict:
    limits = limits_for(plan)
    report: dict = {"plan": plan}
    for resource in QuotaResource:
        used = await count_usage(resource, organization_id, session)
        limit = limits[resource]
        report[resource.value] = {
            "used": used,
            "limit": limit,
            "remaining": None if limit == UNLIMITED else max(limit - used, 0),
        }
    return report
