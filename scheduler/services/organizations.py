"""
Organization service: self-service registration and tenant lookups.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from scheduler.core import errors
from scheduler.core.config import get_settings
from scheduler.core.logging import mask_identifier
from scheduler.models.base import utcnow
from scheduler.models.organization import Organization
from scheduler.models.user import User
from scheduler.services import memberships, resources, users
from scheduler_shared.schemas.auth import RegisterRequest
from scheduler_shared.schemas.common import MemberRole, SubscriptionStatus, plan_from_label

log = structlog.get_logger()

DEFAULT_DEPOT_NAME = "Main Depot"
DEFAULT_DEPOT_ADDRESS = "Address to be updated"


async def get_org(organization_id: uuid.UUID, session: AsyncSession) -> Optional[Organization]:
    result = await session.execute(select(Organization).where(Organization.id == organization_id))
    return result.scalar_one_or_none()


async def get_owned_org(user_id: uuid.UUID, session: AsyncSession) -> Optional[Organization]:
    """The oldest organization owned by ``user_id``."""
    result = await session.execute(
        select(Organization)
        .where(Organization.owner_id == user_id)
        .order_by(Organization.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


def default_org_name(company: Optional[str], email: Optional[str], username: str) -> str:
    if company and company.strip():
        return company.strip()
    if email:
        return f"{email.split('@')[0]}'s Organization"
    return f"{username}'s Organization"


async def _seed_default_depot(user: User, org: Organization, session: AsyncSession) -> None:
    """Best effort: a failure is logged and does not fail registration."""
    try:
        async with session.begin_nested():
            await resources.create_depot(
                session,
                organization_id=org.id,
                user_id=user.id,
                name=DEFAULT_DEPOT_NAME,
                address=DEFAULT_DEPOT_ADDRESS,
                enforce_quota=False,
            )
    except SQLAlchemyError as exc:
        log.error("org.default_depot_failed", org_id=str(org.id), error=str(exc))


async def register(
    req: RegisterRequest, session: AsyncSession, *, now: datetime | None = None
) -> tuple[User, Organization]:
    """Create a user, their organization and an admin membership.

    All-or-nothing: a duplicate username or email raises Conflict before
    anything is written, and a lost uniqueness race rolls back with the
    caller's transaction.
    """
    now = now or utcnow()
    is_email = users.is_email_identifier(req.username)
    email = users.normalize_email(req.email or (req.username if is_email else None))

    if email and await users.get_user_by_email(email, session):
        raise errors.Conflict("This email address is already registered. Please sign in instead.")
    if await users.get_user_by_username(req.username, session):
        raise errors.Conflict("This username is already taken. Please choose another.")

    user = await users.create_user(
        session,
        username=req.username,
        password=req.password,
        email=email,
        role=req.role.value,
    )

    org = Organization(
        name=default_org_name(req.company, email, req.username),
        owner_id=user.id,
        plan=plan_from_label(req.plan).value,
        subscription_status=SubscriptionStatus.TRIALING.value,
        trial_ends_at=now + timedelta(days=get_settings().trial_days),
    )
    session.add(org)
    await session.flush()

    await memberships.create_membership(
        session,
        user_id=user.id,
        organization_id=org.id,
        role=MemberRole.ADMIN.value,
        accepted_at=now,
    )
    await _seed_default_depot(user, org, session)

    log.info(
        "org.registered",
        user_id=str(user.id),
        org_id=str(org.id),
        username=mask_identifier(req.username),
        plan=org.plan,
    )
    return user, org


async def switch_org(
    user_id: uuid.UUID, organization_id: uuid.UUID, session: AsyncSession
) -> Organization:
    """Validate that the user may act in ``organization_id``."""
    if not await memberships.get_membership(user_id, organization_id, session):
        raise errors.Forbidden("You are not a member of this organization")
    org = await get_org(organization_id, session)
    if not org:
        raise errors.NotFound("Organization not found")
    log.info("org.switched", user_id=str(user_id), org_id=str(organization_id))
    return org
