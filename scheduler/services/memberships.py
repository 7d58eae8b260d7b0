"""
Membership directory: maps users to organizations with a role.

At most one membership exists per (user, organization) pair; the database
enforces it with ``uq_membership_user_org``.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from scheduler.core import errors
from scheduler.core.auth import RequestContext
from scheduler.models.base import utcnow
from scheduler.models.membership import Membership
from scheduler.models.organization import Organization
from scheduler.models.user import User

log = structlog.get_logger()


async def get_membership(
    user_id: uuid.UUID, organization_id: uuid.UUID, session: AsyncSession
) -> Optional[Membership]:
    result = await session.execute(
        select(Membership).where(
            Membership.user_id == user_id,
            Membership.organization_id == organization_id,
        )
    )
    return result.scalar_one_or_none()


async def get_membership_by_id(
    membership_id: uuid.UUID, session: AsyncSession
) -> Optional[Membership]:
    result = await session.execute(select(Membership).where(Membership.id == membership_id))
    return result.scalar_one_or_none()


async def create_membership(
    session: AsyncSession,
    *,
    user_id: uuid.UUID,
    organization_id: uuid.UUID,
    role: str,
    invited_by: Optional[uuid.UUID] = None,
    accepted_at: Optional[datetime] = None,
) -> Membership:
    """Insert a membership. Raises Conflict if the pair already exists."""
    if await get_membership(user_id, organization_id, session):
        raise errors.Conflict("User is already a member of this organization")

    membership = Membership(
        user_id=user_id,
        organization_id=organization_id,
        role=role,
        invited_by=invited_by,
        accepted_at=accepted_at or utcnow(),
    )
    session.add(membership)
    try:
        await session.flush()
    except IntegrityError:
        # Lost a race with a concurrent insert for the same pair
        raise errors.Conflict("User is already a member of this organization")

    log.info(
        "membership.created",
        membership_id=str(membership.id),
        user_id=str(user_id),
        org_id=str(organization_id),
        role=role,
    )
    return membership


async def get_memberships_by_user(
    user_id: uuid.UUID, session: AsyncSession
) -> list[tuple[Membership, Organization]]:
    """All of a user's memberships with their organizations, oldest first."""
    result = await session.execute(
        select(Membership, Organization)
        .join(Organization, Organization.id == Membership.organization_id)
        .where(Membership.user_id == user_id)
        .order_by(Membership.accepted_at, Membership.id)
    )
    return list(result.all())


async def get_primary_membership(
    user_id: uuid.UUID, session: AsyncSession
) -> Optional[Membership]:
    """The organization the user owns if any, otherwise their oldest membership."""
    rows = await get_memberships_by_user(user_id, session)
    for membership, org in rows:
        if org.owner_id == user_id:
            return membership
    return rows[0][0] if rows else None


async def list_members(
    organization_id: uuid.UUID, session: AsyncSession
) -> list[dict]:
    result = await session.execute(
        select(Membership, User)
        .join(User, User.id == Membership.user_id)
        .where(Membership.organization_id == organization_id)
        .order_by(Membership.accepted_at, Membership.id)
    )
    return [
        {
            "id": m.id,
            "user_id": m.user_id,
            "username": user.username,
            "email": user.email or "",
            "role": m.role,
            "accepted_at": m.accepted_at,
        }
        for m, user in result.all()
    ]


async def count_members(organization_id: uuid.UUID, session: AsyncSession) -> int:
    result = await session.execute(
        select(func.count()).select_from(Membership).where(Membership.organization_id == organization_id)
    )
    return result.scalar_one()


async def _get_scoped_membership(
    membership_id: uuid.UUID, ctx: RequestContext, session: AsyncSession
) -> Membership:
    membership = await get_membership_by_id(membership_id, session)
    if not membership:
        raise errors.NotFound("Membership not found")
    if membership.organization_id != ctx.organization_id:
        raise errors.Forbidden()
    return membership


async def update_member_role(
    membership_id: uuid.UUID, role: str, ctx: RequestContext, session: AsyncSession
) -> dict:
    membership = await _get_scoped_membership(membership_id, ctx, session)
    membership.role = role
    session.add(membership)
    await session.flush()

    result = await session.execute(select(User).where(User.id == membership.user_id))
    user = result.scalar_one_or_none()

    log.info(
        "membership.role_updated",
        membership_id=str(membership.id),
        org_id=str(ctx.organization_id),
        role=role,
        actor=str(ctx.user_id),
    )
    return {
        "id": membership.id,
        "user_id": membership.user_id,
        "username": user.username if user else "Unknown",
        "email": (user.email if user else None) or "",
        "role": membership.role,
        "accepted_at": membership.accepted_at,
    }


async def remove_member(
    membership_id: uuid.UUID, ctx: RequestContext, session: AsyncSession
) -> None:
    membership = await _get_scoped_membership(membership_id, ctx, session)
    if membership.user_id == ctx.user_id:
        raise errors.ValidationError("You cannot remove yourself from the organization")

    await session.delete(membership)
    await session.flush()
    log.info(
        "membership.removed",
        membership_id=str(membership_id),
        org_id=str(ctx.organization_id),
        actor=str(ctx.user_id),
    )
