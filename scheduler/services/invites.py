"""
Invite lifecycle: create, look up, accept, resend, delete and purge.

An invite is single-use. Expiry is derived from ``expires_at`` at every read
and at acceptance; expired rows linger until ``purge_expired_invites`` runs.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from scheduler.core import errors
from scheduler.core.auth import RequestContext, verify_password_async
from scheduler.core.config import get_settings
from scheduler.core.logging import mask_identifier
from scheduler.models.base import as_utc, utcnow
from scheduler.models.invite import Invite
from scheduler.models.organization import Organization
from scheduler.models.user import User
from scheduler.services import memberships, quotas, users
from scheduler.services.email import (
    EmailSender,
    invite_subject,
    invite_url,
    render_invite_email,
    render_invite_text,
)
from scheduler_shared.schemas.common import QuotaResource

log = structlog.get_logger()

MIN_PASSWORD_LENGTH = 6


def generate_invite_token() -> str:
    return secrets.token_urlsafe(32)


def invite_expiry(now: datetime | None = None) -> datetime:
    return (now or utcnow()) + timedelta(days=get_settings().invite_expiry_days)


def is_expired(invite: Invite, now: datetime | None = None) -> bool:
    """Expired strictly after ``expires_at``."""
    return (now or utcnow()) > as_utc(invite.expires_at)


async def get_invite_by_token(token: str, session: AsyncSession) -> Optional[Invite]:
    result = await session.execute(select(Invite).where(Invite.token == token))
    return result.scalar_one_or_none()


async def get_invite_by_id(invite_id: uuid.UUID, session: AsyncSession) -> Optional[Invite]:
    result = await session.execute(select(Invite).where(Invite.id == invite_id))
    return result.scalar_one_or_none()


async def _get_live_invite(
    token: str, session: AsyncSession, now: datetime | None
) -> tuple[Invite, Organization]:
    invite = await get_invite_by_token(token, session)
    if not invite:
        raise errors.NotFound("Invalid or expired invite")
    if is_expired(invite, now):
        raise errors.Expired()

    result = await session.execute(
        select(Organization).where(Organization.id == invite.organization_id)
    )
    org = result.scalar_one_or_none()
    if not org:
        raise errors.NotFound("Organization not found")
    return invite, org


async def get_invite_info(
    token: str, session: AsyncSession, *, now: datetime | None = None
) -> dict:
    """Public view of an invite for the accept page. Read-only."""
    invite, org = await _get_live_invite(token, session, now)
    existing = await users.get_user_by_email(invite.email, session)
    return {
        "email": invite.email,
        "role": invite.role,
        "organization_name": org.name,
        "organization_id": org.id,
        "user_exists": existing is not None,
        "expires_at": as_utc(invite.expires_at),
    }


async def _consume_invite(invite: Invite, session: AsyncSession) -> None:
    """Delete the invite row; exactly one caller can succeed."""
    result = await session.execute(
        delete(Invite).where(Invite.id == invite.id).execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise errors.NotFound("Invalid or expired invite")
    session.expunge(invite)


async def _resolve_invitee(
    invite: Invite,
    password: Optional[str],
    username: Optional[str],
    session: AsyncSession,
    session_user_id: Optional[uuid.UUID],
) -> User:
    user = await users.get_user_by_email(invite.email, session)

    if user is None:
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise errors.ValidationError(
                "Password is required and must be at least 6 characters"
            )
        final_username = (username or "").strip() or invite.email
        if await users.get_user_by_username(final_username, session):
            raise errors.Conflict(
                "Username is already taken. Please choose a different username."
            )
        # The membership role, not this label, governs access inside the org
        return await users.create_user(
            session,
            username=final_username,
            password=password,
            email=invite.email,
            role="user",
        )

    if password:
        if not await verify_password_async(password, user.password_hash):
            log.warning("invite.accept_bad_password", user_id=str(user.id))
            raise errors.InvalidCredentials("Invalid password")
        return user

    # No password: only a caller already signed in as this user may accept
    if session_user_id != user.id:
        raise errors.InvalidCredentials(
            "Sign in or enter your password to accept this invite"
        )
    return user


async def accept_invite(
    token: str,
    session: AsyncSession,
    *,
    password: Optional[str] = None,
    username: Optional[str] = None,
    session_user_id: Optional[uuid.UUID] = None,
    now: datetime | None = None,
) -> dict:
    """Consume an invite and attach the invitee to its organization.

    Runs inside the caller's transaction: the invite deletion and the
    membership insert commit together or not at all. Returns ``user``,
    ``organization_id``, ``already_member`` and ``message``.
    """
    invite, org = await _get_live_invite(token, session, now)
    user = await _resolve_invitee(invite, password, username, session, session_user_id)

    invite_id = invite.id
    role = invite.role
    invited_by = invite.invited_by
    await _consume_invite(invite, session)

    if await memberships.get_membership(user.id, org.id, session):
        log.info(
            "invite.accepted",
            invite_id=str(invite_id),
            user_id=str(user.id),
            org_id=str(org.id),
            already_member=True,
        )
        return {
            "user": user,
            "organization_id": org.id,
            "already_member": True,
            "message": "You are already a member of this organization",
        }

    await memberships.create_membership(
        session,
        user_id=user.id,
        organization_id=org.id,
        role=role,
        invited_by=invited_by,
        accepted_at=now or utcnow(),
    )
    log.info(
        "invite.accepted",
        invite_id=str(invite_id),
        user_id=str(user.id),
        org_id=str(org.id),
        role=role,
    )
    return {
        "user": user,
        "organization_id": org.id,
        "already_member": False,
        "message": "Invite accepted successfully",
    }


# ---------------------------------------------------------------------------
# Administration (admin of the owning organization)
# ---------------------------------------------------------------------------

async def list_invites(organization_id: uuid.UUID, session: AsyncSession) -> list[Invite]:
    result = await session.execute(
        select(Invite)
        .where(Invite.organization_id == organization_id)
        .order_by(Invite.created_at.desc())
    )
    return list(result.scalars().all())


async def _get_scoped_invite(
    invite_id: uuid.UUID, ctx: RequestContext, session: AsyncSession
) -> Invite:
    invite = await get_invite_by_id(invite_id, session)
    if not invite:
        raise errors.NotFound("Invite not found")
    if invite.organization_id != ctx.organization_id:
        log.warning(
            "invite.cross_tenant_access",
            invite_id=str(invite_id),
            org_id=str(ctx.organization_id),
            actor=str(ctx.user_id),
        )
        raise errors.Forbidden()
    return invite


async def _send_invite_email(
    invite: Invite, ctx: RequestContext, sender: EmailSender
) -> bool:
    url = invite_url(invite.token)
    return await sender.send(
        invite.email,
        invite_subject(ctx.org.name),
        render_invite_email(
            url,
            ctx.org.name,
            invite.role,
            inviter_name=ctx.user.username,
            expiry_days=get_settings().invite_expiry_days,
        ),
        render_invite_text(url, ctx.org.name),
    )


async def create_invite(
    email: str,
    role: str,
    ctx: RequestContext,
    session: AsyncSession,
    sender: EmailSender,
    *,
    now: datetime | None = None,
) -> Invite:
    now = now or utcnow()
    email = users.normalize_email(email)

    existing_user = await users.get_user_by_email(email, session)
    if existing_user and await memberships.get_membership(
        existing_user.id, ctx.organization_id, session
    ):
        raise errors.Conflict("User is already a member of this organization")

    result = await session.execute(
        select(Invite).where(
            Invite.organization_id == ctx.organization_id,
            Invite.email == email,
        )
    )
    for previous in result.scalars().all():
        if not is_expired(previous, now):
            raise errors.Conflict("An invite already exists for this email")
        await session.delete(previous)
    await session.flush()

    await quotas.check_quota(
        QuotaResource.TEAM_MEMBERS, ctx.organization_id, ctx.plan, session
    )

    invite = Invite(
        organization_id=ctx.organization_id,
        email=email,
        role=role,
        invited_by=ctx.user_id,
        token=generate_invite_token(),
        expires_at=invite_expiry(now),
        created_at=now,
    )
    session.add(invite)
    try:
        await session.flush()
    except IntegrityError:
        raise errors.Conflict("An invite already exists for this email")

    log.info(
        "invite.created",
        invite_id=str(invite.id),
        org_id=str(ctx.organization_id),
        email=mask_identifier(email),
        role=role,
        actor=str(ctx.user_id),
    )
    await _send_invite_email(invite, ctx, sender)
    return invite


async def resend_invite(
    invite_id: uuid.UUID,
    ctx: RequestContext,
    session: AsyncSession,
    sender: EmailSender,
    *,
    now: datetime | None = None,
) -> Invite:
    """Issue a fresh token and expiry; the old link stops working."""
    invite = await _get_scoped_invite(invite_id, ctx, session)
    invite.token = generate_invite_token()
    invite.expires_at = invite_expiry(now)
    session.add(invite)
    await session.flush()

    log.info("invite.resent", invite_id=str(invite.id), org_id=str(ctx.organization_id))
    await _send_invite_email(invite, ctx, sender)
    return invite


async def delete_invite(
    invite_id: uuid.UUID, ctx: RequestContext, session: AsyncSession
) -> None:
    invite = await _get_scoped_invite(invite_id, ctx, session)
    await session.delete(invite)
    await session.flush()
    log.info(
        "invite.deleted",
        invite_id=str(invite_id),
        org_id=str(ctx.organization_id),
        actor=str(ctx.user_id),
    )


async def purge_expired_invites(
    session: AsyncSession, *, now: datetime | None = None
) -> int:
    """Delete every invite past its expiry. Returns the number removed."""
    result = await session.execute(
        delete(Invite)
        .where(Invite.expires_at < (now or utcnow()))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0
