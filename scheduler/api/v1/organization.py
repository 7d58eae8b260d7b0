"""
Organization endpoints (active organization of the session).

GET    /api/organization                        — Organization info + caller's role
POST   /api/organization/switch                 — Change the active organization
GET    /api/organization/quota                  — Plan usage per resource
GET    /api/organization/members                — List members
PATCH  /api/organization/members/{id}/role      — Change a member's role (Admin)
DELETE /api/organization/members/{id}           — Remove a member (Admin)
GET    /api/organization/invites                — List invites (Admin)
POST   /api/organization/invites                — Invite by email (Admin)
POST   /api/organization/invites/{id}/resend    — New token + email (Admin)
DELETE /api/organization/invites/{id}           — Revoke an invite (Admin)
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.core.auth import (
    RequestContext,
    admin_context,
    get_request_context,
    get_session_claims,
    issue_session,
    revoke_session,
    session_user_id,
)
from scheduler.core.database import get_session
from scheduler.services import invites as invite_service
from scheduler.services import memberships as membership_service
from scheduler.services import organizations as org_service
from scheduler.services import quotas as quota_service
from scheduler.services.email import EmailSender, get_email_sender
from scheduler_shared.schemas.common import SuccessResponse, normalize_role
from scheduler_shared.schemas.invites import InviteCreateRequest, InviteResponse
from scheduler_shared.schemas.organizations import (
    MemberResponse,
    MemberRoleUpdateRequest,
    OrgResponse,
    OrgSwitchRequest,
    QuotaUsageResponse,
)

router = APIRouter()


def _org_response(org, role: str) -> OrgResponse:
    return OrgResponse(
        id=org.id,
        name=org.name,
        plan=org.plan,
        subscription_status=org.subscription_status,
        trial_ends_at=org.trial_ends_at,
        membership_role=role,
    )


@router.get("", response_model=OrgResponse)
async def get_organization(ctx: RequestContext = Depends(get_request_context)):
    return _org_response(ctx.org, ctx.role)


@router.post("/switch", response_model=OrgResponse)
async def switch_organization(
    body: OrgSwitchRequest,
    response: Response,
    claims: dict = Depends(get_session_claims),
    session: AsyncSession = Depends(get_session),
):
    """Re-issue the session for another organization the caller belongs to."""
    user_id = session_user_id(claims)
    org = await org_service.switch_org(user_id, body.organization_id, session)
    membership = await membership_service.get_membership(user_id, org.id, session)

    if claims.get("jti"):
        await revoke_session(claims["jti"])
    issue_session(response, user_id, org.id)
    return _org_response(org, normalize_role(membership.role))


@router.get("/quota", response_model=QuotaUsageResponse)
async def get_quota(
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    report = await quota_service.usage_report(ctx.organization_id, ctx.plan, session)
    return QuotaUsageResponse.model_validate(report)


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.get("/members", response_model=list[MemberResponse])
async def list_members(
    ctx: RequestContext = Depends(get_request_context),
    session: AsyncSession = Depends(get_session),
):
    items = await membership_service.list_members(ctx.organization_id, session)
    return [MemberResponse(**{**item, "role": normalize_role(item["role"])}) for item in items]


@router.patch("/members/{membershipId}/role", response_model=MemberResponse)
async def update_member_role(
    membershipId: uuid.UUID,
    body: MemberRoleUpdateRequest,
    ctx: RequestContext = Depends(admin_context),
    session: AsyncSession = Depends(get_session),
):
    item = await membership_service.update_member_role(membershipId, body.role.value, ctx, session)
    return MemberResponse(**item)


@router.delete("/members/{membershipId}", response_model=SuccessResponse)
async def remove_member(
    membershipId: uuid.UUID,
    ctx: RequestContext = Depends(admin_context),
    session: AsyncSession = Depends(get_session),
):
    await membership_service.remove_member(membershipId, ctx, session)
    return SuccessResponse()


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

@router.get("/invites", response_model=list[InviteResponse])
async def list_invites(
    ctx: RequestContext = Depends(admin_context),
    session: AsyncSession = Depends(get_session),
):
    invites = await invite_service.list_invites(ctx.organization_id, session)
    return [InviteResponse.model_validate(invite) for invite in invites]


@router.post("/invites", response_model=InviteResponse)
async def create_invite(
    body: InviteCreateRequest,
    ctx: RequestContext = Depends(admin_context),
    session: AsyncSession = Depends(get_session),
    sender: EmailSender = Depends(get_email_sender),
):
    invite = await invite_service.create_invite(body.email, body.role.value, ctx, session, sender)
    return InviteResponse.model_validate(invite)


@router.post("/invites/{inviteId}/resend", response_model=InviteResponse)
async def resend_invite(
    inviteId: uuid.UUID,
    ctx: RequestContext = Depends(admin_context),
    session: AsyncSession = Depends(get_session),
    sender: EmailSender = Depends(get_email_sender),
):
    invite = await invite_service.resend_invite(inviteId, ctx, session, sender)
    return InviteResponse.model_validate(invite)


@router.delete("/invites/{inviteId}", response_model=SuccessResponse)
async def delete_invite(
    inviteId: uuid.UUID,
    ctx: RequestContext = Depends(admin_context),
    session: AsyncSession = Depends(get_session),
):
    await invite_service.delete_invite(inviteId, ctx, session)
    return SuccessResponse()
