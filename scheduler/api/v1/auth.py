"""
Authentication endpoints.

POST /api/register        — Create user + organization, start a session
POST /api/login           — Username or email + password
POST /api/logout          — Revoke the session and clear cookies
GET  /api/user            — Session user id
GET  /api/me              — Session user with membership role
GET  /api/me/memberships  — All of the caller's memberships
"""

from __future__ import annotations

import uuid
from typing import Optional

import jwt
import structlog
from fastapi import APIRouter, Depends, Header, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.core import errors
from scheduler.core.auth import (
    clear_session,
    decode_session_token,
    get_session_claims,
    issue_session,
    revoke_session,
    session_org_id,
    session_user_id,
)
from scheduler.core.config import get_settings
from scheduler.core.database import get_session
from scheduler.services import memberships as membership_service
from scheduler.services import organizations as org_service
from scheduler.services import users as user_service
from scheduler_shared.schemas.auth import (
    CurrentUserResponse,
    LoginRequest,
    MeResponse,
    OrganizationSummary,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)
from scheduler_shared.schemas.common import MemberRole, SuccessResponse, normalize_role
from scheduler_shared.schemas.organizations import MembershipListItem

log = structlog.get_logger()
settings = get_settings()
router = APIRouter()


@router.post("/register", response_model=RegisterResponse)
async def register(
    body: RegisterRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Register a user with their own organization on a trial plan."""
    user, org = await org_service.register(body, session)
    # Commit before the cookie goes out
    await session.commit()
    issue_session(response, user.id, org.id)

    return RegisterResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        organization=OrganizationSummary(id=org.id, name=org.name, plan=org.plan),
    )


@router.post("/login", response_model=UserResponse)
async def login(
    body: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_session),
):
    """Identifiers containing '@' are treated as email addresses."""
    user = await user_service.authenticate(body.username, body.password, session)
    primary = await membership_service.get_primary_membership(user.id, session)
    issue_session(response, user.id, primary.organization_id if primary else None)

    return UserResponse(id=user.id, username=user.username, email=user.email, role=user.role)


@router.post("/logout", response_model=SuccessResponse)
async def logout(request: Request, response: Response):
    token = request.cookies.get(settings.session_cookie_name)
    if token:
        try:
            payload = decode_session_token(token)
        except jwt.PyJWTError:
            payload = None
        if payload and payload.get("jti"):
            await revoke_session(payload["jti"])
            log.info("auth.logout", user_id=payload.get("sub"))

    clear_session(response)
    return SuccessResponse()


@router.get("/user", response_model=CurrentUserResponse)
async def current_user(claims: dict = Depends(get_session_claims)):
    return CurrentUserResponse(user_id=session_user_id(claims))


@router.get("/me", response_model=MeResponse)
async def me(
    claims: dict = Depends(get_session_claims),
    x_organization_id: Optional[uuid.UUID] = Header(default=None, alias="X-Organization-Id"),
    session: AsyncSession = Depends(get_session),
):
    """The session user and their role in the active organization."""
    user = await user_service.get_user(session_user_id(claims), session)
    if not user:
        raise errors.Unauthorized("User not found")

    role = MemberRole.USER.value
    org_id = x_organization_id or session_org_id(claims)
    if org_id:
        membership = await membership_service.get_membership(user.id, org_id, session)
        if membership:
            role = normalize_role(membership.role)

    return MeResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        role=user.role,
        membership_role=role,
    )


@router.get("/me/memberships", response_model=list[MembershipListItem])
async def my_memberships(
    claims: dict = Depends(get_session_claims),
    session: AsyncSession = Depends(get_session),
):
    active = session_org_id(claims)
    rows = await membership_service.get_memberships_by_user(session_user_id(claims), session)
    return [
        MembershipListItem(
            id=m.id,
            organization_id=org.id,
            organization_name=org.name,
            role=normalize_role(m.role),
            accepted_at=m.accepted_at,
            active=org.id == active,
        )
        for m, org in rows
    ]
