"""
Public invite endpoints (no session required).

GET  /api/invites/{token}   — Invite details for the accept page
POST /api/invites/accept    — Accept an invite and start a session
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.core.auth import get_optional_session_claims, issue_session, session_user_id
from scheduler.core.database import get_session
from scheduler.services import invites as invite_service
from scheduler_shared.schemas.invites import (
    InviteAcceptRequest,
    InviteAcceptResponse,
    InviteInfoResponse,
)

router = APIRouter()


@router.get("/{token}", response_model=InviteInfoResponse)
async def get_invite(token: str, session: AsyncSession = Depends(get_session)):
    info = await invite_service.get_invite_info(token, session)
    return InviteInfoResponse(**info)


@router.post("/accept", response_model=InviteAcceptResponse)
async def accept_invite(
    body: InviteAcceptRequest,
    response: Response,
    claims: Optional[dict] = Depends(get_optional_session_claims),
    session: AsyncSession = Depends(get_session),
):
    """Creates the account for new invitees; existing users must prove identity
    with their password or an active session."""
    result = await invite_service.accept_invite(
        body.token,
        session,
        password=body.password,
        username=body.username,
        session_user_id=session_user_id(claims) if claims else None,
    )
    # Invite consumption and membership must be durable before the cookie is issued
    await session.commit()

    user = result["user"]
    issue_session(response, user.id, result["organization_id"])
    return InviteAcceptResponse(success=True, user_id=user.id, message=result["message"])
