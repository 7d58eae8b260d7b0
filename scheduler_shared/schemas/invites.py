"""Invite lifecycle schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .common import CamelModel, MemberRole, check_password_bytes


class InviteCreateRequest(CamelModel):
    email: EmailStr
    role: MemberRole


class InviteAcceptRequest(CamelModel):
    token: str = Field(min_length=1)
    password: Optional[str] = Field(default=None, max_length=72)
    username: Optional[str] = Field(default=None, max_length=200)

    password_fits_bcrypt = field_validator("password")(check_password_bytes)


class InviteInfoResponse(CamelModel):
    """Public view of an invite, shown on the accept page."""
    email: str
    role: str
    organization_name: str
    organization_id: uuid.UUID
    user_exists: bool
    expires_at: datetime


class InviteAcceptResponse(CamelModel):
    success: bool = True
    user_id: uuid.UUID
    message: str


class InviteResponse(CamelModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    email: str
    role: str
    invited_by: uuid.UUID
    token: str
    expires_at: datetime
    created_at: datetime
