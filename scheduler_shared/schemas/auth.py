"""Registration, login and session schemas."""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .common import CamelModel, MemberRole, PlanType, check_password_bytes


class RegisterRequest(CamelModel):
    username: str = Field(min_length=1, max_length=200)
    password: str = Field(min_length=6, max_length=72)
    email: Optional[EmailStr] = None
    role: MemberRole = MemberRole.USER
    company: Optional[str] = Field(default=None, max_length=200)
    plan: Optional[str] = None

    password_fits_bcrypt = field_validator("password")(check_password_bytes)


class LoginRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class OrganizationSummary(CamelModel):
    id: uuid.UUID
    name: str
    plan: PlanType


class UserResponse(CamelModel):
    id: uuid.UUID
    username: str
    email: Optional[str] = None
    role: str


class RegisterResponse(UserResponse):
    organization: OrganizationSummary


class MeResponse(UserResponse):
    membership_role: str


class CurrentUserResponse(CamelModel):
    user_id: uuid.UUID
