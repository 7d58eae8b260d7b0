"""Organization, membership and quota schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from .common import CamelModel, MemberRole


class OrgResponse(CamelModel):
    id: uuid.UUID
    name: str
    plan: str
    subscription_status: str
    trial_ends_at: Optional[datetime] = None
    membership_role: str


class MemberResponse(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    username: str
    email: str
    role: str
    accepted_at: Optional[datetime] = None


class MembershipListItem(CamelModel):
    """One of the caller's own memberships."""
    id: uuid.UUID
    organization_id: uuid.UUID
    organization_name: str
    role: str
    accepted_at: Optional[datetime] = None
    active: bool = False


class MemberRoleUpdateRequest(CamelModel):
    role: MemberRole


class OrgSwitchRequest(CamelModel):
    organization_id: uuid.UUID


class QuotaUsageItem(CamelModel):
    used: int
    limit: int
    remaining: Optional[int] = None  # None when unlimited


class QuotaUsageResponse(CamelModel):
    plan: str
    depots: QuotaUsageItem
    crews: QuotaUsageItem
    employees: QuotaUsageItem
    vehicles: QuotaUsageItem
    team_members: QuotaUsageItem
