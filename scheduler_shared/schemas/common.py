"""Enums, plan limits and the camelCase base model shared by every schema."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input, serializes camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MemberRole(str, Enum):
    ADMIN = "admin"
    OPERATIONS = "operations"
    USER = "user"  # shown as "Booker" in the UI


ROLE_LABELS: dict[MemberRole, str] = {
    MemberRole.ADMIN: "Administrator",
    MemberRole.OPERATIONS: "Operations Manager",
    MemberRole.USER: "Booker",
}

# Legacy membership rows may still carry "member".
LEGACY_ROLE_ALIASES = {"member": MemberRole.USER.value}


def normalize_role(role: Optional[str]) -> str:
    """Map legacy role labels onto current ones. Unknown labels pass through."""
    if role is None:
        return ""
    return LEGACY_ROLE_ALIASES.get(role, role)


class PlanType(str, Enum):
    STARTER = "starter"
    PRO = "pro"


class SubscriptionStatus(str, Enum):
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"


ACTIVE_SUBSCRIPTION_STATUSES = {SubscriptionStatus.TRIALING.value, SubscriptionStatus.ACTIVE.value}


class QuotaResource(str, Enum):
    DEPOTS = "depots"
    CREWS = "crews"
    EMPLOYEES = "employees"
    VEHICLES = "vehicles"
    TEAM_MEMBERS = "teamMembers"


UNLIMITED = -1

PLAN_LIMITS: dict[PlanType, dict[QuotaResource, int]] = {
    PlanType.STARTER: {
        QuotaResource.DEPOTS: 1,
        QuotaResource.CREWS: 3,
        QuotaResource.EMPLOYEES: 25,
        QuotaResource.VEHICLES: 10,
        QuotaResource.TEAM_MEMBERS: 5,
    },
    PlanType.PRO: {
        QuotaResource.DEPOTS: UNLIMITED,
        QuotaResource.CREWS: 30,
        QuotaResource.EMPLOYEES: 250,
        QuotaResource.VEHICLES: 60,
        QuotaResource.TEAM_MEMBERS: UNLIMITED,
    },
}


def plan_from_label(label: Optional[str]) -> PlanType:
    """Registration forms send free-text plan names ("Professional", "pro", ...)."""
    if label and "pro" in label.lower():
        return PlanType.PRO
    return PlanType.STARTER


class SuccessResponse(CamelModel):
    success: bool = True


# bcrypt only reads the first 72 bytes and newer releases refuse longer input.
MAX_PASSWORD_BYTES = 72


def check_password_bytes(password: Optional[str]) -> Optional[str]:
    if password is not None and len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return password
