"""
Authentication and Authorization for the scheduler.

Supports:
- Username/email + password credentials (bcrypt, hashed off the event loop)
- Signed session JWT in an HTTP-only cookie with Redis revocation list
- Request context resolution: user + explicitly selected organization + role
- Role-based authorization predicates and FastAPI dependencies
"""

from __future__ import annotations

import secrets
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Optional

import bcrypt
import jwt
import structlog
from fastapi import Depends, Header, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from starlette.concurrency import run_in_threadpool

from scheduler.core import errors
from scheduler.core.config import get_settings
from scheduler.core.database import get_session
from scheduler.core.redis import get_redis
from scheduler.models.membership import Membership
from scheduler.models.organization import Organization
from scheduler.models.user import User
from scheduler_shared.schemas.common import MAX_PASSWORD_BYTES, MemberRole, normalize_role

log = structlog.get_logger()
settings = get_settings()

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a password using bcrypt with the configured cost factor."""
    encoded = password.encode()
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise errors.ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Verify a password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # Malformed stored hash, or a password over 72 bytes
        return False


@lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Stand-in hash checked when no user matches, so both login failures cost one bcrypt round."""
    return hash_password(secrets.token_urlsafe(16))


async def hash_password_async(password: str) -> str:
    return await run_in_threadpool(hash_password, password)


async def verify_password_async(password: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password, password, hashed)


# ---------------------------------------------------------------------------
# Session JWT
# ---------------------------------------------------------------------------

def create_session_token(
    user_id: uuid.UUID,
    active_org: Optional[uuid.UUID],
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed session JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.session_expire_minutes))
    payload = {
        "sub": str(user_id),
        "org": str(active_org) if active_org else None,
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_session_token(token: str) -> dict:
    """Decode and verify a session JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# Session revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_session(jti: str, ttl_seconds: int | None = None) -> None:
    """Add a session JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    ttl = ttl_seconds or settings.session_expire_minutes * 60
    await redis.setex(f"session:revoked:{jti}", ttl, "1")


async def is_session_revoked(jti: str) -> bool:
    """Check if a session JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(f"session:revoked:{jti}") > 0


# ---------------------------------------------------------------------------
# Cookies
# ---------------------------------------------------------------------------

def generate_csrf_token() -> str:
    """Generate a random CSRF token."""
    return secrets.token_urlsafe(32)


def _cookie_kwargs() -> dict:
    return {
        "secure": settings.is_production,
        "samesite": "lax",
        "path": "/",
        "max_age": settings.session_expire_minutes * 60,
    }


def issue_session(
    response: Response, user_id: uuid.UUID, active_org: Optional[uuid.UUID]
) -> str:
    """Sign a session for the user and attach session + CSRF cookies. Returns the jti."""
    token, jti = create_session_token(user_id, active_org)
    response.set_cookie(key=settings.session_cookie_name, value=token, httponly=True, **_cookie_kwargs())
    # JS must read the CSRF cookie
    response.set_cookie(
        key=settings.csrf_cookie_name, value=generate_csrf_token(), httponly=False, **_cookie_kwargs()
    )
    return jti


def clear_session(response: Response) -> None:
    response.delete_cookie(settings.session_cookie_name, path="/")
    response.delete_cookie(settings.csrf_cookie_name, path="/")


# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------

class RequestContext:
    """The resolved (user, organization, role) triple for one request."""

    def __init__(self, user: User, org: Organization, membership: Membership):
        self.user = user
        self.org = org
        self.membership = membership
        self.user_id = user.id
        self.organization_id = org.id
        self.membership_id = membership.id
        self.role = normalize_role(membership.role)
        self.plan = org.plan
        self.subscription_status = org.subscription_status


async def get_session_claims(request: Request) -> dict:
    """Validate the session cookie and return its claims."""
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise errors.Unauthorized("Unauthorized: missing session cookie")

    try:
        payload = decode_session_token(token)
        uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise errors.Unauthorized("Invalid or expired session")

    jti = payload.get("jti")
    if jti and await is_session_revoked(jti):
        raise errors.Unauthorized("Session has been revoked")
    return payload


async def get_optional_session_claims(request: Request) -> Optional[dict]:
    """Like get_session_claims, but anonymous callers get None."""
    try:
        return await get_session_claims(request)
    except errors.Unauthorized:
        return None


async def resolve_context(
    session: AsyncSession,
    user_id: uuid.UUID,
    organization_id: Optional[uuid.UUID],
) -> RequestContext:
    """Build the request context for a user acting in one organization.

    Every failure is Unauthorized: there is no default organization or role.
    """
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise errors.Unauthorized("User not found")

    if organization_id is None:
        raise errors.Unauthorized("No active organization")

    result = await session.execute(
        select(Membership, Organization)
        .join(Organization, Organization.id == Membership.organization_id)
        .where(Membership.user_id == user_id, Membership.organization_id == organization_id)
    )
    row = result.first()
    if not row:
        raise errors.Unauthorized("No organization membership found")

    membership, org = row
    return RequestContext(user=user, org=org, membership=membership)


def session_user_id(claims: dict) -> uuid.UUID:
    return uuid.UUID(claims["sub"])


def session_org_id(claims: dict) -> Optional[uuid.UUID]:
    org = claims.get("org")
    try:
        return uuid.UUID(org) if org else None
    except ValueError:
        return None


async def get_request_context(
    claims: dict = Depends(get_session_claims),
    x_organization_id: Optional[uuid.UUID] = Header(default=None, alias="X-Organization-Id"),
    session: AsyncSession = Depends(get_session),
) -> RequestContext:
    """Main authentication dependency.

    The organization comes from the X-Organization-Id header when present,
    otherwise from the active organization carried by the session.
    """
    org_id = x_organization_id or session_org_id(claims)
    ctx = await resolve_context(session, session_user_id(claims), org_id)
    structlog.contextvars.bind_contextvars(
        user_id=str(ctx.user_id), org_id=str(ctx.organization_id)
    )
    return ctx


# ---------------------------------------------------------------------------
# Authorization (role checks)
# ---------------------------------------------------------------------------

def require_role(ctx: RequestContext, allowed: Iterable[MemberRole | str]) -> None:
    """Raise Forbidden unless the context role is one of ``allowed``.

    Unknown role labels are always denied.
    """
    allowed_values = {r.value if isinstance(r, MemberRole) else r for r in allowed}
    if ctx.role not in allowed_values:
        raise errors.Forbidden(
            "Access denied. This action requires one of these roles: "
            + ", ".join(sorted(allowed_values))
        )


def require_admin(ctx: RequestContext) -> None:
    require_role(ctx, {MemberRole.ADMIN})


def require_admin_or_operations(ctx: RequestContext) -> None:
    require_role(ctx, {MemberRole.ADMIN, MemberRole.OPERATIONS})


async def admin_context(
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    """Requires the admin role in the active organization."""
    require_admin(ctx)
    return ctx


async def manager_context(
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    """Requires admin or operations role in the active organization."""
    require_admin_or_operations(ctx)
    return ctx
