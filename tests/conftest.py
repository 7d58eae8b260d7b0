"""
Shared fixtures: in-memory SQLite, fake Redis, fake billing and email.

Environment is set before any ``scheduler`` import so the cached settings
pick it up.
"""

from __future__ import annotations

import os

os.environ.setdefault("SCHED_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SCHED_SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("SCHED_BCRYPT_ROUNDS", "4")
os.environ.setdefault("SCHED_ENVIRONMENT", "development")
os.environ.setdefault("SCHED_LOG_LEVEL", "warning")
os.environ["SCHED_RESEND_API_KEY"] = ""

import uuid
from datetime import timedelta
from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import scheduler.models  # noqa: F401
from scheduler.core.auth import create_session_token, hash_password
from scheduler.core.config import get_settings
from scheduler.core.database import get_session
from scheduler.main import create_app
from scheduler.models.base import utcnow
from scheduler.models.invite import Invite
from scheduler.models.membership import Membership
from scheduler.models.organization import Organization
from scheduler.models.user import User
from scheduler.services.billing import get_billing_client
from scheduler.services.email import get_email_sender

settings = get_settings()

CSRF = "test-csrf-token"
PASSWORD = "secret123"


# ---------------------------------------------------------------------------
# Doubles
# ---------------------------------------------------------------------------

class FakeRedis:
    """Just enough of redis.asyncio for the revocation list."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def setex(self, key: str, ttl: int, value: str) -> None:
        self.store[key] = value

    async def exists(self, key: str) -> int:
        return 1 if key in self.store else 0


class FakeBillingClient:
    def __init__(self, configured: bool = True, publishable_key: Optional[str] = "pk_test_123"):
        self.configured = configured
        self._publishable_key = publishable_key
        self.customers: list[dict] = []
        self.checkouts: list[dict] = []
        self.event: dict | None = None

    def is_configured(self) -> bool:
        return self.configured

    @property
    def publishable_key(self) -> Optional[str]:
        return self._publishable_key

    async def create_customer(self, *, email: str, name: str, metadata: dict) -> str:
        self.customers.append({"email": email, "name": name, "metadata": metadata})
        return f"cus_{len(self.customers)}"

    async def create_checkout_session(self, **kwargs) -> str:
        self.checkouts.append(kwargs)
        return f"https://checkout.stripe.test/{len(self.checkouts)}"

    async def list_products(self) -> list[dict]:
        return [
            {
                "id": "prod_pro",
                "name": "Professional",
                "description": None,
                "active": True,
                "metadata": {"plan": "pro"},
                "prices": [
                    {
                        "id": "price_pro_monthly",
                        "unit_amount": 9900,
                        "currency": "gbp",
                        "recurring": {"interval": "month"},
                        "active": True,
                        "metadata": {},
                    }
                ],
            }
        ]

    def construct_event(self, payload: bytes, signature: str) -> dict:
        from scheduler.core import errors

        if signature != "valid" or self.event is None:
            raise errors.ValidationError("Invalid webhook signature")
        return self.event


class RecordingEmailSender:
    def __init__(self):
        self.sent: list[dict] = []

    async def send(self, to: str, subject: str, html_body: str, text: Optional[str] = None) -> bool:
        self.sent.append({"to": to, "subject": subject, "html": html_body, "text": text})
        return True


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    """A session for service-level tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def fake_redis():
    redis = FakeRedis()
    with patch("scheduler.core.auth.get_redis", AsyncMock(return_value=redis)):
        yield redis


# ---------------------------------------------------------------------------
# App + client
# ---------------------------------------------------------------------------

@pytest.fixture
def billing():
    return FakeBillingClient()


@pytest.fixture
def mailer():
    return RecordingEmailSender()


@pytest.fixture
def app(session_factory, billing, mailer):
    app = create_app()

    async def _get_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    app.dependency_overrides[get_billing_client] = lambda: billing
    app.dependency_overrides[get_email_sender] = lambda: mailer
    return app


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def sign_in(client: AsyncClient, user_id: uuid.UUID, org_id: Optional[uuid.UUID] = None) -> str:
    """Attach a valid session + CSRF pair to ``client``. Returns the jti."""
    token, jti = create_session_token(user_id, org_id)
    client.cookies.set(settings.session_cookie_name, token)
    client.cookies.set(settings.csrf_cookie_name, CSRF)
    client.headers["X-CSRF-Token"] = CSRF
    return jti


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------

async def seed_org(
    session_factory,
    *,
    username: Optional[str] = None,
    email: Optional[str] = None,
    role: str = "admin",
    plan: str = "starter",
    password: str = PASSWORD,
) -> tuple[User, Organization, Membership]:
    """A user who owns an organization and holds ``role`` in it."""
    username = username or f"user-{uuid.uuid4().hex[:8]}"
    async with session_factory() as s:
        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
        )
        s.add(user)
        await s.flush()
        org = Organization(name=f"{username} Org", owner_id=user.id, plan=plan)
        s.add(org)
        await s.flush()
        membership = Membership(
            user_id=user.id, organization_id=org.id, role=role, accepted_at=utcnow()
        )
        s.add(membership)
        await s.commit()
    return user, org, membership


async def seed_member(
    session_factory,
    org: Organization,
    *,
    role: str = "user",
    username: Optional[str] = None,
    email: Optional[str] = None,
    password: str = PASSWORD,
) -> tuple[User, Membership]:
    """A user who joins an existing organization."""
    async with session_factory() as s:
        user = User(
            username=username or f"member-{uuid.uuid4().hex[:8]}",
            email=email,
            password_hash=hash_password(password),
        )
        s.add(user)
        await s.flush()
        membership = Membership(
            user_id=user.id, organization_id=org.id, role=role, accepted_at=utcnow()
        )
        s.add(membership)
        await s.commit()
    return user, membership


async def seed_invite(
    session_factory,
    org: Organization,
    inviter: User,
    *,
    email: str = "a@x.com",
    role: str = "operations",
    token: Optional[str] = None,
    expires_in: timedelta = timedelta(days=7),
) -> Invite:
    async with session_factory() as s:
        invite = Invite(
            organization_id=org.id,
            email=email,
            role=role,
            invited_by=inviter.id,
            token=token or uuid.uuid4().hex,
            expires_at=utcnow() + expires_in,
        )
        s.add(invite)
        await s.commit()
    return invite
