"""
Billing-state bridge between organizations and Stripe.

Stripe calls go through a ``BillingClient`` so routes and tests never touch
the SDK directly. The SDK is synchronous; ``StripeBillingClient`` runs each
call in the thread pool.
"""

from __future__ import annotations

import uuid
from typing import Any, Optional, Protocol

import stripe
import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from starlette.concurrency import run_in_threadpool

from scheduler.core import errors
from scheduler.core.config import get_settings
from scheduler.models.organization import Organization
from scheduler.models.user import User
from scheduler_shared.schemas.common import PlanType

log = structlog.get_logger()


class BillingClient(Protocol):
    def is_configured(self) -> bool: ...

    @property
    def publishable_key(self) -> Optional[str]: ...

    async def create_customer(self, *, email: str, name: str, metadata: dict) -> str: ...

    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        trial_days: Optional[int] = None,
    ) -> str: ...

    async def list_products(self) -> list[dict]: ...

    def construct_event(self, payload: bytes, signature: str) -> dict: ...


def _plain(obj: Any) -> dict:
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


class StripeBillingClient:
    """Stripe SDK adapter. Keys are passed per call, never set globally."""

    def __init__(
        self,
        api_key: Optional[str],
        publishable_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
    ):
        self._api_key = api_key
        self._publishable_key = publishable_key
        self._webhook_secret = webhook_secret

    def is_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def publishable_key(self) -> Optional[str]:
        return self._publishable_key

    def _require_configured(self) -> None:
        if not self._api_key:
            raise errors.ConfigurationError(
                "Stripe is not configured. Set the Stripe secret key to enable billing."
            )

    async def _call(self, fn, *args, **kwargs):
        self._require_configured()
        try:
            return await run_in_threadpool(fn, *args, api_key=self._api_key, **kwargs)
        except stripe.StripeError as exc:
            log.error("billing.stripe_error", error=str(exc), code=getattr(exc, "code", None))
            raise errors.BillingError(exc.user_message or "Payment provider request failed")

    async def create_customer(self, *, email: str, name: str, metadata: dict) -> str:
        customer = await self._call(stripe.Customer.create, email=email, name=name, metadata=metadata)
        return customer.id

    async def create_checkout_session(
        self,
        *,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        trial_days: Optional[int] = None,
    ) -> str:
        params: dict[str, Any] = {
            "customer": customer_id,
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "mode": "subscription",
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        if trial_days:
            params["subscription_data"] = {"trial_period_days": trial_days}
        checkout = await self._call(stripe.checkout.Session.create, **params)
        return checkout.url

    async def list_products(self) -> list[dict]:
        products = await self._call(stripe.Product.list, active=True, limit=100)
        items = []
        for product in products.data:
            prices = await self._call(stripe.Price.list, product=product.id, active=True)
            items.append(
                {
                    "id": product.id,
                    "name": product.name,
                    "description": product.description,
                    "active": product.active,
                    "metadata": _plain(product.metadata),
                    "prices": [
                        {
                            "id": price.id,
                            "unit_amount": price.unit_amount,
                            "currency": price.currency,
                            "recurring": _plain(price.recurring) if price.recurring else None,
                            "active": price.active,
                            "metadata": _plain(price.metadata),
                        }
                        for price in prices.data
                    ],
                }
            )
        return items

    def construct_event(self, payload: bytes, signature: str) -> dict:
        if not self._webhook_secret:
            raise errors.ConfigurationError("Stripe webhook secret is not configured")
        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            log.warning("billing.webhook_rejected", error=str(exc))
            raise errors.ValidationError("Invalid webhook signature")
        return _plain(event)


def get_billing_client() -> BillingClient:
    """FastAPI dependency."""
    settings = get_settings()
    return StripeBillingClient(
        api_key=settings.stripe_api_key,
        publishable_key=settings.stripe_public_key,
        webhook_secret=settings.stripe_webhook_secret or None,
    )


# ---------------------------------------------------------------------------
# Customers and checkout
# ---------------------------------------------------------------------------

async def ensure_billing_customer(
    user_id: uuid.UUID, client: BillingClient, session: AsyncSession
) -> str:
    """Return the user's Stripe customer id, creating it on first use.

    The user row is locked for the duration so concurrent checkouts reuse one
    customer instead of creating two.
    """
    result = await session.execute(select(User).where(User.id == user_id).with_for_update())
    user = result.scalar_one_or_none()
    if not user:
        raise errors.NotFound("User not found")
    if user.stripe_customer_id:
        return user.stripe_customer_id

    customer_id = await client.create_customer(
        email=user.email or f"{user.username}@sewerswarm.app",
        name=user.username,
        metadata={"userId": str(user.id)},
    )
    user.stripe_customer_id = customer_id
    session.add(user)
    await session.flush()

    log.info("billing.customer_created", user_id=str(user.id))
    return customer_id


async def start_checkout(
    customer_id: str,
    price_id: str,
    client: BillingClient,
    *,
    trial_days: Optional[int] = None,
) -> str:
    """Create a subscription checkout session and return its URL."""
    if not client.is_configured():
        raise errors.ConfigurationError(
            "Stripe is not configured. Set the Stripe secret key to enable billing."
        )
    base = get_settings().app_url.rstrip("/")
    url = await client.create_checkout_session(
        customer_id=customer_id,
        price_id=price_id,
        success_url=f"{base}/schedule?checkout=success",
        cancel_url=f"{base}/?checkout=cancelled",
        trial_days=trial_days if trial_days and trial_days > 0 else None,
    )
    log.info("billing.checkout_started", price_id=price_id, trial_days=trial_days)
    return url


async def list_products(client: BillingClient) -> list[dict]:
    """Active products with their active prices; empty when billing is off."""
    if not client.is_configured():
        return []
    return await client.list_products()


# ---------------------------------------------------------------------------
# Webhook reconciliation
# ---------------------------------------------------------------------------

async def _org_for_customer(
    customer_id: Optional[str], session: AsyncSession
) -> Optional[Organization]:
    if not customer_id:
        return None
    result = await session.execute(
        select(Organization)
        .join(User, User.id == Organization.owner_id)
        .where(User.stripe_customer_id == customer_id)
        .order_by(Organization.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


def _plan_from_subscription(subscription: dict) -> Optional[str]:
    items = (subscription.get("items") or {}).get("data") or []
    for item in items:
        plan = ((item.get("price") or {}).get("metadata") or {}).get("plan")
        if plan in {p.value for p in PlanType}:
            return plan
    return None


async def handle_webhook_event(event: dict, session: AsyncSession) -> bool:
    """Apply a verified Stripe event. Returns whether anything was updated."""
    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type == "checkout.session.completed":
        org = await _org_for_customer(obj.get("customer"), session)
        if not org:
            log.warning("billing.webhook_unmatched", event_type=event_type)
            return False
        org.stripe_subscription_id = obj.get("subscription")
        org.subscription_status = "active"

    elif event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
        org = await _org_for_customer(obj.get("customer"), session)
        if not org:
            log.warning("billing.webhook_unmatched", event_type=event_type)
            return False
        org.stripe_subscription_id = obj.get("id") or org.stripe_subscription_id
        org.subscription_status = obj.get("status") or (
            "canceled" if event_type.endswith("deleted") else org.subscription_status
        )
        plan = _plan_from_subscription(obj)
        if plan:
            org.plan = plan

    else:
        log.debug("billing.webhook_ignored", event_type=event_type)
        return False

    session.add(org)
    await session.flush()
    log.info(
        "billing.subscription_synced",
        event_type=event_type,
        org_id=str(org.id),
        status=org.subscription_status,
        plan=org.plan,
    )
    return True
