"""
Stripe billing endpoints.

GET  /api/stripe/config    — Publishable key for Stripe.js
GET  /api/stripe/products  — Active products with prices
POST /api/stripe/checkout  — Start a subscription checkout
POST /api/stripe/webhook   — Stripe event receiver (signature verified)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from scheduler.core import errors
from scheduler.core.auth import RequestContext, get_request_context
from scheduler.core.database import get_session
from scheduler.services import billing as billing_service
from scheduler.services.billing import BillingClient, get_billing_client
from scheduler_shared.schemas.billing import (
    CheckoutRequest,
    CheckoutResponse,
    ProductItem,
    ProductListResponse,
    StripeConfigResponse,
    WebhookResponse,
)

router = APIRouter()


@router.get("/config", response_model=StripeConfigResponse)
async def stripe_config(client: BillingClient = Depends(get_billing_client)):
    if not client.publishable_key:
        raise errors.ConfigurationError("Stripe publishable key not configured")
    return StripeConfigResponse(publishable_key=client.publishable_key)


@router.get("/products", response_model=ProductListResponse)
async def stripe_products(client: BillingClient = Depends(get_billing_client)):
    items = await billing_service.list_products(client)
    return ProductListResponse(data=[ProductItem.model_validate(item) for item in items])


@router.post("/checkout", response_model=CheckoutResponse)
async def stripe_checkout(
    body: CheckoutRequest,
    ctx: RequestContext = Depends(get_request_context),
    client: BillingClient = Depends(get_billing_client),
    session: AsyncSession = Depends(get_session),
):
    if not client.is_configured():
        raise errors.ConfigurationError(
            "Stripe is not configured. Set the Stripe secret key to enable billing."
        )
    customer_id = await billing_service.ensure_billing_customer(ctx.user_id, client, session)
    # Keep the customer reference even if the checkout call below fails
    await session.commit()
    url = await billing_service.start_checkout(
        customer_id, body.price_id, client, trial_days=body.trial_days
    )
    return CheckoutResponse(url=url)


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(default="", alias="Stripe-Signature"),
    client: BillingClient = Depends(get_billing_client),
    session: AsyncSession = Depends(get_session),
):
    """Signature is checked against the raw body before anything is parsed."""
    if not stripe_signature:
        raise errors.ValidationError("Missing Stripe-Signature header")
    payload = await request.body()
    event = client.construct_event(payload, stripe_signature)
    handled = await billing_service.handle_webhook_event(event, session)
    return WebhookResponse(received=True, handled=handled)
