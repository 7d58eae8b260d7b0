"""Stripe billing schemas."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field

from .common import CamelModel


class CheckoutRequest(CamelModel):
    price_id: str = Field(min_length=1)
    trial_days: Optional[int] = Field(default=None, ge=0, le=730)


class CheckoutResponse(CamelModel):
    url: str


class StripeConfigResponse(CamelModel):
    publishable_key: str


class PriceItem(CamelModel):
    id: str
    unit_amount: Optional[int] = None
    currency: str
    recurring: Optional[dict[str, Any]] = None
    active: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)


class ProductItem(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    active: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)
    prices: list[PriceItem] = Field(default_factory=list)


class ProductListResponse(CamelModel):
    data: list[ProductItem]


class WebhookResponse(CamelModel):
    received: bool = True
    handled: bool = False
