"""Add-on request/response schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class CreatePurchaseRequest(BaseModel):
    """Request body for POST /addons.

    Attributes:
        type: Add-on type (legacy "featured"/"premium" accepted).
        listing_id: Target listing.
        contractor_id: Target contractor profile.
    """

    model_config = ConfigDict(extra="forbid")

    type: str = Field(min_length=1, max_length=40)
    listing_id: uuid.UUID | None = None
    contractor_id: str | None = Field(default=None, max_length=64)


class AssignPurchaseRequest(BaseModel):
    """Request body for POST /addons/assign."""

    model_config = ConfigDict(extra="forbid")

    purchase_id: uuid.UUID
    listing_id: uuid.UUID


class OverridePurchaseRequest(BaseModel):
    """Request body for POST /admin/addons/{purchase_id}/override."""

    model_config = ConfigDict(extra="forbid")

    action: Literal["activate", "expire", "cancel"]
    reason: str | None = Field(default=None, max_length=500)


class CatalogItemResponse(BaseModel):
    """One add-on in the catalog."""

    type: str
    name: str
    description: str
    price_cents: int
    formatted_price: str
    duration_days: int | None
    duration_label: str
    ranking_boost: int


class PurchaseResponse(BaseModel):
    """Add-on purchase record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    listing_id: uuid.UUID | None
    contractor_id: str | None
    type: str
    amount_cents: int
    currency: str
    status: str
    started_at: datetime | None
    expires_at: datetime | None
    cancelled_at: datetime | None
    cancel_reason: str | None
    created_at: datetime
    listing_title: str | None = None


class CatalogResponse(BaseModel):
    """Response for GET /addons.

    ``purchases`` and ``active_addons`` are empty for anonymous callers.
    """

    catalog: list[CatalogItemResponse]
    purchases: list[PurchaseResponse]
    active_addons: list[str]


class PurchaseStartResponse(BaseModel):
    """Response for POST /addons.

    Test mode (no Stripe price configured) returns the activated purchase;
    otherwise the checkout session to redirect to.
    """

    test_mode: bool
    purchase_id: uuid.UUID
    purchase: PurchaseResponse | None = None
    session_id: str | None = None
    url: str | None = None


class PurchaseStatsResponse(BaseModel):
    """Response for GET /addons/stats."""

    total: int
    active: int
    pending: int
    expiring_soon: int
