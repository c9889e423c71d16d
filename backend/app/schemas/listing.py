"""Listing and seller profile schemas."""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from app.services import listing_flags

ListingCategory = Literal[
    "locomotives",
    "freight-cars",
    "passenger-cars",
    "maintenance-of-way",
    "track-materials",
    "signals-communications",
    "parts-components",
    "tools-equipment",
    "real-estate",
    "services",
]
ListingCondition = Literal[
    "new",
    "rebuilt",
    "refurbished",
    "used-excellent",
    "used-good",
    "used-fair",
    "for-parts",
    "as-is",
]
ListingStatus = Literal["draft", "pending", "active", "sold", "expired", "archived"]
PriceType = Literal["fixed", "negotiable", "auction", "contact", "rfq"]


class CreateListingRequest(BaseModel):
    """Request body for POST /listings.

    Attributes:
        title: Listing title.
        description: Free-text description.
        category: One of the fixed categories.
        condition: Item condition.
        status: draft or active (publish immediately).
        price_cents: Asking price in cents.
        price_type: How the price is offered.
        location_state: Two-letter US state code.
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=3, max_length=200)
    description: str = Field(default="", max_length=20000)
    category: ListingCategory
    condition: ListingCondition | None = None
    status: Literal["draft", "active"] = "draft"
    price_cents: int | None = Field(default=None, ge=0)
    price_type: PriceType = "fixed"
    location_state: str | None = Field(default=None, pattern=r"^[A-Z]{2}$")


class UpdateListingRequest(BaseModel):
    """Request body for PUT /listings/{id}.

    Every field is optional; only fields sent are changed. ``pending`` and
    ``expired`` are set by the platform and cannot be chosen here.
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=20000)
    category: ListingCategory | None = None
    condition: ListingCondition | None = None
    status: Literal["draft", "active", "sold", "archived"] | None = None
    price_cents: int | None = Field(default=None, ge=0)
    price_type: PriceType | None = None
    location_state: str | None = Field(default=None, pattern=r"^[A-Z]{2}$")

    @model_validator(mode="after")
    def check_required_fields(self) -> "UpdateListingRequest":
        """Columns that cannot be empty may not be sent as null."""
        for name in ("title", "description", "category", "status", "price_type"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class ListingResponse(BaseModel):
    """Listing as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    seller_id: uuid.UUID
    title: str
    description: str
    category: str
    condition: str | None
    status: str
    price_cents: int | None
    price_type: str
    location_state: str | None
    premium_add_ons: dict[str, Any]
    view_count: int
    inquiry_count: int
    save_count: int
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_featured(self) -> bool:
        """True while any placement flag is active."""
        return listing_flags.placement_active(self.premium_add_ons, "elite")


class SellerProfileResponse(BaseModel):
    """Public seller profile.

    ``phone`` is only included for signed-in callers; anonymous callers get
    None and ``contact_requires_sign_in`` set.
    """

    id: uuid.UUID
    name: str | None
    company: str | None
    image: str | None
    role: str
    is_verified_seller: bool
    verified_seller_tier: str | None
    member_since: datetime
    active_listing_count: int
    phone: str | None
    contact_requires_sign_in: bool
