"""Watchlist schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.listing import ListingResponse


class AddWatchlistItemRequest(BaseModel):
    """Request body for POST /watchlist."""

    model_config = ConfigDict(extra="forbid")

    listing_id: uuid.UUID
    notes: str = Field(default="", max_length=500)
    notify_on_price_change: bool = True
    notify_on_status_change: bool = True


class WatchlistItemResponse(BaseModel):
    """Saved listing with the listing embedded."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    listing_id: uuid.UUID
    notes: str
    notify_on_price_change: bool
    notify_on_status_change: bool
    last_price_cents: int | None
    created_at: datetime
    listing: ListingResponse


class WatchlistCountResponse(BaseModel):
    """Number of saved listings."""

    count: int
