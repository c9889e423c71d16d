"""Watchlist model - listings a user saved for later.

One row per (user, listing). ``last_price_cents`` is the listing price when
it was saved, kept for price-change notifications.
"""

import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.listing import Listing


class WatchlistItem(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Saved listing.

    Attributes:
        id: UUID primary key.
        user_id: Owner of the watchlist.
        listing_id: Saved listing.
        notes: Private note (max 500 chars).
        notify_on_price_change: Email when the price changes.
        notify_on_status_change: Email when the listing is sold or removed.
        last_price_cents: Listing price at save time.
        listing: The saved listing (loaded eagerly).
    """

    __tablename__ = "watchlist_items"
    __table_args__ = (
        UniqueConstraint("user_id", "listing_id", name="uq_watchlist_items_user_listing"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    listing_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    notes: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    notify_on_price_change: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true"), default=True
    )
    notify_on_status_change: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true"), default=True
    )
    last_price_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)

    listing: Mapped[Listing] = relationship(lazy="selectin")
