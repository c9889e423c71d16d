"""Listing model - seller-owned equipment, parts, services or property.

premium_add_ons is an embedded JSON map of independently togglable flags.
Shape (every key optional, missing means inactive):

    {
        "elite":          {"active": bool, "expires_at": iso, "purchased_at": iso},
        "premium":        {...same...},
        "featured":       {...same...},
        "verified_badge": {...same...},
        "ai_enhanced":    bool,
        "spec_sheet":     {"generated": bool, "generated_at": iso},
    }

Always assign a new dict when changing it (see app.services.listing_flags);
in-place mutation is not tracked by the ORM.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from app.models.user import User

LISTING_CATEGORIES = (
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
)

LISTING_CONDITIONS = (
    "new",
    "rebuilt",
    "refurbished",
    "used-excellent",
    "used-good",
    "used-fair",
    "for-parts",
    "as-is",
)

LISTING_STATUSES = ("draft", "pending", "active", "sold", "expired", "archived")

PRICE_TYPES = ("fixed", "negotiable", "auction", "contact", "rfq")


class Listing(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Item for sale.

    Attributes:
        id: UUID primary key.
        seller_id: FK to users (owner).
        title: Listing title.
        description: Free-text description.
        category: One of LISTING_CATEGORIES.
        condition: One of LISTING_CONDITIONS.
        status: One of LISTING_STATUSES.
        price_cents: Asking price in cents (None for contact/rfq).
        price_type: One of PRICE_TYPES.
        location_state: Two-letter state code.
        premium_add_ons: Embedded add-on flag map.
        view_count: Number of views by non-owners.
        inquiry_count: Number of inquiry threads opened.
        save_count: Number of watchlists holding the listing.
        published_at: When the listing first became active.
    """

    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending', 'active', 'sold', 'expired', 'archived')",
            name="ck_listings_status",
        ),
        CheckConstraint("view_count >= 0", name="ck_listings_view_count_nonneg"),
        CheckConstraint("inquiry_count >= 0", name="ck_listings_inquiry_count_nonneg"),
        CheckConstraint("save_count >= 0", name="ck_listings_save_count_nonneg"),
        Index("ix_listings_category_status_created", "category", "status", "created_at"),
        Index("ix_listings_seller_status", "seller_id", "status"),
    )

    seller_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False, default="")
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    condition: Mapped[str | None] = mapped_column(String(30), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft", server_default="draft"
    )
    price_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="fixed", server_default="fixed"
    )
    location_state: Mapped[str | None] = mapped_column(String(2), nullable=True)
    premium_add_ons: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    view_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    inquiry_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    save_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    published_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def is_managed_by(self, user: "User | None") -> bool:
        """Owner or admin."""
        if user is None:
            return False
        return user.id == self.seller_id or user.has_admin_access

    def is_visible_to(self, user: "User | None") -> bool:
        """Active listings are public; others only to owner and admins."""
        return self.status == "active" or self.is_managed_by(user)
