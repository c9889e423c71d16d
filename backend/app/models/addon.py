"""AddOnPurchase model - paid enhancements with their own lifecycle.

Status flow: pending -> active -> expired, with cancelled / refunded as
terminal side exits. The listing flag mirror is maintained by
app.services.addon_service and the expiration sweep.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

PURCHASE_STATUSES = ("pending", "active", "expired", "cancelled", "refunded")


class AddOnPurchase(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Record of a paid add-on.

    Attributes:
        id: UUID primary key.
        user_id: Purchaser.
        listing_id: Listing the add-on is applied to (None until assigned).
        contractor_id: Contractor profile target, for contractor add-ons.
        type: Add-on type (see app.services.addon_catalog).
        amount_cents: Price paid in cents.
        currency: ISO currency code.
        status: One of PURCHASE_STATUSES.
        stripe_session_id: Checkout session id.
        stripe_payment_id: Payment intent id (set on completion).
        purchase_metadata: Free-form metadata.
        started_at: When the add-on became active.
        expires_at: When it lapses (None for one-shot add-ons).
        cancelled_at: When it was cancelled or refunded.
        cancel_reason: Why it was cancelled.
    """

    __tablename__ = "addon_purchases"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'active', 'expired', 'cancelled', 'refunded')",
            name="ck_addon_purchases_status",
        ),
        CheckConstraint("amount_cents >= 0", name="ck_addon_purchases_amount_nonneg"),
        Index("ix_addon_purchases_user_type", "user_id", "type"),
        Index("ix_addon_purchases_listing_status", "listing_id", "status"),
        Index("ix_addon_purchases_status_expires", "status", "expires_at"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    listing_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("listings.id", ondelete="SET NULL"),
        nullable=True,
    )
    contractor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    type: Mapped[str] = mapped_column(String(30), nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="usd", server_default="usd"
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )
    stripe_session_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_payment_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    purchase_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancel_reason: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def is_active_at(self, now: datetime) -> bool:
        """Active status with no expiry or an expiry after ``now``."""
        return self.status == "active" and (
            self.expires_at is None or self.expires_at > now
        )
