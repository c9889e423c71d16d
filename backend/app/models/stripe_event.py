"""StripeEvent model - processed webhook events for idempotency."""

from sqlalchemy import CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

STRIPE_EVENT_STATUSES = ("processed", "failed", "skipped")

# Events are kept this long, then removed by the retention cleanup job.
STRIPE_EVENT_RETENTION_DAYS = 90


class StripeEvent(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Webhook event seen by the billing endpoint.

    Attributes:
        event_id: Stripe event id (unique).
        event_type: Stripe event type, e.g. "checkout.session.completed".
        status: processed, failed or skipped.
        error: Failure message for failed events.
    """

    __tablename__ = "stripe_events"
    __table_args__ = (
        CheckConstraint(
            "status IN ('processed', 'failed', 'skipped')",
            name="ck_stripe_events_status",
        ),
    )

    event_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    event_type: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    error: Mapped[str | None] = mapped_column(Text(), nullable=True)
