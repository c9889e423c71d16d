"""Inquiry models - buyer/seller threads on a listing.

One thread per (listing, buyer). Messages are ordered by ``position``
within the thread. Unread counters are kept per side.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

INQUIRY_STATUSES = ("new", "read", "replied", "closed", "spam")
INQUIRY_TIMELINES = (
    "immediate",
    "short_term",
    "medium_term",
    "long_term",
    "unspecified",
)


class Inquiry(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Conversation thread between a buyer and a listing's seller.

    Attributes:
        id: UUID primary key.
        listing_id: Listing the inquiry is about.
        buyer_id: Asking user.
        seller_id: Listing owner at creation time.
        subject: Thread subject (max 200 chars).
        status: One of INQUIRY_STATUSES.
        intent_quantity: Quantity the buyer is interested in (>= 1).
        intent_timeline: One of INQUIRY_TIMELINES.
        intent_purpose: What the buyer needs it for (max 500 chars).
        buyer_unread_count: Seller messages the buyer has not read.
        seller_unread_count: Buyer messages the seller has not read.
        last_message_at: Timestamp of the latest message.
        is_archived: Hidden from inbox listings.
        archived_by: User who archived the thread.
        first_reply_at: Seller's first reply.
        response_time_minutes: Minutes between creation and first reply.
        messages: Ordered message list.
    """

    __tablename__ = "inquiries"
    __table_args__ = (
        UniqueConstraint("listing_id", "buyer_id", name="uq_inquiries_listing_buyer"),
        CheckConstraint(
            "status IN ('new', 'read', 'replied', 'closed', 'spam')",
            name="ck_inquiries_status",
        ),
        CheckConstraint(
            "intent_quantity IS NULL OR intent_quantity >= 1",
            name="ck_inquiries_intent_quantity",
        ),
        CheckConstraint("buyer_unread_count >= 0", name="ck_inquiries_buyer_unread"),
        CheckConstraint("seller_unread_count >= 0", name="ck_inquiries_seller_unread"),
        Index("ix_inquiries_seller_last_message", "seller_id", "last_message_at"),
        Index("ix_inquiries_buyer_last_message", "buyer_id", "last_message_at"),
    )

    listing_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
    )
    buyer_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    seller_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    subject: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="new", server_default="new"
    )
    intent_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    intent_timeline: Mapped[str] = mapped_column(
        String(20), nullable=False, default="unspecified", server_default="unspecified"
    )
    intent_purpose: Mapped[str | None] = mapped_column(String(500), nullable=True)
    buyer_unread_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    seller_unread_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )
    last_message_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    is_archived: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    archived_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    first_reply_at: Mapped[datetime | None] = mapped_column(nullable=True)
    response_time_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    messages: Mapped[list["InquiryMessage"]] = relationship(
        back_populates="inquiry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InquiryMessage.position",
    )


class InquiryMessage(Base, UUIDPrimaryKeyMixin):
    """Single message in an inquiry thread.

    attachments is a list of ``{"url", "name", "type"}`` dicts.
    """

    __tablename__ = "inquiry_messages"
    __table_args__ = (
        UniqueConstraint("inquiry_id", "position", name="uq_inquiry_messages_position"),
    )

    inquiry_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("inquiries.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    sender_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text(), nullable=False)
    attachments: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )
    read_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    inquiry: Mapped[Inquiry] = relationship(back_populates="messages")
