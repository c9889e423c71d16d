"""Seller verification models.

SellerVerification is one row per user. Uploaded documents and the status
history are child tables; documents are replaced per type on re-upload and
history is append-only.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

VERIFICATION_STATUSES = (
    "draft",
    "pending-admin",
    "pending-payment",
    "active",
    "revoked",
    "expired",
)
REVIEW_STATUSES = ("pending", "approved", "rejected")
DOCUMENT_TYPES = (
    "drivers_license",
    "business_license",
    "ein_document",
    "insurance_certificate",
)


class SellerVerification(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Per-user seller verification record.

    Attributes:
        id: UUID primary key.
        user_id: FK to users (unique).
        status: One of VERIFICATION_STATUSES.
        tier: standard or priority, set on payment.
        admin_review_status: pending, approved or rejected.
        admin_reviewed_by: Reviewing admin.
        admin_reviewed_at: When the review decision was made.
        admin_notes: Free-text reviewer notes.
        rejection_reason: Reason shown to the seller on rejection.
        stripe_payment_id: Payment intent of the last paid period.
        approved_at: Start of the current paid period.
        expires_at: End of the current paid period.
        thirty_day_reminder_sent_at: Renewal reminder sent 30 days out.
        seven_day_reminder_sent_at: Renewal reminder sent 7 days out.
        day_of_reminder_sent_at: Renewal reminder sent on the expiry day.
        documents: Uploaded documents.
        history: Status history, oldest first.
    """

    __tablename__ = "seller_verifications"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'pending-admin', 'pending-payment', "
            "'active', 'revoked', 'expired')",
            name="ck_seller_verifications_status",
        ),
        CheckConstraint(
            "admin_review_status IN ('pending', 'approved', 'rejected')",
            name="ck_seller_verifications_review_status",
        ),
        Index("ix_seller_verifications_status_expires", "status", "expires_at"),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="draft", server_default="draft"
    )
    tier: Mapped[str | None] = mapped_column(String(20), nullable=True)
    admin_review_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )
    admin_reviewed_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    admin_reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text(), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text(), nullable=True)
    stripe_payment_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(nullable=True)
    thirty_day_reminder_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    seven_day_reminder_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    day_of_reminder_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)

    documents: Mapped[list["SellerVerificationDocument"]] = relationship(
        back_populates="verification",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SellerVerificationDocument.uploaded_at",
    )
    history: Mapped[list["SellerVerificationHistory"]] = relationship(
        back_populates="verification",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="SellerVerificationHistory.position",
    )

    def document_types(self) -> set[str]:
        """Types of documents currently on file."""
        return {doc.document_type for doc in self.documents}


class SellerVerificationDocument(Base, UUIDPrimaryKeyMixin):
    """Uploaded verification document, one per (verification, type)."""

    __tablename__ = "seller_verification_documents"
    __table_args__ = (
        UniqueConstraint(
            "verification_id",
            "document_type",
            name="uq_seller_verification_documents_type",
        ),
        CheckConstraint(
            "document_type IN ('drivers_license', 'business_license', "
            "'ein_document', 'insurance_certificate')",
            name="ck_seller_verification_documents_type",
        ),
    )

    verification_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("seller_verifications.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_type: Mapped[str] = mapped_column(String(40), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    verification: Mapped[SellerVerification] = relationship(back_populates="documents")


class SellerVerificationHistory(Base, UUIDPrimaryKeyMixin):
    """Append-only status change entry."""

    __tablename__ = "seller_verification_history"

    verification_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("seller_verifications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    changed_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    changed_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    reason: Mapped[str | None] = mapped_column(Text(), nullable=True)

    verification: Mapped[SellerVerification] = relationship(back_populates="history")
