"""User model - identity, roles and verification mirror.

The verified-seller fields mirror the user's SellerVerification record so
listing and profile queries can show the badge without a join. They are
written only by the verification workflow service.
"""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

USER_ROLES = ("buyer", "seller", "contractor", "admin")
VERIFIED_SELLER_STATUSES = ("none", "pending", "active", "expired", "revoked")
VERIFICATION_TIERS = ("standard", "priority")
BUYER_VERIFICATION_STATUSES = ("none", "verified")


class User(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """User account.

    Attributes:
        id: UUID primary key.
        email: Unique email address (stored lowercase).
        name: Display name.
        password_hash: bcrypt hash.
        role: buyer, seller, contractor or admin.
        is_admin: Admin privileges flag.
        is_active: False blocks sign-in.
        phone: Contact phone, shown only to signed-in visitors.
        company: Company name.
        image: Avatar URL.
        stripe_customer_id: Billing customer reference.
        is_verified_seller: Badge visible on listings and profile.
        verified_seller_status: none, pending, active, expired or revoked.
        verified_seller_tier: standard or priority.
        verified_seller_approved_at: When the badge was last activated.
        verified_seller_expires_at: When the badge lapses.
        is_verified_buyer: Paid identity confirmation (lifetime).
        buyer_verification_status: none or verified.
        buyer_verified_at: When the buyer verification payment landed.
        last_login: Last successful sign-in.
        token_invalidated_before: JWTs issued before this are rejected.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('buyer', 'seller', 'contractor', 'admin')",
            name="ck_users_role",
        ),
        CheckConstraint(
            "verified_seller_status IN ('none', 'pending', 'active', 'expired', 'revoked')",
            name="ck_users_verified_seller_status",
        ),
        CheckConstraint(
            "buyer_verification_status IN ('none', 'verified')",
            name="ck_users_buyer_verification_status",
        ),
    )

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="buyer", server_default="buyer"
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("true"),
        default=True,
    )
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    company: Mapped[str | None] = mapped_column(String(200), nullable=True)
    image: Mapped[str | None] = mapped_column(Text(), nullable=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_verified_seller: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    verified_seller_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="none", server_default="none"
    )
    verified_seller_tier: Mapped[str | None] = mapped_column(String(20), nullable=True)
    verified_seller_approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    verified_seller_expires_at: Mapped[datetime | None] = mapped_column(nullable=True)

    is_verified_buyer: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    buyer_verification_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="none", server_default="none"
    )
    buyer_verified_at: Mapped[datetime | None] = mapped_column(nullable=True)

    last_login: Mapped[datetime | None] = mapped_column(nullable=True)
    token_invalidated_before: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def has_admin_access(self) -> bool:
        """True for the admin flag or the admin role."""
        return self.is_admin or self.role == "admin"
