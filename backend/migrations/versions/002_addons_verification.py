"""Create add-on purchases and seller verification tables.

Revision ID: 002_addons_verification
Revises: 001_users_listings
Create Date: 2026-10-16
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "002_addons_verification"
down_revision: str | None = "001_users_listings"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        sa.UUID(),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # Add-on purchases - lifecycle pending -> active -> expired
    op.create_table(
        "addon_purchases",
        _uuid_pk(),
        sa.Column(
            "user_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "listing_id",
            sa.UUID(),
            sa.ForeignKey("listings.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("contractor_id", sa.String(64), nullable=True),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="usd"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("stripe_session_id", sa.String(255), nullable=True),
        sa.Column("stripe_payment_id", sa.String(255), nullable=True),
        sa.Column(
            "metadata",
            JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancel_reason", sa.String(100), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'active', 'expired', 'cancelled', 'refunded')",
            name="ck_addon_purchases_status",
        ),
        sa.CheckConstraint(
            "amount_cents >= 0", name="ck_addon_purchases_amount_nonneg"
        ),
    )
    op.create_index(
        "ix_addon_purchases_user_type", "addon_purchases", ["user_id", "type"]
    )
    op.create_index(
        "ix_addon_purchases_listing_status",
        "addon_purchases",
        ["listing_id", "status"],
    )
    # Sweep query: status = 'active' AND expires_at < now()
    op.create_index(
        "ix_addon_purchases_status_expires",
        "addon_purchases",
        ["status", "expires_at"],
    )

    # Seller verification - one record per user
    op.create_table(
        "seller_verifications",
        _uuid_pk(),
        sa.Column(
            "user_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("tier", sa.String(20), nullable=True),
        sa.Column(
            "admin_review_status",
            sa.String(20),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "admin_reviewed_by",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("admin_reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("stripe_payment_id", sa.String(255), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'pending-admin', 'pending-payment', "
            "'active', 'revoked', 'expired')",
            name="ck_seller_verifications_status",
        ),
        sa.CheckConstraint(
            "admin_review_status IN ('pending', 'approved', 'rejected')",
            name="ck_seller_verifications_review_status",
        ),
    )
    op.create_index(
        "ix_seller_verifications_status_expires",
        "seller_verifications",
        ["status", "expires_at"],
    )

    op.create_table(
        "seller_verification_documents",
        _uuid_pk(),
        sa.Column(
            "verification_id",
            sa.UUID(),
            sa.ForeignKey("seller_verifications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("document_type", sa.String(40), nullable=False),
        sa.Column("storage_key", sa.String(500), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column(
            "uploaded_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "verification_id",
            "document_type",
            name="uq_seller_verification_documents_type",
        ),
        sa.CheckConstraint(
            "document_type IN ('drivers_license', 'business_license', "
            "'ein_document', 'insurance_certificate')",
            name="ck_seller_verification_documents_type",
        ),
    )

    op.create_table(
        "seller_verification_history",
        _uuid_pk(),
        sa.Column(
            "verification_id",
            sa.UUID(),
            sa.ForeignKey("seller_verifications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column(
            "changed_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("changed_by", sa.UUID(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
    )
    op.create_index(
        "ix_seller_verification_history_verification_id",
        "seller_verification_history",
        ["verification_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_seller_verification_history_verification_id",
        table_name="seller_verification_history",
    )
    op.drop_table("seller_verification_history")
    op.drop_table("seller_verification_documents")
    op.drop_index(
        "ix_seller_verifications_status_expires", table_name="seller_verifications"
    )
    op.drop_table("seller_verifications")
    op.drop_index("ix_addon_purchases_status_expires", table_name="addon_purchases")
    op.drop_index("ix_addon_purchases_listing_status", table_name="addon_purchases")
    op.drop_index("ix_addon_purchases_user_type", table_name="addon_purchases")
    op.drop_table("addon_purchases")
