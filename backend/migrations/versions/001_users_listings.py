"""Create users and listings.

Revision ID: 001_users_listings
Revises:
Create Date: 2026-10-16
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "001_users_listings"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


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
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # Users - identity, role and verified-seller mirror
    op.create_table(
        "users",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(100), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="buyer"),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("phone", sa.String(40), nullable=True),
        sa.Column("company", sa.String(200), nullable=True),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("stripe_customer_id", sa.String(255), nullable=True),
        sa.Column(
            "is_verified_seller", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column(
            "verified_seller_status",
            sa.String(20),
            nullable=False,
            server_default="none",
        ),
        sa.Column("verified_seller_tier", sa.String(20), nullable=True),
        sa.Column(
            "verified_seller_approved_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            "verified_seller_expires_at", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "token_invalidated_before", sa.DateTime(timezone=True), nullable=True
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "role IN ('buyer', 'seller', 'contractor', 'admin')",
            name="ck_users_role",
        ),
        sa.CheckConstraint(
            "verified_seller_status IN "
            "('none', 'pending', 'active', 'expired', 'revoked')",
            name="ck_users_verified_seller_status",
        ),
    )
    op.create_index("users_email_key", "users", ["email"], unique=True)

    # Listings - premium_add_ons holds the add-on flag map
    op.create_table(
        "listings",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "seller_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("condition", sa.String(30), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("price_cents", sa.Integer(), nullable=True),
        sa.Column(
            "price_type", sa.String(20), nullable=False, server_default="fixed"
        ),
        sa.Column("location_state", sa.String(2), nullable=True),
        sa.Column(
            "premium_add_ons",
            JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("view_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("inquiry_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('draft', 'pending', 'active', 'sold', 'expired', 'archived')",
            name="ck_listings_status",
        ),
        sa.CheckConstraint("view_count >= 0", name="ck_listings_view_count_nonneg"),
        sa.CheckConstraint(
            "inquiry_count >= 0", name="ck_listings_inquiry_count_nonneg"
        ),
    )
    op.create_index(
        "ix_listings_category_status_created",
        "listings",
        ["category", "status", "created_at"],
    )
    op.create_index("ix_listings_seller_status", "listings", ["seller_id", "status"])


def downgrade() -> None:
    op.drop_index("ix_listings_seller_status", table_name="listings")
    op.drop_index("ix_listings_category_status_created", table_name="listings")
    op.drop_table("listings")
    op.drop_index("users_email_key", table_name="users")
    op.drop_table("users")
