"""Add watchlist, buyer verification and renewal reminder columns.

Revision ID: 004_watchlist_buyer_reminders
Revises: 003_inquiries_audit
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "004_watchlist_buyer_reminders"
down_revision: str | None = "003_inquiries_audit"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_REMINDER_COLUMNS = (
    "thirty_day_reminder_sent_at",
    "seven_day_reminder_sent_at",
    "day_of_reminder_sent_at",
)


def upgrade() -> None:
    op.add_column(
        "listings",
        sa.Column("save_count", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_check_constraint(
        "ck_listings_save_count_nonneg", "listings", "save_count >= 0"
    )

    op.create_table(
        "watchlist_items",
        sa.Column(
            "id",
            sa.UUID(),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column(
            "user_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "listing_id",
            sa.UUID(),
            sa.ForeignKey("listings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("notes", sa.String(500), nullable=False, server_default=""),
        sa.Column(
            "notify_on_price_change",
            sa.Boolean(),
            nullable=False,
            server_default="true",
        ),
        sa.Column(
            "notify_on_status_change",
            sa.Boolean(),
            nullable=False,
            server_default="true",
        ),
        sa.Column("last_price_cents", sa.Integer(), nullable=True),
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
        sa.UniqueConstraint(
            "user_id", "listing_id", name="uq_watchlist_items_user_listing"
        ),
    )
    op.create_index("ix_watchlist_items_user_id", "watchlist_items", ["user_id"])
    op.create_index("ix_watchlist_items_listing_id", "watchlist_items", ["listing_id"])

    # Buyer identity confirmation (one-time, lifetime)
    op.add_column(
        "users",
        sa.Column(
            "is_verified_buyer", sa.Boolean(), nullable=False, server_default="false"
        ),
    )
    op.add_column(
        "users",
        sa.Column(
            "buyer_verification_status",
            sa.String(20),
            nullable=False,
            server_default="none",
        ),
    )
    op.add_column(
        "users",
        sa.Column("buyer_verified_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_check_constraint(
        "ck_users_buyer_verification_status",
        "users",
        "buyer_verification_status IN ('none', 'verified')",
    )

    for column in _REMINDER_COLUMNS:
        op.add_column(
            "seller_verifications",
            sa.Column(column, sa.DateTime(timezone=True), nullable=True),
        )


def downgrade() -> None:
    for column in reversed(_REMINDER_COLUMNS):
        op.drop_column("seller_verifications", column)

    op.drop_constraint("ck_users_buyer_verification_status", "users", type_="check")
    op.drop_column("users", "buyer_verified_at")
    op.drop_column("users", "buyer_verification_status")
    op.drop_column("users", "is_verified_buyer")

    op.drop_index("ix_watchlist_items_listing_id", table_name="watchlist_items")
    op.drop_index("ix_watchlist_items_user_id", table_name="watchlist_items")
    op.drop_table("watchlist_items")

    op.drop_constraint("ck_listings_save_count_nonneg", "listings", type_="check")
    op.drop_column("listings", "save_count")
