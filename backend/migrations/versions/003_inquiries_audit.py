"""Create inquiries, audit logs and webhook event tables.

Revision ID: 003_inquiries_audit
Revises: 002_addons_verification
Create Date: 2026-10-16
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision: str = "003_inquiries_audit"
down_revision: str | None = "002_addons_verification"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        sa.UUID(),
        primary_key=True,
        server_default=sa.text("gen_random_uuid()"),
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    # Inquiries - one thread per (listing, buyer)
    op.create_table(
        "inquiries",
        _uuid_pk(),
        sa.Column(
            "listing_id",
            sa.UUID(),
            sa.ForeignKey("listings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "buyer_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "seller_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("subject", sa.String(200), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="new"),
        sa.Column("intent_quantity", sa.Integer(), nullable=True),
        sa.Column(
            "intent_timeline",
            sa.String(20),
            nullable=False,
            server_default="unspecified",
        ),
        sa.Column("intent_purpose", sa.String(500), nullable=True),
        sa.Column(
            "buyer_unread_count", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "seller_unread_count", sa.Integer(), nullable=False, server_default="1"
        ),
        sa.Column(
            "last_message_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("is_archived", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("archived_by", sa.UUID(), nullable=True),
        sa.Column("first_reply_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("response_time_minutes", sa.Integer(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint(
            "listing_id", "buyer_id", name="uq_inquiries_listing_buyer"
        ),
        sa.CheckConstraint(
            "status IN ('new', 'read', 'replied', 'closed', 'spam')",
            name="ck_inquiries_status",
        ),
        sa.CheckConstraint(
            "intent_quantity IS NULL OR intent_quantity >= 1",
            name="ck_inquiries_intent_quantity",
        ),
        sa.CheckConstraint(
            "buyer_unread_count >= 0", name="ck_inquiries_buyer_unread"
        ),
        sa.CheckConstraint(
            "seller_unread_count >= 0", name="ck_inquiries_seller_unread"
        ),
    )
    op.create_index(
        "ix_inquiries_seller_last_message",
        "inquiries",
        ["seller_id", "last_message_at"],
    )
    op.create_index(
        "ix_inquiries_buyer_last_message",
        "inquiries",
        ["buyer_id", "last_message_at"],
    )

    op.create_table(
        "inquiry_messages",
        _uuid_pk(),
        sa.Column(
            "inquiry_id",
            sa.UUID(),
            sa.ForeignKey("inquiries.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column(
            "sender_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "attachments",
            JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint(
            "inquiry_id", "position", name="uq_inquiry_messages_position"
        ),
    )

    # Login attempts - 90-day retention enforced by the cleanup job
    op.create_table(
        "login_attempt_logs",
        _uuid_pk(),
        sa.Column(
            "user_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        sa.Column("reason", sa.String(30), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False),
        _created_at(),
        sa.CheckConstraint(
            "reason IN ('success', 'invalid_credentials', 'account_not_found', "
            "'account_inactive', 'session_expired', 'idle_timeout')",
            name="ck_login_attempt_logs_reason",
        ),
    )
    op.create_index(
        "ix_login_attempt_logs_email_created",
        "login_attempt_logs",
        ["email", "created_at"],
    )
    op.create_index(
        "ix_login_attempt_logs_created", "login_attempt_logs", ["created_at"]
    )

    op.create_table(
        "admin_audit_logs",
        _uuid_pk(),
        sa.Column(
            "admin_id",
            sa.UUID(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("admin_email", sa.String(255), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("target_type", sa.String(50), nullable=False),
        sa.Column("target_id", sa.String(64), nullable=False),
        sa.Column("target_title", sa.String(255), nullable=True),
        sa.Column(
            "details",
            JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.String(500), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_admin_audit_logs_target",
        "admin_audit_logs",
        ["target_type", "target_id"],
    )
    op.create_index("ix_admin_audit_logs_created", "admin_audit_logs", ["created_at"])

    # Webhook idempotency
    op.create_table(
        "stripe_events",
        _uuid_pk(),
        sa.Column("event_id", sa.String(255), nullable=False, unique=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint(
            "status IN ('processed', 'failed', 'skipped')",
            name="ck_stripe_events_status",
        ),
    )


def downgrade() -> None:
    op.drop_table("stripe_events")
    op.drop_index("ix_admin_audit_logs_created", table_name="admin_audit_logs")
    op.drop_index("ix_admin_audit_logs_target", table_name="admin_audit_logs")
    op.drop_table("admin_audit_logs")
    op.drop_index("ix_login_attempt_logs_created", table_name="login_attempt_logs")
    op.drop_index(
        "ix_login_attempt_logs_email_created", table_name="login_attempt_logs"
    )
    op.drop_table("login_attempt_logs")
    op.drop_table("inquiry_messages")
    op.drop_index("ix_inquiries_buyer_last_message", table_name="inquiries")
    op.drop_index("ix_inquiries_seller_last_message", table_name="inquiries")
    op.drop_table("inquiries")
