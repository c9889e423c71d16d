"""Append-only logs: sign-in attempts and admin actions."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, UUIDPrimaryKeyMixin, utcnow

LOGIN_ATTEMPT_REASONS = (
    "success",
    "invalid_credentials",
    "account_not_found",
    "account_inactive",
    "session_expired",
    "idle_timeout",
)


class LoginAttemptLog(Base, UUIDPrimaryKeyMixin):
    """One sign-in attempt.

    Rows older than the retention window (90 days) are excluded from every
    query and removed by the cleanup job.
    """

    __tablename__ = "login_attempt_logs"
    __table_args__ = (
        CheckConstraint(
            "reason IN ('success', 'invalid_credentials', 'account_not_found', "
            "'account_inactive', 'session_expired', 'idle_timeout')",
            name="ck_login_attempt_logs_reason",
        ),
        Index("ix_login_attempt_logs_email_created", "email", "created_at"),
        Index("ix_login_attempt_logs_created", "created_at"),
    )

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class AdminAuditLog(Base, UUIDPrimaryKeyMixin):
    """Record of an administrative action."""

    __tablename__ = "admin_audit_logs"
    __table_args__ = (
        Index("ix_admin_audit_logs_target", "target_type", "target_id"),
        Index("ix_admin_audit_logs_created", "created_at"),
    )

    admin_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    admin_email: Mapped[str] = mapped_column(String(255), nullable=False)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    target_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)
    target_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    reason: Mapped[str | None] = mapped_column(Text(), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
