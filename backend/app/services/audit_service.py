"""Best-effort admin audit trail.

Writing the audit entry must never fail the admin action it describes, so
the insert runs in a SAVEPOINT and database errors are logged and dropped.
"""

import logging
from typing import Any

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.audit_log_repository import AuditLogRepository

logger = logging.getLogger(__name__)


def client_ip(request: Request | None) -> str | None:
    """Client address, preferring the first X-Forwarded-For hop."""
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


async def record_admin_action(
    db: AsyncSession,
    *,
    admin: User,
    action: str,
    target_type: str,
    target_id: str,
    target_title: str | None = None,
    details: dict[str, Any] | None = None,
    reason: str | None = None,
    request: Request | None = None,
) -> bool:
    """Write an AdminAuditLog entry, swallowing database errors.

    Args:
        db: Async database session.
        admin: Acting admin.
        action: Action name, e.g. "verification.approve".
        target_type: Kind of record acted on.
        target_id: Id of the record acted on.
        target_title: Display label of the record.
        details: Extra structured context.
        reason: Admin-supplied reason.
        request: Incoming request (for IP and user agent).

    Returns:
        True if the entry was written.
    """
    try:
        async with db.begin_nested():
            await AuditLogRepository.create(
                db,
                admin_id=admin.id,
                admin_email=admin.email,
                action=action,
                target_type=target_type,
                target_id=target_id,
                target_title=target_title,
                details=details,
                reason=reason,
                ip_address=client_ip(request),
                user_agent=request.headers.get("user-agent") if request else None,
            )
    except SQLAlchemyError:
        logger.exception(
            "Failed to write admin audit entry %s for %s %s",
            action,
            target_type,
            target_id,
        )
        return False
    return True
