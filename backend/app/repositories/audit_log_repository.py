"""Repository for AdminAuditLog operations."""

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import AdminAuditLog


class AuditLogRepository:
    """Stateless repository for AdminAuditLog operations.

    All methods are static - no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        admin_id: uuid.UUID | None,
        admin_email: str,
        action: str,
        target_type: str,
        target_id: str,
        target_title: str | None = None,
        details: dict[str, Any] | None = None,
        reason: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AdminAuditLog:
        """Append an admin action entry."""
        entry = AdminAuditLog(
            admin_id=admin_id,
            admin_email=admin_email,
            action=action,
            target_type=target_type,
            target_id=target_id,
            target_title=target_title,
            details=dict(details or {}),
            reason=reason,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        db.add(entry)
        await db.flush()
        return entry

    @staticmethod
    async def list_for_target(
        db: AsyncSession,
        *,
        target_type: str,
        target_id: str,
        limit: int = 50,
    ) -> list[AdminAuditLog]:
        """Entries for one target, newest first."""
        result = await db.execute(
            select(AdminAuditLog)
            .where(
                AdminAuditLog.target_type == target_type,
                AdminAuditLog.target_id == target_id,
            )
            .order_by(AdminAuditLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
