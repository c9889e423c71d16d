"""Repository for LoginAttemptLog operations.

Retention: entries live on a rolling 90-day window. Every read applies the
window, so rows the cleanup job has not removed yet are still invisible.
"""

import uuid
from datetime import datetime, timedelta
from typing import Any, cast

from sqlalchemy import delete, select
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit import LoginAttemptLog
from app.models.base import utcnow

RETENTION_DAYS = 90


def retention_cutoff(now: datetime | None = None) -> datetime:
    """Oldest timestamp still inside the retention window."""
    return (now or utcnow()) - timedelta(days=RETENTION_DAYS)


class LoginAttemptRepository:
    """Stateless repository for LoginAttemptLog operations.

    All methods are static - no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        reason: str,
        success: bool,
        user_id: uuid.UUID | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        created_at: datetime | None = None,
    ) -> LoginAttemptLog:
        """Append one attempt.

        Args:
            db: Async database session.
            email: Submitted email (stored lowercase).
            reason: Reason code (see LOGIN_ATTEMPT_REASONS).
            success: Whether the attempt signed the user in.
            user_id: Matching account, if any.
            ip_address: Client address.
            user_agent: Client user agent (truncated to 500 chars).
            created_at: Override the timestamp (defaults to now).

        Returns:
            Created LoginAttemptLog.
        """
        entry = LoginAttemptLog(
            email=email.strip().lower(),
            reason=reason,
            success=success,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
            created_at=created_at or utcnow(),
        )
        db.add(entry)
        await db.flush()
        return entry

    @staticmethod
    async def list_recent(
        db: AsyncSession,
        *,
        email: str | None = None,
        user_id: uuid.UUID | None = None,
        now: datetime | None = None,
        limit: int = 50,
    ) -> list[LoginAttemptLog]:
        """Attempts inside the retention window, newest first."""
        conditions = [LoginAttemptLog.created_at >= retention_cutoff(now)]
        if email is not None:
            conditions.append(LoginAttemptLog.email == email.strip().lower())
        if user_id is not None:
            conditions.append(LoginAttemptLog.user_id == user_id)
        result = await db.execute(
            select(LoginAttemptLog)
            .where(*conditions)
            .order_by(LoginAttemptLog.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime | None = None) -> int:
        """Delete every attempt older than the retention window.

        Returns:
            Number of rows deleted.
        """
        result = cast(
            CursorResult[Any],
            await db.execute(
                delete(LoginAttemptLog).where(
                    LoginAttemptLog.created_at < retention_cutoff(now)
                )
            ),
        )
        return result.rowcount
