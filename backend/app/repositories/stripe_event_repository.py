"""Repository for StripeEvent operations (webhook idempotency)."""

from datetime import datetime, timedelta
from typing import Any, cast

from sqlalchemy import delete, select
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.stripe_event import STRIPE_EVENT_RETENTION_DAYS, StripeEvent


class StripeEventRepository:
    """Stateless repository for StripeEvent operations.

    All methods are static - no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_event_id(db: AsyncSession, event_id: str) -> StripeEvent | None:
        """Fetch a recorded event by Stripe event id."""
        result = await db.execute(
            select(StripeEvent).where(StripeEvent.event_id == event_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def record(
        db: AsyncSession,
        *,
        event_id: str,
        event_type: str,
        status: str,
        error: str | None = None,
    ) -> StripeEvent:
        """Insert or update the outcome of an event.

        A previously failed event is updated in place when Stripe retries.
        """
        event = await StripeEventRepository.get_by_event_id(db, event_id)
        if event is None:
            event = StripeEvent(event_id=event_id, event_type=event_type)
            db.add(event)
        event.status = status
        event.error = error[:1000] if error else None
        await db.flush()
        return event

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime | None = None) -> int:
        """Delete events older than the retention window.

        Returns:
            Number of rows deleted.
        """
        cutoff = (now or utcnow()) - timedelta(days=STRIPE_EVENT_RETENTION_DAYS)
        result = cast(
            CursorResult[Any],
            await db.execute(delete(StripeEvent).where(StripeEvent.created_at < cutoff)),
        )
        return result.rowcount
