"""Repository for AddOnPurchase operations."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import ColumnElement, and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.addon import AddOnPurchase
from app.models.listing import Listing

# Active purchases expiring within this window count as "expiring soon"
EXPIRING_SOON_WINDOW = timedelta(days=7)


@dataclass(frozen=True)
class PurchaseStats:
    """Purchase counters for one user.

    Attributes:
        total: All purchases.
        active: Currently active purchases.
        pending: Awaiting payment.
        expiring_soon: Active and expiring within 7 days.
    """

    total: int
    active: int
    pending: int
    expiring_soon: int


def _is_active(now: datetime) -> ColumnElement[bool]:
    return and_(
        AddOnPurchase.status == "active",
        or_(AddOnPurchase.expires_at.is_(None), AddOnPurchase.expires_at > now),
    )


def _target(
    listing_id: uuid.UUID | None, contractor_id: str | None
) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    if listing_id is not None:
        conditions.append(AddOnPurchase.listing_id == listing_id)
    if contractor_id is not None:
        conditions.append(AddOnPurchase.contractor_id == contractor_id)
    return conditions


class AddOnRepository:
    """Stateless repository for AddOnPurchase table operations.

    All methods are static - no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(
        db: AsyncSession, purchase_id: uuid.UUID
    ) -> AddOnPurchase | None:
        """Fetch a purchase by primary key."""
        return await db.get(AddOnPurchase, purchase_id)

    @staticmethod
    async def get_by_session_id(
        db: AsyncSession, session_id: str
    ) -> AddOnPurchase | None:
        """Fetch a purchase by its checkout session id."""
        result = await db.execute(
            select(AddOnPurchase).where(AddOnPurchase.stripe_session_id == session_id)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        addon_type: str,
        amount_cents: int,
        listing_id: uuid.UUID | None = None,
        contractor_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AddOnPurchase:
        """Create a pending purchase.

        Args:
            db: Async database session.
            user_id: Purchaser.
            addon_type: Canonical add-on type.
            amount_cents: Price in cents.
            listing_id: Target listing, if known at purchase time.
            contractor_id: Target contractor profile.
            metadata: Free-form metadata.

        Returns:
            Created AddOnPurchase with status ``pending``.
        """
        purchase = AddOnPurchase(
            user_id=user_id,
            type=addon_type,
            amount_cents=amount_cents,
            currency="usd",
            status="pending",
            listing_id=listing_id,
            contractor_id=contractor_id,
            purchase_metadata=dict(metadata or {}),
        )
        db.add(purchase)
        await db.flush()
        return purchase

    @staticmethod
    async def find_active(
        db: AsyncSession,
        *,
        addon_type: str,
        now: datetime,
        listing_id: uuid.UUID | None = None,
        contractor_id: str | None = None,
    ) -> AddOnPurchase | None:
        """Find an active purchase of ``addon_type`` on a listing or contractor."""
        conditions = _target(listing_id, contractor_id)
        if not conditions:
            return None
        result = await db.execute(
            select(AddOnPurchase)
            .where(AddOnPurchase.type == addon_type, _is_active(now), *conditions)
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def active_types(
        db: AsyncSession,
        *,
        now: datetime,
        listing_id: uuid.UUID | None = None,
        contractor_id: str | None = None,
    ) -> list[str]:
        """Distinct add-on types currently active on a listing or contractor."""
        conditions = _target(listing_id, contractor_id)
        if not conditions:
            return []
        result = await db.execute(
            select(AddOnPurchase.type)
            .where(_is_active(now), *conditions)
            .distinct()
            .order_by(AddOnPurchase.type)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        listing_id: uuid.UUID | None = None,
        contractor_id: str | None = None,
        limit: int = 50,
    ) -> list[AddOnPurchase]:
        """Most recent purchases of a user, optionally scoped to a target."""
        result = await db.execute(
            select(AddOnPurchase)
            .where(
                AddOnPurchase.user_id == user_id,
                *_target(listing_id, contractor_id),
            )
            .order_by(AddOnPurchase.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_with_listing_titles(
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        limit: int = 100,
    ) -> list[tuple[AddOnPurchase, str | None]]:
        """Purchases of a user paired with the bound listing's title."""
        result = await db.execute(
            select(AddOnPurchase, Listing.title)
            .outerjoin(Listing, AddOnPurchase.listing_id == Listing.id)
            .where(AddOnPurchase.user_id == user_id)
            .order_by(AddOnPurchase.created_at.desc())
            .limit(limit)
        )
        return [(purchase, title) for purchase, title in result.all()]

    @staticmethod
    async def list_expired_active(
        db: AsyncSession, *, now: datetime
    ) -> list[AddOnPurchase]:
        """Purchases still marked active whose expiry has passed."""
        result = await db.execute(
            select(AddOnPurchase)
            .where(
                AddOnPurchase.status == "active",
                AddOnPurchase.expires_at.is_not(None),
                AddOnPurchase.expires_at < now,
            )
            .order_by(AddOnPurchase.expires_at)
        )
        return list(result.scalars().all())

    @staticmethod
    async def stats_for_user(
        db: AsyncSession, user_id: uuid.UUID, *, now: datetime
    ) -> PurchaseStats:
        """Count a user's purchases by lifecycle bucket."""
        active = _is_active(now)
        expiring = and_(
            AddOnPurchase.status == "active",
            AddOnPurchase.expires_at.is_not(None),
            AddOnPurchase.expires_at > now,
            AddOnPurchase.expires_at <= now + EXPIRING_SOON_WINDOW,
        )
        stmt = select(
            func.count(),
            func.count().filter(active),
            func.count().filter(AddOnPurchase.status == "pending"),
            func.count().filter(expiring),
        ).where(AddOnPurchase.user_id == user_id)
        total, active_count, pending, expiring_soon = (await db.execute(stmt)).one()
        return PurchaseStats(
            total=total,
            active=active_count,
            pending=pending,
            expiring_soon=expiring_soon,
        )
