"""Repository for Listing operations."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import ColumnElement, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.listing import Listing

_PLACEMENT_FLAGS = ("elite", "premium", "featured")


def placement_active() -> ColumnElement[bool]:
    """SQL expression: any placement flag on the listing is active."""
    return or_(
        *(
            Listing.premium_add_ons[(flag, "active")].as_boolean().is_(True)
            for flag in _PLACEMENT_FLAGS
        )
    )


class ListingRepository:
    """Stateless repository for Listing table operations.

    All methods are static - no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, listing_id: uuid.UUID) -> Listing | None:
        """Fetch a listing by primary key."""
        return await db.get(Listing, listing_id)

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        seller_id: uuid.UUID,
        title: str,
        category: str,
        description: str = "",
        condition: str | None = None,
        status: str = "draft",
        price_cents: int | None = None,
        price_type: str = "fixed",
        location_state: str | None = None,
    ) -> Listing:
        """Create a listing owned by ``seller_id``.

        Active listings get ``published_at`` set to now.

        Returns:
            Created Listing.
        """
        listing = Listing(
            seller_id=seller_id,
            title=title,
            description=description,
            category=category,
            condition=condition,
            status=status,
            price_cents=price_cents,
            price_type=price_type,
            location_state=location_state,
            premium_add_ons={},
            published_at=utcnow() if status == "active" else None,
        )
        db.add(listing)
        await db.flush()
        return listing

    @staticmethod
    async def update(
        db: AsyncSession,
        listing: Listing,
        *,
        now: datetime | None = None,
        **fields: Any,
    ) -> Listing:
        """Apply field changes to a listing.

        A change of status to active from any other status stamps
        ``published_at``.

        Returns:
            The updated Listing.
        """
        current = now or utcnow()
        if fields.get("status") == "active" and listing.status != "active":
            listing.published_at = current
        for key, value in fields.items():
            setattr(listing, key, value)
        listing.updated_at = current
        await db.flush()
        return listing

    @staticmethod
    async def list_filtered(
        db: AsyncSession,
        *,
        status: str = "active",
        category: str | None = None,
        seller_id: uuid.UUID | None = None,
        featured: bool | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Listing], int]:
        """List listings with filters, placement-boosted listings first.

        Args:
            db: Async database session.
            status: Listing status to match.
            category: Optional category filter.
            seller_id: Optional owner filter.
            featured: True keeps only listings with an active placement flag.
            offset: Number of records to skip.
            limit: Maximum records to return.

        Returns:
            Tuple of (listings, total count).
        """
        conditions: list[ColumnElement[bool]] = [Listing.status == status]
        if category is not None:
            conditions.append(Listing.category == category)
        if seller_id is not None:
            conditions.append(Listing.seller_id == seller_id)
        if featured:
            conditions.append(placement_active())

        count_stmt = select(func.count()).select_from(Listing).where(*conditions)
        total = (await db.execute(count_stmt)).scalar_one()

        boosted_first = case((placement_active(), 1), else_=0).desc()
        data_stmt = (
            select(Listing)
            .where(*conditions)
            .order_by(boosted_first, Listing.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(data_stmt)
        return list(result.scalars().all()), total

    @staticmethod
    async def increment_view_count(db: AsyncSession, listing: Listing) -> Listing:
        """Atomically add one view and reload the counter."""
        await db.execute(
            update(Listing)
            .where(Listing.id == listing.id)
            .values(view_count=Listing.view_count + 1)
        )
        await db.refresh(listing, attribute_names=["view_count"])
        return listing

    @staticmethod
    async def increment_inquiry_count(db: AsyncSession, listing: Listing) -> Listing:
        """Atomically add one inquiry thread and reload the counter."""
        await db.execute(
            update(Listing)
            .where(Listing.id == listing.id)
            .values(inquiry_count=Listing.inquiry_count + 1)
        )
        await db.refresh(listing, attribute_names=["inquiry_count"])
        return listing

    @staticmethod
    async def adjust_save_count(
        db: AsyncSession, listing: Listing, delta: int
    ) -> Listing:
        """Atomically add ``delta`` saves, never going below zero."""
        new_count = Listing.save_count + delta
        await db.execute(
            update(Listing)
            .where(Listing.id == listing.id)
            .values(save_count=case((new_count < 0, 0), else_=new_count))
        )
        await db.refresh(listing, attribute_names=["save_count"])
        return listing

    @staticmethod
    async def replace_add_on_flags(
        db: AsyncSession,
        listing: Listing,
        flags: dict[str, Any],
        *,
        now: datetime | None = None,
    ) -> Listing:
        """Store a new premium_add_ons map on the listing.

        ``flags`` must be a fresh dict, never the listing's own map mutated
        in place.
        """
        listing.premium_add_ons = flags
        listing.updated_at = now or utcnow()
        await db.flush()
        return listing
