"""Repository for WatchlistItem operations."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.watchlist import WatchlistItem


class WatchlistRepository:
    """Stateless repository for the watchlist_items table."""

    @staticmethod
    async def get(
        db: AsyncSession, *, user_id: uuid.UUID, listing_id: uuid.UUID
    ) -> WatchlistItem | None:
        """The user's entry for a listing, or None."""
        stmt = select(WatchlistItem).where(
            WatchlistItem.user_id == user_id,
            WatchlistItem.listing_id == listing_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        listing_id: uuid.UUID,
        notes: str = "",
        notify_on_price_change: bool = True,
        notify_on_status_change: bool = True,
        last_price_cents: int | None = None,
    ) -> WatchlistItem:
        """Insert an entry.

        Raises:
            IntegrityError: The listing is already on the user's watchlist.
        """
        item = WatchlistItem(
            user_id=user_id,
            listing_id=listing_id,
            notes=notes,
            notify_on_price_change=notify_on_price_change,
            notify_on_status_change=notify_on_status_change,
            last_price_cents=last_price_cents,
        )
        db.add(item)
        await db.flush()
        await db.refresh(item, attribute_names=["listing"])
        return item

    @staticmethod
    async def delete(db: AsyncSession, item: WatchlistItem) -> None:
        await db.delete(item)
        await db.flush()

    @staticmethod
    async def count_for_user(db: AsyncSession, user_id: uuid.UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(WatchlistItem)
            .where(WatchlistItem.user_id == user_id)
        )
        return (await db.execute(stmt)).scalar_one()

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[WatchlistItem], int]:
        """Newest entries first.

        Returns:
            Tuple of (items, total count).
        """
        total = await WatchlistRepository.count_for_user(db, user_id)
        stmt = (
            select(WatchlistItem)
            .where(WatchlistItem.user_id == user_id)
            .order_by(WatchlistItem.created_at.desc(), WatchlistItem.id)
            .offset(offset)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total
