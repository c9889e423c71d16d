"""Repository for Inquiry and InquiryMessage operations."""

import uuid
from datetime import datetime
from typing import Any, Literal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.inquiry import Inquiry, InquiryMessage

InquiryRole = Literal["buyer", "seller"]


class InquiryRepository:
    """Stateless repository for inquiry tables.

    All methods are static - no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, inquiry_id: uuid.UUID) -> Inquiry | None:
        """Fetch an inquiry (with messages) by primary key."""
        return await db.get(Inquiry, inquiry_id)

    @staticmethod
    async def get_by_listing_and_buyer(
        db: AsyncSession,
        *,
        listing_id: uuid.UUID,
        buyer_id: uuid.UUID,
    ) -> Inquiry | None:
        """Fetch the single thread a buyer has on a listing, if any."""
        result = await db.execute(
            select(Inquiry).where(
                Inquiry.listing_id == listing_id,
                Inquiry.buyer_id == buyer_id,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        listing_id: uuid.UUID,
        buyer_id: uuid.UUID,
        seller_id: uuid.UUID,
        subject: str,
        intent_quantity: int | None = None,
        intent_timeline: str = "unspecified",
        intent_purpose: str | None = None,
    ) -> Inquiry:
        """Create a new thread.

        The seller starts with one unread message (the opening message is
        added separately with add_message()).

        Raises:
            sqlalchemy.exc.IntegrityError: If the buyer already has a
                thread on this listing.
        """
        inquiry = Inquiry(
            listing_id=listing_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            subject=subject,
            status="new",
            intent_quantity=intent_quantity,
            intent_timeline=intent_timeline,
            intent_purpose=intent_purpose,
            buyer_unread_count=0,
            seller_unread_count=1,
            last_message_at=utcnow(),
            messages=[],
        )
        db.add(inquiry)
        await db.flush()
        return inquiry

    @staticmethod
    async def add_message(
        db: AsyncSession,
        inquiry: Inquiry,
        *,
        sender_id: uuid.UUID,
        content: str,
        attachments: list[dict[str, Any]] | None = None,
        now: datetime | None = None,
    ) -> InquiryMessage:
        """Append a message and bump ``last_message_at``."""
        sent_at = now or utcnow()
        message = InquiryMessage(
            position=len(inquiry.messages),
            sender_id=sender_id,
            content=content,
            attachments=list(attachments or []),
            created_at=sent_at,
        )
        inquiry.messages.append(message)
        inquiry.last_message_at = sent_at
        await db.flush()
        return message

    @staticmethod
    async def list_for_user(
        db: AsyncSession,
        user_id: uuid.UUID,
        *,
        role: InquiryRole,
        status: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Inquiry], int]:
        """List a user's non-archived threads, latest activity first.

        Args:
            db: Async database session.
            user_id: Caller.
            role: Which side of the thread the caller is on.
            status: Optional status filter.
            offset: Number of records to skip.
            limit: Maximum records to return.

        Returns:
            Tuple of (inquiries, total count).
        """
        owner = Inquiry.seller_id if role == "seller" else Inquiry.buyer_id
        conditions = [owner == user_id, Inquiry.is_archived.is_(False)]
        if status is not None:
            conditions.append(Inquiry.status == status)

        total = (
            await db.execute(
                select(func.count()).select_from(Inquiry).where(*conditions)
            )
        ).scalar_one()
        result = await db.execute(
            select(Inquiry)
            .where(*conditions)
            .order_by(Inquiry.last_message_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total
