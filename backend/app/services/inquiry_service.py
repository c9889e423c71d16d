"""Inquiry threads between buyers and sellers.

One thread per (listing, buyer): a second inquiry from the same buyer on
the same listing appends to the existing thread. Unread counters are kept
per side and reset when that side opens the thread.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.email import send_inquiry_notification_email
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.base import utcnow
from app.models.inquiry import Inquiry
from app.models.user import User
from app.repositories.inquiry_repository import InquiryRepository
from app.repositories.listing_repository import ListingRepository
from app.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuyerIntent:
    """What the buyer is looking for."""

    quantity: int | None = None
    timeline: str = "unspecified"
    purpose: str | None = None


def unread_count_for(inquiry: Inquiry, user_id: uuid.UUID) -> int:
    """Unread counter for the caller's side of the thread."""
    if user_id == inquiry.seller_id:
        return inquiry.seller_unread_count
    if user_id == inquiry.buyer_id:
        return inquiry.buyer_unread_count
    return 0


async def _notify(
    db: AsyncSession,
    *,
    recipient_id: uuid.UUID,
    sender: User,
    inquiry: Inquiry,
    listing_title: str,
    message: str,
    is_reply: bool,
) -> None:
    recipient = await UserRepository.get_by_id(db, recipient_id)
    if recipient is None:
        return
    await send_inquiry_notification_email(
        to_email=recipient.email,
        listing_title=listing_title,
        sender_name=sender.name or sender.email,
        message=message,
        inquiry_id=str(inquiry.id),
        is_reply=is_reply,
    )


async def create_or_append(
    db: AsyncSession,
    *,
    buyer: User,
    listing_id: uuid.UUID,
    message: str,
    subject: str | None = None,
    intent: BuyerIntent | None = None,
    attachments: list[dict[str, Any]] | None = None,
    now: datetime | None = None,
) -> tuple[Inquiry, bool]:
    """Open a thread on a listing, or add to the buyer's existing one.

    Args:
        db: Async database session.
        buyer: Asking user.
        listing_id: Listing the inquiry is about.
        message: Message body.
        subject: Thread subject (default "Inquiry about {title}").
        intent: Buyer intent.
        attachments: ``[{url, name, type}]``.
        now: Current time.

    Returns:
        Tuple of (inquiry, created).

    Raises:
        NotFoundError: Listing does not exist.
        ValidationError: Buyer owns the listing.
    """
    current = now or utcnow()
    listing = await ListingRepository.get_by_id(db, listing_id)
    if listing is None:
        raise NotFoundError("Listing", str(listing_id))
    if listing.seller_id == buyer.id:
        raise ValidationError("You cannot inquire about your own listing")

    intent = intent or BuyerIntent()
    inquiry = await InquiryRepository.get_by_listing_and_buyer(
        db, listing_id=listing.id, buyer_id=buyer.id
    )
    created = False
    if inquiry is None:
        try:
            async with db.begin_nested():
                inquiry = await InquiryRepository.create(
                    db,
                    listing_id=listing.id,
                    buyer_id=buyer.id,
                    seller_id=listing.seller_id,
                    subject=(subject or f"Inquiry about {listing.title}")[:200],
                    intent_quantity=intent.quantity,
                    intent_timeline=intent.timeline,
                    intent_purpose=intent.purpose,
                )
                await InquiryRepository.add_message(
                    db,
                    inquiry,
                    sender_id=buyer.id,
                    content=message,
                    attachments=attachments,
                    now=current,
                )
            created = True
        except IntegrityError:
            # Lost a race with a concurrent first message from the same buyer
            logger.info("Inquiry for listing %s already exists, appending", listing.id)
            inquiry = await InquiryRepository.get_by_listing_and_buyer(
                db, listing_id=listing.id, buyer_id=buyer.id
            )
            if inquiry is None:
                raise

    if created:
        await ListingRepository.increment_inquiry_count(db, listing)
    else:
        await InquiryRepository.add_message(
            db,
            inquiry,
            sender_id=buyer.id,
            content=message,
            attachments=attachments,
            now=current,
        )
        inquiry.seller_unread_count += 1
        if inquiry.status == "closed":
            inquiry.status = "new"
        await db.flush()

    await _notify(
        db,
        recipient_id=listing.seller_id,
        sender=buyer,
        inquiry=inquiry,
        listing_title=listing.title,
        message=message,
        is_reply=not created,
    )
    return inquiry, created


async def _load_for_participant(
    db: AsyncSession, user: User, inquiry_id: uuid.UUID, *, allow_admin: bool
) -> Inquiry:
    inquiry = await InquiryRepository.get_by_id(db, inquiry_id)
    if inquiry is None:
        raise NotFoundError("Inquiry", str(inquiry_id))
    is_participant = user.id in (inquiry.buyer_id, inquiry.seller_id)
    if not is_participant and not (allow_admin and user.has_admin_access):
        raise ForbiddenError("You do not have access to this inquiry")
    return inquiry


async def open_thread(
    db: AsyncSession,
    *,
    user: User,
    inquiry_id: uuid.UUID,
    now: datetime | None = None,
) -> Inquiry:
    """Load a thread for reading and mark it read for the caller's side.

    Admins may read any thread without changing its read state.

    Raises:
        NotFoundError: Unknown inquiry.
        ForbiddenError: Caller is neither participant nor admin.
    """
    current = now or utcnow()
    inquiry = await _load_for_participant(db, user, inquiry_id, allow_admin=True)

    if user.id == inquiry.seller_id:
        inquiry.seller_unread_count = 0
        if inquiry.status == "new":
            inquiry.status = "read"
    elif user.id == inquiry.buyer_id:
        inquiry.buyer_unread_count = 0
    else:
        return inquiry

    for msg in inquiry.messages:
        if msg.sender_id != user.id and msg.read_at is None:
            msg.read_at = current
    await db.flush()
    return inquiry


async def reply(
    db: AsyncSession,
    *,
    user: User,
    inquiry_id: uuid.UUID,
    message: str,
    attachments: list[dict[str, Any]] | None = None,
    now: datetime | None = None,
) -> Inquiry:
    """Post a message on a thread as buyer or seller.

    Raises:
        NotFoundError: Unknown inquiry.
        ForbiddenError: Caller is not a participant.
    """
    current = now or utcnow()
    inquiry = await _load_for_participant(db, user, inquiry_id, allow_admin=False)

    await InquiryRepository.add_message(
        db,
        inquiry,
        sender_id=user.id,
        content=message,
        attachments=attachments,
        now=current,
    )
    if user.id == inquiry.seller_id:
        inquiry.buyer_unread_count += 1
        inquiry.status = "replied"
        if inquiry.first_reply_at is None:
            inquiry.first_reply_at = current
            elapsed = current - inquiry.created_at
            inquiry.response_time_minutes = int(elapsed.total_seconds() // 60)
        recipient_id = inquiry.buyer_id
    else:
        inquiry.seller_unread_count += 1
        recipient_id = inquiry.seller_id
    await db.flush()

    listing = await ListingRepository.get_by_id(db, inquiry.listing_id)
    await _notify(
        db,
        recipient_id=recipient_id,
        sender=user,
        inquiry=inquiry,
        listing_title=listing.title if listing else inquiry.subject,
        message=message,
        is_reply=True,
    )
    return inquiry


async def update_thread(
    db: AsyncSession,
    *,
    user: User,
    inquiry_id: uuid.UUID,
    status: str | None = None,
    is_archived: bool | None = None,
) -> Inquiry:
    """Change status (seller only) or archive state of a thread.

    Raises:
        NotFoundError: Unknown inquiry.
        ForbiddenError: Not a participant, or a buyer setting status.
    """
    inquiry = await _load_for_participant(db, user, inquiry_id, allow_admin=False)
    if status is not None:
        if user.id != inquiry.seller_id:
            raise ForbiddenError("Only the seller can change the inquiry status")
        inquiry.status = status
    if is_archived is not None:
        inquiry.is_archived = is_archived
        inquiry.archived_by = user.id if is_archived else None
    await db.flush()
    return inquiry
