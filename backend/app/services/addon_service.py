"""Add-on purchase lifecycle.

Purchase -> (checkout) -> activate -> expire, with assign, refund and admin
overrides. Every state change that affects a listing also rewrites the
listing's premium_add_ons map through app.services.listing_flags.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.models.addon import AddOnPurchase
from app.models.base import utcnow
from app.models.listing import Listing
from app.models.user import User
from app.repositories.addon_repository import AddOnRepository
from app.repositories.listing_repository import ListingRepository
from app.services import billing_service, listing_flags
from app.services.addon_catalog import ADD_ONS, AddOnSpec, get_addon

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PurchaseResult:
    """Outcome of starting a purchase.

    Attributes:
        purchase: The purchase record.
        test_mode: True when activated without payment (no price configured).
        session_id: Checkout session id (paid flow only).
        url: Checkout URL (paid flow only).
    """

    purchase: AddOnPurchase
    test_mode: bool
    session_id: str | None = None
    url: str | None = None


def _can_manage_listing(user: User, listing: Listing) -> bool:
    return listing.seller_id == user.id or user.has_admin_access


async def _load_owned_listing(
    db: AsyncSession, user: User, listing_id: uuid.UUID
) -> Listing:
    listing = await ListingRepository.get_by_id(db, listing_id)
    if listing is None:
        raise NotFoundError("Listing", str(listing_id))
    if not _can_manage_listing(user, listing):
        raise ForbiddenError("You can only purchase add-ons for your own listings")
    return listing


async def apply_to_listing(
    db: AsyncSession, purchase: AddOnPurchase, *, now: datetime | None = None
) -> Listing | None:
    """Switch the purchase's effect on in its listing's flag map."""
    if purchase.listing_id is None:
        return None
    listing = await ListingRepository.get_by_id(db, purchase.listing_id)
    if listing is None:
        return None
    flags = listing_flags.apply_addon(
        listing.premium_add_ons,
        purchase.type,
        purchased_at=purchase.started_at or now or utcnow(),
        expires_at=purchase.expires_at,
    )
    return await ListingRepository.replace_add_on_flags(db, listing, flags, now=now)


async def clear_from_listing(
    db: AsyncSession,
    purchase: AddOnPurchase,
    *,
    revoke: bool = False,
    now: datetime | None = None,
) -> Listing | None:
    """Switch the purchase's effect off in its listing's flag map.

    Args:
        db: Async database session.
        purchase: Purchase whose flags to clear.
        revoke: Also take back one-shot effects (refunds, cancellations).
        now: Timestamp for updated_at.

    Returns:
        The updated listing, or None if the purchase is unbound.
    """
    if purchase.listing_id is None:
        return None
    listing = await ListingRepository.get_by_id(db, purchase.listing_id)
    if listing is None:
        return None
    transform = listing_flags.revoke_addon if revoke else listing_flags.clear_addon
    flags = transform(listing.premium_add_ons, purchase.type)
    return await ListingRepository.replace_add_on_flags(db, listing, flags, now=now)


def _should_apply_on_activation(purchase: AddOnPurchase) -> bool:
    """Placement add-ons bought without a listing wait for /addons/assign."""
    spec = ADD_ONS.get(purchase.type)
    return purchase.listing_id is not None or (spec is not None and not spec.is_placement)


async def activate_purchase(
    db: AsyncSession,
    purchase: AddOnPurchase,
    *,
    now: datetime | None = None,
    payment_id: str | None = None,
) -> AddOnPurchase:
    """Mark a purchase active and apply its listing flags when bound.

    Args:
        db: Async database session.
        purchase: Purchase to activate.
        now: Activation time (defaults to now).
        payment_id: Stripe payment intent id.

    Returns:
        The activated purchase.
    """
    started = now or utcnow()
    spec = ADD_ONS.get(purchase.type)
    purchase.status = "active"
    purchase.started_at = started
    purchase.expires_at = spec.expires_at(started) if spec else None
    purchase.cancelled_at = None
    purchase.cancel_reason = None
    if payment_id:
        purchase.stripe_payment_id = payment_id
    await db.flush()

    if _should_apply_on_activation(purchase):
        await apply_to_listing(db, purchase, now=started)
    logger.info("Activated %s add-on %s", purchase.type, purchase.id)
    return purchase


async def expire_purchase(
    db: AsyncSession, purchase: AddOnPurchase, *, now: datetime | None = None
) -> AddOnPurchase:
    """Mark a purchase expired and clear its timed listing flags.

    The two writes are separate; a failure between them leaves the flag
    set until the next sweep over the listing.
    """
    purchase.status = "expired"
    await db.flush()
    await clear_from_listing(db, purchase, now=now)
    return purchase


async def cancel_purchase(
    db: AsyncSession,
    purchase: AddOnPurchase,
    *,
    status: str = "cancelled",
    reason: str | None = None,
    now: datetime | None = None,
) -> AddOnPurchase:
    """Cancel or refund a purchase and take back all its listing effects."""
    current = now or utcnow()
    purchase.status = status
    purchase.cancelled_at = current
    purchase.cancel_reason = reason
    await db.flush()
    await clear_from_listing(db, purchase, revoke=True, now=current)
    return purchase


async def start_purchase(
    db: AsyncSession,
    *,
    user: User,
    addon_type: str,
    listing_id: uuid.UUID | None = None,
    contractor_id: str | None = None,
    now: datetime | None = None,
) -> PurchaseResult:
    """Validate and start an add-on purchase.

    Without a configured Stripe price the purchase is activated at once
    (test mode). Otherwise a checkout session is created and the purchase
    stays pending until the webhook confirms payment.

    Args:
        db: Async database session.
        user: Purchaser.
        addon_type: Requested type (legacy names accepted).
        listing_id: Target listing.
        contractor_id: Target contractor profile.
        now: Current time (defaults to now).

    Returns:
        PurchaseResult.

    Raises:
        ValidationError: Unknown type, no target, or already active.
        NotFoundError: Listing does not exist.
        ForbiddenError: Caller does not own the target.
    """
    spec: AddOnSpec | None = get_addon(addon_type)
    if spec is None:
        raise ValidationError(f"Invalid add-on type: {addon_type}", field="type")
    if listing_id is None and not contractor_id:
        raise ValidationError(
            "A listing_id or contractor_id is required", field="listing_id"
        )

    current = now or utcnow()
    if listing_id is not None:
        await _load_owned_listing(db, user, listing_id)
    elif contractor_id != str(user.id) and not user.has_admin_access:
        raise ForbiddenError("You can only purchase add-ons for your own profile")

    existing = await AddOnRepository.find_active(
        db,
        addon_type=spec.type,
        now=current,
        listing_id=listing_id,
        contractor_id=contractor_id if listing_id is None else None,
    )
    if existing is not None:
        raise ValidationError(f"{spec.name} is already active", field="type")

    purchase = await AddOnRepository.create(
        db,
        user_id=user.id,
        addon_type=spec.type,
        amount_cents=spec.price_cents,
        listing_id=listing_id,
        contractor_id=contractor_id,
        metadata={"requested_type": addon_type},
    )

    price_id = spec.stripe_price_id
    if not price_id:
        await activate_purchase(db, purchase, now=current)
        return PurchaseResult(purchase=purchase, test_mode=True)

    customer_id = await billing_service.get_or_create_customer(db, user)
    session = await billing_service.create_checkout_session(
        customer_id=customer_id,
        line_item={"price": price_id, "quantity": 1},
        metadata={
            "user_id": user.id,
            "purchase_id": purchase.id,
            "purchase_type": "addon",
            "addon_type": spec.type,
            "listing_id": listing_id,
            "contractor_id": contractor_id,
        },
        success_url=(
            f"{settings.frontend_url}/dashboard/addons"
            f"?success=true&purchase_id={purchase.id}"
        ),
        cancel_url=f"{settings.frontend_url}/dashboard/addons?canceled=true",
    )
    purchase.stripe_session_id = session.id
    await db.flush()
    return PurchaseResult(
        purchase=purchase, test_mode=False, session_id=session.id, url=session.url
    )


async def assign_purchase(
    db: AsyncSession,
    *,
    user: User,
    purchase_id: uuid.UUID,
    listing_id: uuid.UUID,
    now: datetime | None = None,
) -> tuple[AddOnPurchase, Listing]:
    """Bind an active, unbound purchase to one of the caller's listings.

    Raises:
        NotFoundError: Purchase or listing does not exist.
        ForbiddenError: Caller owns neither the purchase nor the listing.
        ValidationError: Purchase inactive or bound, listing inactive, or
            the placement is already active on the listing.
    """
    current = now or utcnow()
    purchase = await AddOnRepository.get_by_id(db, purchase_id)
    if purchase is None:
        raise NotFoundError("Purchase", str(purchase_id))
    if purchase.user_id != user.id:
        raise ForbiddenError("You can only assign your own purchases")
    if not purchase.is_active_at(current):
        raise ValidationError("Purchase is not active", field="purchase_id")
    if purchase.listing_id is not None:
        raise ValidationError(
            "Purchase is already assigned to a listing", field="purchase_id"
        )

    listing = await ListingRepository.get_by_id(db, listing_id)
    if listing is None:
        raise NotFoundError("Listing", str(listing_id))
    if not _can_manage_listing(user, listing):
        raise ForbiddenError("You can only assign add-ons to your own listings")
    if listing.status != "active":
        raise ValidationError("Listing must be active", field="listing_id")
    if listing_flags.placement_active(listing.premium_add_ons, purchase.type):
        raise ValidationError(
            "This placement is already active on the listing", field="listing_id"
        )

    purchase.listing_id = listing.id
    await db.flush()
    updated = await apply_to_listing(db, purchase, now=current)
    return purchase, updated or listing


async def admin_override(
    db: AsyncSession,
    purchase: AddOnPurchase,
    *,
    action: str,
    reason: str | None = None,
    now: datetime | None = None,
) -> AddOnPurchase:
    """Force a purchase into a new state.

    Args:
        db: Async database session.
        purchase: Target purchase.
        action: activate, expire or cancel.
        reason: Admin reason (stored on cancellations).
        now: Current time.

    Raises:
        InvalidStateError: When the purchase is already in the target state.
        ValidationError: Unknown action.
    """
    if action == "activate":
        if purchase.is_active_at(now or utcnow()):
            raise InvalidStateError("Purchase is already active")
        return await activate_purchase(db, purchase, now=now)
    if action == "expire":
        if purchase.status != "active":
            raise InvalidStateError("Only active purchases can be expired")
        return await expire_purchase(db, purchase, now=now)
    if action == "cancel":
        if purchase.status in ("cancelled", "refunded"):
            raise InvalidStateError("Purchase is already cancelled")
        return await cancel_purchase(
            db, purchase, reason=reason or "admin_override", now=now
        )
    raise ValidationError(f"Unknown action: {action}", field="action")
