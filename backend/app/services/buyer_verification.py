"""Buyer identity confirmation.

A one-time payment marks the buyer verified for the lifetime of the
account. Checkout only creates the payment session; the user is marked
verified when the webhook confirms the payment.
"""

import logging
import uuid
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import NotFoundError, ValidationError
from app.models.base import utcnow
from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.services import billing_service
from app.services.addon_catalog import BUYER_VERIFICATION

logger = logging.getLogger(__name__)


async def start_checkout(
    db: AsyncSession, *, user: User
) -> billing_service.CheckoutSession:
    """Create the buyer verification checkout session.

    Raises:
        ValidationError: The user is already a verified buyer.
    """
    if user.is_verified_buyer:
        raise ValidationError("You are already a verified buyer")

    customer_id = await billing_service.get_or_create_customer(db, user)
    return await billing_service.create_checkout_session(
        customer_id=customer_id,
        line_item=billing_service.catalog_line_item(
            price_id=BUYER_VERIFICATION.stripe_price_id,
            price_cents=BUYER_VERIFICATION.price_cents,
            name=BUYER_VERIFICATION.name,
        ),
        metadata={
            "user_id": user.id,
            "type": "buyer_verification",
            "product_name": BUYER_VERIFICATION.name,
        },
        success_url=(
            f"{settings.frontend_url}/dashboard/verification/buyer?success=true"
        ),
        cancel_url=(
            f"{settings.frontend_url}/dashboard/verification/buyer?canceled=true"
        ),
    )


async def activate_from_payment(
    db: AsyncSession, *, user_id: uuid.UUID, now: datetime | None = None
) -> User:
    """Mark a user verified after a confirmed payment.

    Repeated deliveries keep the first verification date.

    Raises:
        NotFoundError: Unknown user.
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User", str(user_id))
    if user.is_verified_buyer:
        return user
    await UserRepository.set_buyer_verified(db, user, verified_at=now or utcnow())
    logger.info("Buyer %s verified", user_id)
    return user
