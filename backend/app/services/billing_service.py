"""Stripe integration: customers, checkout sessions and webhook verification.

The Stripe SDK is synchronous, so network calls run in a worker thread.
Provider errors are logged here and surfaced as UpstreamServiceError with
a user-readable message.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ServiceNotConfiguredError, UpstreamServiceError, ValidationError
from app.models.user import User

logger = logging.getLogger(__name__)

_PROVIDER_ERROR_MESSAGE = "Payment provider error. Please try again."


@dataclass(frozen=True)
class CheckoutSession:
    """Created checkout session.

    Attributes:
        id: Stripe session id.
        url: Hosted checkout page.
    """

    id: str
    url: str | None


def _configure() -> None:
    """Load the API key, failing when billing is not configured."""
    secret = settings.stripe_secret_key.get_secret_value()
    if not secret:
        raise ServiceNotConfiguredError("Billing is not configured")
    stripe.api_key = secret


def _stringify(metadata: dict[str, Any]) -> dict[str, str]:
    """Stripe metadata values must be strings."""
    return {k: "" if v is None else str(v) for k, v in metadata.items()}


def catalog_line_item(*, price_id: str, price_cents: int, name: str) -> dict[str, Any]:
    """Checkout line item for one unit of a catalog product.

    Uses the configured Stripe price when there is one, otherwise an inline
    USD price.
    """
    if price_id:
        return {"price": price_id, "quantity": 1}
    return {
        "price_data": {
            "currency": "usd",
            "unit_amount": price_cents,
            "product_data": {"name": name},
        },
        "quantity": 1,
    }


async def get_or_create_customer(db: AsyncSession, user: User) -> str:
    """Return the user's Stripe customer id, creating the customer once.

    The new id is saved on the user.

    Raises:
        ServiceNotConfiguredError: If no Stripe key is configured.
        UpstreamServiceError: If Stripe rejects the call.
    """
    if user.stripe_customer_id:
        return user.stripe_customer_id
    _configure()
    try:
        customer = await asyncio.to_thread(
            stripe.Customer.create,
            email=user.email,
            name=user.name or None,
            metadata={"user_id": str(user.id)},
        )
    except stripe.StripeError as exc:
        logger.error("Stripe customer creation failed for %s: %s", user.id, exc)
        raise UpstreamServiceError("stripe", _PROVIDER_ERROR_MESSAGE) from exc
    user.stripe_customer_id = customer.id
    await db.flush()
    return customer.id


async def create_checkout_session(
    *,
    line_item: dict[str, Any],
    metadata: dict[str, Any],
    success_url: str,
    cancel_url: str,
    customer_id: str | None = None,
) -> CheckoutSession:
    """Create a one-off payment checkout session.

    Metadata is copied onto the payment intent so refund events can be
    traced back to the purchase.

    Args:
        line_item: ``{"price": id, "quantity": 1}`` or an inline price_data item.
        metadata: Purchase context echoed back in webhook events.
        success_url: Redirect after payment.
        cancel_url: Redirect on cancel.
        customer_id: Existing Stripe customer.

    Returns:
        The created session.

    Raises:
        ServiceNotConfiguredError: If no Stripe key is configured.
        UpstreamServiceError: If Stripe rejects the call.
    """
    _configure()
    meta = _stringify(metadata)
    params: dict[str, Any] = {
        "mode": "payment",
        "line_items": [line_item],
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": meta,
        "payment_intent_data": {"metadata": meta},
    }
    if customer_id:
        params["customer"] = customer_id
    try:
        session = await asyncio.to_thread(stripe.checkout.Session.create, **params)
    except stripe.StripeError as exc:
        logger.error("Stripe checkout creation failed: %s", exc)
        raise UpstreamServiceError("stripe", _PROVIDER_ERROR_MESSAGE) from exc
    return CheckoutSession(id=session.id, url=session.url)


def construct_event(payload: bytes, sig_header: str | None) -> Any:
    """Verify a webhook payload and parse it into an event.

    Raises:
        ServiceNotConfiguredError: If no webhook secret is configured.
        ValidationError: On a missing or invalid signature.
    """
    secret = settings.stripe_webhook_secret.get_secret_value()
    if not secret:
        raise ServiceNotConfiguredError("Webhook secret is not configured")
    if not sig_header:
        raise ValidationError("Missing Stripe signature", field="stripe-signature")
    try:
        return stripe.Webhook.construct_event(payload, sig_header, secret)
    except (ValueError, stripe.SignatureVerificationError) as exc:
        logger.warning("Rejected webhook with invalid signature: %s", exc)
        raise ValidationError("Invalid webhook signature") from exc
