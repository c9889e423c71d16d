"""Billing webhook event handling.

Events are processed at most once: the event id is recorded with its
outcome (processed, failed or skipped). Failed events are retried by
Stripe and processed again.
"""

import logging
import uuid
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import APIError
from app.models.base import utcnow
from app.repositories.addon_repository import AddOnRepository
from app.repositories.stripe_event_repository import StripeEventRepository
from app.services import addon_service, buyer_verification, verification_workflow

logger = logging.getLogger(__name__)


def _get(obj: Any, key: str, default: Any = None) -> Any:
    """Read a field from a Stripe object or a plain dict."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, IndexError):
        return default
    return default if value is None else value


def _metadata(obj: Any) -> dict[str, str]:
    meta = _get(obj, "metadata", {}) or {}
    return {k: meta[k] for k in meta}


def _parse_uuid(value: str | None) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


async def _handle_addon_checkout(db: AsyncSession, session: Any) -> str:
    meta = _metadata(session)
    purchase = None
    purchase_id = _parse_uuid(meta.get("purchase_id"))
    if purchase_id is not None:
        purchase = await AddOnRepository.get_by_id(db, purchase_id)
    if purchase is None and _get(session, "id"):
        purchase = await AddOnRepository.get_by_session_id(db, _get(session, "id"))
    if purchase is None:
        logger.warning("Checkout completed for unknown add-on purchase %s", purchase_id)
        return "skipped"
    if purchase.status == "active":
        return "processed"
    await addon_service.activate_purchase(
        db, purchase, payment_id=_get(session, "payment_intent")
    )
    return "processed"


async def _handle_verification_checkout(db: AsyncSession, session: Any) -> str:
    meta = _metadata(session)
    user_id = _parse_uuid(meta.get("user_id"))
    if user_id is None:
        logger.warning("Verification checkout without user_id metadata")
        return "skipped"
    await verification_workflow.activate_from_payment(
        db,
        user_id=user_id,
        tier=meta.get("tier") or "standard",
        payment_id=_get(session, "payment_intent"),
    )
    return "processed"


async def _handle_buyer_verification_checkout(db: AsyncSession, session: Any) -> str:
    user_id = _parse_uuid(_metadata(session).get("user_id"))
    if user_id is None:
        logger.warning("Buyer verification checkout without user_id metadata")
        return "skipped"
    await buyer_verification.activate_from_payment(db, user_id=user_id)
    return "processed"


async def _handle_charge_refunded(db: AsyncSession, charge: Any) -> str:
    meta = _metadata(charge)
    if meta.get("purchase_type") != "addon":
        return "skipped"
    purchase_id = _parse_uuid(meta.get("purchase_id"))
    purchase = await AddOnRepository.get_by_id(db, purchase_id) if purchase_id else None
    if purchase is None:
        logger.warning("Refund for unknown add-on purchase %s", purchase_id)
        return "skipped"
    if purchase.status == "refunded":
        return "processed"
    await addon_service.cancel_purchase(
        db, purchase, status="refunded", reason="refunded", now=utcnow()
    )
    return "processed"


async def _dispatch(db: AsyncSession, event_type: str, obj: Any) -> str:
    if event_type == "checkout.session.completed":
        meta = _metadata(obj)
        if meta.get("purchase_type") == "addon":
            return await _handle_addon_checkout(db, obj)
        if meta.get("type") == "seller_verification":
            return await _handle_verification_checkout(db, obj)
        if meta.get("type") == "buyer_verification":
            return await _handle_buyer_verification_checkout(db, obj)
        return "skipped"
    if event_type == "charge.refunded":
        return await _handle_charge_refunded(db, obj)
    return "skipped"


async def handle_event(db: AsyncSession, event: Any) -> str:
    """Process a verified webhook event once.

    Handler failures are rolled back to a SAVEPOINT and recorded as
    ``failed`` so the caller can answer 500 and Stripe retries the event.

    Args:
        db: Async database session.
        event: Event returned by stripe.Webhook.construct_event.

    Returns:
        Outcome: processed, skipped, failed or duplicate.
    """
    event_id = _get(event, "id")
    event_type = _get(event, "type", "unknown")
    existing = await StripeEventRepository.get_by_event_id(db, event_id)
    if existing is not None and existing.status != "failed":
        logger.info("Webhook event %s already handled", event_id)
        return "duplicate"

    obj = _get(_get(event, "data"), "object")
    try:
        async with db.begin_nested():
            status = await _dispatch(db, event_type, obj)
    except (SQLAlchemyError, APIError) as exc:
        logger.exception("Webhook %s (%s) failed", event_id, event_type)
        status = "failed"
        error: str | None = str(exc)
    else:
        error = None

    await StripeEventRepository.record(
        db, event_id=event_id, event_type=event_type, status=status, error=error
    )
    return status
