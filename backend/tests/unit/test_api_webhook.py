"""Tests for POST /api/v1/billing/webhook."""

from unittest.mock import patch

import pytest
import stripe
from pydantic import SecretStr
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.models.addon import AddOnPurchase
from app.models.listing import Listing
from app.models.stripe_event import StripeEvent
from app.models.user import User
from app.repositories.addon_repository import AddOnRepository
from app.services import addon_service
from tests.conftest import BUYER_ID, SELLER_ID

WEBHOOK_URL = "/api/v1/billing/webhook"


@pytest.fixture
def webhook_secret(monkeypatch) -> str:
    monkeypatch.setattr(settings, "stripe_webhook_secret", SecretStr("whsec_test"))
    return "whsec_test"


def _event(event_id: str, event_type: str, obj: dict) -> dict:
    return {"id": event_id, "type": event_type, "data": {"object": obj}}


async def _post(client, event: dict):
    with patch.object(stripe.Webhook, "construct_event", return_value=event):
        return await client.post(
            WEBHOOK_URL, content=b"{}", headers={"stripe-signature": "t=1,v1=abc"}
        )


async def _pending_elite(db_session, listing) -> AddOnPurchase:
    purchase = await AddOnRepository.create(
        db_session,
        user_id=listing.seller_id,
        addon_type="elite",
        amount_cents=9900,
        listing_id=listing.id,
    )
    await db_session.commit()
    return purchase


class TestSignature:
    """Signature verification happens before any processing."""

    async def test_missing_signature(self, unauthenticated_client, webhook_secret):
        response = await unauthenticated_client.post(WEBHOOK_URL, content=b"{}")

        assert response.status_code == 400

    async def test_invalid_signature(self, unauthenticated_client, webhook_secret):
        response = await unauthenticated_client.post(
            WEBHOOK_URL, content=b"{}", headers={"stripe-signature": "t=1,v1=bad"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_unconfigured_secret(self, unauthenticated_client, monkeypatch):
        monkeypatch.setattr(settings, "stripe_webhook_secret", SecretStr(""))

        response = await unauthenticated_client.post(
            WEBHOOK_URL, content=b"{}", headers={"stripe-signature": "t=1,v1=abc"}
        )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "SERVICE_NOT_CONFIGURED"


class TestAddonCheckout:
    """checkout.session.completed for add-on purchases."""

    async def test_activates_purchase(
        self, unauthenticated_client, webhook_secret, db_session, active_listing,
        session_factory,
    ):
        purchase = await _pending_elite(db_session, active_listing)
        event = _event(
            "evt_1",
            "checkout.session.completed",
            {
                "id": "cs_1",
                "payment_intent": "pi_1",
                "metadata": {"purchase_type": "addon", "purchase_id": str(purchase.id)},
            },
        )

        response = await _post(unauthenticated_client, event)

        assert response.json() == {"received": True, "status": "processed"}
        async with session_factory() as session:
            stored = await session.get(AddOnPurchase, purchase.id)
            listing = await session.get(Listing, active_listing.id)
        assert stored.status == "active"
        assert listing.premium_add_ons["elite"]["active"] is True

    async def test_redelivery_is_duplicate(
        self, unauthenticated_client, webhook_secret, db_session, active_listing
    ):
        purchase = await _pending_elite(db_session, active_listing)
        event = _event(
            "evt_dup",
            "checkout.session.completed",
            {"id": "cs_2", "metadata": {"purchase_type": "addon", "purchase_id": str(purchase.id)}},
        )

        await _post(unauthenticated_client, event)
        response = await _post(unauthenticated_client, event)

        assert response.json()["status"] == "duplicate"

    async def test_unknown_purchase_skipped(self, unauthenticated_client, webhook_secret):
        event = _event(
            "evt_unknown",
            "checkout.session.completed",
            {"id": "cs_x", "metadata": {"purchase_type": "addon"}},
        )

        response = await _post(unauthenticated_client, event)

        assert response.json()["status"] == "skipped"

    async def test_handler_failure_is_retryable(
        self, unauthenticated_client, webhook_secret, db_session, active_listing,
        session_factory,
    ):
        purchase = await _pending_elite(db_session, active_listing)
        event = _event(
            "evt_fail",
            "checkout.session.completed",
            {"id": "cs_3", "metadata": {"purchase_type": "addon", "purchase_id": str(purchase.id)}},
        )

        with patch.object(
            addon_service, "activate_purchase", side_effect=SQLAlchemyError("boom")
        ):
            failed = await _post(unauthenticated_client, event)

        assert failed.status_code == 500
        assert failed.json()["error"]["code"] == "WEBHOOK_FAILED"

        retried = await _post(unauthenticated_client, event)

        assert retried.json()["status"] == "processed"
        async with session_factory() as session:
            recorded = (
                await session.execute(
                    select(StripeEvent).where(StripeEvent.event_id == "evt_fail")
                )
            ).scalar_one()
            stored = await session.get(AddOnPurchase, purchase.id)
        assert recorded.status == "processed"
        assert recorded.error is None
        assert stored.status == "active"


class TestVerificationCheckout:
    """checkout.session.completed for seller verification."""

    async def test_activates_verification(
        self, unauthenticated_client, webhook_secret, seller_user, session_factory
    ):
        event = _event(
            "evt_verify",
            "checkout.session.completed",
            {
                "id": "cs_v",
                "payment_intent": "pi_v",
                "metadata": {
                    "type": "seller_verification",
                    "user_id": str(SELLER_ID),
                    "tier": "priority",
                },
            },
        )

        response = await _post(unauthenticated_client, event)

        assert response.json()["status"] == "processed"
        async with session_factory() as session:
            user = await session.get(User, SELLER_ID)
        assert user.is_verified_seller is True
        assert user.verified_seller_status == "active"


class TestBuyerVerificationCheckout:
    """checkout.session.completed for buyer verification."""

    async def test_marks_buyer_verified(
        self, unauthenticated_client, webhook_secret, buyer_user, session_factory
    ):
        event = _event(
            "evt_buyer",
            "checkout.session.completed",
            {
                "id": "cs_b",
                "metadata": {"type": "buyer_verification", "user_id": str(BUYER_ID)},
            },
        )

        response = await _post(unauthenticated_client, event)

        assert response.json()["status"] == "processed"
        async with session_factory() as session:
            user = await session.get(User, BUYER_ID)
        assert user.is_verified_buyer is True
        assert user.buyer_verification_status == "verified"
        assert user.buyer_verified_at is not None

    async def test_unknown_user_fails_for_retry(
        self, unauthenticated_client, webhook_secret
    ):
        event = _event(
            "evt_buyer_missing",
            "checkout.session.completed",
            {
                "id": "cs_b",
                "metadata": {
                    "type": "buyer_verification",
                    "user_id": "00000000-0000-0000-0000-00000000beef",
                },
            },
        )

        response = await _post(unauthenticated_client, event)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "WEBHOOK_FAILED"


class TestChargeRefunded:
    """charge.refunded reverses add-on purchases."""

    async def test_refund_cancels_active_purchase(
        self, unauthenticated_client, webhook_secret, db_session, active_listing,
        session_factory,
    ):
        purchase = await _pending_elite(db_session, active_listing)
        await addon_service.activate_purchase(db_session, purchase)
        await db_session.commit()
        event = _event(
            "evt_refund",
            "charge.refunded",
            {"metadata": {"purchase_type": "addon", "purchase_id": str(purchase.id)}},
        )

        response = await _post(unauthenticated_client, event)

        assert response.json()["status"] == "processed"
        async with session_factory() as session:
            stored = await session.get(AddOnPurchase, purchase.id)
        assert stored.status == "refunded"

    async def test_unrelated_charge_skipped(self, unauthenticated_client, webhook_secret):
        event = _event("evt_other", "charge.refunded", {"metadata": {}})

        response = await _post(unauthenticated_client, event)

        assert response.json()["status"] == "skipped"

    async def test_unhandled_event_type_skipped(
        self, unauthenticated_client, webhook_secret
    ):
        response = await _post(
            unauthenticated_client, _event("evt_inv", "invoice.paid", {})
        )

        assert response.json() == {"received": True, "status": "skipped"}
