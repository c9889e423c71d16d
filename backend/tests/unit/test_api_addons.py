"""Tests for the add-ons API.

Without a Stripe price configured, purchases activate immediately
(test mode); with one, a checkout session is created and the purchase
waits for the webhook.
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest

from app.core.config import settings
from app.models.addon import AddOnPurchase
from app.models.listing import Listing
from app.services.billing_service import CheckoutSession
from tests.conftest import SELLER_ID


@pytest.fixture
def elite_price():
    """Configure a Stripe price for elite placement."""
    original = settings.stripe_price_elite_placement
    settings.stripe_price_elite_placement = "price_elite_test"
    yield "price_elite_test"
    settings.stripe_price_elite_placement = original


async def _buy(client, addon_type, **target):
    body = {"type": addon_type}
    body.update({k: str(v) for k, v in target.items()})
    return await client.post("/api/v1/addons", json=body)


class TestCatalog:
    """GET /api/v1/addons."""

    async def test_anonymous_gets_catalog_only(self, unauthenticated_client):
        response = await unauthenticated_client.get("/api/v1/addons")

        assert response.status_code == 200
        data = response.json()["data"]
        types = {item["type"] for item in data["catalog"]}
        assert types == {
            "elite",
            "ai-enhancement",
            "spec-sheet",
            "verified-badge",
            "seller-analytics",
        }
        assert data["purchases"] == []
        assert data["active_addons"] == []

    async def test_active_types_for_listing(self, client, active_listing):
        await _buy(client, "elite", listing_id=active_listing.id)

        response = await client.get(
            "/api/v1/addons", params={"listing_id": str(active_listing.id)}
        )

        data = response.json()["data"]
        assert data["active_addons"] == ["elite"]
        assert [p["type"] for p in data["purchases"]] == ["elite"]


class TestTestModePurchase:
    """POST /api/v1/addons with no Stripe price configured."""

    async def test_activates_and_sets_flags(
        self, client, active_listing, session_factory
    ):
        response = await _buy(client, "elite", listing_id=active_listing.id)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["test_mode"] is True
        assert data["purchase"]["status"] == "active"
        assert data["purchase"]["amount_cents"] == 9900
        assert data["purchase"]["expires_at"] is not None
        assert data["url"] is None

        async with session_factory() as session:
            listing = await session.get(Listing, active_listing.id)
        for key in ("elite", "premium", "featured"):
            assert listing.premium_add_ons[key]["active"] is True

    async def test_legacy_name_maps_to_elite(self, client, active_listing):
        response = await _buy(client, "featured", listing_id=active_listing.id)

        assert response.json()["data"]["purchase"]["type"] == "elite"

    async def test_one_shot_addon_has_no_expiry(
        self, client, active_listing, session_factory
    ):
        response = await _buy(client, "ai-enhancement", listing_id=active_listing.id)

        assert response.json()["data"]["purchase"]["expires_at"] is None
        async with session_factory() as session:
            listing = await session.get(Listing, active_listing.id)
        assert listing.premium_add_ons["ai_enhanced"] is True

    async def test_already_active_rejected(self, client, active_listing):
        await _buy(client, "elite", listing_id=active_listing.id)

        response = await _buy(client, "premium", listing_id=active_listing.id)

        assert response.status_code == 400
        assert "already active" in response.json()["error"]["message"]

    async def test_unknown_type(self, client, active_listing):
        response = await _buy(client, "gold-frame", listing_id=active_listing.id)

        assert response.status_code == 400

    async def test_target_required(self, client):
        response = await _buy(client, "elite")

        assert response.status_code == 400

    async def test_other_sellers_listing_forbidden(self, buyer_client, active_listing):
        response = await _buy(buyer_client, "elite", listing_id=active_listing.id)

        assert response.status_code == 403

    async def test_contractor_target_must_be_self(self, client):
        response = await _buy(client, "seller-analytics", contractor_id=uuid.uuid4())

        assert response.status_code == 403

    async def test_contractor_target_self(self, client):
        response = await _buy(client, "seller-analytics", contractor_id=SELLER_ID)

        assert response.status_code == 201
        assert response.json()["data"]["purchase"]["contractor_id"] == str(SELLER_ID)


class TestCheckoutPurchase:
    """POST /api/v1/addons with a Stripe price configured."""

    async def test_creates_checkout_session(
        self, client, active_listing, elite_price, session_factory
    ):
        create_session = AsyncMock(
            return_value=CheckoutSession(id="cs_test_1", url="https://checkout/cs_test_1")
        )
        with (
            patch(
                "app.services.billing_service.get_or_create_customer",
                AsyncMock(return_value="cus_1"),
            ),
            patch(
                "app.services.billing_service.create_checkout_session", create_session
            ),
        ):
            response = await _buy(client, "elite", listing_id=active_listing.id)

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["test_mode"] is False
        assert data["session_id"] == "cs_test_1"
        assert data["url"] == "https://checkout/cs_test_1"

        kwargs = create_session.await_args.kwargs
        assert kwargs["line_item"] == {"price": elite_price, "quantity": 1}
        assert kwargs["metadata"]["purchase_type"] == "addon"

        async with session_factory() as session:
            purchase = await session.get(AddOnPurchase, uuid.UUID(data["purchase_id"]))
            listing = await session.get(Listing, active_listing.id)
        assert purchase.status == "pending"
        assert purchase.stripe_session_id == "cs_test_1"
        assert listing.premium_add_ons == {}


class TestAssign:
    """POST /api/v1/addons/assign."""

    async def test_unbound_placement_waits_for_assignment(
        self, client, active_listing, session_factory
    ):
        bought = await _buy(client, "elite", contractor_id=SELLER_ID)
        purchase_id = bought.json()["data"]["purchase_id"]

        async with session_factory() as session:
            listing = await session.get(Listing, active_listing.id)
        assert listing.premium_add_ons == {}

        response = await client.post(
            "/api/v1/addons/assign",
            json={"purchase_id": purchase_id, "listing_id": str(active_listing.id)},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["purchase"]["listing_id"] == str(active_listing.id)
        assert data["purchase"]["listing_title"] == "GP38-2 Locomotive"
        assert data["listing"]["is_featured"] is True

    async def test_cannot_assign_twice(self, client, active_listing):
        bought = await _buy(client, "elite", contractor_id=SELLER_ID)
        body = {
            "purchase_id": bought.json()["data"]["purchase_id"],
            "listing_id": str(active_listing.id),
        }
        await client.post("/api/v1/addons/assign", json=body)

        response = await client.post("/api/v1/addons/assign", json=body)

        assert response.status_code == 400

    async def test_unknown_purchase(self, client, active_listing):
        response = await client.post(
            "/api/v1/addons/assign",
            json={"purchase_id": str(uuid.uuid4()), "listing_id": str(active_listing.id)},
        )

        assert response.status_code == 404


class TestPurchasesAndStats:
    """GET /api/v1/addons/purchases and /addons/stats."""

    async def test_purchases_include_listing_title(self, client, active_listing):
        await _buy(client, "spec-sheet", listing_id=active_listing.id)

        response = await client.get("/api/v1/addons/purchases")

        assert response.status_code == 200
        assert [(p["type"], p["listing_title"]) for p in response.json()["data"]] == [
            ("spec-sheet", "GP38-2 Locomotive")
        ]

    async def test_stats(self, client, active_listing):
        await _buy(client, "elite", listing_id=active_listing.id)
        await _buy(client, "spec-sheet", listing_id=active_listing.id)

        response = await client.get("/api/v1/addons/stats")

        assert response.json()["data"] == {
            "total": 2,
            "active": 2,
            "pending": 0,
            "expiring_soon": 0,
        }

    async def test_stats_anonymous(self, unauthenticated_client):
        response = await unauthenticated_client.get("/api/v1/addons/stats")

        assert response.json()["data"]["total"] == 0
