"""Tests for admin endpoints: force-expire, verification listing and add-on overrides."""

import uuid
from unittest.mock import patch

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.models.addon import AddOnPurchase
from app.models.audit import AdminAuditLog
from app.models.listing import Listing
from app.repositories.addon_repository import AddOnRepository
from app.services import addon_service, verification_workflow
from tests.conftest import ADMIN_ID, SELLER_ID


async def _active_elite(db_session, listing) -> AddOnPurchase:
    purchase = await AddOnRepository.create(
        db_session,
        user_id=listing.seller_id,
        addon_type="elite",
        amount_cents=9900,
        listing_id=listing.id,
    )
    await addon_service.activate_purchase(db_session, purchase)
    await db_session.commit()
    return purchase


async def _audit_entries(session_factory) -> list[AdminAuditLog]:
    async with session_factory() as session:
        result = await session.execute(select(AdminAuditLog))
        return list(result.scalars().all())


class TestAdminAccess:
    """Every admin route requires admin access."""

    async def test_seller_rejected(self, client):
        response = await client.get("/api/v1/admin/seller-verifications")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ADMIN_REQUIRED"

    async def test_anonymous_rejected(self, unauthenticated_client):
        response = await unauthenticated_client.get("/api/v1/admin/seller-verifications")

        assert response.status_code == 401


class TestSellerVerifications:
    """GET /admin/seller-verifications and POST .../force-expire."""

    async def test_lists_users_with_activity(
        self, admin_client, db_session, seller_user, buyer_user
    ):
        await verification_workflow.activate_from_payment(
            db_session, user_id=SELLER_ID, tier="standard", payment_id=None
        )
        await db_session.commit()

        response = await admin_client.get("/api/v1/admin/seller-verifications")

        body = response.json()
        assert [u["id"] for u in body["data"]] == [str(SELLER_ID)]
        assert body["data"][0]["verified_seller_status"] == "active"
        assert body["meta"]["total"] == 1

    async def test_force_expire(
        self, admin_client, db_session, seller_user, session_factory
    ):
        await verification_workflow.activate_from_payment(
            db_session, user_id=SELLER_ID, tier="standard", payment_id=None
        )
        await db_session.commit()

        response = await admin_client.post(
            "/api/v1/admin/seller-verifications/force-expire",
            json={"user_id": str(SELLER_ID)},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["message"] == (
            "Verification for seller@example.com has been force expired"
        )
        assert data["user"]["is_verified_seller"] is False
        assert data["user"]["verified_seller_status"] == "expired"

        entries = await _audit_entries(session_factory)
        assert [(e.action, e.admin_id) for e in entries] == [
            ("seller_verification.force_expire", ADMIN_ID)
        ]

    async def test_force_expire_unknown_user(self, admin_client):
        response = await admin_client.post(
            "/api/v1/admin/seller-verifications/force-expire",
            json={"user_id": str(uuid.uuid4())},
        )

        assert response.status_code == 404


class TestAddonOverride:
    """POST /api/v1/admin/addons/{id}/override."""

    async def test_expire_clears_flags(
        self, admin_client, db_session, active_listing, session_factory
    ):
        purchase = await _active_elite(db_session, active_listing)

        response = await admin_client.post(
            f"/api/v1/admin/addons/{purchase.id}/override", json={"action": "expire"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "expired"
        async with session_factory() as session:
            listing = await session.get(Listing, active_listing.id)
        assert listing.premium_add_ons["elite"]["active"] is False

        entries = await _audit_entries(session_factory)
        assert [e.action for e in entries] == ["addon.expire"]
        assert entries[0].details == {"from": "active", "to": "expired"}

    async def test_cancel_records_reason(self, admin_client, db_session, active_listing):
        purchase = await _active_elite(db_session, active_listing)

        response = await admin_client.post(
            f"/api/v1/admin/addons/{purchase.id}/override",
            json={"action": "cancel", "reason": "Chargeback"},
        )

        data = response.json()["data"]
        assert data["status"] == "cancelled"
        assert data["cancel_reason"] == "Chargeback"
        assert data["cancelled_at"] is not None

    async def test_activate_pending_purchase(
        self, admin_client, db_session, active_listing, session_factory
    ):
        purchase = await AddOnRepository.create(
            db_session,
            user_id=SELLER_ID,
            addon_type="verified-badge",
            amount_cents=1500,
            listing_id=active_listing.id,
        )
        await db_session.commit()

        response = await admin_client.post(
            f"/api/v1/admin/addons/{purchase.id}/override", json={"action": "activate"}
        )

        assert response.json()["data"]["status"] == "active"
        async with session_factory() as session:
            listing = await session.get(Listing, active_listing.id)
        assert listing.premium_add_ons["verified_badge"]["active"] is True

    async def test_already_active(self, admin_client, db_session, active_listing):
        purchase = await _active_elite(db_session, active_listing)

        response = await admin_client.post(
            f"/api/v1/admin/addons/{purchase.id}/override", json={"action": "activate"}
        )

        assert response.status_code == 422

    async def test_unknown_action(self, admin_client, db_session, active_listing):
        purchase = await _active_elite(db_session, active_listing)

        response = await admin_client.post(
            f"/api/v1/admin/addons/{purchase.id}/override", json={"action": "explode"}
        )

        assert response.status_code == 400

    async def test_unknown_purchase(self, admin_client):
        response = await admin_client.post(
            f"/api/v1/admin/addons/{uuid.uuid4()}/override", json={"action": "expire"}
        )

        assert response.status_code == 404

    async def test_audit_failure_does_not_fail_action(
        self, admin_client, db_session, active_listing, session_factory
    ):
        purchase = await _active_elite(db_session, active_listing)

        with patch(
            "app.services.audit_service.AuditLogRepository.create",
            side_effect=SQLAlchemyError("audit table unavailable"),
        ):
            response = await admin_client.post(
                f"/api/v1/admin/addons/{purchase.id}/override",
                json={"action": "expire"},
            )

        assert response.status_code == 200
        assert await _audit_entries(session_factory) == []
        async with session_factory() as session:
            stored = await session.get(AddOnPurchase, purchase.id)
        assert stored.status == "expired"
