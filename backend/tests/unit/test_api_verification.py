"""Tests for the seller verification flow.

Covers document upload, submission, admin review actions, checkout and
the user-level status mirror.
"""

import uuid
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.models.base import utcnow
from app.models.seller_verification import SellerVerification
from app.models.user import User
from app.services import buyer_verification, verification_workflow
from app.services.billing_service import CheckoutSession
from app.services.storage_service import StorageService, get_storage
from tests.conftest import BUYER_ID, SELLER_ID


@pytest.fixture
def fake_storage(api_app) -> StorageService:
    """StorageService backed by a mocked boto3 client."""
    s3 = MagicMock()
    s3.generate_presigned_url.return_value = "https://s3.test/presigned-put"
    storage = StorageService(client=s3, bucket="test-bucket", region="us-east-1")
    api_app.dependency_overrides[get_storage] = lambda: storage
    return storage


async def _upload(client, document_type, file_name="license.pdf", **overrides):
    body = {
        "document_type": document_type,
        "file_name": file_name,
        "content_type": "application/pdf",
        "file_size": 120_000,
    }
    body.update(overrides)
    return await client.post("/api/v1/verification/seller/documents", json=body)


async def _submitted(client) -> str:
    await _upload(client, "drivers_license")
    await _upload(client, "ein_document", file_name="ein.pdf")
    response = await client.post("/api/v1/verification/seller/submit")
    assert response.status_code == 200
    return response.json()["data"]["id"]


async def _action(admin_client, verification_id, action, **extra):
    return await admin_client.post(
        f"/api/v1/admin/verification/sellers/{verification_id}/actions",
        json={"action": action, **extra},
    )


async def _user(session_factory) -> User:
    async with session_factory() as session:
        return await session.get(User, SELLER_ID)


class TestDocuments:
    """POST /api/v1/verification/seller/documents."""

    async def test_first_upload_creates_draft(self, client, fake_storage):
        response = await _upload(client, "drivers_license", file_name="my license.pdf")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["upload_url"] == "https://s3.test/presigned-put"
        assert data["key"].startswith(f"verification/sellers/{SELLER_ID}/drivers_license-")
        assert data["key"].endswith("-my_license.pdf")
        assert data["verification"]["status"] == "draft"
        assert [d["document_type"] for d in data["verification"]["documents"]] == [
            "drivers_license"
        ]
        assert [h["status"] for h in data["verification"]["history"]] == ["draft"]

        params = fake_storage.client.generate_presigned_url.call_args.kwargs["Params"]
        assert params["ContentType"] == "application/pdf"

    async def test_same_type_replaces_document(self, client, fake_storage):
        await _upload(client, "drivers_license", file_name="old.pdf")
        response = await _upload(client, "drivers_license", file_name="new.pdf")

        documents = response.json()["data"]["verification"]["documents"]
        assert [d["file_name"] for d in documents] == ["new.pdf"]

    async def test_rejects_disallowed_type(self, client, fake_storage):
        response = await _upload(client, "drivers_license", content_type="image/gif")

        assert response.status_code == 400

    async def test_rejects_oversized_file(self, client, fake_storage):
        response = await _upload(
            client, "drivers_license", file_size=10 * 1024 * 1024 + 1
        )

        assert response.status_code == 400

    async def test_locked_after_submission(self, client, fake_storage):
        await _submitted(client)

        response = await _upload(client, "business_license")

        assert response.status_code == 400


class TestSubmit:
    """POST /api/v1/verification/seller/submit."""

    async def test_moves_to_pending_admin(self, client, fake_storage, session_factory):
        await _submitted(client)

        user = await _user(session_factory)
        assert user.verified_seller_status == "pending"
        assert user.is_verified_seller is False

    async def test_requires_business_document(self, client, fake_storage):
        await _upload(client, "drivers_license")

        response = await client.post("/api/v1/verification/seller/submit")

        assert response.status_code == 400
        assert response.json()["error"]["details"][0]["field"] == "business_license"

    async def test_requires_drivers_license(self, client, fake_storage):
        await _upload(client, "business_license")

        response = await client.post("/api/v1/verification/seller/submit")

        assert response.status_code == 400

    async def test_nothing_uploaded(self, client):
        response = await client.post("/api/v1/verification/seller/submit")

        assert response.status_code == 400


class TestAdminActions:
    """POST /api/v1/admin/verification/sellers/{id}/actions."""

    async def test_approve(self, client, admin_client, fake_storage, session_factory):
        verification_id = await _submitted(client)

        response = await _action(admin_client, verification_id, "approve", notes="OK")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "pending-payment"
        assert data["admin_review_status"] == "approved"
        assert (await _user(session_factory)).verified_seller_status == "pending"

    async def test_reject_requires_reason(self, client, admin_client, fake_storage):
        verification_id = await _submitted(client)

        response = await _action(admin_client, verification_id, "reject")

        assert response.status_code == 400

    async def test_reject_returns_to_draft(
        self, client, admin_client, fake_storage, session_factory
    ):
        verification_id = await _submitted(client)

        response = await _action(
            admin_client, verification_id, "reject", rejection_reason="Blurry scan"
        )

        data = response.json()["data"]
        assert data["status"] == "draft"
        assert data["rejection_reason"] == "Blurry scan"
        assert (await _user(session_factory)).verified_seller_status == "none"

        # Documents unlock again after rejection
        assert (await _upload(client, "drivers_license")).status_code == 200

    async def test_revoke_and_reinstate(
        self, client, admin_client, fake_storage, session_factory
    ):
        verification_id = await _submitted(client)

        revoked = await _action(admin_client, verification_id, "revoke", notes="Fraud")
        assert revoked.json()["data"]["status"] == "revoked"
        user = await _user(session_factory)
        assert user.verified_seller_status == "revoked"
        assert user.verified_seller_expires_at is not None

        reinstated = await _action(admin_client, verification_id, "reinstate")
        assert reinstated.json()["data"]["status"] == "pending-admin"
        assert (await _user(session_factory)).verified_seller_status == "pending"

    async def test_invalid_transitions(self, client, admin_client, fake_storage):
        verification_id = await _submitted(client)

        reinstate = await _action(admin_client, verification_id, "reinstate")
        assert reinstate.status_code == 422
        assert reinstate.json()["error"]["code"] == "INVALID_STATE_TRANSITION"

        await _action(admin_client, verification_id, "reject", rejection_reason="No")
        revoke_draft = await _action(admin_client, verification_id, "revoke")
        assert revoke_draft.status_code == 422

    async def test_history_records_every_transition(
        self, client, admin_client, fake_storage
    ):
        verification_id = await _submitted(client)

        response = await _action(admin_client, verification_id, "approve")

        history = response.json()["data"]["history"]
        assert [h["status"] for h in history] == ["draft", "pending-admin", "pending-payment"]

    async def test_non_admin_rejected(self, client, fake_storage):
        verification_id = await _submitted(client)

        response = await _action(client, verification_id, "approve")

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ADMIN_REQUIRED"

    async def test_unknown_record(self, admin_client):
        response = await _action(admin_client, uuid.uuid4(), "approve")

        assert response.status_code == 404

    async def test_review_queue(self, client, admin_client, fake_storage):
        verification_id = await _submitted(client)

        response = await admin_client.get("/api/v1/admin/verification/sellers")

        assert [r["id"] for r in response.json()["data"]] == [verification_id]

        response = await admin_client.get(
            "/api/v1/admin/verification/sellers", params={"status": "active"}
        )
        assert response.json()["data"] == []


class TestCheckout:
    """POST /api/v1/verification/seller/checkout."""

    async def test_requires_approval(self, client, fake_storage):
        await _submitted(client)

        response = await client.post(
            "/api/v1/verification/seller/checkout", json={"tier": "standard"}
        )

        assert response.status_code == 400

    async def test_creates_session_after_approval(
        self, client, admin_client, fake_storage
    ):
        verification_id = await _submitted(client)
        await _action(admin_client, verification_id, "approve")

        create_session = AsyncMock(
            return_value=CheckoutSession(id="cs_verify", url="https://checkout/cs_verify")
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
            response = await client.post(
                "/api/v1/verification/seller/checkout", json={"tier": "priority"}
            )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "session_id": "cs_verify",
            "url": "https://checkout/cs_verify",
        }
        kwargs = create_session.await_args.kwargs
        assert kwargs["metadata"]["type"] == "seller_verification"
        assert kwargs["metadata"]["tier"] == "priority"
        # No Stripe price configured: inline price data
        assert kwargs["line_item"]["price_data"]["unit_amount"] == 4900

    async def test_unknown_tier(self, client):
        response = await client.post(
            "/api/v1/verification/seller/checkout", json={"tier": "platinum"}
        )

        assert response.status_code == 400


class TestStatus:
    """GET /api/v1/verification/seller/status and /seller."""

    async def test_no_record(self, client):
        status = await client.get("/api/v1/verification/seller/status")
        record = await client.get("/api/v1/verification/seller")

        assert status.json()["data"]["status"] == "none"
        assert status.json()["data"]["verification"] is None
        assert record.json()["data"] is None

    async def test_lapsed_verification_expires_on_read(
        self, client, db_session, seller_user, session_factory
    ):
        await verification_workflow.activate_from_payment(
            db_session,
            user_id=SELLER_ID,
            tier="standard",
            payment_id="pi_old",
            now=utcnow() - timedelta(days=400),
        )
        await db_session.commit()

        response = await client.get("/api/v1/verification/seller/status")

        data = response.json()["data"]
        assert data["is_verified_seller"] is False
        assert data["status"] == "expired"
        assert data["verification"]["status"] == "expired"

    async def test_active_verification(self, client, db_session, seller_user):
        await verification_workflow.activate_from_payment(
            db_session,
            user_id=SELLER_ID,
            tier="priority",
            payment_id="pi_new",
        )
        await db_session.commit()

        response = await client.get("/api/v1/verification/seller/status")

        data = response.json()["data"]
        assert data["is_verified_seller"] is True
        assert data["status"] == "active"
        assert data["tier"] == "priority"


class TestBuyerVerification:
    """POST /verification/buyer/checkout and GET /verification/buyer/status."""

    async def test_checkout_session(self, buyer_client):
        create_session = AsyncMock(
            return_value=CheckoutSession(id="cs_buyer", url="https://checkout/cs_buyer")
        )
        with (
            patch(
                "app.services.billing_service.get_or_create_customer",
                AsyncMock(return_value="cus_b"),
            ),
            patch(
                "app.services.billing_service.create_checkout_session", create_session
            ),
        ):
            response = await buyer_client.post("/api/v1/verification/buyer/checkout")

        assert response.status_code == 200
        assert response.json()["data"]["session_id"] == "cs_buyer"
        kwargs = create_session.await_args.kwargs
        assert kwargs["metadata"]["type"] == "buyer_verification"
        assert kwargs["metadata"]["user_id"] == BUYER_ID
        assert kwargs["line_item"]["price_data"]["unit_amount"] == 100

    async def test_already_verified(self, buyer_client, db_session, buyer_user):
        await buyer_verification.activate_from_payment(db_session, user_id=BUYER_ID)
        await db_session.commit()

        response = await buyer_client.post("/api/v1/verification/buyer/checkout")

        assert response.status_code == 400

    async def test_status_before_and_after(self, buyer_client, db_session, buyer_user):
        before = await buyer_client.get("/api/v1/verification/buyer/status")
        await buyer_verification.activate_from_payment(db_session, user_id=BUYER_ID)
        await db_session.commit()
        after = await buyer_client.get("/api/v1/verification/buyer/status")

        assert before.json()["data"] == {
            "is_verified_buyer": False,
            "status": "none",
            "verified_at": None,
            "badge": None,
        }
        data = after.json()["data"]
        assert data["is_verified_buyer"] is True
        assert data["status"] == "verified"
        assert data["badge"] == "Identity Confirmed"

    async def test_repeat_activation_keeps_first_date(self, db_session, buyer_user):
        first = utcnow() - timedelta(days=3)
        await buyer_verification.activate_from_payment(
            db_session, user_id=BUYER_ID, now=first
        )

        await buyer_verification.activate_from_payment(db_session, user_id=BUYER_ID)

        assert buyer_user.buyer_verified_at == first

    async def test_status_requires_auth(self, unauthenticated_client):
        response = await unauthenticated_client.get("/api/v1/verification/buyer/status")

        assert response.status_code == 401


class TestExpireDue:
    """Tests for verification_workflow.expire_due()."""

    async def test_expires_lapsed_records(self, db_session, seller_user):
        verification = await verification_workflow.activate_from_payment(
            db_session,
            user_id=SELLER_ID,
            tier="standard",
            payment_id=None,
            now=utcnow() - timedelta(days=366),
        )
        await db_session.commit()

        result = await verification_workflow.expire_due(db_session)

        assert (result.processed, result.errors, result.total) == (1, 0, 1)
        assert verification.status == "expired"
        assert seller_user.verified_seller_status == "expired"
        assert seller_user.is_verified_seller is False

    async def test_active_record_untouched(self, db_session, seller_user):
        verification = await verification_workflow.activate_from_payment(
            db_session, user_id=SELLER_ID, tier="standard", payment_id=None
        )

        result = await verification_workflow.expire_due(db_session)

        assert result.total == 0
        assert isinstance(verification, SellerVerification)
        assert verification.status == "active"

    async def test_unexpected_error_is_isolated(
        self, db_session, seller_user, buyer_user
    ):
        lapsed = utcnow() - timedelta(days=366)
        for user_id in (SELLER_ID, BUYER_ID):
            await verification_workflow.activate_from_payment(
                db_session,
                user_id=user_id,
                tier="standard",
                payment_id=None,
                now=lapsed,
            )
        await db_session.commit()
        real_require_user = verification_workflow._require_user

        async def broken(db, user_id):
            if user_id == SELLER_ID:
                raise RuntimeError("mirror update failed")
            return await real_require_user(db, user_id)

        with patch.object(verification_workflow, "_require_user", broken):
            result = await verification_workflow.expire_due(db_session)

        assert (result.processed, result.errors, result.total) == (1, 1, 2)
        assert buyer_user.verified_seller_status == "expired"
        assert seller_user.verified_seller_status == "active"
