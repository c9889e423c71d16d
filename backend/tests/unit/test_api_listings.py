"""Tests for the listings and seller profile endpoints."""

from datetime import UTC, datetime, timedelta

from app.models.listing import Listing
from app.repositories.listing_repository import ListingRepository
from app.services import listing_flags
from tests.conftest import BUYER_ID, SELLER_ID

_NOW = datetime.now(UTC)


async def _add_listing(db_session, seller_id=SELLER_ID, **overrides) -> Listing:
    flags = overrides.pop("premium_add_ons", None)
    fields = {
        "seller_id": seller_id,
        "title": "Hopper car",
        "category": "freight-cars",
        "status": "active",
    }
    fields.update(overrides)
    listing = await ListingRepository.create(db_session, **fields)
    if flags is not None:
        await ListingRepository.replace_add_on_flags(db_session, listing, flags)
    await db_session.commit()
    return listing


class TestListListings:
    """GET /api/v1/listings."""

    async def test_anonymous_sees_active_listings(
        self, unauthenticated_client, active_listing
    ):
        response = await unauthenticated_client.get("/api/v1/listings")

        assert response.status_code == 200
        body = response.json()
        assert [item["id"] for item in body["data"]] == [str(active_listing.id)]
        assert body["meta"]["total"] == 1
        assert body["data"][0]["is_featured"] is False

    async def test_anonymous_cannot_browse_drafts(self, unauthenticated_client):
        response = await unauthenticated_client.get(
            "/api/v1/listings", params={"status": "draft"}
        )

        assert response.status_code == 401

    async def test_signed_in_can_browse_drafts(
        self, client, db_session, seller_user, active_listing
    ):
        draft = await _add_listing(db_session, status="draft", title="Draft boxcar")

        response = await client.get("/api/v1/listings", params={"status": "draft"})

        assert response.status_code == 200
        assert [item["id"] for item in response.json()["data"]] == [str(draft.id)]

    async def test_buyer_draft_filter_hides_other_sellers(
        self, buyer_client, db_session, seller_user
    ):
        await _add_listing(db_session, status="draft", title="Seller draft")

        response = await buyer_client.get("/api/v1/listings", params={"status": "draft"})

        assert response.status_code == 200
        assert response.json()["data"] == []
        assert response.json()["meta"]["total"] == 0

    async def test_seller_filter_cannot_reach_other_drafts(
        self, buyer_client, db_session, seller_user
    ):
        await _add_listing(db_session, status="draft", title="Seller draft")

        response = await buyer_client.get(
            "/api/v1/listings", params={"status": "draft", "seller_id": str(SELLER_ID)}
        )

        assert response.json()["data"] == []

    async def test_admin_sees_every_draft(
        self, admin_client, db_session, seller_user, buyer_user
    ):
        mine = await _add_listing(db_session, status="draft", title="Seller draft")
        theirs = await _add_listing(
            db_session, seller_id=BUYER_ID, status="draft", title="Buyer draft"
        )

        response = await admin_client.get("/api/v1/listings", params={"status": "draft"})

        ids = {item["id"] for item in response.json()["data"]}
        assert ids == {str(mine.id), str(theirs.id)}

    async def test_boosted_listings_sort_first(
        self, unauthenticated_client, db_session, active_listing
    ):
        boosted = await _add_listing(
            db_session,
            title="Elite tank car",
            premium_add_ons=listing_flags.apply_addon(
                {}, "elite", purchased_at=_NOW, expires_at=_NOW + timedelta(days=30)
            ),
        )
        # The plain listing is newer; only the boost puts the elite one first
        await _add_listing(db_session, title="Newest plain listing")

        response = await unauthenticated_client.get("/api/v1/listings")

        data = response.json()["data"]
        assert data[0]["id"] == str(boosted.id)
        assert data[0]["is_featured"] is True

    async def test_featured_filter(
        self, unauthenticated_client, db_session, active_listing
    ):
        boosted = await _add_listing(
            db_session,
            premium_add_ons={"featured": {"active": True}},
        )

        response = await unauthenticated_client.get(
            "/api/v1/listings", params={"featured": "true"}
        )

        assert [item["id"] for item in response.json()["data"]] == [str(boosted.id)]

    async def test_category_filter(
        self, unauthenticated_client, db_session, active_listing
    ):
        await _add_listing(db_session, category="freight-cars")

        response = await unauthenticated_client.get(
            "/api/v1/listings", params={"category": "locomotives"}
        )

        assert [item["id"] for item in response.json()["data"]] == [
            str(active_listing.id)
        ]

    async def test_unknown_category_rejected(self, unauthenticated_client):
        response = await unauthenticated_client.get(
            "/api/v1/listings", params={"category": "spaceships"}
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestGetListing:
    """GET /api/v1/listings/{id}."""

    async def test_view_is_counted_for_visitors(
        self, unauthenticated_client, active_listing
    ):
        first = await unauthenticated_client.get(f"/api/v1/listings/{active_listing.id}")
        second = await unauthenticated_client.get(
            f"/api/v1/listings/{active_listing.id}"
        )

        assert first.json()["data"]["view_count"] == 1
        assert second.json()["data"]["view_count"] == 2

    async def test_owner_view_not_counted(self, client, active_listing):
        response = await client.get(f"/api/v1/listings/{active_listing.id}")

        assert response.status_code == 200
        assert response.json()["data"]["view_count"] == 0

    async def test_missing_listing(self, unauthenticated_client):
        response = await unauthenticated_client.get(
            "/api/v1/listings/00000000-0000-0000-0000-00000000dead"
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_draft_hidden_from_anonymous(
        self, unauthenticated_client, db_session, seller_user, session_factory
    ):
        draft = await _add_listing(db_session, status="draft")

        response = await unauthenticated_client.get(f"/api/v1/listings/{draft.id}")

        assert response.status_code == 404
        async with session_factory() as session:
            stored = await session.get(Listing, draft.id)
        assert stored.view_count == 0

    async def test_archived_hidden_from_other_users(
        self, buyer_client, db_session, seller_user
    ):
        draft = await _add_listing(db_session, status="archived")

        response = await buyer_client.get(f"/api/v1/listings/{draft.id}")

        assert response.status_code == 404

    async def test_owner_and_admin_see_draft_without_counting(
        self, client, admin_client, db_session, seller_user
    ):
        draft = await _add_listing(db_session, status="draft")

        owner = await client.get(f"/api/v1/listings/{draft.id}")
        admin = await admin_client.get(f"/api/v1/listings/{draft.id}")

        assert owner.status_code == 200
        assert admin.status_code == 200
        assert admin.json()["data"]["view_count"] == 0


class TestCreateListing:
    """POST /api/v1/listings."""

    async def test_creates_owned_listing(self, client):
        response = await client.post(
            "/api/v1/listings",
            json={
                "title": "40ft flatcar",
                "category": "freight-cars",
                "status": "active",
                "price_cents": 1_500_000,
                "location_state": "OH",
            },
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["seller_id"] == str(SELLER_ID)
        assert data["status"] == "active"
        assert data["published_at"] is not None
        assert data["premium_add_ons"] == {}

    async def test_requires_auth(self, unauthenticated_client):
        response = await unauthenticated_client.post(
            "/api/v1/listings",
            json={"title": "40ft flatcar", "category": "freight-cars"},
        )

        assert response.status_code == 401


class TestUpdateListing:
    """PUT /api/v1/listings/{id}."""

    async def test_owner_updates_fields(self, client, db_session, seller_user):
        draft = await _add_listing(db_session, status="draft")

        response = await client.put(
            f"/api/v1/listings/{draft.id}",
            json={"title": "Rebuilt hopper car", "price_cents": 2_000_000},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Rebuilt hopper car"
        assert data["price_cents"] == 2_000_000
        assert data["status"] == "draft"
        assert data["published_at"] is None

    async def test_publishing_stamps_published_at(
        self, client, db_session, seller_user
    ):
        draft = await _add_listing(db_session, status="draft")

        response = await client.put(
            f"/api/v1/listings/{draft.id}", json={"status": "active"}
        )

        data = response.json()["data"]
        assert data["status"] == "active"
        assert data["published_at"] is not None

    async def test_other_user_forbidden(self, buyer_client, active_listing):
        response = await buyer_client.put(
            f"/api/v1/listings/{active_listing.id}", json={"title": "Mine now"}
        )

        assert response.status_code == 403

    async def test_admin_may_edit(self, admin_client, active_listing):
        response = await admin_client.put(
            f"/api/v1/listings/{active_listing.id}", json={"status": "sold"}
        )

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "sold"

    async def test_platform_statuses_rejected(self, client, active_listing):
        response = await client.put(
            f"/api/v1/listings/{active_listing.id}", json={"status": "expired"}
        )

        assert response.status_code == 400

    async def test_null_title_rejected(self, client, active_listing):
        response = await client.put(
            f"/api/v1/listings/{active_listing.id}", json={"title": None}
        )

        assert response.status_code == 400

    async def test_add_on_flags_not_writable(self, client, active_listing):
        response = await client.put(
            f"/api/v1/listings/{active_listing.id}",
            json={"premium_add_ons": {"elite": {"active": True}}},
        )

        assert response.status_code == 400


class TestDeleteListing:
    """DELETE /api/v1/listings/{id}."""

    async def test_owner_archives(self, client, active_listing, session_factory):
        response = await client.delete(f"/api/v1/listings/{active_listing.id}")

        assert response.status_code == 204
        async with session_factory() as session:
            stored = await session.get(Listing, active_listing.id)
        assert stored.status == "archived"

    async def test_archived_listing_leaves_public_views(
        self, client, unauthenticated_client, active_listing
    ):
        await client.delete(f"/api/v1/listings/{active_listing.id}")

        listing = await unauthenticated_client.get(
            f"/api/v1/listings/{active_listing.id}"
        )
        browse = await unauthenticated_client.get("/api/v1/listings")

        assert listing.status_code == 404
        assert browse.json()["data"] == []

    async def test_other_user_forbidden(
        self, buyer_client, active_listing, session_factory
    ):
        response = await buyer_client.delete(f"/api/v1/listings/{active_listing.id}")

        assert response.status_code == 403
        async with session_factory() as session:
            stored = await session.get(Listing, active_listing.id)
        assert stored.status == "active"

    async def test_requires_auth(self, unauthenticated_client, active_listing):
        response = await unauthenticated_client.delete(
            f"/api/v1/listings/{active_listing.id}"
        )

        assert response.status_code == 401

    async def test_missing_listing(self, client):
        response = await client.delete(
            "/api/v1/listings/00000000-0000-0000-0000-00000000dead"
        )

        assert response.status_code == 404


class TestSellerProfile:
    """GET /api/v1/profiles/sellers/{id}."""

    async def test_phone_hidden_from_anonymous(
        self, unauthenticated_client, active_listing
    ):
        response = await unauthenticated_client.get(
            f"/api/v1/profiles/sellers/{SELLER_ID}"
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["phone"] is None
        assert data["contact_requires_sign_in"] is True
        assert data["active_listing_count"] == 1
        assert data["company"] == "Short Line Supply"

    async def test_phone_shown_to_signed_in_caller(self, buyer_client, seller_user):
        response = await buyer_client.get(f"/api/v1/profiles/sellers/{SELLER_ID}")

        data = response.json()["data"]
        assert data["phone"] == "555-0100"
        assert data["contact_requires_sign_in"] is False

    async def test_unknown_seller(self, buyer_client):
        response = await buyer_client.get(
            "/api/v1/profiles/sellers/00000000-0000-0000-0000-00000000beef"
        )

        assert response.status_code == 404
