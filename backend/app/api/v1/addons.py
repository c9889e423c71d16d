"""Add-ons API router.

GET /addons and GET /addons/stats are public (purchase data only for
signed-in callers). Purchasing and assigning require sign-in.
"""

import uuid

from fastapi import APIRouter

from app.api.deps import CurrentUser, DbSession, OptionalUser
from app.core.responses import DataResponse
from app.models.addon import AddOnPurchase
from app.models.base import utcnow
from app.repositories.addon_repository import AddOnRepository
from app.schemas.addon import (
    AssignPurchaseRequest,
    CatalogItemResponse,
    CatalogResponse,
    CreatePurchaseRequest,
    PurchaseResponse,
    PurchaseStartResponse,
    PurchaseStatsResponse,
)
from app.schemas.listing import ListingResponse
from app.services import addon_service
from app.services.addon_catalog import ADD_ONS, AddOnSpec

router = APIRouter()


def _catalog_item(spec: AddOnSpec) -> CatalogItemResponse:
    return CatalogItemResponse(
        type=spec.type,
        name=spec.name,
        description=spec.description,
        price_cents=spec.price_cents,
        formatted_price=spec.formatted_price,
        duration_days=spec.duration_days,
        duration_label=spec.duration_label,
        ranking_boost=spec.ranking_boost,
    )


def _purchase_response(
    purchase: AddOnPurchase, listing_title: str | None = None
) -> PurchaseResponse:
    response = PurchaseResponse.model_validate(purchase)
    response.listing_title = listing_title
    return response


@router.get("")
async def get_catalog(
    db: DbSession,
    user: OptionalUser,
    listing_id: uuid.UUID | None = None,
    contractor_id: str | None = None,
) -> DataResponse[CatalogResponse]:
    """Catalog, plus the caller's purchases and active types on a target."""
    catalog = [_catalog_item(spec) for spec in ADD_ONS.values()]
    if user is None:
        return DataResponse(
            data=CatalogResponse(catalog=catalog, purchases=[], active_addons=[])
        )

    purchases = await AddOnRepository.list_for_user(
        db, user.id, listing_id=listing_id, contractor_id=contractor_id
    )
    active: list[str] = []
    if listing_id is not None or contractor_id:
        active = await AddOnRepository.active_types(
            db,
            now=utcnow(),
            listing_id=listing_id,
            contractor_id=contractor_id if listing_id is None else None,
        )
    return DataResponse(
        data=CatalogResponse(
            catalog=catalog,
            purchases=[_purchase_response(p) for p in purchases],
            active_addons=active,
        )
    )


@router.post("", status_code=201)
async def create_purchase(
    body: CreatePurchaseRequest,
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[PurchaseStartResponse]:
    """Start a purchase: test-mode activation or a checkout session."""
    result = await addon_service.start_purchase(
        db,
        user=user,
        addon_type=body.type,
        listing_id=body.listing_id,
        contractor_id=body.contractor_id,
    )
    await db.commit()

    if result.test_mode:
        return DataResponse(
            data=PurchaseStartResponse(
                test_mode=True,
                purchase_id=result.purchase.id,
                purchase=_purchase_response(result.purchase),
            )
        )
    return DataResponse(
        data=PurchaseStartResponse(
            test_mode=False,
            purchase_id=result.purchase.id,
            session_id=result.session_id,
            url=result.url,
        )
    )


@router.post("/assign")
async def assign_purchase(
    body: AssignPurchaseRequest,
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[dict]:
    """Bind an active, unassigned placement purchase to a listing."""
    purchase, listing = await addon_service.assign_purchase(
        db, user=user, purchase_id=body.purchase_id, listing_id=body.listing_id
    )
    await db.commit()
    return DataResponse(
        data={
            "purchase": _purchase_response(purchase, listing.title).model_dump(mode="json"),
            "listing": ListingResponse.model_validate(listing).model_dump(mode="json"),
        }
    )


@router.get("/purchases")
async def list_purchases(
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[list[PurchaseResponse]]:
    """The caller's purchases with the bound listing titles."""
    rows = await AddOnRepository.list_with_listing_titles(db, user.id)
    return DataResponse(data=[_purchase_response(p, title) for p, title in rows])


@router.get("/stats")
async def get_stats(
    db: DbSession,
    user: OptionalUser,
) -> DataResponse[PurchaseStatsResponse]:
    """Purchase counters for the caller (zeros when anonymous)."""
    if user is None:
        return DataResponse(
            data=PurchaseStatsResponse(total=0, active=0, pending=0, expiring_soon=0)
        )
    stats = await AddOnRepository.stats_for_user(db, user.id, now=utcnow())
    return DataResponse(
        data=PurchaseStatsResponse(
            total=stats.total,
            active=stats.active,
            pending=stats.pending,
            expiring_soon=stats.expiring_soon,
        )
    )
