"""Listings API router.

Visibility: active listings are public. Any other status is visible only
to the owner and to admins; everyone else gets 404 on the detail route.
GET /listings with a non-active status filter therefore lists the caller's
own listings unless the caller is an admin. Placement-boosted listings
sort first.

Only the owner or an admin may edit or delete a listing. DELETE archives
the listing instead of removing the row.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from app.api.deps import CurrentUser, DbSession, OptionalUser
from app.core.errors import ForbiddenError, NotFoundError, UnauthorizedError
from app.core.pagination import PaginationParams, pagination_params
from app.core.responses import DataResponse, ListResponse, PaginationMeta
from app.models.listing import Listing
from app.models.user import User
from app.repositories.listing_repository import ListingRepository
from app.schemas.listing import (
    CreateListingRequest,
    ListingCategory,
    ListingResponse,
    ListingStatus,
    UpdateListingRequest,
)

router = APIRouter()


async def _get_managed_listing(
    db: DbSession, listing_id: uuid.UUID, user: User, action: str
) -> Listing:
    listing = await ListingRepository.get_by_id(db, listing_id)
    if listing is None:
        raise NotFoundError("Listing", str(listing_id))
    if not listing.is_managed_by(user):
        raise ForbiddenError(f"You do not have permission to {action} this listing")
    return listing


@router.get("")
async def list_listings(
    db: DbSession,
    user: OptionalUser,
    pagination: Annotated[PaginationParams, Depends(pagination_params)],
    category: ListingCategory | None = None,
    status: ListingStatus = "active",
    seller_id: uuid.UUID | None = None,
    featured: Annotated[bool | None, Query()] = None,
) -> ListResponse[ListingResponse]:
    """List listings with filters.

    Args:
        db: Database session.
        user: Caller, if signed in.
        pagination: page / limit.
        category: Category filter.
        status: Status filter. Non-active statuses require sign-in and are
            limited to the caller's own listings unless the caller is an admin.
        seller_id: Owner filter.
        featured: Only listings with an active placement.

    Raises:
        UnauthorizedError: Non-active status requested anonymously.
    """
    if status != "active":
        if user is None:
            raise UnauthorizedError("Sign in to browse non-active listings")
        if not user.has_admin_access:
            if seller_id is not None and seller_id != user.id:
                return ListResponse(
                    data=[],
                    meta=PaginationMeta(
                        total=0, page=pagination.page, limit=pagination.limit
                    ),
                )
            seller_id = user.id

    listings, total = await ListingRepository.list_filtered(
        db,
        status=status,
        category=category,
        seller_id=seller_id,
        featured=featured,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return ListResponse(
        data=[ListingResponse.model_validate(listing) for listing in listings],
        meta=PaginationMeta(total=total, page=pagination.page, limit=pagination.limit),
    )


@router.get("/{listing_id}")
async def get_listing(
    listing_id: uuid.UUID,
    db: DbSession,
    user: OptionalUser,
) -> DataResponse[ListingResponse]:
    """Get one listing.

    Non-active listings are 404 for anyone but the owner and admins. Views
    of active listings by anyone but the owner are counted.
    """
    listing = await ListingRepository.get_by_id(db, listing_id)
    if listing is None:
        raise NotFoundError("Listing", str(listing_id))

    if not listing.is_visible_to(user):
        raise NotFoundError("Listing", str(listing_id))

    is_owner = user is not None and user.id == listing.seller_id
    if listing.status == "active" and not is_owner:
        await ListingRepository.increment_view_count(db, listing)
        await db.commit()
    return DataResponse(data=ListingResponse.model_validate(listing))


@router.post("", status_code=201)
async def create_listing(
    body: CreateListingRequest,
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[ListingResponse]:
    """Create a listing owned by the caller."""
    listing = await ListingRepository.create(
        db,
        seller_id=user.id,
        title=body.title,
        description=body.description,
        category=body.category,
        condition=body.condition,
        status=body.status,
        price_cents=body.price_cents,
        price_type=body.price_type,
        location_state=body.location_state,
    )
    await db.commit()
    return DataResponse(data=ListingResponse.model_validate(listing))


@router.put("/{listing_id}")
async def update_listing(
    listing_id: uuid.UUID,
    body: UpdateListingRequest,
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[ListingResponse]:
    """Update a listing's editable fields.

    Only fields present in the body change. Moving a listing to active
    stamps ``published_at``.

    Raises:
        NotFoundError: Unknown listing.
        ForbiddenError: Caller is neither the owner nor an admin.
    """
    listing = await _get_managed_listing(db, listing_id, user, "edit")
    listing = await ListingRepository.update(
        db, listing, **body.model_dump(exclude_unset=True)
    )
    await db.commit()
    return DataResponse(data=ListingResponse.model_validate(listing))


@router.delete("/{listing_id}", status_code=204)
async def delete_listing(
    listing_id: uuid.UUID,
    db: DbSession,
    user: CurrentUser,
) -> Response:
    """Archive a listing (soft delete).

    Raises:
        NotFoundError: Unknown listing.
        ForbiddenError: Caller is neither the owner nor an admin.
    """
    listing = await _get_managed_listing(db, listing_id, user, "delete")
    await ListingRepository.update(db, listing, status="archived")
    await db.commit()
    return Response(status_code=204)
