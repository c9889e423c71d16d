"""Watchlist API router.

Signed-in users save listings for later. Saving bumps the listing's
save_count and removing lowers it. ``count_only`` answers anonymous
callers with a count of zero so page headers can render without a session.
"""

import uuid
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Response
from sqlalchemy.exc import IntegrityError

from app.api.deps import CurrentUser, DbSession, OptionalUserId
from app.core.errors import ConflictError, NotFoundError, UnauthorizedError
from app.core.pagination import PaginationParams, pagination_params
from app.core.responses import DataResponse, ListResponse, PaginationMeta
from app.repositories.listing_repository import ListingRepository
from app.repositories.watchlist_repository import WatchlistRepository
from app.schemas.watchlist import (
    AddWatchlistItemRequest,
    WatchlistCountResponse,
    WatchlistItemResponse,
)

logger = structlog.get_logger()

router = APIRouter()


def _already_saved() -> ConflictError:
    return ConflictError("ALREADY_IN_WATCHLIST", "Listing already in watchlist")


@router.get("")
async def get_watchlist(
    db: DbSession,
    user_id: OptionalUserId,
    pagination: Annotated[PaginationParams, Depends(pagination_params)],
    count_only: bool = False,
) -> DataResponse[WatchlistCountResponse] | ListResponse[WatchlistItemResponse]:
    """The caller's saved listings, newest first, or just their count.

    Raises:
        UnauthorizedError: Anonymous caller asking for the items.
    """
    if count_only:
        count = 0
        if user_id is not None:
            count = await WatchlistRepository.count_for_user(db, user_id)
        return DataResponse(data=WatchlistCountResponse(count=count))

    if user_id is None:
        raise UnauthorizedError()
    items, total = await WatchlistRepository.list_for_user(
        db, user_id, offset=pagination.offset, limit=pagination.limit
    )
    return ListResponse(
        data=[WatchlistItemResponse.model_validate(item) for item in items],
        meta=PaginationMeta(total=total, page=pagination.page, limit=pagination.limit),
    )


@router.post("", status_code=201)
async def add_to_watchlist(
    body: AddWatchlistItemRequest,
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[WatchlistItemResponse]:
    """Save a listing.

    Raises:
        NotFoundError: Unknown listing, or one the caller cannot see.
        ConflictError: Already saved.
    """
    listing = await ListingRepository.get_by_id(db, body.listing_id)
    if listing is None or not listing.is_visible_to(user):
        raise NotFoundError("Listing", str(body.listing_id))

    existing = await WatchlistRepository.get(
        db, user_id=user.id, listing_id=listing.id
    )
    if existing is not None:
        raise _already_saved()

    try:
        async with db.begin_nested():
            item = await WatchlistRepository.create(
                db,
                user_id=user.id,
                listing_id=listing.id,
                notes=body.notes,
                notify_on_price_change=body.notify_on_price_change,
                notify_on_status_change=body.notify_on_status_change,
                last_price_cents=listing.price_cents,
            )
    except IntegrityError as exc:
        raise _already_saved() from exc

    await ListingRepository.adjust_save_count(db, listing, 1)
    await db.commit()
    logger.info("Listing saved to watchlist", listing_id=str(listing.id))
    return DataResponse(data=WatchlistItemResponse.model_validate(item))


@router.delete("", status_code=204)
async def remove_from_watchlist(
    listing_id: uuid.UUID,
    db: DbSession,
    user: CurrentUser,
) -> Response:
    """Remove a listing from the caller's watchlist.

    Raises:
        NotFoundError: The listing is not on the watchlist.
    """
    item = await WatchlistRepository.get(db, user_id=user.id, listing_id=listing_id)
    if item is None:
        raise NotFoundError("Watchlist item", str(listing_id))

    listing = item.listing
    await WatchlistRepository.delete(db, item)
    await ListingRepository.adjust_save_count(db, listing, -1)
    await db.commit()
    return Response(status_code=204)
