"""Public profile endpoints.

Contact data is gated server-side: anonymous callers never receive a
seller's phone number.
"""

import uuid

from fastapi import APIRouter

from app.api.deps import DbSession, OptionalUserId
from app.core.errors import NotFoundError
from app.core.responses import DataResponse
from app.repositories.listing_repository import ListingRepository
from app.repositories.user_repository import UserRepository
from app.schemas.listing import SellerProfileResponse

router = APIRouter()


@router.get("/sellers/{seller_id}")
async def get_seller_profile(
    seller_id: uuid.UUID,
    db: DbSession,
    viewer_id: OptionalUserId,
) -> DataResponse[SellerProfileResponse]:
    """Public seller profile with the phone withheld from anonymous callers."""
    seller = await UserRepository.get_by_id(db, seller_id)
    if seller is None or not seller.is_active:
        raise NotFoundError("Seller", str(seller_id))

    _, active_listings = await ListingRepository.list_filtered(
        db, status="active", seller_id=seller.id, limit=1
    )
    signed_in = viewer_id is not None
    return DataResponse(
        data=SellerProfileResponse(
            id=seller.id,
            name=seller.name,
            company=seller.company,
            image=seller.image,
            role=seller.role,
            is_verified_seller=seller.is_verified_seller,
            verified_seller_tier=(
                seller.verified_seller_tier if seller.is_verified_seller else None
            ),
            member_since=seller.created_at,
            active_listing_count=active_listings,
            phone=seller.phone if signed_in else None,
            contact_requires_sign_in=not signed_in,
        )
    )
