"""Admin API router.

Seller verification review, force-expire and add-on purchase overrides.
All endpoints require the AdminUser dependency. Every admin action writes
a best-effort audit entry.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request

from app.api.deps import AdminUser, DbSession
from app.core.errors import NotFoundError
from app.core.pagination import PaginationParams, pagination_params
from app.core.responses import DataResponse, ListResponse, PaginationMeta
from app.repositories.addon_repository import AddOnRepository
from app.repositories.user_repository import UserRepository
from app.repositories.verification_repository import VerificationRepository
from app.schemas.addon import OverridePurchaseRequest, PurchaseResponse
from app.schemas.verification import (
    AdminActionRequest,
    ForceExpireRequest,
    ForceExpireResponse,
    SellerVerificationUserResponse,
    VerificationResponse,
)
from app.services import addon_service, verification_workflow
from app.services.audit_service import record_admin_action

router = APIRouter()

# =============================================================================
# Shared types
# =============================================================================

VerificationStatusFilter = Annotated[
    str | None,
    Query(
        pattern=r"^(draft|pending-admin|pending-payment|active|expired|revoked)$",
        description="Filter by record status",
    ),
]


# =============================================================================
# Seller verification review
# =============================================================================


@router.get("/verification/sellers")
async def list_verifications(
    _admin: AdminUser,
    db: DbSession,
    pagination: Annotated[PaginationParams, Depends(pagination_params)],
    status: VerificationStatusFilter = "pending-admin",
) -> ListResponse[VerificationResponse]:
    """Verification records awaiting (or past) review."""
    records, total = await VerificationRepository.list_by_status(
        db, status=status, offset=pagination.offset, limit=pagination.limit
    )
    return ListResponse(
        data=[VerificationResponse.model_validate(r) for r in records],
        meta=PaginationMeta(total=total, page=pagination.page, limit=pagination.limit),
    )


@router.post("/verification/sellers/{verification_id}/actions")
async def apply_verification_action(
    request: Request,
    verification_id: Annotated[uuid.UUID, Path()],
    body: AdminActionRequest,
    admin: AdminUser,
    db: DbSession,
) -> DataResponse[VerificationResponse]:
    """Approve, reject, revoke or reinstate a verification."""
    verification = await verification_workflow.apply_admin_action(
        db,
        admin=admin,
        verification_id=verification_id,
        action=body.action,
        notes=body.notes,
        rejection_reason=body.rejection_reason,
        request=request,
    )
    await db.commit()
    return DataResponse(data=VerificationResponse.model_validate(verification))


@router.get("/seller-verifications")
async def list_seller_verifications(
    _admin: AdminUser,
    db: DbSession,
    pagination: Annotated[PaginationParams, Depends(pagination_params)],
) -> ListResponse[SellerVerificationUserResponse]:
    """Users with any verification activity."""
    users, total = await UserRepository.list_with_verification_activity(
        db, offset=pagination.offset, limit=pagination.limit
    )
    return ListResponse(
        data=[SellerVerificationUserResponse.model_validate(u) for u in users],
        meta=PaginationMeta(total=total, page=pagination.page, limit=pagination.limit),
    )


@router.post("/seller-verifications/force-expire")
async def force_expire_verification(
    request: Request,
    body: ForceExpireRequest,
    admin: AdminUser,
    db: DbSession,
) -> DataResponse[ForceExpireResponse]:
    """Expire a user's verification immediately."""
    user = await verification_workflow.force_expire(
        db, admin=admin, user_id=body.user_id, request=request
    )
    await db.commit()
    return DataResponse(
        data=ForceExpireResponse(
            message=f"Verification for {user.email} has been force expired",
            user=SellerVerificationUserResponse.model_validate(user),
        )
    )


# =============================================================================
# Add-on overrides
# =============================================================================


@router.post("/addons/{purchase_id}/override")
async def override_purchase(
    request: Request,
    purchase_id: Annotated[uuid.UUID, Path()],
    body: OverridePurchaseRequest,
    admin: AdminUser,
    db: DbSession,
) -> DataResponse[PurchaseResponse]:
    """Force a purchase into active, expired or cancelled."""
    purchase = await AddOnRepository.get_by_id(db, purchase_id)
    if purchase is None:
        raise NotFoundError("Purchase", str(purchase_id))

    previous = purchase.status
    purchase = await addon_service.admin_override(
        db, purchase, action=body.action, reason=body.reason
    )
    await record_admin_action(
        db,
        admin=admin,
        action=f"addon.{body.action}",
        target_type="addon_purchase",
        target_id=str(purchase.id),
        target_title=purchase.type,
        details={"from": previous, "to": purchase.status},
        reason=body.reason,
        request=request,
    )
    await db.commit()
    return DataResponse(data=PurchaseResponse.model_validate(purchase))
