"""Verification endpoints (user side).

Seller flow: upload documents -> submit -> admin review -> checkout ->
active. State changes go through app.services.verification_workflow.

Buyer verification is a single one-time payment; the webhook marks the
buyer verified.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.deps import CurrentUser, DbSession
from app.core.errors import UpstreamServiceError
from app.core.responses import DataResponse
from app.models.seller_verification import SellerVerification
from app.schemas.verification import (
    BuyerVerificationStatusResponse,
    CheckoutRequest,
    CheckoutSessionResponse,
    DocumentUploadRequest,
    DocumentUploadResponse,
    VerificationResponse,
    VerificationStatusResponse,
)
from app.services import buyer_verification, verification_workflow
from app.services.addon_catalog import BUYER_VERIFICATION
from app.services.storage_service import StorageError, StorageService, get_storage

router = APIRouter()


def _verification_response(
    verification: SellerVerification | None,
) -> VerificationResponse | None:
    if verification is None:
        return None
    return VerificationResponse.model_validate(verification)


@router.get("/seller")
async def get_verification(
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[VerificationResponse | None]:
    """The caller's verification record, or null."""
    verification = await verification_workflow.get_for_user(db, user.id)
    return DataResponse(data=_verification_response(verification))


@router.post("/seller/documents")
async def upload_document(
    body: DocumentUploadRequest,
    db: DbSession,
    user: CurrentUser,
    storage: Annotated[StorageService, Depends(get_storage)],
) -> DataResponse[DocumentUploadResponse]:
    """Issue a presigned upload for a verification document."""
    try:
        upload = await verification_workflow.start_document_upload(
            db,
            user=user,
            storage=storage,
            document_type=body.document_type,
            file_name=body.file_name,
            content_type=body.content_type,
            file_size=body.file_size,
        )
    except StorageError as exc:
        raise UpstreamServiceError(
            "s3", "Could not prepare the upload. Please try again."
        ) from exc
    await db.commit()
    return DataResponse(
        data=DocumentUploadResponse(
            upload_url=upload.upload_url,
            key=upload.key,
            verification=VerificationResponse.model_validate(upload.verification),
        )
    )


@router.post("/seller/submit")
async def submit_verification(
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[VerificationResponse]:
    """Submit uploaded documents for admin review."""
    verification = await verification_workflow.submit(db, user=user)
    await db.commit()
    return DataResponse(data=VerificationResponse.model_validate(verification))


@router.get("/seller/status")
async def get_status(
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[VerificationStatusResponse]:
    """User-level verification state; lapsed verifications expire here."""
    verification = await verification_workflow.refresh_status(db, user=user)
    await db.commit()
    return DataResponse(
        data=VerificationStatusResponse(
            is_verified_seller=user.is_verified_seller,
            status=user.verified_seller_status,
            tier=user.verified_seller_tier,
            approved_at=user.verified_seller_approved_at,
            expires_at=user.verified_seller_expires_at,
            verification=_verification_response(verification),
        )
    )


@router.post("/seller/checkout")
async def create_checkout(
    body: CheckoutRequest,
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[CheckoutSessionResponse]:
    """Create the verification payment checkout session."""
    session = await verification_workflow.start_checkout(db, user=user, tier=body.tier)
    await db.commit()
    return DataResponse(
        data=CheckoutSessionResponse(session_id=session.id, url=session.url)
    )


# =============================================================================
# Buyer verification
# =============================================================================


@router.post("/buyer/checkout")
async def create_buyer_checkout(
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[CheckoutSessionResponse]:
    """Create the one-time buyer verification checkout session."""
    session = await buyer_verification.start_checkout(db, user=user)
    await db.commit()
    return DataResponse(
        data=CheckoutSessionResponse(session_id=session.id, url=session.url)
    )


@router.get("/buyer/status")
async def get_buyer_status(
    user: CurrentUser,
) -> DataResponse[BuyerVerificationStatusResponse]:
    """The caller's buyer verification state."""
    return DataResponse(
        data=BuyerVerificationStatusResponse(
            is_verified_buyer=user.is_verified_buyer,
            status=user.buyer_verification_status,
            verified_at=user.buyer_verified_at,
            badge=BUYER_VERIFICATION.badge if user.is_verified_buyer else None,
        )
    )
