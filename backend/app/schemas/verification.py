"""Seller verification request/response schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

DocumentType = Literal[
    "drivers_license",
    "business_license",
    "ein_document",
    "insurance_certificate",
]


class DocumentUploadRequest(BaseModel):
    """Request body for POST /verification/seller/documents.

    Attributes:
        document_type: Which document this is.
        file_name: Original file name.
        content_type: JPEG, PNG, WebP or PDF.
        file_size: Size in bytes (max 10MB).
    """

    model_config = ConfigDict(extra="forbid")

    document_type: DocumentType
    file_name: str = Field(min_length=1, max_length=255)
    content_type: str = Field(min_length=1, max_length=100)
    file_size: int = Field(gt=0)


class CheckoutRequest(BaseModel):
    """Request body for POST /verification/seller/checkout."""

    model_config = ConfigDict(extra="forbid")

    tier: Literal["standard", "priority"] = "standard"


class AdminActionRequest(BaseModel):
    """Request body for POST /admin/verification/sellers/{id}/actions."""

    model_config = ConfigDict(extra="forbid")

    action: Literal["approve", "reject", "revoke", "reinstate"]
    notes: str | None = Field(default=None, max_length=2000)
    rejection_reason: str | None = Field(default=None, max_length=2000)


class ForceExpireRequest(BaseModel):
    """Request body for POST /admin/seller-verifications/force-expire."""

    model_config = ConfigDict(extra="forbid")

    user_id: uuid.UUID


class VerificationDocumentResponse(BaseModel):
    """Uploaded document on file."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    document_type: str
    storage_key: str
    file_name: str
    uploaded_at: datetime


class VerificationHistoryResponse(BaseModel):
    """One status history entry."""

    model_config = ConfigDict(from_attributes=True)

    status: str
    changed_at: datetime
    changed_by: uuid.UUID | None
    reason: str | None


class VerificationResponse(BaseModel):
    """Seller verification record."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    status: str
    tier: str | None
    admin_review_status: str
    admin_reviewed_at: datetime | None
    admin_notes: str | None
    rejection_reason: str | None
    approved_at: datetime | None
    expires_at: datetime | None
    documents: list[VerificationDocumentResponse]
    history: list[VerificationHistoryResponse]
    created_at: datetime
    updated_at: datetime


class DocumentUploadResponse(BaseModel):
    """Response for POST /verification/seller/documents."""

    upload_url: str
    key: str
    verification: VerificationResponse


class VerificationStatusResponse(BaseModel):
    """Response for GET /verification/seller/status."""

    is_verified_seller: bool
    status: str
    tier: str | None
    approved_at: datetime | None
    expires_at: datetime | None
    verification: VerificationResponse | None


class CheckoutSessionResponse(BaseModel):
    """Created checkout session."""

    session_id: str
    url: str | None


class BuyerVerificationStatusResponse(BaseModel):
    """Buyer identity confirmation state."""

    is_verified_buyer: bool
    status: str
    verified_at: datetime | None
    badge: str | None


class SellerVerificationUserResponse(BaseModel):
    """User row in the admin seller verification list."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str | None
    company: str | None
    is_verified_seller: bool
    verified_seller_status: str
    verified_seller_tier: str | None
    verified_seller_approved_at: datetime | None
    verified_seller_expires_at: datetime | None


class ForceExpireResponse(BaseModel):
    """Response for POST /admin/seller-verifications/force-expire."""

    message: str
    user: SellerVerificationUserResponse
