"""Inquiries API router.

Buyer/seller message threads about a listing. Creation and replies are
rate limited per user.
"""

import uuid
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Request

from app.api.deps import CurrentUser, DbSession
from app.core.config import settings
from app.core.pagination import PaginationParams, pagination_params
from app.core.rate_limiting import limiter
from app.core.responses import DataResponse, ListResponse, PaginationMeta
from app.models.inquiry import Inquiry
from app.repositories.inquiry_repository import InquiryRepository
from app.schemas.inquiry import (
    CreateInquiryRequest,
    CreateMessageRequest,
    InquiryDetailResponse,
    InquiryMessageResponse,
    InquiryStatus,
    InquirySummaryResponse,
    UpdateInquiryRequest,
)
from app.services import inquiry_service
from app.services.inquiry_service import BuyerIntent, unread_count_for

router = APIRouter()


def _summary_fields(inquiry: Inquiry, viewer_id: uuid.UUID) -> dict:
    return {
        "id": inquiry.id,
        "listing_id": inquiry.listing_id,
        "buyer_id": inquiry.buyer_id,
        "seller_id": inquiry.seller_id,
        "subject": inquiry.subject,
        "status": inquiry.status,
        "intent_quantity": inquiry.intent_quantity,
        "intent_timeline": inquiry.intent_timeline,
        "intent_purpose": inquiry.intent_purpose,
        "unread_count": unread_count_for(inquiry, viewer_id),
        "last_message_at": inquiry.last_message_at,
        "is_archived": inquiry.is_archived,
        "first_reply_at": inquiry.first_reply_at,
        "response_time_minutes": inquiry.response_time_minutes,
        "created_at": inquiry.created_at,
    }


def _detail_response(inquiry: Inquiry, viewer_id: uuid.UUID) -> InquiryDetailResponse:
    return InquiryDetailResponse(
        **_summary_fields(inquiry, viewer_id),
        messages=[InquiryMessageResponse.model_validate(m) for m in inquiry.messages],
    )


@router.get("")
async def list_inquiries(
    db: DbSession,
    user: CurrentUser,
    pagination: Annotated[PaginationParams, Depends(pagination_params)],
    role: Literal["buyer", "seller"] = "buyer",
    status: InquiryStatus | None = None,
) -> ListResponse[InquirySummaryResponse]:
    """List the caller's non-archived threads, latest activity first."""
    inquiries, total = await InquiryRepository.list_for_user(
        db,
        user.id,
        role=role,
        status=status,
        offset=pagination.offset,
        limit=pagination.limit,
    )
    return ListResponse(
        data=[
            InquirySummaryResponse(**_summary_fields(inquiry, user.id))
            for inquiry in inquiries
        ],
        meta=PaginationMeta(total=total, page=pagination.page, limit=pagination.limit),
    )


@router.post("", status_code=201)
@limiter.limit(settings.rate_limit_inquiries)
async def create_inquiry(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: CreateInquiryRequest,
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[InquiryDetailResponse]:
    """Open a thread on a listing, or append to the caller's existing one."""
    intent = None
    if body.buyer_intent is not None:
        intent = BuyerIntent(
            quantity=body.buyer_intent.quantity,
            timeline=body.buyer_intent.timeline,
            purpose=body.buyer_intent.purpose,
        )
    inquiry, _ = await inquiry_service.create_or_append(
        db,
        buyer=user,
        listing_id=body.listing_id,
        message=body.message,
        subject=body.subject,
        intent=intent,
        attachments=[a.model_dump() for a in body.attachments],
    )
    await db.commit()
    return DataResponse(data=_detail_response(inquiry, user.id))


@router.get("/{inquiry_id}")
async def get_inquiry(
    inquiry_id: uuid.UUID,
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[InquiryDetailResponse]:
    """Read a thread (buyer, seller or admin) and mark it read."""
    inquiry = await inquiry_service.open_thread(db, user=user, inquiry_id=inquiry_id)
    await db.commit()
    return DataResponse(data=_detail_response(inquiry, user.id))


@router.put("/{inquiry_id}")
async def update_inquiry(
    inquiry_id: uuid.UUID,
    body: UpdateInquiryRequest,
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[InquiryDetailResponse]:
    """Change status (seller only) or archive a thread."""
    inquiry = await inquiry_service.update_thread(
        db,
        user=user,
        inquiry_id=inquiry_id,
        status=body.status,
        is_archived=body.is_archived,
    )
    await db.commit()
    return DataResponse(data=_detail_response(inquiry, user.id))


@router.post("/{inquiry_id}/messages", status_code=201)
@limiter.limit(settings.rate_limit_inquiries)
async def post_message(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    inquiry_id: uuid.UUID,
    body: CreateMessageRequest,
    db: DbSession,
    user: CurrentUser,
) -> DataResponse[InquiryDetailResponse]:
    """Reply on a thread as buyer or seller."""
    inquiry = await inquiry_service.reply(
        db,
        user=user,
        inquiry_id=inquiry_id,
        message=body.message,
        attachments=[a.model_dump() for a in body.attachments],
    )
    await db.commit()
    return DataResponse(data=_detail_response(inquiry, user.id))
