"""Inquiry request/response schemas."""

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

InquiryStatus = Literal["new", "read", "replied", "closed", "spam"]
InquiryTimeline = Literal[
    "immediate", "short_term", "medium_term", "long_term", "unspecified"
]

# Messages carry at most this many attachments
_MAX_ATTACHMENTS = 10


class Attachment(BaseModel):
    """File attached to a message (uploaded beforehand via /uploads/presign)."""

    model_config = ConfigDict(extra="forbid")

    url: str = Field(min_length=1, max_length=2000)
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=100)


class BuyerIntentRequest(BaseModel):
    """What the buyer is looking for."""

    model_config = ConfigDict(extra="forbid")

    quantity: int | None = Field(default=None, ge=1)
    timeline: InquiryTimeline = "unspecified"
    purpose: str | None = Field(default=None, max_length=500)


class CreateInquiryRequest(BaseModel):
    """Request body for POST /inquiries."""

    model_config = ConfigDict(extra="forbid")

    listing_id: uuid.UUID
    subject: str | None = Field(default=None, max_length=200)
    message: str = Field(min_length=1, max_length=10000)
    buyer_intent: BuyerIntentRequest | None = None
    attachments: list[Attachment] = Field(default_factory=list, max_length=_MAX_ATTACHMENTS)


class CreateMessageRequest(BaseModel):
    """Request body for POST /inquiries/{id}/messages."""

    model_config = ConfigDict(extra="forbid")

    message: str = Field(min_length=1, max_length=10000)
    attachments: list[Attachment] = Field(default_factory=list, max_length=_MAX_ATTACHMENTS)


class UpdateInquiryRequest(BaseModel):
    """Request body for PUT /inquiries/{id}.

    Attributes:
        status: New status (seller only).
        is_archived: Archive or unarchive the thread.
    """

    model_config = ConfigDict(extra="forbid")

    status: InquiryStatus | None = None
    is_archived: bool | None = None


class InquiryMessageResponse(BaseModel):
    """Single message in a thread."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    sender_id: uuid.UUID
    content: str
    attachments: list[Attachment]
    read_at: datetime | None
    created_at: datetime


class InquirySummaryResponse(BaseModel):
    """Thread without messages, as shown in inbox lists.

    ``unread_count`` is the caller's side of the thread.
    """

    id: uuid.UUID
    listing_id: uuid.UUID
    buyer_id: uuid.UUID
    seller_id: uuid.UUID
    subject: str
    status: str
    intent_quantity: int | None
    intent_timeline: str
    intent_purpose: str | None
    unread_count: int
    last_message_at: datetime
    is_archived: bool
    first_reply_at: datetime | None
    response_time_minutes: int | None
    created_at: datetime


class InquiryDetailResponse(InquirySummaryResponse):
    """Thread with its ordered messages."""

    messages: list[InquiryMessageResponse]
