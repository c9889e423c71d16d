"""Upload presigning endpoint.

Files go straight from the browser to S3. This endpoint validates the
declared file and returns a short-lived PUT URL plus the key to store.

Security:
- Declared MIME type and size are checked against per-category allow-lists.
- Object keys are built server-side from the caller's id and a sanitized
  filename; client input never names a key directly.
"""

import secrets
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import CurrentUser
from app.core.config import settings
from app.core.errors import UpstreamServiceError
from app.core.file_validation import sanitize_filename, validate_upload
from app.core.rate_limiting import limiter
from app.core.responses import DataResponse
from app.models.base import utcnow
from app.services.storage_service import StorageError, StorageService, get_storage

router = APIRouter()


# ===================================================================
# Request / response models
# ===================================================================


class PresignRequest(BaseModel):
    """Request body for POST /uploads/presign."""

    model_config = ConfigDict(extra="forbid")

    file_name: str = Field(min_length=1, max_length=255)
    content_type: str = Field(min_length=1, max_length=100)
    file_size: int = Field(gt=0)
    folder: Literal["contractors", "listings", "documents", "avatars"]
    subfolder: str | None = Field(
        default=None, max_length=64, pattern=r"^[a-zA-Z0-9-]+$"
    )
    file_type: Literal["image", "document", "all"] = "image"


class PresignResponse(BaseModel):
    """Presigned upload target."""

    upload_url: str
    file_url: str
    key: str


# ===================================================================
# POST /uploads/presign
# ===================================================================


@router.post("/presign")
@limiter.limit(settings.rate_limit_uploads)
async def presign_upload(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: PresignRequest,
    user: CurrentUser,
    storage: Annotated[StorageService, Depends(get_storage)],
) -> DataResponse[PresignResponse]:
    """Issue a presigned PUT URL for a direct upload.

    Key layout: ``{folder}/{user_id}[/{subfolder}]/{ts}-{random}-{name}``.

    Raises:
        ValidationError: Disallowed type or size.
        UpstreamServiceError: Storage could not sign the URL.
    """
    validate_upload(
        content_type=body.content_type,
        file_size=body.file_size,
        file_category=body.file_type,
    )

    prefix = f"{body.folder}/{user.id}"
    if body.subfolder:
        prefix = f"{prefix}/{body.subfolder}"
    stamp = int(utcnow().timestamp() * 1000)
    key = f"{prefix}/{stamp}-{secrets.token_hex(4)}-{sanitize_filename(body.file_name)}"

    try:
        upload_url = storage.presign_put(
            key, body.content_type, settings.s3_presign_expires_seconds
        )
    except StorageError as exc:
        raise UpstreamServiceError(
            "s3", "Could not prepare the upload. Please try again."
        ) from exc

    return DataResponse(
        data=PresignResponse(
            upload_url=upload_url, file_url=storage.object_url(key), key=key
        )
    )
