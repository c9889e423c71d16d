"""Image proxy: streams S3 objects through the API.

GET /s3-image?key=... signs a GET URL (cached per key), fetches the object
and returns it with a long immutable cache lifetime. Any failure after the
access check redirects to the placeholder image.

Security:
- The key is URL-decoded and every ``..`` removed before use.
- Keys under a protected folder require the owner (user id in the path)
  or an admin.
"""

import re
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse, Response

from app.api.deps import OptionalUser
from app.core.errors import ForbiddenError, UnauthorizedError, ValidationError
from app.core.file_validation import sanitize_object_key
from app.models.user import User
from app.services.presigned_url_cache import PresignedUrlCache, get_url_cache
from app.services.storage_service import StorageError, StorageService, get_storage

logger = structlog.get_logger()

PLACEHOLDER_PATH = "/placeholders/listing-no-image.png"
IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"

# Protected folders match at the start of the key or after any "/"
_PROTECTED_FOLDER = re.compile(r"(^|/)(verification|documents)/")

router = APIRouter()


def is_protected_key(key: str) -> bool:
    """True when the key lives under a folder that needs an owner check."""
    return _PROTECTED_FOLDER.search(key) is not None


def owns_key(key: str, user: User) -> bool:
    """True when the caller's id is a path segment of the key."""
    user_id = str(user.id)
    return f"/{user_id}/" in key or key.endswith(f"/{user_id}")


@router.get("/s3-image")
async def get_s3_image(
    user: OptionalUser,
    cache: Annotated[PresignedUrlCache, Depends(get_url_cache)],
    storage: Annotated[StorageService, Depends(get_storage)],
    key: str | None = None,
) -> Response:
    """Serve one stored object.

    Raises:
        ValidationError: Missing key.
        UnauthorizedError: Protected key requested anonymously.
        ForbiddenError: Protected key owned by someone else.
    """
    if not key:
        raise ValidationError("Missing key parameter", field="key")

    safe_key = sanitize_object_key(key)
    if not safe_key:
        raise ValidationError("Invalid key parameter", field="key")

    if is_protected_key(safe_key):
        if user is None:
            raise UnauthorizedError()
        if not owns_key(safe_key, user) and not user.has_admin_access:
            logger.warning(
                "Protected object access denied", user_id=str(user.id), key=safe_key
            )
            raise ForbiddenError("You do not have access to this file")

    try:
        url = cache.get(safe_key)
        if url is None:
            url = storage.presign_get(safe_key)
            cache.set(safe_key, url)
        obj = await storage.fetch(url)
    except StorageError:
        logger.info("Serving placeholder image", key=safe_key)
        return RedirectResponse(PLACEHOLDER_PATH, status_code=307)

    return Response(
        content=obj.body,
        media_type=obj.content_type,
        headers={"Cache-Control": IMMUTABLE_CACHE_CONTROL},
    )
