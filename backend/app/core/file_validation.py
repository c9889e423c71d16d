"""File validation utilities for direct-to-storage uploads.

Security: Uploads go straight from the browser to S3 through presigned PUT
URLs, so the server validates the declared content type and size before it
signs anything, and builds object keys only from sanitized parts.
"""

import re
from typing import Literal
from urllib.parse import unquote

import structlog

from app.core.errors import ValidationError

logger = structlog.get_logger()

FileCategory = Literal["image", "document", "all"]

_MB = 1024 * 1024

IMAGE_MIMES: frozenset[str] = frozenset(
    {"image/jpeg", "image/png", "image/webp", "image/gif"}
)
DOCUMENT_MIMES: frozenset[str] = frozenset(
    {
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)

# Allowed MIME types per declared file category
ALLOWED_MIMES: dict[str, frozenset[str]] = {
    "image": IMAGE_MIMES,
    "document": DOCUMENT_MIMES,
    "all": IMAGE_MIMES | {"application/pdf"},
}

# Size ceilings per MIME family
MAX_IMAGE_SIZE_BYTES = 10 * _MB
MAX_DOCUMENT_SIZE_BYTES = 25 * _MB

# Verification documents: scans or photos, capped lower than general documents
VERIFICATION_DOCUMENT_MIMES: frozenset[str] = frozenset(
    {"image/jpeg", "image/png", "image/webp", "application/pdf"}
)
MAX_VERIFICATION_DOCUMENT_BYTES = 10 * _MB

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_MAX_FILENAME_LENGTH = 100


def max_size_for(content_type: str) -> int:
    """Size ceiling in bytes for a content type."""
    if content_type in IMAGE_MIMES:
        return MAX_IMAGE_SIZE_BYTES
    return MAX_DOCUMENT_SIZE_BYTES


def validate_upload(
    *,
    content_type: str,
    file_size: int,
    file_category: FileCategory = "image",
) -> None:
    """Check a declared upload against the allow-list and size ceiling.

    Args:
        content_type: MIME type the client will upload with.
        file_size: Declared size in bytes.
        file_category: Which allow-list applies.

    Raises:
        ValidationError: On a disallowed type or an oversized file.
    """
    allowed = ALLOWED_MIMES[file_category]
    if content_type not in allowed:
        logger.warning(
            "Upload rejected: content type not allowed",
            content_type=content_type,
            file_category=file_category,
        )
        raise ValidationError(
            f"Invalid file type. Allowed: {', '.join(sorted(allowed))}",
            field="content_type",
        )

    if file_size <= 0:
        raise ValidationError("File size must be positive", field="file_size")

    max_size = max_size_for(content_type)
    if file_size > max_size:
        raise ValidationError(
            f"File too large. Maximum size: {max_size // _MB}MB",
            field="file_size",
        )


def validate_verification_document(*, content_type: str, file_size: int) -> None:
    """Check a seller verification document upload.

    Raises:
        ValidationError: On a disallowed type or a file over 10MB.
    """
    if content_type not in VERIFICATION_DOCUMENT_MIMES:
        raise ValidationError(
            "Invalid file type. Allowed: JPEG, PNG, WebP, PDF",
            field="content_type",
        )
    if file_size <= 0 or file_size > MAX_VERIFICATION_DOCUMENT_BYTES:
        raise ValidationError(
            "File size must be between 1 byte and 10MB", field="file_size"
        )


def sanitize_filename(filename: str) -> str:
    """Reduce a client filename to ``[a-zA-Z0-9.-]`` for use in object keys.

    Every other character becomes ``_``. Dot runs are collapsed so the
    result can never contain a traversal sequence.

    Args:
        filename: Original client filename.

    Returns:
        Safe filename (never empty).
    """
    safe = _UNSAFE_FILENAME_CHARS.sub("_", filename)
    safe = re.sub(r"\.{2,}", ".", safe)
    if len(safe) > _MAX_FILENAME_LENGTH:
        if "." in safe:
            name, ext = safe.rsplit(".", 1)
            safe = name[: _MAX_FILENAME_LENGTH - len(ext) - 1] + "." + ext
        else:
            safe = safe[:_MAX_FILENAME_LENGTH]
    return safe or "file"


def sanitize_object_key(raw_key: str) -> str:
    """Normalize a client-supplied object key.

    URL-decodes the key, then removes every ``..`` until none remain, and
    strips leading slashes.

    Args:
        raw_key: Key as received in the query string.

    Returns:
        Key safe to pass to the storage provider (may be empty).
    """
    key = unquote(raw_key)
    while ".." in key:
        key = key.replace("..", "")
    return key.lstrip("/")
