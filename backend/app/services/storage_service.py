"""S3 object storage: presigned URLs and object fetch.

Uploads never pass through the API. The browser PUTs straight to S3 with
a presigned URL; reads go through the image proxy, which signs a GET URL
and fetches the object with httpx.
"""

import logging
from dataclasses import dataclass
from typing import Any

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings

logger = logging.getLogger(__name__)

_FETCH_TIMEOUT = 15.0
DEFAULT_CONTENT_TYPE = "image/jpeg"


class StorageError(Exception):
    """Signing or fetching an object failed."""


@dataclass(frozen=True)
class FetchedObject:
    """Object body and its content type."""

    body: bytes
    content_type: str


class StorageService:
    """Thin wrapper over a boto3 S3 client bound to one bucket."""

    def __init__(
        self,
        client: Any | None = None,
        *,
        bucket: str | None = None,
        region: str | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            client: boto3 S3 client (created from settings when omitted).
            bucket: Bucket name (default from settings).
            region: AWS region (default from settings).
        """
        self.bucket = bucket or settings.aws_s3_bucket
        self.region = region or settings.aws_region
        self._client = client

    @property
    def client(self) -> Any:
        """Lazily created boto3 S3 client."""
        if self._client is None:
            secret = settings.aws_secret_access_key.get_secret_value()
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=settings.aws_access_key_id or None,
                aws_secret_access_key=secret or None,
            )
        return self._client

    def presign_put(self, key: str, content_type: str, expires_in: int) -> str:
        """Presigned PUT URL for a direct browser upload.

        Raises:
            StorageError: If the URL cannot be signed.
        """
        try:
            return self.client.generate_presigned_url(
                "put_object",
                Params={"Bucket": self.bucket, "Key": key, "ContentType": content_type},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to presign upload for %s: %s", key, exc)
            raise StorageError("Could not sign upload URL") from exc

    def presign_get(self, key: str, expires_in: int | None = None) -> str:
        """Presigned GET URL (valid for ``s3_presign_expires_seconds``).

        Raises:
            StorageError: If the URL cannot be signed.
        """
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=expires_in or settings.s3_presign_expires_seconds,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("Failed to presign download for %s: %s", key, exc)
            raise StorageError("Could not sign download URL") from exc

    def object_url(self, key: str) -> str:
        """Public-style URL of an object (served through the image proxy)."""
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    async def fetch(self, url: str) -> FetchedObject:
        """Download an object through a presigned URL.

        Raises:
            StorageError: On a transport error or a non-2xx response.
        """
        try:
            async with httpx.AsyncClient(timeout=_FETCH_TIMEOUT) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Object fetch failed: %s", exc)
            raise StorageError("Could not fetch object") from exc
        return FetchedObject(
            body=resp.content,
            content_type=resp.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
        )


# Singleton instance for the application
_storage: StorageService | None = None


def get_storage() -> StorageService:
    """Get the singleton storage service (FastAPI dependency)."""
    global _storage
    if _storage is None:
        _storage = StorageService()
    return _storage


def reset_storage() -> None:
    """Reset the storage singleton (for testing)."""
    global _storage
    _storage = None
