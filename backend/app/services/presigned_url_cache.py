"""In-memory cache of presigned GET URLs for the image proxy.

Maps object key -> (url, expires_at). Signed URLs are valid for an hour and
cached for 55 minutes, so a cached URL is always served with at least five
minutes of validity left.

The cache is injected into handlers with ``Depends(get_url_cache)`` and is
bounded by a pluggable eviction policy. Safe for async/await usage (single
event loop) but not for multi-threaded access; two concurrent misses for
the same key both sign, which is harmless.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from app.core.config import settings
from app.models.base import utcnow


@dataclass
class CachedUrl:
    """A presigned URL and the moment the cache stops serving it."""

    url: str
    expires_at: datetime


class EvictionPolicy(Protocol):
    """Strategy that trims the cache when it grows past its bound."""

    def evict(
        self, entries: dict[str, CachedUrl], max_entries: int, now: datetime
    ) -> int:
        """Remove entries in place until at most ``max_entries`` remain.

        Returns:
            Number of entries removed.
        """
        ...


class ExpiryFirstEviction:
    """Drop expired entries first, then those closest to expiry."""

    def evict(
        self, entries: dict[str, CachedUrl], max_entries: int, now: datetime
    ) -> int:
        removed = 0
        for key in [k for k, v in entries.items() if v.expires_at <= now]:
            del entries[key]
            removed += 1

        overflow = len(entries) - max_entries
        if overflow > 0:
            soonest = sorted(entries, key=lambda k: entries[k].expires_at)[:overflow]
            for key in soonest:
                del entries[key]
            removed += len(soonest)
        return removed


class PresignedUrlCache:
    """Size-bounded TTL cache of presigned URLs."""

    def __init__(
        self,
        ttl: timedelta | None = None,
        max_entries: int | None = None,
        policy: EvictionPolicy | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl: How long an entry is served (default from settings).
            max_entries: Occupancy bound (default from settings).
            policy: Eviction policy (default ExpiryFirstEviction).
        """
        self._entries: dict[str, CachedUrl] = {}
        self._ttl = ttl or timedelta(seconds=settings.image_url_cache_ttl_seconds)
        self._max_entries = max_entries or settings.image_url_cache_max_entries
        self._policy: EvictionPolicy = policy or ExpiryFirstEviction()

    def get(self, key: str, now: datetime | None = None) -> str | None:
        """Cached URL for ``key``, or None on a miss or an expired entry."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if (now or utcnow()) >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.url

    def set(self, key: str, url: str, now: datetime | None = None) -> None:
        """Cache ``url`` for ``key`` and enforce the size bound."""
        current = now or utcnow()
        self._entries[key] = CachedUrl(url=url, expires_at=current + self._ttl)
        if len(self._entries) > self._max_entries:
            self._policy.evict(self._entries, self._max_entries, current)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Clear all entries (for testing)."""
        self._entries.clear()


# Singleton instance for the application
_url_cache: PresignedUrlCache | None = None


def get_url_cache() -> PresignedUrlCache:
    """Get the singleton URL cache (FastAPI dependency).

    Returns:
        The PresignedUrlCache singleton.
    """
    global _url_cache
    if _url_cache is None:
        _url_cache = PresignedUrlCache()
    return _url_cache


def reset_url_cache() -> None:
    """Reset the URL cache singleton (for testing)."""
    global _url_cache
    if _url_cache is not None:
        _url_cache.clear()
    _url_cache = None
