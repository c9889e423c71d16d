"""Rate limiting configuration using slowapi.

Security: Limits spam-prone endpoints (inquiries, uploads, login).

Requests are keyed on the JWT subject (per-user) to avoid penalising
shared IP addresses. Unauthenticated requests fall back to IP-based keying.

Every 429 carries a ``Retry-After`` header in seconds. Clients show a
countdown from that value and assume 60 seconds when it is absent.

Usage in routers:
    from app.core.rate_limiting import limiter

    @router.post("")
    @limiter.limit(settings.rate_limit_inquiries)
    async def create_inquiry(request: Request, ...):
        ...
"""

import jwt
from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from app.core.config import settings

DEFAULT_RETRY_AFTER_SECONDS = 60


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Valid JWT: "user:{sub}"
    - No or invalid JWT: "unauth:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    # No revocation check here; rate limiting only needs the sub claim.
    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        try:
            payload = jwt.decode(
                token,
                settings.auth_secret.get_secret_value(),
                algorithms=["HS256"],
                audience=settings.auth_audience,
                issuer=settings.auth_issuer,
            )
            sub = payload["sub"]
            if len(sub) <= 36:
                return f"user:{sub}"
        except (jwt.InvalidTokenError, KeyError):
            pass

    return f"unauth:{get_remote_address(request)}"


# Global limiter instance (in-memory storage, single instance).
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL.
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Seconds until the exceeded window resets.

    Uses the window length of the limit that was hit. Falls back to
    DEFAULT_RETRY_AFTER_SECONDS when the limit is not attached.

    Args:
        exc: The rate limit exception.

    Returns:
        Positive number of seconds.
    """
    try:
        seconds = int(exc.limit.limit.get_expiry())
    except (AttributeError, TypeError, ValueError):
        return DEFAULT_RETRY_AFTER_SECONDS
    return seconds if seconds > 0 else DEFAULT_RETRY_AFTER_SECONDS


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and Retry-After header.
    """
    retry_after = retry_after_seconds(exc)
    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": "Too many requests. Please try again later.",
                "details": [{"retry_after_seconds": retry_after}],
            }
        },
        headers={"Retry-After": str(retry_after)},
    )
