"""Shared dependencies for API endpoints.

Authentication: every request is identified by the JWT in the session
cookie. Optional variants return None instead of raising so public
endpoints can tailor their response to signed-in callers.
Scheduled jobs authenticate with the cron bearer secret.
"""

import hmac
import uuid
from typing import Annotated

import jwt
import structlog
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.errors import AdminRequiredError, ServiceNotConfiguredError
from app.models import User

logger = structlog.get_logger()

# Generic 401 detail - intentionally vague to prevent information leakage.
# Security: never include specifics about WHY auth failed (expired, bad sig, etc.).
_UNAUTHORIZED_DETAIL = {
    "code": "UNAUTHORIZED",
    "message": "Authentication required",
}


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=_UNAUTHORIZED_DETAIL,
    )


async def _resolve_user_id(request: Request, db: AsyncSession) -> uuid.UUID | None:
    """Resolve the caller's user id, or None when not authenticated.

    Validation steps:
    1. Read JWT from cookie
    2. Decode + verify signature (HS256)
    3. Verify exp, aud, iss claims
    4. Extract sub as UUID
    5. Check token_invalidated_before (revocation)
    """
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        return None

    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
        )
        user_id = uuid.UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        return None

    # Security: iat is required for revocation check. A JWT without iat
    # would bypass token_invalidated_before entirely.
    iat = payload.get("iat")
    if iat is None:
        return None

    result = await db.execute(
        select(User.token_invalidated_before).where(User.id == user_id)
    )
    invalidated_before = result.scalar_one_or_none()
    if invalidated_before is not None and iat < invalidated_before.timestamp():
        return None

    return user_id


async def get_current_user_id(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> uuid.UUID:
    """Get current user ID from auth context.

    Args:
        request: HTTP request (injected by FastAPI).
        db: Database session for revocation check (injected).

    Returns:
        UUID of the current authenticated user.

    Raises:
        HTTPException: 401 for any auth failure.
    """
    user_id = await _resolve_user_id(request, db)
    if user_id is None:
        raise _unauthorized()
    return user_id


async def get_optional_user_id(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> uuid.UUID | None:
    """Like get_current_user_id, but None for anonymous callers."""
    return await _resolve_user_id(request, db)


async def get_current_user(
    user_id: Annotated[uuid.UUID, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get full User object for current user.

    Use this when you need the User object, not just the ID.

    Raises:
        HTTPException: 401 if the user does not exist or is deactivated.
    """
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized()
    return user


async def get_optional_user(
    user_id: Annotated[uuid.UUID | None, Depends(get_optional_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Full User object for signed-in callers, None otherwise."""
    if user_id is None:
        return None
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


async def require_admin(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get the current user, requiring admin access.

    Raises:
        AdminRequiredError: 403 when the user is not an admin.
    """
    if not user.has_admin_access:
        raise AdminRequiredError()
    return user


def require_cron_secret(request: Request) -> None:
    """Authenticate a scheduled job call.

    Fails closed: with no CRON_SECRET configured every call is rejected.
    The header must be exactly ``Bearer <secret>``; comparison is constant
    time.

    Raises:
        ServiceNotConfiguredError: 401 when CRON_SECRET is unset.
        HTTPException: 401 on a missing or mismatched token.
    """
    secret = settings.cron_secret.get_secret_value()
    if not secret:
        logger.error("Cron call rejected: CRON_SECRET not configured", path=request.url.path)
        raise ServiceNotConfiguredError(
            "Scheduled jobs are not configured", status_code=401
        )

    header = request.headers.get("authorization", "")
    expected = f"Bearer {secret}"
    if not hmac.compare_digest(header.encode(), expected.encode()):
        logger.warning("Cron call rejected: bad token", path=request.url.path)
        raise _unauthorized()


# Reusable type aliases for dependency injection
CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
OptionalUserId = Annotated[uuid.UUID | None, Depends(get_optional_user_id)]
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]
AdminUser = Annotated[User, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
CronAuth = Annotated[None, Depends(require_cron_secret)]
