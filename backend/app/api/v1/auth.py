"""Authentication endpoints for password-based auth.

Security considerations:
- login: constant-time comparison via DUMMY_HASH prevents user enumeration;
  every attempt is recorded in the login attempt log with a reason code
- register: bcrypt cost 12, password strength rules, email uniqueness
- logout: invalidates every session issued before now
"""

import structlog
from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy.exc import IntegrityError

from app.api.deps import CurrentUser, DbSession, OptionalUser
from app.core.auth import (
    check_password,
    clear_auth_cookie,
    create_jwt,
    hash_password,
    set_auth_cookie,
    validate_password_strength,
)
from app.core.config import settings
from app.core.errors import ConflictError, UnauthorizedError
from app.core.rate_limiting import limiter
from app.core.responses import DataResponse
from app.models.base import utcnow
from app.models.user import User
from app.repositories.login_attempt_repository import LoginAttemptRepository
from app.repositories.user_repository import UserRepository
from app.services.audit_service import client_ip

logger = structlog.get_logger()

_INVALID_CREDENTIALS = "Invalid email or password"

router = APIRouter()


# ===================================================================
# Request models
# ===================================================================


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    name: str | None = Field(default=None, max_length=100)
    role: str = Field(default="buyer", pattern=r"^(buyer|seller|contractor)$")
    phone: str | None = Field(default=None, max_length=40)
    company: str | None = Field(default=None, max_length=200)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=128)


def _user_payload(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "is_admin": user.has_admin_access,
        "is_verified_seller": user.is_verified_seller,
    }


# ===================================================================
# POST /auth/register
# ===================================================================


@router.post("/register", status_code=201)
@limiter.limit("3/hour")
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    db: DbSession,
) -> DataResponse[dict]:
    """Register a new user with email + password.

    Rate limit: 3 per hour per IP.
    """
    validate_password_strength(body.password)

    try:
        user = await UserRepository.create(
            db,
            email=body.email,
            name=body.name,
            password_hash=hash_password(body.password),
            role=body.role,
            phone=body.phone,
            company=body.company,
        )
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError(
            code="EMAIL_ALREADY_EXISTS",
            message="Email already registered",
        ) from exc

    await db.commit()
    logger.info("User registered", user_id=str(user.id))
    return DataResponse(data=_user_payload(user))


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit("5/15minute")
async def login(
    request: Request,
    body: LoginRequest,
    response: Response,
    db: DbSession,
) -> DataResponse[dict]:
    """Verify email + password and issue the session cookie.

    Every attempt, successful or not, is recorded with a reason code.
    Inactive accounts are rejected with the same generic message.

    Rate limit: 5 per 15 minutes per IP.
    """
    email = body.email.strip().lower()
    user = await UserRepository.get_by_email(db, email)
    ip_address = client_ip(request)
    user_agent = request.headers.get("user-agent")

    if user is None:
        check_password(body.password, None)
        reason = "account_not_found"
    elif not check_password(body.password, user.password_hash):
        reason = "invalid_credentials"
    elif not user.is_active:
        reason = "account_inactive"
    else:
        reason = "success"

    success = reason == "success"
    await LoginAttemptRepository.create(
        db,
        email=email,
        reason=reason,
        success=success,
        user_id=user.id if user is not None else None,
        ip_address=ip_address,
        user_agent=user_agent,
    )

    if not success or user is None:
        await db.commit()
        logger.warning("Login failed", reason=reason, ip=ip_address)
        raise UnauthorizedError(_INVALID_CREDENTIALS)

    await UserRepository.update(db, user.id, last_login=utcnow())
    await db.commit()

    token = create_jwt(
        user_id=str(user.id),
        secret=settings.auth_secret.get_secret_value(),
    )
    set_auth_cookie(response, token)
    return DataResponse(data=_user_payload(user))


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(
    response: Response,
    user: CurrentUser,
    db: DbSession,
) -> DataResponse[dict]:
    """Clear the session cookie and revoke outstanding tokens."""
    await UserRepository.update(db, user.id, token_invalidated_before=utcnow())
    await db.commit()
    clear_auth_cookie(response)
    return DataResponse(data={"message": "Signed out"})


# ===================================================================
# GET /auth/session
# ===================================================================


@router.get("/session")
async def get_session(user: OptionalUser) -> DataResponse[dict]:
    """Report whether the caller is signed in.

    Never fails: anonymous callers get ``authenticated: false`` so clients
    can show a sign-in prompt.
    """
    if user is None:
        return DataResponse(data={"authenticated": False, "user": None})
    return DataResponse(data={"authenticated": True, "user": _user_payload(user)})
