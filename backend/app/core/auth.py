"""Authentication helpers for JWT creation, cookie management and passwords.

Pipeline:
- hash_password / check_password: bcrypt with a fixed cost factor
- create_jwt / set_auth_cookie / clear_auth_cookie: session issuance
- validate_password_strength: format rules (sync, no network)
- DUMMY_HASH: timing-safe constant for user enumeration defense
"""

import re
from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from fastapi import Response

from app.core.config import settings
from app.core.errors import ValidationError

# Default JWT expiration: 8 hours (one working session)
_DEFAULT_EXPIRATION = timedelta(hours=8)

# bcrypt cost factor for password hashing
_BCRYPT_ROUNDS = 12

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Security: prevents user enumeration via response time differences.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt.

    Args:
        password: Plain-text password.

    Returns:
        bcrypt hash as a UTF-8 string.
    """
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)
    ).decode()


def check_password(password: str, password_hash: str | None) -> bool:
    """Compare a password against a stored hash in constant time.

    When no hash is stored the comparison still runs against DUMMY_HASH
    so the response time does not reveal whether the account exists.

    Args:
        password: Plain-text password from the request.
        password_hash: Stored bcrypt hash, or None.

    Returns:
        True if the password matches.
    """
    if not password_hash:
        bcrypt.checkpw(password.encode(), DUMMY_HASH)
        return False
    return bcrypt.checkpw(password.encode(), password_hash.encode())


def create_jwt(
    *,
    user_id: str,
    secret: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT with standard claims.

    Args:
        user_id: User UUID string for the sub claim.
        secret: HMAC signing secret.
        expires_delta: Time until expiration. Defaults to 8 hours.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or _DEFAULT_EXPIRATION),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def set_auth_cookie(response: Response, token: str) -> None:
    """Set httpOnly JWT cookie on response.

    Args:
        response: FastAPI response object.
        token: JWT token string.
    """
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
        max_age=int(_DEFAULT_EXPIRATION.total_seconds()),
        domain=settings.auth_cookie_domain or None,
    )


def clear_auth_cookie(response: Response) -> None:
    """Expire the JWT cookie on response."""
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        secure=settings.auth_cookie_secure,
        httponly=True,
        samesite=settings.auth_cookie_samesite,
        domain=settings.auth_cookie_domain or None,
    )


def validate_password_strength(password: str) -> None:
    """Validate password meets strength requirements.

    8-128 chars, at least one letter, one number and one special character.

    Args:
        password: Plain-text password to validate.

    Raises:
        ValidationError: If password doesn't meet requirements.
    """
    if len(password) < 8:
        raise ValidationError("Password must be at least 8 characters", field="password")
    if len(password) > 128:
        raise ValidationError("Password must be at most 128 characters", field="password")
    if not re.search(r"[a-zA-Z]", password):
        raise ValidationError("Password must contain at least one letter", field="password")
    if not re.search(r"\d", password):
        raise ValidationError("Password must contain at least one number", field="password")
    if not re.search(r"[^a-zA-Z\d]", password):
        raise ValidationError(
            "Password must contain at least one special character", field="password"
        )
