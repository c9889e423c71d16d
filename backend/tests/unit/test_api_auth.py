"""Tests for password auth endpoints: register, login, logout and session."""

from datetime import UTC, datetime, timedelta

from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from app.core.config import settings
from app.models.audit import LoginAttemptLog
from app.models.user import User
from tests.conftest import SELLER_ID, create_test_jwt

_PASSWORD = "Tr4ck&Ties!"  # nosec B105


async def _register(client: AsyncClient, email: str = "new@example.com", **extra):
    body = {"email": email, "password": _PASSWORD, "name": "New User", **extra}
    return await client.post("/api/v1/auth/register", json=body)


def _client_with_token(app, token: str) -> AsyncClient:
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={settings.auth_cookie_name: token},
    )


class TestRegister:
    """POST /api/v1/auth/register."""

    async def test_creates_user(self, unauthenticated_client, session_factory):
        response = await _register(unauthenticated_client, role="seller")

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["email"] == "new@example.com"
        assert data["role"] == "seller"
        assert data["is_admin"] is False

        async with session_factory() as session:
            user = (
                await session.execute(select(User).where(User.email == "new@example.com"))
            ).scalar_one()
        assert user.password_hash is not None
        assert user.password_hash != _PASSWORD

    async def test_email_is_normalized(self, unauthenticated_client):
        response = await _register(unauthenticated_client, email="Mixed@Example.COM")

        assert response.json()["data"]["email"] == "mixed@example.com"

    async def test_duplicate_email_conflicts(self, unauthenticated_client):
        await _register(unauthenticated_client)
        response = await _register(unauthenticated_client, email="NEW@example.com")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "EMAIL_ALREADY_EXISTS"

    async def test_weak_password_rejected(self, unauthenticated_client):
        response = await unauthenticated_client.post(
            "/api/v1/auth/register",
            json={"email": "weak@example.com", "password": "password1"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_admin_role_cannot_be_requested(self, unauthenticated_client):
        response = await _register(unauthenticated_client, role="admin")

        assert response.status_code == 400


class TestLogin:
    """POST /api/v1/auth/login."""

    async def test_success_sets_cookie_and_logs_attempt(
        self, unauthenticated_client, session_factory
    ):
        await _register(unauthenticated_client)

        response = await unauthenticated_client.post(
            "/api/v1/auth/login",
            json={"email": "new@example.com", "password": _PASSWORD},
        )

        assert response.status_code == 200
        assert settings.auth_cookie_name in response.headers["set-cookie"]
        assert response.json()["data"]["email"] == "new@example.com"

        async with session_factory() as session:
            attempts = (await session.execute(select(LoginAttemptLog))).scalars().all()
        assert [(a.reason, a.success) for a in attempts] == [("success", True)]

    async def test_wrong_password(self, unauthenticated_client, session_factory):
        await _register(unauthenticated_client)

        response = await unauthenticated_client.post(
            "/api/v1/auth/login",
            json={"email": "new@example.com", "password": "Wrong&Pass1"},
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid email or password"
        assert "set-cookie" not in response.headers

        async with session_factory() as session:
            attempt = (await session.execute(select(LoginAttemptLog))).scalar_one()
        assert attempt.reason == "invalid_credentials"
        assert attempt.success is False
        assert attempt.user_id is not None

    async def test_unknown_email_gives_same_message(
        self, unauthenticated_client, session_factory
    ):
        response = await unauthenticated_client.post(
            "/api/v1/auth/login",
            json={"email": "ghost@example.com", "password": _PASSWORD},
        )

        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid email or password"

        async with session_factory() as session:
            attempt = (await session.execute(select(LoginAttemptLog))).scalar_one()
        assert attempt.reason == "account_not_found"
        assert attempt.user_id is None


class TestSession:
    """GET /api/v1/auth/session."""

    async def test_anonymous(self, unauthenticated_client):
        response = await unauthenticated_client.get("/api/v1/auth/session")

        assert response.status_code == 200
        assert response.json()["data"] == {"authenticated": False, "user": None}

    async def test_signed_in(self, client):
        response = await client.get("/api/v1/auth/session")

        data = response.json()["data"]
        assert data["authenticated"] is True
        assert data["user"]["id"] == str(SELLER_ID)
        assert data["user"]["role"] == "seller"

    async def test_login_cookie_identifies_caller(
        self, unauthenticated_client, api_app
    ):
        await _register(unauthenticated_client, email="cookie@example.com")
        login = await unauthenticated_client.post(
            "/api/v1/auth/login",
            json={"email": "cookie@example.com", "password": _PASSWORD},
        )
        token = login.headers["set-cookie"].split(";", 1)[0].split("=", 1)[1]

        async with _client_with_token(api_app, token) as ac:
            response = await ac.get("/api/v1/auth/session")

        data = response.json()["data"]
        assert data["authenticated"] is True
        assert data["user"]["email"] == "cookie@example.com"

    async def test_no_cookie_never_resolves_to_a_user(
        self, unauthenticated_client, seller_user, buyer_user
    ):
        response = await unauthenticated_client.get("/api/v1/auth/session")

        assert response.json()["data"]["authenticated"] is False

    async def test_expired_token_is_anonymous(self, api_app, seller_user):
        token = create_test_jwt(
            seller_user.id,
            expires_delta=timedelta(seconds=-10),
            iat=datetime.now(UTC) - timedelta(hours=2),
        )
        async with _client_with_token(api_app, token) as ac:
            response = await ac.get("/api/v1/auth/session")

        assert response.json()["data"]["authenticated"] is False


class TestLogout:
    """POST /api/v1/auth/logout."""

    async def test_revokes_outstanding_tokens(self, api_app, client, session_factory):
        # A token minted before logout must stop working afterwards
        old_token = create_test_jwt(SELLER_ID, iat=datetime.now(UTC) - timedelta(minutes=5))

        response = await client.post("/api/v1/auth/logout")
        assert response.status_code == 200

        async with session_factory() as session:
            user = await session.get(User, SELLER_ID)
        assert user.token_invalidated_before is not None

        async with _client_with_token(api_app, old_token) as ac:
            response = await ac.post("/api/v1/auth/logout")

        assert response.status_code == 401

    async def test_requires_auth(self, unauthenticated_client):
        response = await unauthenticated_client.post("/api/v1/auth/logout")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"
