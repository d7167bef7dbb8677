"""Tests for authentication routes."""

from datetime import datetime, timedelta, timezone

import pytest

from studygroup.api.routes import auth as auth_routes
from studygroup.core.google import GoogleIdentity, GoogleTokenError

DEFAULT_PASSWORD = "password123"


@pytest.fixture
def google_identity(monkeypatch):
    """Replace Google verification; returns a setter for the identity to assert."""
    state: dict = {"identity": None}

    async def fake_verify(credential: str) -> GoogleIdentity:
        if credential == "bad-token":
            raise GoogleTokenError("Wrong number of segments")
        return state["identity"]

    monkeypatch.setattr(auth_routes, "verify_google_id_token", fake_verify)

    def _set(google_id: str, email: str, name: str = "Google User") -> None:
        state["identity"] = GoogleIdentity(google_id=google_id, email=email, name=name)

    return _set


@pytest.fixture
def development(monkeypatch):
    monkeypatch.setattr(auth_routes.settings, "environment", "development")


class TestLogin:
    async def test_login_returns_tokens_and_cookie(self, client, alice):
        response = await client.post(
            "/api/auth/login", json={"email": "alice@learning.com", "password": DEFAULT_PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == alice.id
        assert data["accessToken"]
        assert data["refreshToken"]
        assert data["tokenType"] == "bearer"
        assert "access_token" in response.cookies

    async def test_email_is_case_insensitive(self, client, alice):
        response = await client.post(
            "/api/auth/login", json={"email": "ALICE@learning.com", "password": DEFAULT_PASSWORD}
        )

        assert response.status_code == 200

    async def test_wrong_password_is_401(self, client, alice):
        response = await client.post(
            "/api/auth/login", json={"email": "alice@learning.com", "password": "not-her-password"}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid credentials"}

    async def test_unknown_email_is_401(self, client):
        response = await client.post(
            "/api/auth/login", json={"email": "nobody@learning.com", "password": DEFAULT_PASSWORD}
        )

        assert response.status_code == 401

    async def test_passwordless_account_cannot_log_in(self, client, make_user):
        await make_user("Gail", "gail@learning.com", password=None, profile_complete=False)

        response = await client.post(
            "/api/auth/login", json={"email": "gail@learning.com", "password": DEFAULT_PASSWORD}
        )

        assert response.status_code == 401


class TestRegister:
    @pytest.mark.parametrize("path", ["/api/auth/register", "/api/auth/signup"])
    async def test_creates_account(self, client, path):
        response = await client.post(
            path, json={"name": "Dana Lee", "email": "dana@learning.com", "password": "secret123"}
        )

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["role"] == "user"
        assert user["isProfileComplete"] is True

    async def test_duplicate_is_400(self, client, alice):
        response = await client.post(
            "/api/auth/signup",
            json={"name": "Alice", "email": "alice@learning.com", "password": "secret123"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "User already exists"

    async def test_short_password_is_400(self, client):
        response = await client.post(
            "/api/auth/signup", json={"name": "Dana", "email": "dana@learning.com", "password": "abc"}
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Validation failed")


class TestGoogle:
    async def test_new_user_requires_profile(self, client, google_identity):
        google_identity("g-100", "erin@learning.com", "Erin")

        response = await client.post("/api/auth/google", json={"credential": "token"})

        assert response.status_code == 201
        data = response.json()
        assert data["isNewUser"] is True
        assert data["requiresProfileCompletion"] is True
        assert data["user"]["isProfileComplete"] is False

    async def test_returning_identity_logs_in(self, client, google_identity):
        google_identity("g-100", "erin@learning.com", "Erin")
        first = await client.post("/api/auth/google", json={"credential": "token"})

        second = await client.post("/api/auth/google", json={"credential": "token"})

        assert second.status_code == 200
        assert second.json()["isNewUser"] is False
        assert second.json()["user"]["id"] == first.json()["user"]["id"]

    async def test_links_existing_email(self, client, alice, google_identity):
        google_identity("g-200", "alice@learning.com", "Alice G")

        response = await client.post("/api/auth/google", json={"credential": "token"})

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == alice.id
        assert data["requiresProfileCompletion"] is False

    async def test_invalid_token_is_401(self, client, google_identity):
        response = await client.post("/api/auth/google", json={"credential": "bad-token"})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid Google token"}


class TestCompleteProfile:
    async def test_flow_unlocks_resources(self, client, google_identity):
        google_identity("g-300", "frank@learning.com", "frank")
        signed_in = await client.post("/api/auth/google", json={"credential": "token"})
        headers = {"Authorization": f"Bearer {signed_in.json()['accessToken']}"}

        blocked = await client.get("/api/topics", headers=headers)
        assert blocked.status_code == 403
        assert blocked.json()["error"] == "Profile completion required"

        completed = await client.post(
            "/api/auth/complete-profile",
            json={"name": "Frank Ocean", "password": "secret123"},
            headers=headers,
        )
        assert completed.status_code == 200
        assert completed.json()["user"]["name"] == "Frank Ocean"
        assert completed.json()["user"]["isProfileComplete"] is True

        new_headers = {"Authorization": f"Bearer {completed.json()['accessToken']}"}
        assert (await client.get("/api/topics", headers=new_headers)).status_code == 200

        login = await client.post(
            "/api/auth/login", json={"email": "frank@learning.com", "password": "secret123"}
        )
        assert login.status_code == 200

    async def test_complete_profile_twice_is_400(self, client, alice_headers):
        response = await client.post(
            "/api/auth/complete-profile",
            json={"name": "Alice", "password": "secret123"},
            headers=alice_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Profile is already complete"


class TestTokens:
    async def test_refresh_issues_new_pair(self, client, alice):
        login = await client.post(
            "/api/auth/login", json={"email": "alice@learning.com", "password": DEFAULT_PASSWORD}
        )

        response = await client.post(
            "/api/auth/refresh", json={"refreshToken": login.json()["refreshToken"]}
        )

        assert response.status_code == 200
        access_token = response.json()["accessToken"]
        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {access_token}"})
        assert me.json()["id"] == alice.id

    async def test_access_token_is_not_a_refresh_token(self, client, alice):
        login = await client.post(
            "/api/auth/login", json={"email": "alice@learning.com", "password": DEFAULT_PASSWORD}
        )

        response = await client.post("/api/auth/refresh", json={"refreshToken": login.json()["accessToken"]})

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid refresh token"}

    async def test_me(self, client, alice, alice_headers):
        response = await client.get("/api/auth/me", headers=alice_headers)

        assert response.status_code == 200
        assert response.json()["email"] == "alice@learning.com"

    async def test_logout(self, client, alice_headers):
        response = await client.post("/api/auth/logout", headers=alice_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}


class TestPasswordReset:
    async def test_unknown_email_gets_same_answer(self, client):
        response = await client.post("/api/auth/forgot-password", json={"email": "ghost@learning.com"})

        assert response.status_code == 200
        assert response.json() == {"message": auth_routes.RESET_REQUESTED_MESSAGE}

    async def test_token_hidden_outside_development(self, client, alice):
        response = await client.post("/api/auth/forgot-password", json={"email": "alice@learning.com"})

        assert response.json() == {"message": auth_routes.RESET_REQUESTED_MESSAGE}

    async def test_reset_flow(self, client, alice, development):
        requested = await client.post("/api/auth/forgot-password", json={"email": "alice@learning.com"})
        token = requested.json()["resetToken"]
        assert requested.json()["resetUrl"].endswith(f"/reset-password?token={token}")

        response = await client.post(
            "/api/auth/reset-password", json={"token": token, "password": "brand-new-pw"}
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Password has been reset successfully"}
        login = await client.post(
            "/api/auth/login", json={"email": "alice@learning.com", "password": "brand-new-pw"}
        )
        assert login.status_code == 200

        reused = await client.post(
            "/api/auth/reset-password", json={"token": token, "password": "another-pw"}
        )
        assert reused.status_code == 400

    async def test_expired_token_is_400(self, client, db, alice, development):
        requested = await client.post("/api/auth/forgot-password", json={"email": "alice@learning.com"})
        alice.reset_token_expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        await db.commit()

        response = await client.post(
            "/api/auth/reset-password",
            json={"token": requested.json()["resetToken"], "password": "brand-new-pw"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid or expired reset token"}
