"""
tests/test_api_auth.py -- Integration tests for the login/logout/verify flow.

These tests exercise the full stack: FastAPI routing -> auth dependency ->
AuthGate -> TokenCodec/RevocationSet -> response serialization.

Fixtures used (from conftest.py):
  - api_client: (client, token) -- TestClient with an admin bearer token.
    Seeded users: admin/admin123, user/user123.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from api.limiter import limiter

_B64URL_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


def _login(client: TestClient, username: str = "admin", password: str = "admin123") -> str:
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _flip_padding_bits(token: str) -> str:
    """Return token with the unused low bit of its last signature character flipped.

    An HS256 signature is 32 bytes, so its 43rd base64url character carries two
    bits that decoders ignore. The result is a different string that still
    carries the same signature.
    """
    last = token[-1]
    return token[:-1] + _B64URL_ALPHABET[_B64URL_ALPHABET.index(last) ^ 1]


class TestLogin:
    def test_login_valid_credentials(self, api_client: tuple[TestClient, str]) -> None:
        """POST /api/auth/login with admin/admin123 returns 200 and a non-empty token."""
        client, _token = api_client
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["token"]
        assert data["message"] == "Login successful"
        assert data["username"] == "admin"
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 3600
        assert resp.headers["cache-control"] == "no-store"

    def test_login_token_verifies_as_user(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        token = _login(client, "user", "user123")
        resp = client.get("/api/auth/verify", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json()["username"] == "user"

    def test_login_wrong_password(self, api_client: tuple[TestClient, str]) -> None:
        """Wrong password returns 401 with a generic error that names no field."""
        client, _token = api_client
        resp = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
        assert resp.status_code == 401
        assert resp.json() == {"error": {"code": "bad_credentials", "message": "Invalid credentials"}}
        assert resp.headers["cache-control"] == "no-store"

    def test_login_unknown_user_is_indistinguishable(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        wrong_pw = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
        unknown = client.post("/api/auth/login", json={"username": "ghost", "password": "wrong"})
        assert unknown.status_code == wrong_pw.status_code == 401
        assert unknown.json() == wrong_pw.json()

    def test_login_missing_fields(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        resp = client.post("/api/auth/login", json={"username": "admin"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"


class TestVerify:
    def test_verify_with_valid_token(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        resp = client.get("/api/auth/verify", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"authenticated": True, "username": "admin", "message": "Token is valid"}

    def test_verify_without_header(self, api_client: tuple[TestClient, str]) -> None:
        """No Authorization header -> 401 auth_missing, with a Bearer challenge."""
        client, _token = api_client
        resp = client.get("/api/auth/verify")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "auth_missing"
        assert resp.headers["www-authenticate"] == "Bearer"

    def test_verify_with_wrong_scheme(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        resp = client.get("/api/auth/verify", headers={"Authorization": f"Token {token}"})
        assert resp.status_code == 401
        assert resp.json()["error"] == {"code": "auth_missing", "message": "Invalid authorization format"}

    def test_verify_with_garbage_token(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        resp = client.get("/api/auth/verify", headers=_bearer("abc.def.ghi"))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_token"

    def test_verify_with_token_from_other_key(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        forged = jwt.encode(
            {"sub": "admin", "iat": 0, "exp": 4_102_444_800},
            "attacker-controlled-key-of-32-chars-or-more",
            algorithm="HS256",
        )
        resp = client.get("/api/auth/verify", headers=_bearer(forged))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "invalid_token"


class TestLogout:
    def test_logout_invalidates_unexpired_token(self, api_client: tuple[TestClient, str]) -> None:
        """Login, logout, verify with the same token -> 401 even though it has not expired."""
        client, _token = api_client
        token = _login(client)

        resp = client.post("/api/auth/logout", headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"message": "Logout successful"}

        resp = client.get("/api/auth/verify", headers=_bearer(token))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_revoked"
        # Still cryptographically valid -- the revocation set is what rejects it.
        assert client.app.state.token_codec.verify(token) == "admin"

    def test_second_logout_with_same_token_fails(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        token = _login(client)
        assert client.post("/api/auth/logout", headers=_bearer(token)).status_code == 200
        resp = client.post("/api/auth/logout", headers=_bearer(token))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_revoked"

    def test_logout_without_token(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "auth_missing"

    def test_logout_leaves_other_sessions_alone(self, api_client: tuple[TestClient, str]) -> None:
        client, shared_token = api_client
        first = _login(client)
        second = _login(client)
        assert client.post("/api/auth/logout", headers=_bearer(first)).status_code == 200
        assert client.get("/api/auth/verify", headers=_bearer(second)).status_code == 200
        assert client.get("/api/auth/verify", headers=_bearer(shared_token)).status_code == 200

    def test_revoked_token_blocks_other_protected_routes(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        token = _login(client)
        client.post("/api/auth/logout", headers=_bearer(token))
        resp = client.get("/api/files/download/anything.txt", headers=_bearer(token))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_revoked"

    @pytest.mark.parametrize(
        "alter",
        [
            lambda token: token + "=",
            lambda token: token + "~~~~",
            _flip_padding_bits,
        ],
        ids=["trailing-padding", "trailing-junk", "padding-bits"],
    )
    def test_logged_out_token_rejected_in_altered_form(self, api_client: tuple[TestClient, str], alter) -> None:
        """Re-spelling a revoked token's signature must not get it past the gate."""
        client, _token = api_client
        token = _login(client)
        assert client.post("/api/auth/logout", headers=_bearer(token)).status_code == 200

        altered = alter(token)
        assert altered != token
        resp = client.get("/api/auth/verify", headers=_bearer(altered))
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "token_revoked"


class TestLoginRateLimit:
    """conftest sets LOGIN_RATE_LIMIT=5/minute and starts with the limiter off."""

    def test_login_is_throttled_after_limit(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        limiter.enabled = True
        limiter.reset()
        try:
            for _ in range(5):
                resp = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
                assert resp.status_code == 401
            resp = client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
            assert resp.status_code == 429
            assert resp.headers["retry-after"]
            assert resp.json()["error"]["code"] == "rate_limited"
        finally:
            limiter.enabled = False
            limiter.reset()

    def test_other_routes_are_not_throttled_by_login_limit(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        limiter.enabled = True
        limiter.reset()
        try:
            for _ in range(8):
                assert client.get("/api/auth/verify", headers=_bearer(token)).status_code == 200
        finally:
            limiter.enabled = False
            limiter.reset()
