"""
tests/test_api_routes.py -- Integration tests for the auth and team routes.

These tests exercise the full stack: FastAPI routing -> bearer token
dependency -> AuthService/TeamService -> AccountStore/RosterStore -> response
model serialization, including the ErrorResponse envelope on failures.

Coverage:
  - Auth failures: 401 on GET /me and GET /history without or with a bad token
  - Register: 201, duplicate 409, policy violation 422 without echoing the password
  - Password whitespace survives register -> login
  - Login: valid 200 with no-store, invalid 401 with one shared message
  - Random: anonymous (nothing saved), authenticated (saved with ids),
    failed save -> 500 storage_error with nothing kept
  - History: empty and populated, per-account isolation
  - Google sign-in: 503 when unconfigured, 302 redirect and state check when configured
  - Public endpoints: GET /providers and GET /health need no auth

Fixtures used (from conftest.py):
  - api_client: (client, token, account_id) -- TestClient with follow_redirects=False.
    The fixture creates an account with name="testuser", password="testpass123".
"""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

from fastapi.testclient import TestClient

from api.main import app
from core.config import Settings

ROSTER = {
    "people": [
        {"name": "Alice", "role": "dev"},
        {"name": "Bob", "role": "dev"},
        {"name": "Carol", "role": "design"},
        {"name": "Dan", "role": "design"},
    ],
    "team_count": 2,
}


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _register_and_login(client: TestClient, name: str) -> str:
    resp = client.post(
        "/api/v1/auth/register",
        json={"email": f"{name}@example.com", "name": name, "password": "password123"},
    )
    assert resp.status_code == 201, resp.text
    resp = client.post("/api/v1/auth/login", json={"name": name, "password": "password123"})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


class TestApiAuthFailure:
    """Unauthenticated requests to protected API routes must return 401."""

    def test_get_me_unauthenticated(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/auth/me")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "unauthorized"
        assert resp.headers["WWW-Authenticate"] == "Bearer"

    def test_history_unauthenticated(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/history")
        assert resp.status_code == 401

    def test_history_with_garbage_token(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/history", headers=_auth("not-a-token"))
        assert resp.status_code == 401

    def test_malformed_authorization_header(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, _uid = api_client
        resp = client.get("/api/v1/history", headers={"Authorization": f"Token {token}"})
        assert resp.status_code == 401

    def test_random_with_invalid_token_is_rejected(self, api_client: tuple[TestClient, str, int]) -> None:
        """A presented but invalid token is an error, not an anonymous request."""
        client, _token, _uid = api_client
        resp = client.post("/api/v1/random", json=ROSTER, headers=_auth("expired.or.forged"))
        assert resp.status_code == 401


class TestApiAuthRoutes:
    def test_register(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": "NewUser@Example.com", "name": "newuser", "password": "password123"},
        )
        assert resp.status_code == 201, resp.text
        data = resp.json()
        assert data["message"] == "User registered successfully"
        assert data["user"]["email"] == "newuser@example.com"
        assert data["user"]["has_password"] is True
        assert "hashed_password" not in data["user"]

    def test_register_duplicate_email(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": "testuser@example.com", "name": "someoneelse", "password": "password123"},
        )
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "conflict"

    def test_register_short_password(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": "short@example.com", "name": "shortpw", "password": "abc"},
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"

    def test_register_bad_email(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": "no-at-sign", "name": "bademail", "password": "password123"},
        )
        assert resp.status_code == 422

    def test_validation_error_does_not_echo_password(self, api_client: tuple[TestClient, str, int]) -> None:
        """A rejected auth body must not come back in the 422 detail."""
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": "echo@example.com", "name": "echouser", "password": "Secr3t!"},
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "validation_error"
        assert "Secr3t!" not in resp.text

        long_secret = "Hunter2-" + "x" * 300
        resp = client.post("/api/v1/auth/login", json={"name": "testuser", "password": long_secret})
        assert resp.status_code == 422
        assert long_secret not in resp.text
        assert "input" not in resp.json()["error"]["detail"]

    def test_password_whitespace_is_kept(self, api_client: tuple[TestClient, str, int]) -> None:
        """Register and login with the same padded password; the padding is part of it."""
        client, _token, _uid = api_client
        resp = client.post(
            "/api/v1/auth/register",
            json={"email": " padded@example.com ", "name": " paddeduser ", "password": "  padded-pass  "},
        )
        assert resp.status_code == 201, resp.text
        assert resp.json()["user"]["name"] == "paddeduser"
        assert resp.json()["user"]["email"] == "padded@example.com"

        exact = client.post("/api/v1/auth/login", json={"name": "paddeduser", "password": "  padded-pass  "})
        assert exact.status_code == 200, exact.text

        trimmed = client.post("/api/v1/auth/login", json={"name": "paddeduser", "password": "padded-pass"})
        assert trimmed.status_code == 401

    def test_login_valid_credentials(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, uid = api_client
        resp = client.post("/api/v1/auth/login", json={"name": "testuser", "password": "testpass123"})
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["user_id"] == uid
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 3600
        assert data["token"]
        assert resp.headers["Cache-Control"] == "no-store"

    def test_login_failures_share_one_response(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        wrong_pw = client.post("/api/v1/auth/login", json={"name": "testuser", "password": "wrongpass"})
        unknown = client.post("/api/v1/auth/login", json={"name": "nosuchuser", "password": "testpass123"})
        assert wrong_pw.status_code == unknown.status_code == 401
        assert wrong_pw.json() == unknown.json()
        assert wrong_pw.json()["error"]["code"] == "bad_credentials"

    def test_me(self, api_client: tuple[TestClient, str, int]) -> None:
        client, token, uid = api_client
        resp = client.get("/api/v1/auth/me", headers=_auth(token))
        assert resp.status_code == 200
        assert resp.json()["id"] == uid
        assert resp.json()["name"] == "testuser"

    def test_login_token_works(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        token = _register_and_login(client, "roundtrip")
        resp = client.get("/api/v1/auth/me", headers=_auth(token))
        assert resp.status_code == 200
        assert resp.json()["name"] == "roundtrip"


class TestGoogleSignIn:
    def test_providers_empty_when_unconfigured(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/auth/providers")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_google_unconfigured(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.get("/api/v1/auth/google")
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "provider_unavailable"

    def test_google_redirect_and_state(self, api_client: tuple[TestClient, str, int], monkeypatch) -> None:
        client, _token, _uid = api_client
        configured = Settings(
            secret_key="y" * 32,
            google_client_id="cid",
            google_client_secret="csecret",
            google_redirect_url="http://testserver/api/v1/auth/google",
        )
        monkeypatch.setattr(app.state, "settings", configured)

        providers = client.get("/api/v1/auth/providers").json()
        assert providers == [{"name": "google", "label": "Google"}]

        resp = client.get("/api/v1/auth/google")
        assert resp.status_code == 302
        location = urlparse(resp.headers["location"])
        assert location.netloc == "accounts.google.com"
        assert parse_qs(location.query)["state"]

        resp = client.get("/api/v1/auth/google", params={"code": "abc", "state": "forged"})
        assert resp.status_code == 502
        assert resp.json()["error"]["code"] == "upstream_error"


class TestTeamRoutes:
    def test_random_anonymous(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        resp = client.post("/api/v1/random", json=ROSTER)
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["total"] == 4
        assert [t["team"] for t in data["teams"]] == [1, 2]
        for team in data["teams"]:
            assert sorted(m["role"] for m in team["members"]) == ["design", "dev"]
            assert all(m["id"] is None for m in team["members"])

    def test_random_validation(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        assert client.post("/api/v1/random", json={"people": [], "team_count": 2}).status_code == 422
        assert client.post("/api/v1/random", json={**ROSTER, "team_count": 0}).status_code == 422
        bad_role = {"people": [{"name": "Alice", "role": "   "}], "team_count": 1}
        assert client.post("/api/v1/random", json=bad_role).status_code == 422

    def test_history_empty(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        token = _register_and_login(client, "emptyhistory")
        resp = client.get("/api/v1/history", headers=_auth(token))
        assert resp.status_code == 200
        assert resp.json() == {"teams": [], "total": 0}

    def test_random_authenticated_is_saved(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        token = _register_and_login(client, "saver")

        resp = client.post("/api/v1/random", json=ROSTER, headers=_auth(token))
        assert resp.status_code == 200, resp.text
        saved = resp.json()
        ids = [m["id"] for t in saved["teams"] for m in t["members"]]
        assert all(isinstance(i, int) for i in ids)

        history = client.get("/api/v1/history", headers=_auth(token)).json()
        assert history["total"] == 4
        by_id = {m["id"]: m["team"] for t in history["teams"] for m in t["members"]}
        for team in saved["teams"]:
            for member in team["members"]:
                assert by_id[member["id"]] == team["team"]

    def test_random_save_failure_fails_whole_call(self, api_client: tuple[TestClient, str, int], monkeypatch) -> None:
        """A signed-in randomize whose save fails returns 500 and no teams; nothing is kept."""
        client, _token, _uid = api_client
        token = _register_and_login(client, "failsave")

        # created_at is NOT NULL: the first insert of the batch violates it.
        monkeypatch.setattr("roster.store._now_iso", lambda: None)
        resp = client.post("/api/v1/random", json=ROSTER, headers=_auth(token))
        monkeypatch.undo()

        assert resp.status_code == 500
        data = resp.json()
        assert data["error"]["code"] == "storage_error"
        assert "teams" not in data

        history = client.get("/api/v1/history", headers=_auth(token))
        assert history.status_code == 200
        assert history.json() == {"teams": [], "total": 0}

    def test_history_accumulates_and_is_private(self, api_client: tuple[TestClient, str, int]) -> None:
        client, _token, _uid = api_client
        owner = _register_and_login(client, "owner")
        other = _register_and_login(client, "other")

        client.post("/api/v1/random", json=ROSTER, headers=_auth(owner))
        client.post("/api/v1/random", json=ROSTER, headers=_auth(owner))

        assert client.get("/api/v1/history", headers=_auth(owner)).json()["total"] == 8
        assert client.get("/api/v1/history", headers=_auth(other)).json()["total"] == 0


def test_health(api_client: tuple[TestClient, str, int]) -> None:
    client, _token, _uid = api_client
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["components"] == {"app": "ok", "database": "ok"}
