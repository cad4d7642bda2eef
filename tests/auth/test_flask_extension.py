"""
Tests for the AuthExtension Flask integration.

Tests the decorator-based ID token and session cookie verification.
"""

import pytest
from flask import Flask, g

import firebase_admin_auth as m
from firebase_admin_auth.flask_extension import status_for_error
from conftest import NOW, FakeUserLookup


class FailingKeySource:
    """KeySource whose certificate endpoint is down."""

    def keys(self, *, timeout=None):
        raise m.CertificateFetchError("invalid response (503) while retrieving public keys")


def _client(service_account_info, key_source, clock, user_lookup=None) -> m.Client:
    return m.Client(
        m.ClientConfig(service_account=service_account_info),
        id_token_keys=key_source,
        session_cookie_keys=key_source,
        user_lookup=user_lookup or FakeUserLookup({"user1": m.UserRecord(uid="user1")}),
        clock=clock,
    )


@pytest.fixture
def client(service_account_info, key_source, clock):
    with _client(service_account_info, key_source, clock) as client:
        yield client


@pytest.fixture
def auth(app: Flask, client) -> m.AuthExtension:
    auth = m.AuthExtension()
    auth.init_app(app, client=client)

    @app.get("/me")
    @auth.require()
    def me():  # type: ignore
        return {"uid": g.auth_token.uid, "admin": m.current_token().claims.get("admin")}

    @app.get("/strict")
    @auth.require(check_revoked=True)
    def strict():  # type: ignore
        return {"uid": m.current_token().uid}

    @app.get("/session")
    @auth.require_session()
    def session():  # type: ignore
        return {"uid": m.current_token().uid}

    return auth


class TestAuthExtensionBasics:
    """Test basic AuthExtension functionality."""

    def test_registers_extension(self, app: Flask, auth):
        assert app.extensions["firebase_auth"] is auth

    def test_missing_token_returns_401(self, app: Flask, auth):
        r = app.test_client().get("/me")
        assert r.status_code == 401
        assert "Missing token" in r.get_data(as_text=True)

    def test_invalid_token_returns_401(self, app: Flask, auth):
        r = app.test_client().get("/me", headers={"Authorization": "Bearer BAD"})
        assert r.status_code == 401

    def test_valid_token_sets_g_auth_token(self, app: Flask, auth, make_token):
        r = app.test_client().get(
            "/me", headers={"Authorization": f"Bearer {make_token(admin=True)}"}
        )
        assert r.status_code == 200
        assert r.get_json() == {"uid": "user1", "admin": True}

    def test_expired_token_returns_401(self, app: Flask, auth, make_token):
        token = make_token(iat=NOW - 7200, exp=NOW - 3600)
        r = app.test_client().get("/me", headers={"Authorization": f"Bearer {token}"})
        assert r.status_code == 401
        assert "has expired at" in r.get_data(as_text=True)

    def test_requires_client(self, app: Flask):
        auth = m.AuthExtension()

        @app.get("/x")
        @auth.require()
        def x():  # type: ignore
            return {"ok": True}

        with pytest.raises(RuntimeError, match="call init_app"):
            app.test_client().get("/x", headers={"Authorization": "Bearer abc"})


class TestAuthExtensionRevocation:
    """Test revocation and disabled-user checks."""

    def test_check_revoked_passes_for_active_user(self, app: Flask, auth, make_token):
        r = app.test_client().get("/strict", headers={"Authorization": f"Bearer {make_token()}"})
        assert r.status_code == 200

    def test_disabled_user_returns_401(
        self, app: Flask, service_account_info, key_source, clock, make_token
    ):
        lookup = FakeUserLookup({"user1": m.UserRecord(uid="user1", disabled=True)})
        auth = m.AuthExtension(_client(service_account_info, key_source, clock, lookup))

        @app.get("/x")
        @auth.require(check_revoked=True)
        def x():  # type: ignore
            return {"ok": True}

        r = app.test_client().get("/x", headers={"Authorization": f"Bearer {make_token()}"})
        assert r.status_code == 401
        assert "user has been disabled" in r.get_data(as_text=True)

    def test_lookup_failure_hides_backend_message(
        self, app: Flask, service_account_info, key_source, clock, make_token
    ):
        auth = m.AuthExtension(_client(service_account_info, key_source, clock, FakeUserLookup()))

        @app.get("/x")
        @auth.require(check_revoked=True)
        def x():  # type: ignore
            return {"ok": True}

        r = app.test_client().get("/x", headers={"Authorization": f"Bearer {make_token()}"})
        body = r.get_data(as_text=True)
        assert r.status_code == 401
        assert "Authentication failed" in body
        assert "cannot find user" not in body


class TestAuthExtensionSessions:
    """Test session cookie protected routes."""

    def test_session_cookie_accepted(self, app: Flask, auth, make_token):
        c = app.test_client()
        c.set_cookie("session", make_token(kind=m.SESSION_COOKIE))
        r = c.get("/session")
        assert r.status_code == 200
        assert r.get_json() == {"uid": "user1"}

    def test_id_token_cookie_rejected(self, app: Flask, auth, make_token):
        c = app.test_client()
        c.set_cookie("session", make_token())
        r = c.get("/session")
        assert r.status_code == 401
        body = r.get_data(as_text=True)
        assert "session cookie has invalid" in body
        assert "Missing token" not in body

    def test_missing_cookie(self, app: Flask, auth):
        r = app.test_client().get("/session")
        assert r.status_code == 401
        assert "Missing token" in r.get_data(as_text=True)


class TestAuthExtensionUnavailable:
    """Test behavior when public keys cannot be fetched."""

    def test_certificate_failure_returns_503(
        self, app: Flask, service_account_info, clock, make_token
    ):
        auth = m.AuthExtension(_client(service_account_info, FailingKeySource(), clock))

        @app.get("/x")
        @auth.require()
        def x():  # type: ignore
            return {"ok": True}

        r = app.test_client().get("/x", headers={"Authorization": f"Bearer {make_token()}"})
        assert r.status_code == 503


class TestStatusMapping:
    @pytest.mark.parametrize(
        "error, expected",
        [
            (m.MissingTokenError("Missing Authorization header"), (401, "Missing token")),
            (m.ExpiredIdTokenError("ID token has expired at: 1"), (401, "ID token has expired at: 1")),
            (m.CertificateFetchError("down"), (503, "Authentication service unavailable")),
            (
                m.AuthError("failed to establish a connection", platform_code=m.ErrorCode.UNAVAILABLE),
                (503, "Authentication service unavailable"),
            ),
            (
                m.RevokedSessionCookieError("session cookie has been revoked"),
                (401, "session cookie has been revoked"),
            ),
            (m.UserDisabledError("user has been disabled"), (401, "user has been disabled")),
            (m.AuthError("boom"), (401, "Authentication failed")),
            (
                m.InsufficientPermissionError(
                    'http error status: 403; body: {"error": {"message": "INSUFFICIENT_PERMISSION"}}'
                ),
                (401, "Authentication failed"),
            ),
            (
                m.UserNotFoundError('http error status: 400; body: {"error": "USER_NOT_FOUND"}'),
                (401, "Authentication failed"),
            ),
            (m.UnknownAuthError("http error status: 500; body: oops"), (401, "Authentication failed")),
            (m.TenantNotFoundError("http error status: 404; body: {}"), (401, "Authentication failed")),
            (m.TenantIdMismatchError('invalid tenant id: "t2"'), (401, "Authentication failed")),
        ],
    )
    def test_status_for_error(self, error, expected):
        assert status_for_error(error) == expected
