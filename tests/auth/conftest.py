import datetime
import json
from collections.abc import Callable
from typing import Any

import httpx
import jwt
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID
from flask import Flask

import firebase_admin_auth as m
from firebase_admin_auth._http import HTTPClient

PROJECT_ID = "mock-project-id"
SERVICE_ACCOUNT_EMAIL = "svc@example.iam.gserviceaccount.com"
NOW = 1_700_000_000


class MockClock:
    """Clock that only moves when told to."""

    def __init__(self, now: float = NOW):
        self.value = float(now)

    def now(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


def make_certificate(key: rsa.RSAPrivateKey, common_name: str = "test") -> str:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    utc = datetime.timezone.utc
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime.datetime(2020, 1, 1, tzinfo=utc))
        .not_valid_after(datetime.datetime(2040, 1, 1, tzinfo=utc))
        .sign(key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


def private_key_pem(key: rsa.RSAPrivateKey, fmt=serialization.PrivateFormat.PKCS8) -> str:
    return key.private_bytes(
        serialization.Encoding.PEM, fmt, serialization.NoEncryption()
    ).decode("ascii")


def mock_http(handler: Callable[[httpx.Request], httpx.Response]) -> HTTPClient:
    """HTTPClient whose requests are answered by ``handler``."""
    return HTTPClient(transport=httpx.MockTransport(handler))


def certs_response(certs: dict[str, str], max_age: int = 3600) -> httpx.Response:
    return httpx.Response(
        200,
        content=json.dumps(certs).encode("utf-8"),
        headers={"Cache-Control": f"public, max-age={max_age}, must-revalidate, no-transform"},
    )


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def other_rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def certificate_pem(rsa_key) -> str:
    return make_certificate(rsa_key)


@pytest.fixture(scope="session")
def certificates(certificate_pem) -> dict[str, str]:
    return {"kid1": certificate_pem}


@pytest.fixture
def public_key(rsa_key) -> m.PublicKey:
    return m.PublicKey(kid="kid1", key=rsa_key.public_key())


@pytest.fixture
def key_source(public_key) -> m.InMemoryKeySource:
    return m.InMemoryKeySource([public_key])


@pytest.fixture
def clock() -> MockClock:
    return MockClock()


@pytest.fixture
def service_account_info(rsa_key) -> dict[str, Any]:
    return {
        "type": "service_account",
        "project_id": PROJECT_ID,
        "client_email": SERVICE_ACCOUNT_EMAIL,
        "private_key": private_key_pem(rsa_key),
    }


@pytest.fixture
def make_token(rsa_key, clock):
    """
    Factory fixture that returns a function.

    Usage in tests:
        token = make_token(aud="bad-audience")
        token = make_token(kind=m.SESSION_COOKIE, kid=None)

    Keyword arguments override payload claims; passing ``None`` removes one.
    """

    def _make(
        *,
        kind: m.VerifierKind = m.ID_TOKEN,
        kid: str | None = "kid1",
        key: rsa.RSAPrivateKey | None = None,
        **claims: Any,
    ) -> str:
        now = int(clock.now())
        payload: dict[str, Any] = {
            "iss": f"{kind.issuer_prefix}{PROJECT_ID}",
            "aud": PROJECT_ID,
            "sub": "user1",
            "iat": now - 100,
            "exp": now + 3600,
            "auth_time": now - 200,
            "firebase": {"sign_in_provider": "password", "identities": {}},
        }
        payload.update(claims)
        payload = {k: v for k, v in payload.items() if v is not None}
        headers = {"kid": kid} if kid else None
        return jwt.encode(payload, key or rsa_key, algorithm="RS256", headers=headers)

    return _make


@pytest.fixture
def id_verifier(key_source, clock) -> m.TokenVerifier:
    return m.TokenVerifier(m.ID_TOKEN, PROJECT_ID, key_source, clock=clock)


@pytest.fixture
def session_verifier(key_source, clock) -> m.TokenVerifier:
    return m.TokenVerifier(m.SESSION_COOKIE, PROJECT_ID, key_source, clock=clock)


class FakeUserLookup:
    """In-memory user store for revocation checks."""

    def __init__(self, users: dict[str, m.UserRecord] | None = None):
        self.users = users or {}
        self.calls: list[str] = []

    def get_user(self, uid: str, *, timeout: float | None = None) -> m.UserRecord:
        self.calls.append(uid)
        if uid not in self.users:
            raise m.UserNotFoundError(f'cannot find user from uid: "{uid}"')
        return self.users[uid]


@pytest.fixture
def user_lookup() -> FakeUserLookup:
    return FakeUserLookup({"user1": m.UserRecord(uid="user1")})


@pytest.fixture()
def app():
    app = Flask(__name__)
    app.config["TESTING"] = True
    return app
