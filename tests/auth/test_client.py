"""
Tests for the Client facade and tenant-scoped clients.
"""

import base64
import json

import httpx
import pytest

import firebase_admin_auth as m
from firebase_admin_auth import codec
from conftest import NOW, PROJECT_ID, FakeUserLookup


@pytest.fixture
def client(service_account_info, key_source, user_lookup, clock):
    config = m.ClientConfig(service_account=service_account_info)
    with m.Client(
        config,
        id_token_keys=key_source,
        session_cookie_keys=key_source,
        user_lookup=user_lookup,
        clock=clock,
    ) as client:
        yield client


def _unsigned(payload):
    header = codec.encode_segment({"alg": "none", "typ": "JWT"})
    return f"{header}.{codec.encode_segment(payload)}."


class TestServiceAccountClient:
    def test_selects_service_account_signer(self, client):
        assert isinstance(client.signer, m.ServiceAccountSigner)
        assert client.project_id == PROJECT_ID

    def test_custom_token_is_signed(self, client, public_key):
        token = client.create_custom_token("user1", {"premium": True})
        segments = codec.split_token(token)
        assert codec.verify_signature(segments, public_key)
        assert codec.decode_payload(segments[1])["claims"] == {"premium": True}

    def test_verify_id_token(self, client, user_lookup, make_token):
        token = client.verify_id_token(make_token())
        assert token.uid == "user1"
        assert user_lookup.calls == []

    def test_verify_id_token_check_revoked(self, client, user_lookup, make_token):
        client.verify_id_token_and_check_revoked(make_token())
        assert user_lookup.calls == ["user1"]

    def test_verify_session_cookie(self, client, make_token):
        raw = make_token(kind=m.SESSION_COOKIE)
        assert client.verify_session_cookie(raw).uid == "user1"
        assert client.verify_session_cookie_and_check_revoked(raw).uid == "user1"

    def test_session_cookie_is_not_an_id_token(self, client, make_token):
        with pytest.raises(m.InvalidIdTokenError):
            client.verify_id_token(make_token(kind=m.SESSION_COOKIE))


class TestRemoteSigning:
    def test_iam_signer_uses_token_source(self, clock):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["authorization"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"signature": base64.b64encode(b"sig").decode()})

        config = m.ClientConfig(project_id=PROJECT_ID, service_account_id="sa@example.com")
        with m.Client(
            config,
            token_source=lambda: "access-token",
            transport=httpx.MockTransport(handler),
            clock=clock,
        ) as client:
            assert isinstance(client.signer, m.IAMSigner)
            token = client.create_custom_token("user1")

        assert seen["url"].endswith("/serviceAccounts/sa@example.com:signBlob")
        assert seen["authorization"] == "Bearer access-token"
        assert codec.decode_payload(codec.split_token(token)[1])["iss"] == "sa@example.com"


class TestEmulatorClient:
    @pytest.fixture
    def requests(self):
        return []

    @pytest.fixture
    def emulator_client(self, requests, clock):
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            body = json.loads(request.content)
            return httpx.Response(200, json={"users": [{"localId": body["localId"][0]}]})

        config = m.ClientConfig(project_id=PROJECT_ID, emulator_host="localhost:9099")
        with m.Client(config, transport=httpx.MockTransport(handler), clock=clock) as client:
            yield client

    def test_mints_unsigned_tokens(self, emulator_client):
        assert isinstance(emulator_client.signer, m.EmulatedSigner)
        token = emulator_client.create_custom_token("user1")
        header = codec.decode_segment(token.split(".")[0])
        assert header["alg"] == "none"

    def test_always_checks_revocation(self, emulator_client, requests):
        payload = {
            "iss": f"https://securetoken.google.com/{PROJECT_ID}",
            "aud": PROJECT_ID,
            "sub": "user1",
            "iat": NOW - 10,
            "exp": NOW + 3600,
        }
        token = emulator_client.verify_id_token(_unsigned(payload))

        assert token.uid == "user1"
        assert len(requests) == 1
        assert str(requests[0].url) == (
            "http://localhost:9099/identitytoolkit.googleapis.com/v1"
            f"/projects/{PROJECT_ID}/accounts:lookup"
        )
        assert requests[0].headers["Authorization"] == "Bearer owner"


class TestTenantClient:
    def test_rejects_empty_tenant(self, client):
        with pytest.raises(ValueError, match="tenant id must be a non-empty string"):
            client.for_tenant("")

    def test_custom_token_carries_tenant(self, client):
        token = client.for_tenant("tenant-1").create_custom_token("user1")
        assert codec.decode_payload(codec.split_token(token)[1])["tenant_id"] == "tenant-1"

    def test_verifies_matching_tenant(self, client, make_token):
        tenant = client.for_tenant("tenant-1")
        token = tenant.verify_id_token(make_token(firebase={"tenant": "tenant-1"}))
        assert token.tenant_id == "tenant-1"

    def test_tenant_mismatch(self, client, make_token):
        tenant = client.for_tenant("tenant-1")
        with pytest.raises(m.TenantIdMismatchError) as exc:
            tenant.verify_id_token(make_token(firebase={"tenant": "tenant-2"}))
        assert exc.value.message == 'invalid tenant id: "tenant-2"'
        assert m.is_tenant_id_mismatch(exc.value)

    def test_tenant_checked_before_revocation(self, client, user_lookup, make_token):
        tenant = client.for_tenant("tenant-1")
        with pytest.raises(m.TenantIdMismatchError):
            tenant.verify_id_token_and_check_revoked(make_token())
        assert user_lookup.calls == []

    def test_revoked_tenant_token(self, service_account_info, key_source, clock, make_token):
        lookup = FakeUserLookup(
            {"user1": m.UserRecord(uid="user1", tokens_valid_after_millis=NOW * 1000)}
        )
        config = m.ClientConfig(service_account=service_account_info)
        with m.Client(config, id_token_keys=key_source, user_lookup=lookup, clock=clock) as client:
            tenant = client.for_tenant("tenant-1")
            with pytest.raises(m.RevokedIdTokenError):
                tenant.verify_id_token(
                    make_token(firebase={"tenant": "tenant-1"}), check_revoked=True
                )
