"""
Tests for custom token minting.
"""

import jwt
import pytest

import firebase_admin_auth as m
from firebase_admin_auth import codec
from conftest import NOW, SERVICE_ACCOUNT_EMAIL


@pytest.fixture
def minter(service_account_info, clock) -> m.TokenMinter:
    signer = m.ServiceAccountSigner.from_service_account(service_account_info)
    return m.TokenMinter(signer, clock=clock)


def _decode(token: str):
    header, payload, _ = codec.split_token(token)
    return codec.decode_segment(header), codec.decode_segment(payload)


def test_mint_and_decode(minter):
    header, payload = _decode(minter.create_custom_token("user1"))

    assert header == {"alg": "RS256", "typ": "JWT"}
    assert payload == {
        "iss": SERVICE_ACCOUNT_EMAIL,
        "sub": SERVICE_ACCOUNT_EMAIL,
        "aud": "https://identitytoolkit.googleapis.com/google.identity.identitytoolkit.v1.IdentityToolkit",
        "uid": "user1",
        "iat": NOW,
        "exp": NOW + 3600,
    }


def test_signature_verifies_with_pyjwt(minter, rsa_key):
    token = minter.create_custom_token("user1", {"premium": True})
    decoded = jwt.decode(
        token,
        rsa_key.public_key(),
        algorithms=["RS256"],
        audience=m.FIREBASE_AUDIENCE,
        options={"verify_exp": False, "verify_iat": False},
    )
    assert decoded["claims"] == {"premium": True}


def test_developer_claims_omitted_when_empty(minter):
    _, payload = _decode(minter.create_custom_token("user1", {}))
    assert "claims" not in payload


def test_tenant_id_is_stamped(service_account_info, clock):
    signer = m.ServiceAccountSigner.from_service_account(service_account_info)
    minter = m.TokenMinter(signer, tenant_id="tenant-1", clock=clock)
    _, payload = _decode(minter.create_custom_token("user1"))
    assert payload["tenant_id"] == "tenant-1"


def test_empty_tenant_id_rejected(service_account_info):
    signer = m.ServiceAccountSigner.from_service_account(service_account_info)
    with pytest.raises(ValueError):
        m.TokenMinter(signer, tenant_id="")


@pytest.mark.parametrize("uid", ["", "a" * 129, None, 42])
def test_invalid_uid(minter, uid):
    with pytest.raises(ValueError, match="uid must be non-empty, and not longer than 128 characters"):
        minter.create_custom_token(uid)


def test_uid_length_boundary(minter):
    _, payload = _decode(minter.create_custom_token("a" * 128))
    assert payload["uid"] == "a" * 128


@pytest.mark.parametrize("claim", m.RESERVED_CLAIMS)
def test_each_reserved_claim_rejected(minter, claim):
    with pytest.raises(ValueError) as exc:
        minter.create_custom_token("user1", {claim: "x", "ok": 1})
    assert str(exc.value) == f'developer claim "{claim}" is reserved and cannot be specified'


def test_multiple_reserved_claims_named_in_order(minter):
    with pytest.raises(ValueError) as exc:
        minter.create_custom_token("user1", {"sub": 1, "aud": 2, "iss": 3})
    assert str(exc.value) == 'developer claims "aud, iss, sub" are reserved and cannot be specified'


def test_unserializable_claims(minter):
    with pytest.raises(ValueError, match="JSON serializable"):
        minter.create_custom_token("user1", {"obj": object()})


def test_signer_email_failure_propagates(clock):
    signer = m.ServiceAccountSigner(None, "")
    minter = m.TokenMinter(signer, clock=clock)
    with pytest.raises(m.InvalidCredentialError):
        minter.create_custom_token("user1")


def test_emulated_signer_produces_unsigned_token(clock):
    minter = m.TokenMinter(m.EmulatedSigner(), clock=clock)
    token = minter.create_custom_token("user1")
    header, payload = _decode(token)
    assert header["alg"] == "none"
    assert payload["iss"] == "firebase-auth-emulator@example.com"
    assert codec.base64url_decode(token.split(".")[2]) == b"signature"
