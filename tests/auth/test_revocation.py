import pytest

import firebase_admin_auth as m
from conftest import NOW, FakeUserLookup


@pytest.fixture
def checker(id_verifier, user_lookup) -> m.RevocationChecker:
    return m.RevocationChecker(id_verifier, user_lookup)


def test_active_user_passes(checker, user_lookup, make_token):
    token = checker.verify(make_token())
    assert token.uid == "user1"
    assert user_lookup.calls == ["user1"]


def test_revoked_token(id_verifier, make_token):
    # issued_at * 1000 < tokens_valid_after_millis
    lookup = FakeUserLookup(
        {"user1": m.UserRecord(uid="user1", tokens_valid_after_millis=(NOW - 50) * 1000)}
    )
    checker = m.RevocationChecker(id_verifier, lookup)

    with pytest.raises(m.RevokedIdTokenError) as exc:
        checker.verify(make_token(iat=NOW - 100))
    assert exc.value.message == "ID token has been revoked"
    assert m.is_id_token_revoked(exc.value)
    assert m.is_id_token_invalid(exc.value)


def test_token_issued_at_valid_after_passes(id_verifier, make_token):
    lookup = FakeUserLookup(
        {"user1": m.UserRecord(uid="user1", tokens_valid_after_millis=(NOW - 100) * 1000)}
    )
    checker = m.RevocationChecker(id_verifier, lookup)
    assert checker.verify(make_token(iat=NOW - 100)).uid == "user1"


def test_disabled_user(id_verifier, make_token):
    lookup = FakeUserLookup({"user1": m.UserRecord(uid="user1", disabled=True)})
    checker = m.RevocationChecker(id_verifier, lookup)

    with pytest.raises(m.UserDisabledError) as exc:
        checker.verify(make_token())
    assert exc.value.message == "user has been disabled"
    assert m.is_user_disabled(exc.value)
    assert m.is_id_token_invalid(exc.value)
    assert not m.is_session_cookie_invalid(exc.value)


def test_disabled_checked_before_revocation(id_verifier, make_token):
    lookup = FakeUserLookup(
        {
            "user1": m.UserRecord(
                uid="user1", disabled=True, tokens_valid_after_millis=(NOW + 10) * 1000
            )
        }
    )
    with pytest.raises(m.UserDisabledError):
        m.RevocationChecker(id_verifier, lookup).verify(make_token())


def test_session_cookie_revoked(session_verifier, make_token):
    lookup = FakeUserLookup(
        {"user1": m.UserRecord(uid="user1", tokens_valid_after_millis=NOW * 1000)}
    )
    checker = m.RevocationChecker(session_verifier, lookup)

    with pytest.raises(m.RevokedSessionCookieError, match="session cookie has been revoked"):
        checker.verify(make_token(kind=m.SESSION_COOKIE))


def test_disabled_session_cookie_user(session_verifier, make_token):
    lookup = FakeUserLookup({"user1": m.UserRecord(uid="user1", disabled=True)})
    with pytest.raises(m.UserDisabledError) as exc:
        m.RevocationChecker(session_verifier, lookup).verify(make_token(kind=m.SESSION_COOKIE))
    assert m.is_session_cookie_invalid(exc.value)


def test_no_lookup_when_verification_fails(checker, user_lookup, make_token):
    with pytest.raises(m.InvalidIdTokenError):
        checker.verify(make_token(aud="bad-audience"))
    assert user_lookup.calls == []


def test_user_not_found_propagates(id_verifier, make_token):
    checker = m.RevocationChecker(id_verifier, FakeUserLookup())
    with pytest.raises(m.UserNotFoundError) as exc:
        checker.verify(make_token())
    assert m.is_user_not_found(exc.value)


def test_epoch_issued_token_revoked(id_verifier, make_token):
    lookup = FakeUserLookup(
        {"user1": m.UserRecord(uid="user1", tokens_valid_after_millis=1_000_000)}
    )
    with pytest.raises(m.RevokedIdTokenError) as exc:
        m.RevocationChecker(id_verifier, lookup).verify(make_token(iat=0))
    assert str(exc.value) == "ID token has been revoked"


def test_disabled_wins_for_epoch_issued_token(id_verifier, make_token):
    lookup = FakeUserLookup(
        {
            "user1": m.UserRecord(
                uid="user1", disabled=True, tokens_valid_after_millis=1_000_000
            )
        }
    )
    with pytest.raises(m.UserDisabledError) as exc:
        m.RevocationChecker(id_verifier, lookup).verify(make_token(iat=0))
    assert str(exc.value) == "user has been disabled"
