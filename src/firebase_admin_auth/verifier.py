"""ID token and session cookie verification.

This module provides the verifier shared by both credential kinds:
- Splits and decodes the compact JWT
- Runs structural checks on header and payload, in a fixed order
- Applies issued-at and expiry checks with a symmetric clock skew
- Verifies the RS256 signature against keys from an injected KeySource

The two kinds differ only in configuration (``VerifierKind``): issuer prefix,
certificate URL, wording of error messages and the error types raised.
Verification has no side effects beyond a possible key refresh, so repeated
verification of the same token yields the same result.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from .clock import SYSTEM_CLOCK
from .codec import RS256, JWTHeader, decode_payload, decode_segment, split_token, verify_signature
from .errors import (
    AuthError,
    CertificateFetchError,
    ExpiredIdTokenError,
    ExpiredSessionCookieError,
    InvalidIdTokenError,
    InvalidSessionCookieError,
    RevokedIdTokenError,
    RevokedSessionCookieError,
)
from .minter import FIREBASE_AUDIENCE
from .tokens import Token

if TYPE_CHECKING:
    from .protocols import Clock, KeySource

CLOCK_SKEW_SECONDS: Final[int] = 300
"""Tolerance applied to both ``iat`` and ``exp``."""

MAX_SUBJECT_LENGTH: Final[int] = 128

MAX_TIMESTAMP: Final[int] = 2**63 - 1
"""Largest ``iat``/``exp`` accepted; larger values are rejected as invalid."""

EMULATOR_ALGORITHM: Final[str] = "none"

ID_TOKEN_CERT_URL: Final[str] = (
    "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
)
SESSION_COOKIE_CERT_URL: Final[str] = (
    "https://www.googleapis.com/identitytoolkit/v3/relyingparty/publicKeys"
)


@dataclass(frozen=True, slots=True)
class VerifierKind:
    """Everything that distinguishes ID token from session cookie verification.

    Attributes:
        short_name: Used at the start of error messages ("ID token").
        articled_short_name: Used mid-sentence ("an ID token").
        doc_url: Documentation page cited by content errors.
        issuer_prefix: Expected ``iss`` is this prefix plus the project ID.
        cert_url: Default certificate endpoint for this kind.
        invalid_error: Raised for malformed or mis-addressed credentials.
        expired_error: Raised when ``exp`` is in the past.
        revoked_error: Raised by revocation checks.
    """

    short_name: str
    articled_short_name: str
    doc_url: str
    issuer_prefix: str
    cert_url: str
    invalid_error: type[AuthError]
    expired_error: type[AuthError]
    revoked_error: type[AuthError]


ID_TOKEN: Final = VerifierKind(
    short_name="ID token",
    articled_short_name="an ID token",
    doc_url="https://firebase.google.com/docs/auth/admin/verify-id-tokens",
    issuer_prefix="https://securetoken.google.com/",
    cert_url=ID_TOKEN_CERT_URL,
    invalid_error=InvalidIdTokenError,
    expired_error=ExpiredIdTokenError,
    revoked_error=RevokedIdTokenError,
)

SESSION_COOKIE: Final = VerifierKind(
    short_name="session cookie",
    articled_short_name="a session cookie",
    doc_url="https://firebase.google.com/docs/auth/admin/manage-cookies",
    issuer_prefix="https://session.firebase.google.com/",
    cert_url=SESSION_COOKIE_CERT_URL,
    invalid_error=InvalidSessionCookieError,
    expired_error=ExpiredSessionCookieError,
    revoked_error=RevokedSessionCookieError,
)


class _ContentError(ValueError):
    pass


class TokenVerifier:
    """Verifies ID tokens or session cookies for one project.

    Thread Safety:
        Holds no mutable state of its own; safe to share between threads as
        long as the KeySource is (every bundled KeySource is).

    Example:
        ```python
        verifier = TokenVerifier(
            ID_TOKEN,
            "my-project",
            HTTPKeySource(ID_TOKEN.cert_url),
        )

        try:
            token = verifier.verify(raw_token)
        except ExpiredIdTokenError:
            # ask the client to refresh its ID token
        except InvalidIdTokenError:
            # reject the request
        ```

    Attributes:
        _kind: ID token or session cookie configuration.
        _project_id: Expected ``aud``, and suffix of the expected ``iss``.
        _key_source: Provides the RSA keys signatures are checked against.
        _clock: Time source for ``iat``/``exp`` checks.
        _emulator: When True, signatures are not checked and ``kid`` is optional.
    """

    def __init__(
        self,
        kind: VerifierKind,
        project_id: str | None,
        key_source: KeySource,
        *,
        clock: Clock | None = None,
        emulator: bool = False,
    ) -> None:
        self._kind = kind
        self._project_id = project_id or ""
        self._key_source = key_source
        self._clock = clock or SYSTEM_CLOCK
        self._emulator = emulator

    @property
    def kind(self) -> VerifierKind:
        return self._kind

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def emulator(self) -> bool:
        return self._emulator

    def verify(self, token: str, *, timeout: float | None = None) -> Token:
        """Verify a compact JWT and return the decoded token.

        Checks run cheapest first: structure and claims, then timestamps, and
        only then the signature (which may need a key refresh).

        Args:
            token: The raw ID token or session cookie.
            timeout: Deadline in seconds for a key refresh, if one is needed.

        Returns:
            The verified Token, with ``uid == subject``.

        Raises:
            InvalidIdTokenError / InvalidSessionCookieError: Malformed token,
                failed structural check, future ``iat`` or bad signature.
            ExpiredIdTokenError / ExpiredSessionCookieError: ``exp`` is past.
            CertificateFetchError: Keys could not be obtained.
        """
        kind = self._kind
        if not self._project_id:
            raise kind.invalid_error("project id not available")
        if not isinstance(token, str) or not token:
            raise kind.invalid_error(f"{kind.short_name} must be a non-empty string")

        try:
            segments, header, payload = self._verify_content(token)
        except ValueError as e:
            raise kind.invalid_error(
                f"{e}; see {kind.doc_url} for details on how to retrieve a valid {kind.short_name}",
                cause=e,
            ) from e

        self._verify_timestamps(payload)

        if not self._emulator:
            self._verify_signature(segments, header, timeout)

        return Token.from_payload(payload)

    # ------------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------------

    def _verify_content(
        self, token: str
    ) -> tuple[tuple[str, str, str], JWTHeader, dict[str, Any]]:
        kind = self._kind
        segments = split_token(token)
        header = JWTHeader.from_dict(decode_segment(segments[0]))
        payload = decode_payload(segments[1])

        audience = payload.get("aud", "")
        issuer = payload.get("iss", "")
        subject = payload.get("sub", "")
        expected_issuer = f"{kind.issuer_prefix}{self._project_id}"
        project_match = (
            f"make sure the {kind.short_name} comes from the same Firebase project "
            "as the credential used to authenticate this SDK"
        )

        if not header.kid and not self._emulator:
            if audience == FIREBASE_AUDIENCE:
                raise _ContentError(f"expected {kind.articled_short_name} but got a custom token")
            raise _ContentError(f"{kind.short_name} has no 'kid' header")
        if header.alg != RS256 and not (self._emulator and header.alg == EMULATOR_ALGORITHM):
            raise _ContentError(
                f"{kind.short_name} has invalid algorithm; "
                f"expected 'RS256' but got {_quote(header.alg)}"
            )
        if audience != self._project_id:
            raise _ContentError(
                f"{kind.short_name} has invalid 'aud' (audience) claim; "
                f"expected {_quote(self._project_id)} but got {_quote(audience)}; {project_match}"
            )
        if issuer != expected_issuer:
            raise _ContentError(
                f"{kind.short_name} has invalid 'iss' (issuer) claim; "
                f"expected {_quote(expected_issuer)} but got {_quote(issuer)}; {project_match}"
            )
        if not isinstance(subject, str):
            raise _ContentError(f"{kind.short_name} has invalid 'sub' (subject) claim")
        if not subject:
            raise _ContentError(f"{kind.short_name} has empty 'sub' (subject) claim")
        if len(subject) > MAX_SUBJECT_LENGTH:
            raise _ContentError(
                f"{kind.short_name} has a 'sub' (subject) claim longer than 128 characters"
            )
        for name in ("iat", "exp"):
            if not _is_timestamp(payload.get(name, 0)):
                raise _ContentError(f"{kind.short_name} has invalid '{name}' claim")

        return segments, header, payload

    def _verify_timestamps(self, payload: dict[str, Any]) -> None:
        kind = self._kind
        now = int(self._clock.now())
        issued_at = int(payload.get("iat", 0))
        expires = int(payload.get("exp", 0))

        if issued_at - CLOCK_SKEW_SECONDS > now:
            raise kind.invalid_error(f"{kind.short_name} issued at future timestamp: {issued_at}")
        if expires + CLOCK_SKEW_SECONDS < now:
            raise kind.expired_error(f"{kind.short_name} has expired at: {expires}")

    def _verify_signature(
        self,
        segments: tuple[str, str, str],
        header: JWTHeader,
        timeout: float | None,
    ) -> None:
        try:
            keys = self._key_source.keys(timeout=timeout)
        except AuthError:
            raise
        except (OSError, ValueError) as e:
            raise CertificateFetchError(f"failed to load public keys: {e}", cause=e) from e

        for key in keys:
            if header.kid and header.kid != key.kid:
                continue
            if verify_signature(segments, key):
                return

        raise self._kind.invalid_error("failed to verify token signature")


def _quote(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _is_timestamp(value: Any) -> bool:
    """Whole seconds within the signed 64-bit range; ``1.0`` passes, ``1.5`` does not."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return -MAX_TIMESTAMP - 1 <= value <= MAX_TIMESTAMP
    if isinstance(value, float):
        return math.isfinite(value) and value.is_integer() and abs(value) <= MAX_TIMESTAMP
    return False
