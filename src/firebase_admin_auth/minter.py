"""Custom token minting.

A custom token lets a trusted server hand a client an identity of its
choosing. The client exchanges it with the identity platform for an ID token;
the platform checks that it was signed by the project's service account.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Final

from .clock import SYSTEM_CLOCK
from .codec import JWTHeader, encode_token

if TYPE_CHECKING:
    from .protocols import Claims, Clock, Signer

FIREBASE_AUDIENCE: Final[str] = (
    "https://identitytoolkit.googleapis.com/google.identity.identitytoolkit.v1.IdentityToolkit"
)
"""``aud`` of every custom token."""

TOKEN_EXP_SECONDS: Final[int] = 3600
"""Lifetime of a custom token."""

MAX_UID_LENGTH: Final[int] = 128

RESERVED_CLAIMS: Final[tuple[str, ...]] = (
    "acr",
    "amr",
    "at_hash",
    "aud",
    "auth_time",
    "azp",
    "cnf",
    "c_hash",
    "exp",
    "firebase",
    "iat",
    "iss",
    "jti",
    "nbf",
    "nonce",
    "sub",
)
"""Claim names developer claims may not use."""


class TokenMinter:
    """Creates signed custom tokens.

    Attributes:
        _signer: Produces the signature and the ``iss``/``sub`` email.
        _tenant_id: Stamped into every token as ``tenant_id`` when set.
        _clock: Source of ``iat``.
    """

    def __init__(
        self,
        signer: Signer,
        *,
        tenant_id: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        if tenant_id is not None and not tenant_id:
            raise ValueError("tenant id must be a non-empty string")
        self._signer = signer
        self._tenant_id = tenant_id
        self._clock = clock or SYSTEM_CLOCK

    @property
    def signer(self) -> Signer:
        return self._signer

    @property
    def tenant_id(self) -> str | None:
        return self._tenant_id

    def create_custom_token(
        self,
        uid: str,
        developer_claims: Claims | None = None,
        *,
        timeout: float | None = None,
    ) -> str:
        """Mint a custom token for ``uid``.

        Args:
            uid: User ID, 1 to 128 characters.
            developer_claims: Extra claims exposed to security rules. Must be
                JSON serializable and may not use reserved claim names.
            timeout: Deadline in seconds for remote signing or discovery.

        Returns:
            The compact, signed JWT.

        Raises:
            ValueError: Invalid UID, reserved or unserializable claims.
            InvalidCredentialError: The signer cannot report its email.
            AuthError: Remote signing failed.
        """
        email = self._signer.email(timeout=timeout)

        if not isinstance(uid, str) or not uid or len(uid) > MAX_UID_LENGTH:
            raise ValueError("uid must be non-empty, and not longer than 128 characters")

        claims = dict(developer_claims or {})
        disallowed = [k for k in RESERVED_CLAIMS if k in claims]
        if len(disallowed) == 1:
            raise ValueError(
                f'developer claim "{disallowed[0]}" is reserved and cannot be specified'
            )
        if disallowed:
            raise ValueError(
                f'developer claims "{", ".join(disallowed)}" are reserved and cannot be specified'
            )
        try:
            json.dumps(claims)
        except (TypeError, ValueError) as e:
            raise ValueError(f"developer claims must be JSON serializable: {e}") from e

        now = int(self._clock.now())
        payload: dict[str, Any] = {
            "iss": email,
            "sub": email,
            "aud": FIREBASE_AUDIENCE,
            "iat": now,
            "exp": now + TOKEN_EXP_SECONDS,
            "uid": uid,
        }
        if claims:
            payload["claims"] = claims
        if self._tenant_id:
            payload["tenant_id"] = self._tenant_id

        header = JWTHeader(alg=self._signer.algorithm)
        return encode_token(self._signer, header, payload, timeout=timeout)
