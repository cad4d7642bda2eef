"""Verified token model."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final

STANDARD_CLAIMS: Final[frozenset[str]] = frozenset({"iss", "aud", "exp", "iat", "sub", "uid"})
"""Claims surfaced as Token attributes rather than through ``Token.claims``."""


@dataclass(frozen=True, slots=True)
class FirebaseInfo:
    """The ``firebase`` claim of an ID token or session cookie.

    Attributes:
        sign_in_provider: Provider used to sign in ("password", "google.com", ...).
        tenant: Tenant ID the user belongs to, or "" outside multi-tenancy.
        identities: Provider identities linked to the user.
        sign_in_second_factor: Second factor used, if any ("phone", ...).
        second_factor_identifier: ID of the enrolled second factor used.
    """

    sign_in_provider: str = ""
    tenant: str = ""
    identities: Mapping[str, Any] = field(default_factory=dict)
    sign_in_second_factor: str = ""
    second_factor_identifier: str = ""

    @classmethod
    def from_claim(cls, value: Any) -> FirebaseInfo:
        if not isinstance(value, Mapping):
            return cls()
        identities = value.get("identities")
        return cls(
            sign_in_provider=_str(value.get("sign_in_provider")),
            tenant=_str(value.get("tenant")),
            identities=identities if isinstance(identities, Mapping) else {},
            sign_in_second_factor=_str(value.get("sign_in_second_factor")),
            second_factor_identifier=_str(value.get("second_factor_identifier")),
        )


@dataclass(frozen=True, slots=True)
class Token:
    """A verified ID token or session cookie.

    Only produced by a successful verification. ``uid`` always equals
    ``subject``; ``claims`` holds every payload claim except ``iss``, ``aud``,
    ``exp``, ``iat``, ``sub`` and ``uid`` (so ``firebase`` and ``auth_time``
    appear both here and as attributes).

    Attributes:
        issuer: ``iss`` claim.
        audience: ``aud`` claim (the project ID).
        expires: ``exp`` claim, seconds since the epoch.
        issued_at: ``iat`` claim, seconds since the epoch.
        auth_time: ``auth_time`` claim, seconds since the epoch (0 if absent).
        subject: ``sub`` claim, the user's UID.
        uid: Same as ``subject``.
        firebase: Parsed ``firebase`` claim.
        claims: Remaining claims, including developer claims.
    """

    issuer: str
    audience: str
    expires: int
    issued_at: int
    subject: str
    uid: str
    auth_time: int = 0
    firebase: FirebaseInfo = field(default_factory=FirebaseInfo)
    claims: Mapping[str, Any] = field(default_factory=dict)

    @property
    def tenant_id(self) -> str:
        return self.firebase.tenant

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Token:
        """Build a Token from a payload that already passed every check."""
        subject = _str(payload.get("sub"))
        claims = {k: v for k, v in payload.items() if k not in STANDARD_CLAIMS}
        auth_time = payload.get("auth_time")
        return cls(
            issuer=_str(payload.get("iss")),
            audience=_str(payload.get("aud")),
            expires=int(payload.get("exp", 0)),
            issued_at=int(payload.get("iat", 0)),
            subject=subject,
            uid=subject,
            auth_time=int(auth_time) if _is_number(auth_time) else 0,
            firebase=FirebaseInfo.from_claim(payload.get("firebase")),
            claims=claims,
        )


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
