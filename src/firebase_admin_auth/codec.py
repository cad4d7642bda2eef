"""Compact JWT serialization.

``base64url(header) + "." + base64url(payload) + "." + base64url(signature)``,
URL-safe base64 without padding throughout. Encoding and RS256 primitives come
from PyJWT; this module only fixes the framing so minted tokens and claim
checks stay byte-exact.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final

from jwt.algorithms import RSAAlgorithm
from jwt.utils import base64url_decode, base64url_encode

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

    from .key_sources.certificates import PublicKey
    from .protocols import Signer

RS256: Final[str] = "RS256"

_RS256: Final = RSAAlgorithm(RSAAlgorithm.SHA256)


@dataclass(frozen=True, slots=True)
class JWTHeader:
    """The JOSE header of a compact JWT.

    Attributes:
        alg: Signing algorithm ("RS256", or "none" for emulated tokens).
        typ: Token type, "JWT" for every token the core produces.
        kid: Key ID naming the verification key; absent on custom tokens.
    """

    alg: str
    typ: str = "JWT"
    kid: str | None = None

    def to_dict(self) -> dict[str, str]:
        data = {"alg": self.alg, "typ": self.typ}
        if self.kid:
            data["kid"] = self.kid
        return data

    @classmethod
    def from_dict(cls, data: Any) -> JWTHeader:
        if not isinstance(data, dict):
            raise ValueError("token header is not a JSON object")
        alg = data.get("alg", "")
        typ = data.get("typ", "")
        kid = data.get("kid")
        return cls(
            alg=alg if isinstance(alg, str) else str(alg),
            typ=typ if isinstance(typ, str) else str(typ),
            kid=kid if isinstance(kid, str) and kid else None,
        )


def encode_segment(value: Mapping[str, Any]) -> str:
    raw = json.dumps(value, separators=(",", ":")).encode("utf-8")
    return base64url_encode(raw).decode("ascii")


def decode_segment(segment: str) -> Any:
    """Decode one base64url segment and parse it as JSON.

    Raises:
        ValueError: Invalid base64, invalid UTF-8 or invalid JSON. The
            underlying error is raised unchanged so its message identifies
            the malformed field.
    """
    return json.loads(base64url_decode(segment))


def split_token(token: str) -> tuple[str, str, str]:
    segments = token.split(".")
    if len(segments) != 3:
        raise ValueError("incorrect number of segments")
    return segments[0], segments[1], segments[2]


def decode_payload(segment: str) -> dict[str, Any]:
    payload = decode_segment(segment)
    if not isinstance(payload, dict):
        raise ValueError("token payload is not a JSON object")
    return payload


def encode_token(
    signer: Signer,
    header: JWTHeader,
    payload: Mapping[str, Any],
    *,
    timeout: float | None = None,
) -> str:
    """Serialize ``header`` and ``payload`` and sign them with ``signer``."""
    signing_input = f"{encode_segment(header.to_dict())}.{encode_segment(payload)}"
    signature = signer.sign(signing_input.encode("ascii"), timeout=timeout)
    return f"{signing_input}.{base64url_encode(signature).decode('ascii')}"


def rs256_sign(data: bytes, private_key: RSAPrivateKey) -> bytes:
    """RSASSA-PKCS1-v1_5 with SHA-256."""
    return _RS256.sign(data, private_key)


def verify_signature(segments: tuple[str, str, str], public_key: PublicKey) -> bool:
    """Check the RS256 signature of a split token against one key."""
    signing_input = f"{segments[0]}.{segments[1]}".encode("utf-8")
    try:
        signature = base64url_decode(segments[2])
    except ValueError:
        return False
    return _RS256.verify(signing_input, public_key.key, signature)
