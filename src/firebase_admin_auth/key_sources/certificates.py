"""Public keys parsed from X.509 certificates, and the snapshots that hold them."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

_MAX_AGE_PREFIX: Final[str] = "max-age="


@dataclass(frozen=True, slots=True)
class PublicKey:
    """An RSA public key and the key ID that names it.

    Attributes:
        kid: Non-empty key ID, unique within one snapshot.
        key: The RSA public key extracted from the certificate.
    """

    kid: str
    key: RSAPublicKey


@dataclass(frozen=True, slots=True)
class KeySnapshot:
    """An immutable key set plus the absolute time it stops being fresh.

    Snapshots are never mutated; a refresh publishes a new one.
    """

    keys: tuple[PublicKey, ...]
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


def parse_public_key(kid: str, certificate_pem: str | bytes) -> PublicKey:
    """Parse one PEM-encoded X.509 certificate.

    Raises:
        ValueError: Empty key ID, unparsable certificate, or a non-RSA key.
    """
    if not isinstance(kid, str) or not kid:
        raise ValueError("key id must be a non-empty string")
    if isinstance(certificate_pem, str):
        certificate_pem = certificate_pem.encode("utf-8")

    cert = x509.load_pem_x509_certificate(certificate_pem)
    key = cert.public_key()
    if not isinstance(key, RSAPublicKey):
        raise ValueError(f"certificate {kid!r} is not a RSA key")
    return PublicKey(kid=kid, key=key)


def parse_certificate_map(certificates: Mapping[str, Any]) -> tuple[PublicKey, ...]:
    keys: list[PublicKey] = []
    for kid, pem in certificates.items():
        if not isinstance(pem, (str, bytes)):
            raise ValueError(f"certificate {kid!r} is not a PEM string")
        keys.append(parse_public_key(kid, pem))
    return tuple(keys)


def parse_public_keys(body: str | bytes) -> tuple[PublicKey, ...]:
    """Parse a ``{"<kid>": "<PEM certificate>", ...}`` JSON document.

    Raises:
        ValueError: The document is not a JSON object of PEM strings, or any
            certificate fails to parse.
    """
    data = json.loads(body)
    if not isinstance(data, dict):
        raise ValueError("public key document is not a JSON object")
    return parse_certificate_map(data)


def parse_max_age(cache_control: str) -> int:
    """Find the ``max-age`` directive of a Cache-Control header value.

    Directives are comma separated, with or without surrounding spaces, and
    may be preceded by others such as ``public``.

    Examples:
        >>> parse_max_age("public, max-age=19302, must-revalidate")
        19302

    Raises:
        ValueError: No ``max-age=<seconds>`` directive is present, or its value
            is not a non-negative integer.
    """
    for directive in cache_control.split(","):
        directive = directive.strip()
        if directive.startswith(_MAX_AGE_PREFIX):
            seconds = directive[len(_MAX_AGE_PREFIX) :]
            if not seconds.isdecimal():
                raise ValueError(f"invalid max-age value: {seconds!r}")
            return int(seconds)
    raise ValueError("could not find expiry time from HTTP headers")
