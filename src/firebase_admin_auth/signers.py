"""Signers used to mint custom tokens.

Three variants satisfy the ``Signer`` protocol:

- ServiceAccountSigner: signs locally with the service account's RSA key.
- IAMSigner: delegates to the IAM ``signBlob`` endpoint when no private key
  is available, discovering the service account from the metadata server if
  none was configured.
- EmulatedSigner: produces unsigned tokens for the Auth emulator.

Security Note:
    Private key material never leaves ServiceAccountSigner and is never
    logged or included in error messages.
"""

from __future__ import annotations

import base64
import binascii
import logging
import threading
from collections.abc import Mapping
from typing import Any, Final

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from ._http import HTTPClient, default_error_message, parse_platform_error
from .codec import RS256, rs256_sign
from .errors import AuthError, InvalidCredentialError, UnknownAuthError, error_from_server

logger = logging.getLogger(__name__)

IAM_HOST: Final[str] = "https://iam.googleapis.com"
"""Default base URL of the IAM credentials API."""

METADATA_HOST: Final[str] = "http://metadata.google.internal"
"""Default base URL of the compute metadata server."""

EMULATOR_EMAIL: Final[str] = "firebase-auth-emulator@example.com"
"""Principal reported by the emulated signer."""

_DISCOVERY_GUIDANCE: Final[str] = (
    "initialize the SDK with service account credentials or specify a service "
    "account with iam.serviceAccounts.signBlob permission; refer to "
    "https://firebase.google.com/docs/auth/admin/create-custom-tokens for more "
    "details on creating custom tokens"
)


# ============================================================================
# Service account
# ============================================================================


def load_private_key(pem: str | bytes) -> RSAPrivateKey:
    """Parse a PEM encoded RSA private key (PKCS#8 or PKCS#1).

    Raises:
        InvalidCredentialError: The blob is not a PEM RSA private key.
    """
    if isinstance(pem, str):
        pem = pem.encode("utf-8")
    try:
        key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError) as e:
        raise InvalidCredentialError(
            f"private key should be a PEM or plain PKCS1 or PKCS8; parse error: {e}",
            cause=e,
        ) from e
    if not isinstance(key, RSAPrivateKey):
        raise InvalidCredentialError("private key is not an RSA key")
    return key


class ServiceAccountSigner:
    """Signs with the RSA private key of a service account credential.

    Signing is CPU-only; ``timeout`` is accepted for interface compatibility.

    Attributes:
        _private_key: Parsed RSA key, or None when the credential had none.
        _client_email: Service account email, used as ``iss``/``sub``.
    """

    def __init__(self, private_key: RSAPrivateKey | None, client_email: str) -> None:
        self._private_key = private_key
        self._client_email = client_email

    @classmethod
    def from_service_account(cls, info: Mapping[str, Any]) -> ServiceAccountSigner:
        """Build a signer from a parsed service account JSON document.

        Args:
            info: Mapping with at least ``private_key`` and ``client_email``.

        Raises:
            InvalidCredentialError: The private key is missing or unparsable.
        """
        pem = info.get("private_key")
        if not pem:
            raise InvalidCredentialError("private key not available")
        return cls(load_private_key(pem), info.get("client_email") or "")

    @property
    def algorithm(self) -> str:
        return RS256

    def sign(self, data: bytes, *, timeout: float | None = None) -> bytes:
        if self._private_key is None:
            raise InvalidCredentialError("private key not available")
        return rs256_sign(data, self._private_key)

    def email(self, *, timeout: float | None = None) -> str:
        if not self._client_email:
            raise InvalidCredentialError("service account email not available")
        return self._client_email


# ============================================================================
# Remote IAM
# ============================================================================


class IAMSigner:
    """Signs by calling the IAM ``signBlob`` API.

    The service account is either configured explicitly or discovered once
    from the metadata server and memoized.

    Thread Safety:
        Discovery runs under a lock, so the memoized email is assigned at
        most once even when many threads mint tokens concurrently.

    Attributes:
        _http: Authenticated client for the IAM API.
        _metadata_http: Client for the metadata server (no credentials).
        _service_account: Configured or discovered account email.
    """

    def __init__(
        self,
        http: HTTPClient,
        *,
        service_account: str | None = None,
        metadata_http: HTTPClient | None = None,
        iam_host: str = IAM_HOST,
        metadata_host: str = METADATA_HOST,
    ) -> None:
        self._http = http
        self._metadata_http = metadata_http or http
        self._service_account = service_account or None
        self._iam_host = iam_host.rstrip("/")
        self._metadata_host = metadata_host.rstrip("/")
        self._lock = threading.Lock()

    @property
    def algorithm(self) -> str:
        return RS256

    def sign(self, data: bytes, *, timeout: float | None = None) -> bytes:
        """Sign ``data`` remotely.

        Raises:
            InvalidCredentialError: The service account cannot be determined.
            InsufficientPermissionError: The caller may not sign as the account.
            AuthError: Any other HTTP or transport failure.
        """
        account = self.email(timeout=timeout)
        url = f"{self._iam_host}/v1/projects/-/serviceAccounts/{account}:signBlob"
        body = {"bytesToSign": base64.b64encode(data).decode("ascii")}

        response = self._http.request("POST", url, json=body, timeout=timeout)
        if response.status_code == 200:
            try:
                return base64.b64decode(response.json()["signature"], validate=True)
            except (ValueError, KeyError, TypeError, binascii.Error) as e:
                raise UnknownAuthError(
                    f"unexpected signBlob response: {response.text}",
                    cause=e,
                    http_response=response,
                ) from e

        platform_code, server_status, message = parse_platform_error(response)
        if not message:
            message = f"client encountered an unknown error; response: {response.text}"
        raise error_from_server(
            server_status,
            f"http error status: {response.status_code}; reason: {message}",
            platform_code=platform_code,
            http_response=response,
        )

    def email(self, *, timeout: float | None = None) -> str:
        if self._service_account:
            return self._service_account

        with self._lock:
            if self._service_account:
                return self._service_account
            try:
                account = self._discover(timeout)
            except AuthError as e:
                raise InvalidCredentialError(
                    f"failed to determine service account: {e}; {_DISCOVERY_GUIDANCE}",
                    cause=e,
                ) from e
            logger.info("Discovered service account %s from the metadata server", account)
            self._service_account = account
            return account

    def _discover(self, timeout: float | None) -> str:
        url = f"{self._metadata_host}/computeMetadata/v1/instance/service-accounts/default/email"
        response = self._metadata_http.request(
            "GET", url, headers={"Metadata-Flavor": "Google"}, timeout=timeout
        )
        if response.status_code != 200:
            platform_code, _, message = parse_platform_error(response)
            raise AuthError(
                message or default_error_message(response),
                platform_code=platform_code,
                http_response=response,
            )

        account = response.text.strip()
        if not account:
            raise AuthError("unexpected response from metadata service", http_response=response)
        return account


# ============================================================================
# Emulator
# ============================================================================


class EmulatedSigner:
    """Produces unsigned tokens accepted only by an emulator-mode verifier."""

    @property
    def algorithm(self) -> str:
        return "none"

    def sign(self, data: bytes, *, timeout: float | None = None) -> bytes:
        return b"signature"

    def email(self, *, timeout: float | None = None) -> str:
        return EMULATOR_EMAIL
