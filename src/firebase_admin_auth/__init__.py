"""
Firebase Authentication core: custom tokens, ID tokens and session cookies.

High-level flow
---------------
Minting:
1. `Client.create_custom_token(uid, claims)` validates the UID and claims.
2. The Signer (service account key, IAM signBlob or emulator) signs the JWT.

Verification (per request):
1. `TokenVerifier.verify(token)` splits and decodes the compact JWT.
2. Header and claims are checked (kid, alg, aud, iss, sub), then iat/exp
   with a 300 second clock skew.
3. The RS256 signature is checked against keys from a KeySource, cached for
   as long as the certificate endpoint's Cache-Control allows.
4. Optionally, `RevocationChecker` looks the user up to reject disabled
   accounts and revoked tokens.

Security notes
--------------
- Never trust claims until signature verification succeeds.
- Only RS256 is accepted (the emulator's unsigned tokens only in emulator mode).
- Failed key refreshes serve the previous keys and are throttled so a dead
  certificate endpoint is not hammered.

Example usage
-------------

.. code-block:: python

    from firebase_admin_auth import AuthExtension, Client, ClientConfig

    client = Client(ClientConfig.from_service_account_file("service-account.json"))

    custom_token = client.create_custom_token("user-1", {"premium": True})

    token = client.verify_id_token(id_token, check_revoked=True)

    # Flask
    auth = AuthExtension(client)

    @app.route("/profile")
    @auth.require(check_revoked=True)
    def profile():
        return {"uid": current_token().uid}
"""

# Client
from .client import Client, TenantClient

# Clock
from .clock import SYSTEM_CLOCK, SystemClock

# Codec
from .codec import JWTHeader

# Config
from .config import ClientConfig

# Errors
from .errors import (
    AuthError,
    AuthErrorCode,
    CertificateFetchError,
    ErrorCode,
    ExpiredIdTokenError,
    ExpiredSessionCookieError,
    InsufficientPermissionError,
    InvalidCredentialError,
    InvalidIdTokenError,
    InvalidSessionCookieError,
    MissingTokenError,
    RevokedIdTokenError,
    RevokedSessionCookieError,
    TenantIdMismatchError,
    TenantNotFoundError,
    UnknownAuthError,
    UserDisabledError,
    UserNotFoundError,
    http_response,
    is_certificate_fetch_failed,
    is_conflict,
    is_deadline_exceeded,
    is_id_token_expired,
    is_id_token_invalid,
    is_id_token_revoked,
    is_insufficient_permission,
    is_internal,
    is_invalid_argument,
    is_invalid_credential,
    is_not_found,
    is_permission_denied,
    is_resource_exhausted,
    is_session_cookie_expired,
    is_session_cookie_invalid,
    is_session_cookie_revoked,
    is_tenant_id_mismatch,
    is_tenant_not_found,
    is_unauthenticated,
    is_unavailable,
    is_unknown,
    is_unknown_auth_error,
    is_user_disabled,
    is_user_not_found,
)

# Extractors
from .extractors import BearerExtractor, CookieExtractor

# Flask extension
from .flask_extension import AuthExtension, current_token

# Key sources
from .key_sources import (
    FileKeySource,
    HTTPKeySource,
    InMemoryKeySource,
    KeySnapshot,
    PublicKey,
    parse_max_age,
    parse_public_keys,
)

# Minter
from .minter import FIREBASE_AUDIENCE, RESERVED_CLAIMS, TokenMinter

# Protocols
from .protocols import AuthClient, Claims, Clock, Extractor, KeySource, Signer, UserLookup, ViewFunc

# Refresh gate
from .refresh_gate import RefreshGate

# Revocation
from .revocation import RevocationChecker, UserRecord

# Signers
from .signers import EmulatedSigner, IAMSigner, ServiceAccountSigner

# Tokens
from .tokens import FirebaseInfo, Token

# User lookup
from .user_lookup import IdentityToolkitUserLookup

# Verifier
from .verifier import CLOCK_SKEW_SECONDS, ID_TOKEN, SESSION_COOKIE, TokenVerifier, VerifierKind

__all__ = [
    # Client
    "Client",
    "ClientConfig",
    "TenantClient",
    # Errors
    "AuthError",
    "AuthErrorCode",
    "CertificateFetchError",
    "ErrorCode",
    "ExpiredIdTokenError",
    "ExpiredSessionCookieError",
    "InsufficientPermissionError",
    "InvalidCredentialError",
    "InvalidIdTokenError",
    "InvalidSessionCookieError",
    "MissingTokenError",
    "RevokedIdTokenError",
    "RevokedSessionCookieError",
    "TenantIdMismatchError",
    "TenantNotFoundError",
    "UnknownAuthError",
    "UserDisabledError",
    "UserNotFoundError",
    # Error predicates
    "http_response",
    "is_certificate_fetch_failed",
    "is_conflict",
    "is_deadline_exceeded",
    "is_id_token_expired",
    "is_id_token_invalid",
    "is_id_token_revoked",
    "is_insufficient_permission",
    "is_internal",
    "is_invalid_argument",
    "is_invalid_credential",
    "is_not_found",
    "is_permission_denied",
    "is_resource_exhausted",
    "is_session_cookie_expired",
    "is_session_cookie_invalid",
    "is_session_cookie_revoked",
    "is_tenant_id_mismatch",
    "is_tenant_not_found",
    "is_unauthenticated",
    "is_unavailable",
    "is_unknown",
    "is_unknown_auth_error",
    "is_user_disabled",
    "is_user_not_found",
    # Protocols
    "AuthClient",
    "Claims",
    "Clock",
    "Extractor",
    "KeySource",
    "Signer",
    "UserLookup",
    "ViewFunc",
    # Clock
    "SYSTEM_CLOCK",
    "SystemClock",
    # Key sources
    "FileKeySource",
    "HTTPKeySource",
    "InMemoryKeySource",
    "KeySnapshot",
    "PublicKey",
    "parse_max_age",
    "parse_public_keys",
    # Refresh gate
    "RefreshGate",
    # Signers
    "EmulatedSigner",
    "IAMSigner",
    "ServiceAccountSigner",
    # Codec and minting
    "FIREBASE_AUDIENCE",
    "JWTHeader",
    "RESERVED_CLAIMS",
    "TokenMinter",
    # Verification
    "CLOCK_SKEW_SECONDS",
    "FirebaseInfo",
    "ID_TOKEN",
    "SESSION_COOKIE",
    "Token",
    "TokenVerifier",
    "VerifierKind",
    # Revocation
    "IdentityToolkitUserLookup",
    "RevocationChecker",
    "UserRecord",
    # Flask extension
    "AuthExtension",
    "BearerExtractor",
    "CookieExtractor",
    "current_token",
]
