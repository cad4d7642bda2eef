"""Authentication errors raised by the auth core.

Every error carries two codes:

- ``platform_code``: the coarse, platform-wide category (``ErrorCode``), shared
  with every other admin API (INVALID_ARGUMENT, UNAVAILABLE, ...).
- ``code``: the fine, auth-specific code (``AuthErrorCode``), or None when the
  failure has no auth-specific meaning (e.g. a refused connection).

Some errors "wrap" a broader condition. A revoked ID token is still an invalid
ID token, so ``RevokedIdTokenError`` has ``code=ID_TOKEN_REVOKED`` and
``parent_code=ID_TOKEN_INVALID``. The ``is_*`` predicates at the bottom of this
module compare against both, and never look at message strings.

Security Note:
    Messages are stable and may be shown to operators. They never contain
    token bodies, signatures or key material.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar, Final

if TYPE_CHECKING:
    import httpx


class ErrorCode(StrEnum):
    """Platform-wide error categories."""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    FAILED_PRECONDITION = "FAILED_PRECONDITION"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    ABORTED = "ABORTED"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    CANCELLED = "CANCELLED"
    DATA_LOSS = "DATA_LOSS"
    UNKNOWN = "UNKNOWN"
    INTERNAL = "INTERNAL"
    UNAVAILABLE = "UNAVAILABLE"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"


class AuthErrorCode(StrEnum):
    """Auth-specific error codes."""

    ID_TOKEN_INVALID = "id-token-invalid"
    ID_TOKEN_EXPIRED = "id-token-expired"
    ID_TOKEN_REVOKED = "id-token-revoked"
    SESSION_COOKIE_INVALID = "session-cookie-invalid"
    SESSION_COOKIE_EXPIRED = "session-cookie-expired"
    SESSION_COOKIE_REVOKED = "session-cookie-revoked"
    USER_DISABLED = "user-disabled"
    USER_NOT_FOUND = "user-not-found"
    CERTIFICATE_FETCH_FAILED = "certificate-fetch-failed"
    INVALID_CREDENTIAL = "invalid-credential"
    INSUFFICIENT_PERMISSION = "insufficient-permission"
    TENANT_ID_MISMATCH = "tenant-id-mismatch"
    TENANT_NOT_FOUND = "tenant-not-found"
    UNKNOWN = "unknown-error"


SERVER_ERROR_CODES: Final[dict[str, AuthErrorCode]] = {
    "INSUFFICIENT_PERMISSION": AuthErrorCode.INSUFFICIENT_PERMISSION,
    "PERMISSION_DENIED": AuthErrorCode.INSUFFICIENT_PERMISSION,
    "TENANT_ID_MISMATCH": AuthErrorCode.TENANT_ID_MISMATCH,
    "TENANT_NOT_FOUND": AuthErrorCode.TENANT_NOT_FOUND,
    "USER_DISABLED": AuthErrorCode.USER_DISABLED,
    "USER_NOT_FOUND": AuthErrorCode.USER_NOT_FOUND,
}
"""Backend status strings the core understands, mapped to auth codes."""


class AuthError(Exception):
    """Base exception for every failure raised by the auth core.

    Application code can catch this single type to handle any auth failure,
    then use the ``is_*`` predicates (or the subclasses) to branch.

    Attributes:
        message: Human readable, stable description of the failure.
        code: Auth-specific code, or None for transport/platform failures.
        platform_code: Coarse platform category.
        parent_code: Broader auth code this error also satisfies, if any.
        cause: Underlying exception, if any.
        http_response: The ``httpx.Response`` that produced this error, if any.
    """

    default_code: ClassVar[AuthErrorCode | None] = None
    default_platform_code: ClassVar[ErrorCode] = ErrorCode.UNKNOWN
    default_parent_code: ClassVar[AuthErrorCode | None] = None

    def __init__(
        self,
        message: str,
        *,
        code: AuthErrorCode | None = None,
        platform_code: ErrorCode | None = None,
        parent_code: AuthErrorCode | None = None,
        cause: BaseException | None = None,
        http_response: httpx.Response | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.platform_code = platform_code or self.default_platform_code
        self.parent_code = parent_code or self.default_parent_code
        self.cause = cause
        self.http_response = http_response

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, code={self.code}, "
            f"platform_code={self.platform_code})"
        )


class InvalidIdTokenError(AuthError):
    """The ID token is malformed, mis-addressed, or its signature is invalid."""

    default_code = AuthErrorCode.ID_TOKEN_INVALID
    default_platform_code = ErrorCode.INVALID_ARGUMENT


class ExpiredIdTokenError(InvalidIdTokenError):
    """The ID token's ``exp`` claim is in the past (beyond clock skew)."""

    default_code = AuthErrorCode.ID_TOKEN_EXPIRED
    default_parent_code = AuthErrorCode.ID_TOKEN_INVALID


class RevokedIdTokenError(InvalidIdTokenError):
    """The ID token was issued before the user's tokens-valid-after time."""

    default_code = AuthErrorCode.ID_TOKEN_REVOKED
    default_parent_code = AuthErrorCode.ID_TOKEN_INVALID


class InvalidSessionCookieError(AuthError):
    """The session cookie is malformed, mis-addressed, or its signature is invalid."""

    default_code = AuthErrorCode.SESSION_COOKIE_INVALID
    default_platform_code = ErrorCode.INVALID_ARGUMENT


class ExpiredSessionCookieError(InvalidSessionCookieError):
    """The session cookie's ``exp`` claim is in the past (beyond clock skew)."""

    default_code = AuthErrorCode.SESSION_COOKIE_EXPIRED
    default_parent_code = AuthErrorCode.SESSION_COOKIE_INVALID


class RevokedSessionCookieError(InvalidSessionCookieError):
    """The session cookie was issued before the user's tokens-valid-after time."""

    default_code = AuthErrorCode.SESSION_COOKIE_REVOKED
    default_parent_code = AuthErrorCode.SESSION_COOKIE_INVALID


class UserDisabledError(AuthError):
    """The user behind an otherwise valid credential is disabled.

    Raised during revocation checks with ``parent_code`` set to the invalid
    code of the credential kind (ID token or session cookie).
    """

    default_code = AuthErrorCode.USER_DISABLED
    default_platform_code = ErrorCode.INVALID_ARGUMENT


class UserNotFoundError(AuthError):
    """No user record exists for the requested UID."""

    default_code = AuthErrorCode.USER_NOT_FOUND
    default_platform_code = ErrorCode.NOT_FOUND


class CertificateFetchError(AuthError):
    """Public key certificates could not be fetched or parsed."""

    default_code = AuthErrorCode.CERTIFICATE_FETCH_FAILED


class InvalidCredentialError(AuthError):
    """The configured credential cannot be used to sign tokens."""

    default_code = AuthErrorCode.INVALID_CREDENTIAL
    default_platform_code = ErrorCode.INVALID_ARGUMENT


class InsufficientPermissionError(AuthError):
    """The credential lacks a permission the operation requires."""

    default_code = AuthErrorCode.INSUFFICIENT_PERMISSION
    default_platform_code = ErrorCode.PERMISSION_DENIED


class TenantIdMismatchError(AuthError):
    """A token was presented to a client scoped to a different tenant."""

    default_code = AuthErrorCode.TENANT_ID_MISMATCH
    default_platform_code = ErrorCode.INVALID_ARGUMENT


class TenantNotFoundError(AuthError):
    """The tenant a lookup was scoped to does not exist."""

    default_code = AuthErrorCode.TENANT_NOT_FOUND
    default_platform_code = ErrorCode.NOT_FOUND


class UnknownAuthError(AuthError):
    """The backend reported an error the core does not recognize."""

    default_code = AuthErrorCode.UNKNOWN


class MissingTokenError(AuthError):
    """No credential was found in the incoming request.

    This should typically result in an HTTP 401 Unauthorized response.
    """

    default_platform_code = ErrorCode.UNAUTHENTICATED


_ERROR_TYPES: Final[dict[AuthErrorCode, type[AuthError]]] = {
    AuthErrorCode.INSUFFICIENT_PERMISSION: InsufficientPermissionError,
    AuthErrorCode.TENANT_ID_MISMATCH: TenantIdMismatchError,
    AuthErrorCode.TENANT_NOT_FOUND: TenantNotFoundError,
    AuthErrorCode.USER_DISABLED: UserDisabledError,
    AuthErrorCode.USER_NOT_FOUND: UserNotFoundError,
}


def error_from_server(
    server_code: str,
    message: str,
    *,
    platform_code: ErrorCode,
    http_response: httpx.Response | None = None,
) -> AuthError:
    """Build the error for a backend status string such as ``USER_NOT_FOUND``.

    Unrecognized statuses become ``UnknownAuthError``.
    """
    code = SERVER_ERROR_CODES.get(server_code, AuthErrorCode.UNKNOWN)
    error_type = _ERROR_TYPES.get(code, UnknownAuthError)
    return error_type(message, platform_code=platform_code, http_response=http_response)


# ============================================================================
# Predicates
# ============================================================================


def _has_code(error: BaseException | None, code: AuthErrorCode) -> bool:
    return isinstance(error, AuthError) and code in (error.code, error.parent_code)


def _has_platform_code(error: BaseException | None, code: ErrorCode) -> bool:
    return isinstance(error, AuthError) and error.platform_code == code


def is_id_token_invalid(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.ID_TOKEN_INVALID)


def is_id_token_expired(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.ID_TOKEN_EXPIRED)


def is_id_token_revoked(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.ID_TOKEN_REVOKED)


def is_session_cookie_invalid(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.SESSION_COOKIE_INVALID)


def is_session_cookie_expired(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.SESSION_COOKIE_EXPIRED)


def is_session_cookie_revoked(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.SESSION_COOKIE_REVOKED)


def is_user_disabled(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.USER_DISABLED)


def is_user_not_found(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.USER_NOT_FOUND)


def is_certificate_fetch_failed(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.CERTIFICATE_FETCH_FAILED)


def is_invalid_credential(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.INVALID_CREDENTIAL)


def is_insufficient_permission(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.INSUFFICIENT_PERMISSION)


def is_tenant_id_mismatch(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.TENANT_ID_MISMATCH)


def is_tenant_not_found(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.TENANT_NOT_FOUND)


def is_unknown_auth_error(error: BaseException | None) -> bool:
    return _has_code(error, AuthErrorCode.UNKNOWN)


def is_invalid_argument(error: BaseException | None) -> bool:
    return _has_platform_code(error, ErrorCode.INVALID_ARGUMENT)


def is_unauthenticated(error: BaseException | None) -> bool:
    return _has_platform_code(error, ErrorCode.UNAUTHENTICATED)


def is_permission_denied(error: BaseException | None) -> bool:
    return _has_platform_code(error, ErrorCode.PERMISSION_DENIED)


def is_not_found(error: BaseException | None) -> bool:
    return _has_platform_code(error, ErrorCode.NOT_FOUND)


def is_conflict(error: BaseException | None) -> bool:
    return _has_platform_code(error, ErrorCode.CONFLICT)


def is_resource_exhausted(error: BaseException | None) -> bool:
    return _has_platform_code(error, ErrorCode.RESOURCE_EXHAUSTED)


def is_internal(error: BaseException | None) -> bool:
    return _has_platform_code(error, ErrorCode.INTERNAL)


def is_unavailable(error: BaseException | None) -> bool:
    return _has_platform_code(error, ErrorCode.UNAVAILABLE)


def is_deadline_exceeded(error: BaseException | None) -> bool:
    return _has_platform_code(error, ErrorCode.DEADLINE_EXCEEDED)


def is_unknown(error: BaseException | None) -> bool:
    return _has_platform_code(error, ErrorCode.UNKNOWN)


def http_response(error: BaseException | None) -> httpx.Response | None:
    """Return the HTTP response that caused ``error``, or None.

    The response body has already been read, so it is safe to inspect.
    """
    if isinstance(error, AuthError):
        return error.http_response
    return None
