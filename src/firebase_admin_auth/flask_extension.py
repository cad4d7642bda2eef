"""Flask extension protecting routes with ID tokens or session cookies.

Key Components:
- AuthExtension: decorator factory for protected routes
- current_token: the verified Token of the current request

Request Flow:
1. Extract the credential (Bearer header or session cookie)
2. Verify it with the auth client, optionally checking revocation
3. Store the verified Token in ``flask.g.auth_token``
4. Convert auth errors into HTTP responses (401/503)
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, Final

from flask import Flask, abort, g

from .errors import (
    AuthError,
    MissingTokenError,
    is_certificate_fetch_failed,
    is_id_token_invalid,
    is_session_cookie_invalid,
    is_unavailable,
    is_user_disabled,
)
from .extractors import BearerExtractor, CookieExtractor

if TYPE_CHECKING:
    from collections.abc import Callable

    from .protocols import AuthClient, Extractor, ViewFunc
    from .tokens import Token

logger = logging.getLogger(__name__)

_EXT_KEY: Final[str] = "firebase_auth"
"""Flask extensions registry key for AuthExtension."""


def status_for_error(error: AuthError) -> tuple[int, str]:
    """Map an auth failure to an HTTP status and a client-safe description.

    - Missing credential -> 401 "Missing token"
    - Key endpoint unreachable or backend unavailable -> 503
    - Invalid, expired, revoked credential or disabled user -> 401 with the
      error message
    - Anything else -> 401 "Authentication failed"; backend error text is
      never passed to the client
    """
    if isinstance(error, MissingTokenError):
        return 401, "Missing token"
    if is_certificate_fetch_failed(error) or is_unavailable(error):
        return 503, "Authentication service unavailable"
    if (
        is_id_token_invalid(error)
        or is_session_cookie_invalid(error)
        or is_user_disabled(error)
    ):
        return 401, error.message
    return 401, "Authentication failed"


class AuthExtension:
    """
    Flask decorator glue for Firebase credentials.

    Responsibilities:
    - Extract the ID token or session cookie from the request
    - Verify it (and optionally its revocation state) with the auth client
    - Store the verified Token in ``flask.g.auth_token``
    - Convert domain errors to HTTP responses (abort)

    Pattern:
        auth = AuthExtension()
        auth.init_app(app, client=client)

    Usage:
        auth = AuthExtension(client)

        @app.get("/profile")
        @auth.require(check_revoked=True)
        def profile():
            return {"uid": current_token().uid}
    """

    def __init__(
        self,
        client: AuthClient | None = None,
        *,
        id_token_extractor: Extractor | None = None,
        session_extractor: Extractor | None = None,
    ) -> None:
        self._client = client
        self._id_token_extractor: Extractor = id_token_extractor or BearerExtractor()
        self._session_extractor: Extractor = session_extractor or CookieExtractor()

    def init_app(
        self,
        app: Flask,
        *,
        client: AuthClient | None = None,
        id_token_extractor: Extractor | None = None,
        session_extractor: Extractor | None = None,
    ) -> None:
        """Register the extension on ``app``, optionally replacing collaborators."""
        if client is not None:
            self._client = client
        if id_token_extractor is not None:
            self._id_token_extractor = id_token_extractor
        if session_extractor is not None:
            self._session_extractor = session_extractor

        app.extensions[_EXT_KEY] = self

    def require(self, *, check_revoked: bool = False) -> Callable[[ViewFunc], ViewFunc]:
        """Protect a view with an ID token from the Authorization header.

        Args:
            check_revoked: Also reject disabled users and revoked tokens.
                Costs one user lookup per request.

        Side Effects:
            - Writes the verified Token to ``flask.g.auth_token``.
            - May terminate request handling early via ``flask.abort``.
        """
        return self._protect(
            self._id_token_extractor,
            lambda client, token: client.verify_id_token(token, check_revoked=check_revoked),
        )

    def require_session(self, *, check_revoked: bool = False) -> Callable[[ViewFunc], ViewFunc]:
        """Protect a view with a session cookie; see ``require``."""
        return self._protect(
            self._session_extractor,
            lambda client, token: client.verify_session_cookie(token, check_revoked=check_revoked),
        )

    def _protect(
        self,
        extractor: Extractor,
        verify: Callable[[AuthClient, str], Token],
    ) -> Callable[[ViewFunc], ViewFunc]:
        def decorator(view: ViewFunc) -> ViewFunc:
            @wraps(view)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                if self._client is None:
                    raise RuntimeError("AuthExtension has no client; call init_app() first")
                try:
                    raw = extractor.extract()
                    g.auth_token = verify(self._client, raw)
                except AuthError as e:
                    status, description = status_for_error(e)
                    if status == 503:
                        logger.warning("Credential verification unavailable: %s", e)
                    abort(status, description=description)
                except Exception:
                    logger.exception("Unexpected error while verifying credential")
                    abort(401, description="Authentication failed")

                return view(*args, **kwargs)

            return wrapper

        return decorator


def current_token() -> Token:
    """Return the verified Token of the current request.

    Raises:
        RuntimeError: The view is not protected by AuthExtension.
    """
    token = g.get("auth_token")
    if token is None:
        raise RuntimeError("no verified token for this request")
    return token
