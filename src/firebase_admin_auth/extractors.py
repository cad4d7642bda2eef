"""Credential extraction from Flask requests.

Implementations of the Extractor protocol:
- BearerExtractor: ID token from ``Authorization: Bearer <token>``
- CookieExtractor: session cookie from a named cookie (default "session")

Security Considerations:
- ID tokens are short lived and meant for API calls; send them as Bearer tokens
- Session cookies must be set HttpOnly and Secure, with CSRF protection
- Never read credentials from URL query parameters (visible in logs/history)
"""

from __future__ import annotations

from typing import Final

from flask import request

from .errors import MissingTokenError

DEFAULT_SESSION_COOKIE: Final[str] = "session"


class BearerExtractor:
    """Reads an ID token from the Authorization header.

    Expects the header format:
        Authorization: Bearer <id token>

    Example:
        ```python
        auth = AuthExtension(client, id_token_extractor=BearerExtractor())
        ```
    """

    def extract(self) -> str:
        """Return the raw ID token.

        Raises:
            MissingTokenError: Header missing, not using the Bearer scheme,
                or carrying an empty token.
        """
        auth_header = request.headers.get("Authorization", "").strip()
        if not auth_header:
            raise MissingTokenError("Missing Authorization header")

        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer":
            raise MissingTokenError("Invalid authorization scheme (expected 'Bearer')")

        token = token.strip()
        if not token:
            raise MissingTokenError("Bearer token is empty")
        return token


class CookieExtractor:
    """Reads a session cookie.

    Security Notes:
        - The cookie MUST be HttpOnly and Secure
        - Cookie-based auth is vulnerable to CSRF; protect state-changing routes
        - Only the value is read here; attributes are set when the cookie is written

    Attributes:
        _name: Name of the cookie holding the session cookie.
    """

    def __init__(self, cookie_name: str = DEFAULT_SESSION_COOKIE) -> None:
        """Initialize cookie extractor.

        Raises:
            ValueError: If cookie_name is empty.
        """
        if not cookie_name or not cookie_name.strip():
            raise ValueError("cookie_name cannot be empty")
        self._name = cookie_name

    @property
    def cookie_name(self) -> str:
        return self._name

    def extract(self) -> str:
        token = request.cookies.get(self._name)
        if not token:
            raise MissingTokenError(f"Missing cookie '{self._name}'")
        return token
