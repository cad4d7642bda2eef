"""Protocol definitions for the auth core.

This module defines structural interfaces using Protocol (PEP 544) for:
- Reading the wall clock
- Listing trusted verification keys
- Signing bytes on behalf of a principal
- Looking up user state for revocation checks
- Verifying credentials and extracting them from requests

Any class that implements the required methods satisfies the protocol, which
keeps fakes in tests small and avoids inheritance between the variants.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, TypeAlias

if TYPE_CHECKING:
    from .key_sources.certificates import PublicKey
    from .revocation import UserRecord
    from .tokens import Token

# ============================================================================
# Type Aliases
# ============================================================================

Claims: TypeAlias = Mapping[str, Any]
"""A decoded JWT payload (or the developer claims embedded in one)."""

ViewFunc: TypeAlias = Callable[..., Any]
"""Type alias for Flask view functions (callable that takes any args and returns any)."""


# ============================================================================
# Core Protocols
# ============================================================================


class Clock(Protocol):
    """Source of the current time.

    Centralizing wall-clock reads lets tests fast-forward without sleeping.
    """

    def now(self) -> float:
        """Return the current time as seconds since the epoch."""
        ...


class KeySource(Protocol):
    """Provides the current set of trusted public keys.

    Implementations:
    - HTTPKeySource: certificates fetched over HTTP, cached per Cache-Control
    - FileKeySource: certificates read once from a local JSON file
    - InMemoryKeySource: a fixed set injected at construction
    """

    def keys(self, *, timeout: float | None = None) -> tuple[PublicKey, ...]:
        """Return the current keys, refreshing them first if they expired.

        Args:
            timeout: Deadline in seconds for any network I/O this call performs.

        Raises:
            CertificateFetchError: Keys are unavailable and nothing is cached.
        """
        ...


class Signer(Protocol):
    """Signs arbitrary bytes and identifies the signing principal.

    ``algorithm`` is the JWT ``alg`` header value matching the signatures this
    signer produces ("RS256", or "none" for the emulator).
    """

    @property
    def algorithm(self) -> str: ...

    def sign(self, data: bytes, *, timeout: float | None = None) -> bytes:
        """Return the signature over ``data``."""
        ...

    def email(self, *, timeout: float | None = None) -> str:
        """Return the principal email used as ``iss``/``sub`` of minted tokens."""
        ...


class UserLookup(Protocol):
    """User-management collaborator consulted by revocation checks."""

    def get_user(self, uid: str, *, timeout: float | None = None) -> UserRecord:
        """Return the user record for ``uid``.

        Raises:
            UserNotFoundError: No such user.
            AuthError: Any other lookup failure.
        """
        ...


class AuthClient(Protocol):
    """The verification surface used by the Flask integration."""

    def verify_id_token(
        self,
        id_token: str,
        *,
        check_revoked: bool = False,
        timeout: float | None = None,
    ) -> Token: ...

    def verify_session_cookie(
        self,
        session_cookie: str,
        *,
        check_revoked: bool = False,
        timeout: float | None = None,
    ) -> Token: ...


class Extractor(Protocol):
    """Protocol for extracting credentials from HTTP requests.

    Implementers must provide an extract() method that retrieves the raw JWT
    string from a Flask request context.

    Common implementations:
    - Authorization: Bearer <token> header (ID tokens)
    - Cookie-based storage (session cookies)
    """

    def extract(self) -> str:
        """Extract the raw JWT string from the Flask request.

        Raises:
            MissingTokenError: Token not found or improperly formatted.
        """
        ...
