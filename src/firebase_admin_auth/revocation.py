"""Revocation and disabled-user checks layered over token verification."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .errors import UserDisabledError

if TYPE_CHECKING:
    from .protocols import UserLookup
    from .tokens import Token
    from .verifier import TokenVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class UserRecord:
    """The user state revocation checks depend on.

    Attributes:
        uid: The user's ID.
        disabled: Whether the account is disabled.
        tokens_valid_after_millis: Tokens issued before this instant (ms since
            the epoch) are revoked. 0 when tokens were never revoked.
    """

    uid: str
    disabled: bool = False
    tokens_valid_after_millis: int = 0


class RevocationChecker:
    """Verifies a credential, then checks the user is enabled and not revoked.

    The user lookup is only consulted once verification has succeeded; errors
    from the lookup (including UserNotFoundError) propagate unchanged.
    """

    def __init__(self, verifier: TokenVerifier, user_lookup: UserLookup) -> None:
        self._verifier = verifier
        self._user_lookup = user_lookup

    @property
    def verifier(self) -> TokenVerifier:
        return self._verifier

    def verify(self, token: str, *, timeout: float | None = None) -> Token:
        """Verify ``token`` and run the revocation check on the result.

        Raises:
            InvalidIdTokenError / InvalidSessionCookieError: Verification failed.
            ExpiredIdTokenError / ExpiredSessionCookieError: Credential expired.
            UserDisabledError: The user is disabled.
            RevokedIdTokenError / RevokedSessionCookieError: Credential revoked.
            AuthError: The user lookup failed.
        """
        verified = self._verifier.verify(token, timeout=timeout)
        return self.check(verified, timeout=timeout)

    def check(self, token: Token, *, timeout: float | None = None) -> Token:
        """Run the disabled and revocation checks on an already verified token."""
        kind = self._verifier.kind
        user = self._user_lookup.get_user(token.uid, timeout=timeout)

        if user.disabled:
            raise UserDisabledError(
                "user has been disabled", parent_code=kind.invalid_error.default_code
            )
        if token.issued_at * 1000 < user.tokens_valid_after_millis:
            logger.debug("Rejected revoked %s for uid %s", kind.short_name, token.uid)
            raise kind.revoked_error(f"{kind.short_name} has been revoked")
        return token
