"""User lookup against the Identity Toolkit ``accounts:lookup`` API.

Only the fields revocation checks need are read from the response.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final

from ._http import parse_platform_error
from .errors import AuthError, UnknownAuthError, UserNotFoundError, error_from_server
from .revocation import UserRecord

if TYPE_CHECKING:
    import httpx

    from ._http import HTTPClient

logger = logging.getLogger(__name__)

ID_TOOLKIT_ENDPOINT: Final[str] = "https://identitytoolkit.googleapis.com/v1"
"""Production Identity Toolkit v1 endpoint."""


def emulator_endpoint(emulator_host: str) -> str:
    """Return the Identity Toolkit endpoint served by an Auth emulator."""
    return f"http://{emulator_host}/identitytoolkit.googleapis.com/v1"


class IdentityToolkitUserLookup:
    """Fetches user records by UID.

    Attributes:
        _http: Authenticated client for the Identity Toolkit API.
        _project_id: Project owning the users.
        _tenant_id: Restricts lookups to one tenant when set.
        _endpoint: Base URL, production or emulator.
    """

    def __init__(
        self,
        http: HTTPClient,
        project_id: str | None,
        *,
        tenant_id: str | None = None,
        endpoint: str = ID_TOOLKIT_ENDPOINT,
    ) -> None:
        self._http = http
        self._project_id = project_id or ""
        self._tenant_id = tenant_id or None
        self._endpoint = endpoint.rstrip("/")

    def for_tenant(self, tenant_id: str) -> IdentityToolkitUserLookup:
        return IdentityToolkitUserLookup(
            self._http, self._project_id, tenant_id=tenant_id, endpoint=self._endpoint
        )

    def _url(self, path: str) -> str:
        if not self._project_id:
            raise ValueError("project id not available")
        if self._tenant_id:
            return f"{self._endpoint}/projects/{self._project_id}/tenants/{self._tenant_id}{path}"
        return f"{self._endpoint}/projects/{self._project_id}{path}"

    def get_user(self, uid: str, *, timeout: float | None = None) -> UserRecord:
        """Look up the user with ``uid``.

        Raises:
            ValueError: Empty UID, or no project ID configured.
            UserNotFoundError: No user has this UID.
            InsufficientPermissionError: The credential may not read users.
            AuthError: Any other HTTP or transport failure.
        """
        if not isinstance(uid, str) or not uid:
            raise ValueError("uid must be a non-empty string")

        response = self._http.request(
            "POST", self._url("/accounts:lookup"), json={"localId": [uid]}, timeout=timeout
        )
        if response.status_code != 200:
            raise _lookup_error(response)

        try:
            body = response.json()
        except ValueError as e:
            raise UnknownAuthError(
                f"failed to parse user lookup response: {e}", cause=e, http_response=response
            ) from e

        users = body.get("users") if isinstance(body, dict) else None
        if not users:
            raise UserNotFoundError(
                f'cannot find user from uid: "{uid}"', http_response=response
            )
        return _make_user_record(users[0], uid)


def _lookup_error(response: httpx.Response) -> AuthError:
    # The backend reports its code as error.message, optionally followed
    # by " : <details>".
    platform_code, _, message = parse_platform_error(response)
    server_code = message.split(":", 1)[0].strip()
    logger.debug("User lookup failed with status %d (%s)", response.status_code, server_code)
    return error_from_server(
        server_code,
        f"http error status: {response.status_code}; body: {response.text}",
        platform_code=platform_code,
        http_response=response,
    )


def _make_user_record(user: Any, uid: str) -> UserRecord:
    if not isinstance(user, dict):
        raise UnknownAuthError(f"unexpected user record: {user!r}")

    valid_since = user.get("validSince") or 0
    try:
        valid_since_seconds = int(valid_since)
    except (TypeError, ValueError) as e:
        raise UnknownAuthError(f"invalid validSince value: {valid_since!r}", cause=e) from e

    return UserRecord(
        uid=user.get("localId") or uid,
        disabled=bool(user.get("disabled", False)),
        tokens_valid_after_millis=valid_since_seconds * 1000,
    )
