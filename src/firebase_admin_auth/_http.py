"""Thin synchronous HTTP layer shared by every outbound call of the core.

Wraps ``httpx.Client`` so that transport failures and error responses surface
as ``AuthError`` with the right platform category. Retries are left to the
transport (``httpx.HTTPTransport(retries=...)`` retries failed connects only);
nothing here retries on its own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Generator, Mapping
from typing import Any, Final

import httpx

from .errors import AuthError, ErrorCode

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: Final[float] = 10.0
"""Default per-request timeout in seconds."""

DEFAULT_RETRIES: Final[int] = 1
"""Default number of connection retries performed by the transport."""

STATUS_TO_ERROR_CODE: Final[dict[int, ErrorCode]] = {
    400: ErrorCode.INVALID_ARGUMENT,
    401: ErrorCode.UNAUTHENTICATED,
    403: ErrorCode.PERMISSION_DENIED,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    429: ErrorCode.RESOURCE_EXHAUSTED,
    500: ErrorCode.INTERNAL,
    503: ErrorCode.UNAVAILABLE,
}


def platform_code_for_status(status: int) -> ErrorCode:
    return STATUS_TO_ERROR_CODE.get(status, ErrorCode.UNKNOWN)


def default_error_message(response: httpx.Response) -> str:
    return f"unexpected http response with status: {response.status_code}\n{response.text}"


def parse_platform_error(response: httpx.Response) -> tuple[ErrorCode, str, str]:
    """Extract error details from a failed response.

    Understands the common ``{"error": {"status": ..., "message": ...}}``
    body. Anything unparsable falls back to the HTTP status mapping.

    Returns:
        ``(platform_code, server_status, server_message)``. The last two are
        the raw ``error.status`` and ``error.message`` strings, or "" when
        absent.
    """
    platform_code = platform_code_for_status(response.status_code)
    message = ""

    try:
        body = response.json()
    except ValueError:
        return platform_code, "", message

    details = body.get("error") if isinstance(body, dict) else None
    if not isinstance(details, dict):
        return platform_code, "", message

    server_status = details.get("status")
    if not isinstance(server_status, str):
        server_status = ""
    if server_status in ErrorCode.__members__:
        platform_code = ErrorCode(server_status)

    server_message = details.get("message")
    if isinstance(server_message, str) and server_message:
        message = server_message
    return platform_code, server_status, message


class BearerTokenAuth(httpx.Auth):
    """Adds ``Authorization: Bearer <token>`` using a token callable.

    The callable is invoked once per request, so it may refresh tokens as it
    sees fit.
    """

    def __init__(self, token_source: Callable[[], str]) -> None:
        self._token_source = token_source

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self._token_source()}"
        yield request


class HTTPClient:
    """Issues requests and normalizes transport failures.

    Retries:
        ``retries`` configures the default ``httpx.HTTPTransport`` (connection
        retries only). It is not applied when a ``transport`` or ``client`` is
        supplied; retry behaviour is then the caller's transport's own.

    Thread Safety:
        ``httpx.Client`` is safe to share between threads, and this wrapper
        keeps no other state.
    """

    def __init__(
        self,
        *,
        client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        auth: httpx.Auth | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        if client is None:
            client = httpx.Client(
                transport=transport or httpx.HTTPTransport(retries=retries),
                timeout=timeout,
                auth=auth,
                headers=headers,
            )
        self._client = client

    def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """Send a request and return the (fully read) response.

        Non-2xx responses are returned, not raised; callers decide how to
        interpret them.

        Args:
            method: HTTP method.
            url: Absolute URL.
            json: Optional JSON body.
            headers: Extra request headers.
            timeout: Per-call deadline in seconds; the client default when None.

        Raises:
            AuthError: UNAVAILABLE when the connection cannot be established,
                DEADLINE_EXCEEDED on timeout, UNKNOWN on other transport errors.
        """
        kwargs: dict[str, Any] = {"json": json, "headers": headers}
        if timeout is not None:
            kwargs["timeout"] = timeout

        logger.debug("%s %s", method, url)
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.ConnectError as e:
            raise AuthError(
                f"failed to establish a connection: {e}",
                platform_code=ErrorCode.UNAVAILABLE,
                cause=e,
            ) from e
        except httpx.TimeoutException as e:
            raise AuthError(
                f"timed out while making an http call: {e}",
                platform_code=ErrorCode.DEADLINE_EXCEEDED,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise AuthError(
                f"unknown error while making an http call: {e}",
                platform_code=ErrorCode.UNKNOWN,
                cause=e,
            ) from e

    def close(self) -> None:
        self._client.close()
