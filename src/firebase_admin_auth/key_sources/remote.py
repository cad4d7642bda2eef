"""
HTTP public key source.

Fetches the ``{"<kid>": "<PEM certificate>"}`` document published by the
identity platform and caches it for as long as the response's Cache-Control
``max-age`` allows.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from .._http import HTTPClient
from ..clock import SYSTEM_CLOCK
from ..errors import AuthError, CertificateFetchError
from ..protocols import KeySource
from ..refresh_gate import RefreshGate
from .certificates import KeySnapshot, PublicKey, parse_max_age, parse_public_keys

if TYPE_CHECKING:
    from ..protocols import Clock

logger = logging.getLogger(__name__)


class HTTPKeySource(KeySource):
    """
    Serves public keys fetched from a certificate URL, refreshing on expiry.

    Refresh Strategy
    ----------------
    For each call to ``keys()``:

    1) Fresh snapshot (fast path)
        - Keys present and not expired → return them.

    2) Refresh
        - GET the certificate URL, parse every certificate and the
          Cache-Control max-age, then publish a new snapshot expiring at
          ``now + max-age``.

    3) Stale-serve on failure
        - If the refresh fails and a non-empty snapshot exists, the old keys
          are returned and the failure is logged.
        - Further refresh attempts are spaced out by a RefreshGate so that a
          dead endpoint is not hit by every verification.
        - With no keys to fall back on, the failure is raised as
          CertificateFetchError.

    Concurrency
    -----------
    One lock guards the snapshot. The refresh runs while holding it, so
    callers arriving during a refresh wait for its result and at most one
    request is in flight per expiry.

    Parameters
    ----------
    url : str
        Certificate endpoint.

    http : HTTPClient | None
        Client used for the GET. An unauthenticated default client is created
        when omitted.

    clock : Clock | None
        Time source for expiry computation.

    retry_interval : float
        Minimum seconds between refresh retries while serving stale keys.

    Example
    -------
    source = HTTPKeySource(
        "https://www.googleapis.com/robot/v1/metadata/x509/"
        "securetoken@system.gserviceaccount.com"
    )

    keys = source.keys()
    """

    def __init__(
        self,
        url: str,
        *,
        http: HTTPClient | None = None,
        clock: Clock | None = None,
        retry_interval: float = 10.0,
    ) -> None:
        self._url = url
        self._http = http or HTTPClient()
        self._clock = clock or SYSTEM_CLOCK
        self._gate = RefreshGate(min_interval=retry_interval, clock=self._clock)
        self._lock = threading.Lock()
        self._snapshot = KeySnapshot(keys=(), expires_at=0.0)

    @property
    def url(self) -> str:
        return self._url

    @property
    def snapshot(self) -> KeySnapshot:
        """The currently published snapshot, without triggering a refresh."""
        with self._lock:
            return self._snapshot

    def keys(self, *, timeout: float | None = None) -> tuple[PublicKey, ...]:
        """Return the current keys, refreshing them first if expired.

        Args:
            timeout: Deadline in seconds for a refresh, if one is needed.

        Raises:
            CertificateFetchError: The refresh failed and no keys are cached.
                Transport failures keep their platform code (UNAVAILABLE,
                DEADLINE_EXCEEDED, UNKNOWN).
        """
        with self._lock:
            snapshot = self._snapshot
            if snapshot.keys and not snapshot.is_expired(self._clock.now()):
                return snapshot.keys

            if snapshot.keys and not self._gate.allow():
                return snapshot.keys

            try:
                self._snapshot = self._fetch(timeout)
            except AuthError as e:
                if not snapshot.keys:
                    raise
                self._gate.hold()
                logger.warning(
                    "Failed to refresh public keys from %s, serving cached keys: %s",
                    self._url,
                    e,
                )
                return snapshot.keys

            self._gate.reset()
            return self._snapshot.keys

    def _fetch(self, timeout: float | None) -> KeySnapshot:
        try:
            response = self._http.request("GET", self._url, timeout=timeout)
        except AuthError as e:
            # Keeps the transport category (UNAVAILABLE, DEADLINE_EXCEEDED).
            raise CertificateFetchError(
                e.message, platform_code=e.platform_code, cause=e
            ) from e

        if response.status_code != 200:
            raise CertificateFetchError(
                f"invalid response ({response.status_code}) while retrieving "
                f"public keys: {response.text}",
                http_response=response,
            )

        try:
            keys = parse_public_keys(response.content)
            max_age = parse_max_age(response.headers.get("Cache-Control", ""))
        except ValueError as e:
            raise CertificateFetchError(
                f"failed to parse public keys: {e}",
                cause=e,
                http_response=response,
            ) from e

        snapshot = KeySnapshot(keys=keys, expires_at=self._clock.now() + max_age)
        logger.info(
            "Fetched %d public keys from %s (max-age=%ds)", len(keys), self._url, max_age
        )
        return snapshot
