"""Rate limiting for public key refresh retries.

After a certificate refresh fails, the HTTP key source keeps serving the keys it
already has. RefreshGate spaces out the following refresh attempts so that a
dead certificate endpoint is not hit by every single verification.

The gate allows at most one attempt per configured interval, rejecting
additional attempts and tracking denial counts for alerting.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Final

from .clock import SYSTEM_CLOCK

if TYPE_CHECKING:
    from .protocols import Clock

logger = logging.getLogger(__name__)

_DEFAULT_INTERVAL: Final[float] = 10
"""Default minimum interval between refresh retries in seconds."""

_DEFAULT_ALERT_THRESHOLD: Final[int] = 50
"""Default number of denials before logging a warning (per interval)."""


class RefreshGate:
    """Thread-safe rate limiter for refresh retries.

    A fresh gate is open. ``hold()`` closes it for one interval (called after a
    failed refresh), ``allow()`` lets one caller through per interval, and
    ``reset()`` reopens it immediately (called after a successful refresh).

    Attributes:
        _min_interval: Minimum seconds between allowed attempts.
        _alert_threshold: Number of denials before logging a warning.
        _lock: Thread synchronization lock.
        _next_allowed_at: Unix timestamp when the next attempt is allowed.
        _retry_attempts: Count of denied attempts since last allow.
    """

    def __init__(
        self,
        min_interval: float = _DEFAULT_INTERVAL,
        alert_threshold: int = _DEFAULT_ALERT_THRESHOLD,
        *,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the refresh gate.

        Args:
            min_interval: Minimum seconds between allowed attempts.
            alert_threshold: Number of denied attempts before a warning is logged.
            clock: Time source; the system clock when None.

        Raises:
            ValueError: If min_interval or alert_threshold are invalid.
        """
        if min_interval <= 0:
            raise ValueError(f"min_interval must be positive, got {min_interval}")
        if alert_threshold < 1:
            raise ValueError(f"alert_threshold must be at least 1, got {alert_threshold}")

        self._min_interval = min_interval
        self._alert_threshold = alert_threshold
        self._clock = clock or SYSTEM_CLOCK

        self._lock = threading.Lock()
        self._next_allowed_at: float = 0.0
        self._retry_attempts: int = 0

    def allow(self) -> bool:
        """Check if an attempt is allowed now.

        Returns:
            True if allowed (and a new interval starts).
            False if denied (too soon since the last allowed attempt).
        """
        now = self._clock.now()

        with self._lock:
            if now < self._next_allowed_at:
                self._retry_attempts += 1
                if self._retry_attempts == self._alert_threshold:
                    logger.warning(
                        "Public key refresh throttled: %d attempts denied since last retry",
                        self._retry_attempts,
                    )
                return False

            self._next_allowed_at = now + self._min_interval
            self._retry_attempts = 0
            return True

    def hold(self) -> None:
        """Deny attempts for one full interval starting now."""
        with self._lock:
            self._next_allowed_at = self._clock.now() + self._min_interval

    def reset(self) -> None:
        """Allow the next attempt immediately."""
        with self._lock:
            self._next_allowed_at = 0.0
            self._retry_attempts = 0
