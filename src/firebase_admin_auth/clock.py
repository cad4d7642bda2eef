"""Wall-clock access for time-dependent components."""

from __future__ import annotations

import time


class SystemClock:
    """Clock backed by ``time.time()``."""

    def now(self) -> float:
        return time.time()


SYSTEM_CLOCK = SystemClock()
