"""Per-identity request rate limiting over minute and hour windows.

State is process-local and lost on restart. The guard is created and
owned by the application (never a module global) so tests can inject a
clock and start from a clean slate.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from plainspoke.errors import RateLimitError

logger = logging.getLogger(__name__)

MINUTE = 60.0
HOUR = 3600.0


@dataclass(slots=True)
class RateWindow:
    """Hit counter for one (identity, granularity) pair."""

    window_start: float
    count: int = 0


class RateGuard:
    """Fixed windows per identity: one per minute, one per hour.

    A window opens on the first request after the previous one elapsed and
    counts accepted requests only; a rejected request does not consume
    capacity.

    Args:
        per_minute: Requests allowed per identity per minute.
        per_hour: Requests allowed per identity per hour.
        clock: Monotonic seconds source.
    """

    def __init__(
        self,
        per_minute: int,
        per_hour: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limits: dict[str, tuple[float, int]] = {
            "minute": (MINUTE, per_minute),
            "hour": (HOUR, per_hour),
        }
        self._clock = clock
        self._windows: dict[tuple[str, str], RateWindow] = {}
        self._last_sweep = clock()

    def check(self, identity: str) -> None:
        """Admit one request for ``identity`` or raise.

        Raises:
            RateLimitError: Either window is already full. Carries the
                seconds until that window resets.
        """
        now = self._clock()
        if now - self._last_sweep >= MINUTE:
            self._sweep(now)
        windows: list[RateWindow] = []
        for granularity, (length, limit) in self._limits.items():
            key = (identity, granularity)
            window = self._windows.get(key)
            if window is None or now - window.window_start >= length:
                window = RateWindow(window_start=now)
                self._windows[key] = window
            if window.count >= limit:
                retry_after = length - (now - window.window_start)
                logger.info(
                    "Rate limited %s: %d/%s reached, retry in %.0fs",
                    identity,
                    limit,
                    granularity,
                    retry_after,
                )
                raise RateLimitError(granularity, limit, retry_after)
            windows.append(window)

        for window in windows:
            window.count += 1

    def reset(self, identity: str | None = None) -> None:
        """Forget the windows of one identity, or of everyone."""
        if identity is None:
            self._windows.clear()
            return
        for granularity in self._limits:
            self._windows.pop((identity, granularity), None)

    def _sweep(self, now: float) -> None:
        """Drop windows that have fully elapsed; runs at most once a minute."""
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.window_start >= self._limits[key[1]][0]
        ]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now
        if expired:
            logger.debug("Evicted %d expired rate windows", len(expired))
