"""Fixed-window rate limiting for AI generation calls.

A :class:`RateLimiter` is owned by the running application (``app.state``)
and handed to route handlers through FastAPI dependency injection, so each
app instance, and each test, gets its own counters.

Windows reset lazily: an arriving request first resets its own window if it
has expired, then counts.  Starting a new window also drops every other
expired one, so idle callers do not accumulate.  The check-and-increment is
not atomic across concurrent requests from the same key; on a single event
loop the whole check runs without yielding, which is sufficient here.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from atelier.core.errors import RateLimited

logger = logging.getLogger(__name__)


@dataclass
class WindowState:
    """Counter for one key within its current window."""

    started_at: float
    count: int = 0


class RateLimiter:
    """Per-key fixed-window counter.

    Args:
        max_requests: Calls allowed per key within one window.
        window_seconds: Window length in seconds.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, WindowState] = {}

    def hit(self, key: str) -> int:
        """Count one request for *key*.

        Returns:
            Requests remaining in the current window after this one.

        Raises:
            RateLimited: If *key* already used its budget for this window.
        """
        now = self._clock()
        window = self._windows.get(key)

        if window is None or now - window.started_at >= self.window_seconds:
            self._prune(now)
            window = WindowState(started_at=now)
            self._windows[key] = window

        if window.count >= self.max_requests:
            retry_after = max(1, math.ceil(window.started_at + self.window_seconds - now))
            logger.warning(f"Rate limit exceeded for {key}, retry in {retry_after}s")
            raise RateLimited(retry_after)

        window.count += 1
        return self.max_requests - window.count

    def _prune(self, now: float) -> None:
        """Drop every window that has already expired at *now*."""
        expired = [
            key
            for key, window in self._windows.items()
            if now - window.started_at >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]

    def tracked_keys(self) -> int:
        """Number of keys with a live window."""
        return len(self._windows)

    def reset(self) -> None:
        """Forget all windows."""
        self._windows.clear()
