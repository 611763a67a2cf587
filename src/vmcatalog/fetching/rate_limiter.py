"""
Sliding window rate limiter for outbound catalog requests.

The limiter bounds how many requests are admitted within a trailing time
window. Callers that would exceed the bound are suspended until the oldest
admission leaves the window, then checked again.
"""

import asyncio
import collections
import time
import logging
from typing import Any, Callable, Deque, Dict

from .constants import DEFAULT_MAX_REQUESTS_PER_WINDOW, DEFAULT_WINDOW_SECONDS

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """
    Async sliding window rate limiter.

    Features:
    - Admission is atomic: the check and the record step share one lock
    - Waiting happens outside the lock so other callers are never blocked
      by a sleeper
    - Every waiter re-checks after its computed delay, nobody starves
    - Per instance state, nothing is shared between limiters
    """

    def __init__(
        self,
        max_requests_per_window: int = DEFAULT_MAX_REQUESTS_PER_WINDOW,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        timer: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the limiter.

        Args:
            max_requests_per_window: Requests admitted per window (>= 1)
            window_seconds: Window duration in seconds (> 0)
            timer: Monotonic clock

        Raises:
            ValueError: If the configuration is out of range
        """
        if int(max_requests_per_window) < 1:
            raise ValueError(
                f"max_requests_per_window must be >= 1, got {max_requests_per_window}"
            )
        if window_seconds <= 0:
            raise ValueError(f"window_seconds must be > 0, got {window_seconds}")

        self.max_requests_per_window = int(max_requests_per_window)
        self.window_seconds = float(window_seconds)
        self._timer = timer
        self._timestamps: Deque[float] = collections.deque()
        self._lock = asyncio.Lock()

        # Stats
        self._total_admitted = 0
        self._total_waits = 0
        self._total_waited = 0.0

    def _evict(self, now: float) -> None:
        """Drop timestamps that left the trailing window."""
        window_start = now - self.window_seconds
        while self._timestamps and self._timestamps[0] <= window_start:
            self._timestamps.popleft()

    def _try_admit(self) -> float:
        """
        Admit the caller if the window has room.

        Returns:
            0.0 if admitted, otherwise the seconds until a slot frees up
        """
        now = self._timer()
        self._evict(now)

        if len(self._timestamps) < self.max_requests_per_window:
            self._timestamps.append(now)
            self._total_admitted += 1
            return 0.0

        oldest = self._timestamps[0]
        return max(self.window_seconds - (now - oldest), 0.0)

    async def acquire(self) -> None:
        """Suspend until the caller may send one request."""
        while True:
            async with self._lock:
                delay = self._try_admit()
            if delay <= 0:
                return

            self._total_waits += 1
            self._total_waited += delay
            logger.debug(
                "Rate limit of %d requests per %.1fs reached, waiting %.2fs",
                self.max_requests_per_window, self.window_seconds, delay
            )
            await asyncio.sleep(delay)

    def in_window(self) -> int:
        """Number of admissions currently inside the window."""
        self._evict(self._timer())
        return len(self._timestamps)

    def get_stats(self) -> Dict[str, Any]:
        """Get limiter statistics."""
        return {
            "type": "sliding_window",
            "max_requests_per_window": self.max_requests_per_window,
            "window_seconds": self.window_seconds,
            "in_window": self.in_window(),
            "total_admitted": self._total_admitted,
            "total_waits": self._total_waits,
            "total_wait_seconds": round(self._total_waited, 3),
        }
