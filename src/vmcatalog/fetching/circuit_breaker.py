"""
Circuit breaker guarding the remote catalog API.

After a run of consecutive transient failures the breaker opens and new
fetches fail fast for a while instead of queueing behind a service that is
down. The first fetch after the reset timeout is let through as a trial request.
"""

import enum
import time
import logging
from typing import Any, Callable, Dict

from ..errors import CatalogError, ServiceUnavailableError
from .constants import DEFAULT_FAILURE_THRESHOLD, DEFAULT_RESET_TIMEOUT

logger = logging.getLogger(__name__)


class CircuitState(enum.Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CircuitBreaker:
    """
    Consecutive failure circuit breaker.

    Only transient failures count (server errors, rate limiting and
    transport failures that survived the retry budget). Fatal answers such
    as 401 or a malformed body say nothing about the service's health.
    """

    def __init__(
        self,
        failure_threshold: int = DEFAULT_FAILURE_THRESHOLD,
        reset_timeout: float = DEFAULT_RESET_TIMEOUT,
        timer: Callable[[], float] = time.monotonic
    ):
        if failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1, got {failure_threshold}")
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self._timer = timer
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0

    @property
    def state(self) -> CircuitState:
        """Current state, moving OPEN to HALF_OPEN once the timeout passed."""
        if (self._state is CircuitState.OPEN
                and self._timer() - self._opened_at >= self.reset_timeout):
            self._state = CircuitState.HALF_OPEN
            logger.info("Circuit breaker half-open, letting a trial request through")
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def before_request(self) -> None:
        """
        Raise if requests are currently blocked.

        Raises:
            ServiceUnavailableError: While the breaker is open
        """
        if self.state is CircuitState.OPEN:
            remaining = self.reset_timeout - (self._timer() - self._opened_at)
            raise ServiceUnavailableError(
                f"Circuit breaker is open - service temporarily unavailable "
                f"(retry in {remaining:.1f}s)"
            )

    def record_success(self) -> None:
        if self._state is not CircuitState.CLOSED:
            logger.info("Circuit breaker closed after successful request")
        self._failure_count = 0
        self._state = CircuitState.CLOSED

    def record_failure(self, error: CatalogError) -> None:
        """Count a terminal failure if it is of a transient kind."""
        if not type(error).retryable:
            return

        self._failure_count += 1
        if (self._state is CircuitState.HALF_OPEN
                or self._failure_count >= self.failure_threshold):
            self._state = CircuitState.OPEN
            self._opened_at = self._timer()
            logger.warning(
                "Circuit breaker opened after %d consecutive failures "
                "(reset in %.0fs)", self._failure_count, self.reset_timeout
            )

    def get_stats(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'failure_count': self._failure_count,
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
        }
