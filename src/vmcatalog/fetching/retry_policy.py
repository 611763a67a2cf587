"""
Retry policy for catalog requests.

This module classifies failed responses and transport errors into the typed
errors of ``vmcatalog.errors``, decides whether a failed attempt is retried
and computes the backoff delay between attempts, honouring rate limit hints
sent by the service.
"""

import time
import random
import datetime
import email.utils
import logging
from typing import Any, Mapping, Optional, Union

from ..errors import (
    CatalogError,
    ClientRequestError,
    AuthenticationError,
    AuthorizationError,
    RateLimitedError,
    ServerError,
    ServiceUnavailableError,
)
from .constants import (
    DEFAULT_RETRY_COUNT,
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_DELAY,
    EPOCH_RESET_THRESHOLD,
    RATE_LIMIT_BACKOFF_FACTOR,
    RATE_LIMIT_HEADERS,
)

logger = logging.getLogger(__name__)


def _seconds_until(moment: datetime.datetime) -> float:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    return (moment - datetime.datetime.now(datetime.timezone.utc)).total_seconds()


def parse_retry_after(headers: Optional[Mapping[str, str]]) -> Optional[float]:
    """
    Parse rate limit information from HTTP response headers.

    Supports Retry-After (seconds or HTTP date), X-Ratelimit-Retry-At
    (ISO timestamp) and the reset headers. A numeric reset value is read as
    seconds until reset when small and as an epoch timestamp otherwise.
    Reset headers that point at the present or the past are skipped, so a
    stale header falls through to the next one or to regular backoff.

    Args:
        headers: Response headers

    Returns:
        Seconds to wait (never negative), or None if no usable hint is present
    """
    if not headers:
        return None

    for header_name in RATE_LIMIT_HEADERS:
        if header_name not in headers:
            continue
        value = str(headers[header_name]).strip()
        try:
            if header_name == 'Retry-After':
                try:
                    retry_after = float(value)
                except ValueError:
                    retry_at = email.utils.parsedate_to_datetime(value)
                    retry_after = _seconds_until(retry_at)
            elif value.isdigit():
                reset = int(value)
                if reset < EPOCH_RESET_THRESHOLD:
                    retry_after = float(reset)
                else:
                    retry_after = reset - time.time()
            else:
                retry_after = _seconds_until(datetime.datetime.fromisoformat(value))
        except (ValueError, TypeError) as e:
            logger.debug("Failed to parse %s header %r: %s", header_name, value, e)
            continue

        if header_name != 'Retry-After' and retry_after <= 0:
            logger.debug("Ignoring %s header %r, reset is not in the future",
                         header_name, value)
            continue

        logger.debug("Parsed %s: retry after %.1fs", header_name, retry_after)
        return max(retry_after, 0.0)

    return None


class RetryPolicy:
    """
    Classification and backoff for failed catalog requests.

    Classification:
    - 401 / 403: fatal, raised at once
    - 429: retryable, waits for the Retry-After hint when present
    - 5xx: retryable with exponential backoff
    - transport failures and timeouts: retryable with exponential backoff
    - any other 4xx: fatal

    Backoff is ``min(base_delay * 2**attempt, max_delay)``. With jitter the
    delay is drawn from the upper half of that value, so it never exceeds
    ``max_delay``. A Retry-After hint is not capped: the wait is the larger of
    the hint and the backoff.
    """

    def __init__(
        self,
        max_retries: int = DEFAULT_RETRY_COUNT,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
        jitter: bool = True
    ):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        if base_delay < 0 or max_delay < 0:
            raise ValueError("Retry delays must not be negative")

        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter

    @staticmethod
    def classify_status(
        status: int,
        headers: Optional[Mapping[str, str]] = None,
        body: Any = None
    ) -> CatalogError:
        """
        Map a non-success HTTP status to a typed error.

        Args:
            status: HTTP status code
            headers: Response headers, used for rate limit hints
            body: Response text, included in the message

        Returns:
            The error describing the failure
        """
        detail = f": {body}" if body else ""

        if status == 401:
            return AuthenticationError(f"Authentication failed{detail}", status)
        if status == 403:
            return AuthorizationError(f"Access forbidden{detail}", status)
        if status == 429:
            return RateLimitedError(
                f"Rate limit exceeded{detail}",
                retry_after=parse_retry_after(headers),
                status_code=status
            )
        if status == 503:
            return ServiceUnavailableError(f"Service unavailable{detail}", status)
        if status >= 500:
            return ServerError(f"Server error {status}{detail}", status)
        if status >= 400:
            return ClientRequestError(f"Client error {status}{detail}", status_code=status)
        return ServerError(f"Unexpected status {status}{detail}", status)

    def should_retry(self, attempt: int, error_or_status: Union[CatalogError, int]) -> bool:
        """
        Decide whether a failed attempt is re-issued.

        Args:
            attempt: Zero based number of the attempt that just failed
            error_or_status: The typed error or a raw HTTP status code

        Returns:
            True if another attempt should be made
        """
        if isinstance(error_or_status, int):
            error_or_status = self.classify_status(error_or_status)

        if not error_or_status.retryable:
            return False
        return attempt < self.max_retries

    def backoff(self, attempt: int) -> float:
        """Exponential backoff for an attempt, capped at max_delay."""
        return min(self.base_delay * (RATE_LIMIT_BACKOFF_FACTOR ** attempt), self.max_delay)

    def delay_for(self, attempt: int, hint: Optional[float] = None) -> float:
        """
        Compute the wait before the next attempt.

        Args:
            attempt: Zero based number of the attempt that just failed
            hint: Delay requested by the service (Retry-After), if any

        Returns:
            Delay in seconds. Without a hint it never exceeds max_delay;
            a hint is honoured in full and only ever lengthens the wait.
        """
        delay = self.backoff(attempt)
        if hint is not None:
            return max(hint, delay)

        if self.jitter and delay > 0:
            delay = random.uniform(delay / 2, delay)
        return delay
