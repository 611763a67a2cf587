"""
HTTP client manager for the management API.

This module wraps a requests session with the patterns every catalog call
shares: bearer authentication, a bounded timeout, transport error mapping
and request metrics. The blocking session call runs in a worker thread so
the event loop keeps serving other callers while a request is on the wire.
"""

import asyncio
import time
import requests
from typing import Any, Dict, Mapping, Optional
import logging

from ..errors import NetworkError
from .constants import REQUEST_TIMEOUT

logger = logging.getLogger(__name__)


class HttpClientManager:
    """
    Centralized HTTP client for the catalog clients.

    Features:
    - Bounded per-request timeout
    - Authorization header handling
    - Transport failures (connection reset, timeout) become NetworkError
    - Request logging and metrics
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self._stats = {
            'requests_made': 0,
            'requests_failed': 0,
            'rate_limits_hit': 0,
        }

    def _get_blocking(
        self,
        url: str,
        token: str,
        params: Optional[Mapping[str, str]],
        timeout: float
    ) -> requests.Response:
        headers = {
            'Authorization': f'Bearer {token}',
            'Content-Type': 'application/json',
        }
        return self.session.get(url, headers=headers, params=params, timeout=timeout)

    async def get(
        self,
        url: str,
        token: str,
        params: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None
    ) -> requests.Response:
        """
        Make an authenticated GET request.

        Non-success statuses are returned, not raised; classifying them is
        the retry policy's job.

        Args:
            url: URL to request
            token: Bearer token
            params: Query parameters
            timeout: Custom timeout (uses the client default if None)

        Returns:
            Response object

        Raises:
            NetworkError: If the request could not be completed
        """
        if timeout is None:
            timeout = self.timeout

        start_time = time.monotonic()
        try:
            logger.debug("Making GET request to %s (timeout: %ss)", url, timeout)
            response = await asyncio.to_thread(self._get_blocking, url, token, params, timeout)
        except requests.exceptions.Timeout as e:
            self._stats['requests_failed'] += 1
            logger.warning("Request to %s timed out after %.2fs", url,
                           time.monotonic() - start_time)
            raise NetworkError(f"Request timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            self._stats['requests_failed'] += 1
            logger.warning("Request to %s failed after %.2fs: %s", url,
                           time.monotonic() - start_time, e)
            raise NetworkError(f"Request failed: {e}") from e

        self._stats['requests_made'] += 1
        if response.status_code == 429:
            self._stats['rate_limits_hit'] += 1
        logger.debug("Request completed in %.2fs (status: %s)",
                     time.monotonic() - start_time, response.status_code)
        return response

    def close(self):
        """Close the underlying session."""
        self.session.close()

    def get_stats(self) -> Dict[str, Any]:
        """Get HTTP client statistics."""
        return dict(self._stats)
