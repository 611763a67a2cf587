"""
Base fetcher class providing the request pipeline for all catalog clients.

Every listing goes through the same steps:
1. Look up the request fingerprint in the cache
2. Join an in-flight fetch for the same fingerprint, or start one
3. Take a rate limiter slot and a bearer token
4. Issue the request, retrying transient failures per the retry policy
5. Parse and shape the body, store it in the cache, hand it to every waiter
"""

import asyncio
import functools
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional
from urllib.parse import quote

import requests

from ..errors import CatalogError, ParseError
from .constants import (
    ARM_BASE_URL,
    LIST_FIELD,
    REQUEST_TIMEOUT,
    DEFAULT_CACHE_MAXSIZE,
    DEFAULT_MAX_REQUESTS_PER_WINDOW,
    DEFAULT_WINDOW_SECONDS,
    DEFAULT_RETRY_COUNT,
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_DELAY,
    DEFAULT_FAILURE_THRESHOLD,
    DEFAULT_RESET_TIMEOUT,
)
from .cache_manager import CacheManager
from .circuit_breaker import CircuitBreaker
from .http_client import HttpClientManager
from .rate_limiter import SlidingWindowRateLimiter
from .retry_policy import RetryPolicy
from .token_provider import TokenProvider, acquire_token

logger = logging.getLogger(__name__)

# Longest response excerpt carried in error messages
MAX_ERROR_BODY = 200


def extract_list(body: Any, field: str = LIST_FIELD) -> List[Any]:
    """
    Pull the record list out of a list response.

    ARM wraps lists as ``{"value": [...]}``; a bare JSON array is accepted
    as well.

    Raises:
        ParseError: If no list is found
    """
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get(field), list):
        return body[field]
    raise ParseError(
        f"Invalid response format: expected a '{field}' list, "
        f"got {str(body)[:MAX_ERROR_BODY]}"
    )


def extract_names(records: List[Any]) -> List[str]:
    """Names of all records that carry a string name, in response order."""
    names = []
    for record in records:
        name = record.get('name') if isinstance(record, dict) else None
        if isinstance(name, str) and name:
            names.append(name)
        else:
            logger.debug("Skipping record without a name: %r", record)
    return names


class BaseFetcher(ABC):
    """
    Base class for the catalog clients.

    Provides unified:
    - Caching with per-kind TTL and scoped invalidation
    - At most one in-flight fetch per cache key
    - Sliding window rate limiting
    - Retry with backoff and a circuit breaker
    - Token handling and error classification

    Subclasses need to implement:
    - get_provider_id(): identifier used in log messages

    All state is owned by the instance. Two clients never share a cache,
    a rate limit window or in-flight fetches unless they are handed the
    same managers explicitly.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        token_provider: TokenProvider,
        cache_manager: Optional[CacheManager] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        http_client: Optional[HttpClientManager] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        base_url: str = ARM_BASE_URL,
        request_timeout: float = REQUEST_TIMEOUT
    ):
        """
        Initialize base fetcher.

        Args:
            token_provider: Supplier of bearer tokens
            cache_manager: Cache instance (a private one if None)
            rate_limiter: Limiter instance (a private one if None)
            retry_policy: Retry policy (defaults if None)
            http_client: HTTP client (a private one if None)
            circuit_breaker: Circuit breaker (a private one if None)
            base_url: Management API base URL
            request_timeout: Per-request timeout in seconds
        """
        self.token_provider = token_provider
        self.cache_manager = cache_manager or CacheManager()
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter()
        self.retry_policy = retry_policy or RetryPolicy()
        self.http_client = http_client or HttpClientManager(timeout=request_timeout)
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.base_url = base_url.rstrip('/')
        self.request_timeout = request_timeout
        self._inflight: Dict[str, asyncio.Future] = {}

        logger.info("Initialized %s client (base url: %s, timeout: %ss)",
                    self.get_provider_id(), self.base_url, request_timeout)

    @staticmethod
    def infrastructure_from_config(config: Optional[dict]) -> Dict[str, Any]:
        """
        Build the infrastructure keyword arguments from a configuration section.

        Recognized keys: request_timeout, cache.maxsize,
        rate_limit.{max_requests, window_seconds},
        retry.{max_retries, base_delay, max_delay, jitter},
        circuit_breaker.{failure_threshold, reset_timeout}.
        Missing keys fall back to the defaults in constants.

        Returns:
            Keyword arguments for BaseFetcher.__init__
        """
        config = config or {}
        cache_config = config.get('cache') or {}
        rate_config = config.get('rate_limit') or {}
        retry_config = config.get('retry') or {}
        breaker_config = config.get('circuit_breaker') or {}
        request_timeout = float(config.get('request_timeout', REQUEST_TIMEOUT))

        return {
            'cache_manager': CacheManager(
                maxsize=int(cache_config.get('maxsize', DEFAULT_CACHE_MAXSIZE))
            ),
            'rate_limiter': SlidingWindowRateLimiter(
                max_requests_per_window=int(
                    rate_config.get('max_requests', DEFAULT_MAX_REQUESTS_PER_WINDOW)),
                window_seconds=float(rate_config.get('window_seconds', DEFAULT_WINDOW_SECONDS))
            ),
            'retry_policy': RetryPolicy(
                max_retries=int(retry_config.get('max_retries', DEFAULT_RETRY_COUNT)),
                base_delay=float(retry_config.get('base_delay', DEFAULT_BASE_DELAY)),
                max_delay=float(retry_config.get('max_delay', DEFAULT_MAX_DELAY)),
                jitter=bool(retry_config.get('jitter', True))
            ),
            'circuit_breaker': CircuitBreaker(
                failure_threshold=int(
                    breaker_config.get('failure_threshold', DEFAULT_FAILURE_THRESHOLD)),
                reset_timeout=float(breaker_config.get('reset_timeout', DEFAULT_RESET_TIMEOUT))
            ),
            'request_timeout': request_timeout,
        }

    @abstractmethod
    def get_provider_id(self) -> str:
        """Return identifier for this client."""

    def build_url(self, *segments: str) -> str:
        """Join quoted path segments onto the base URL."""
        return self.base_url + ''.join('/' + quote(segment, safe='') for segment in segments)

    async def fetch_cached(
        self,
        key: str,
        ttl: float,
        fetch: Callable[[], Awaitable[Any]]
    ) -> Any:
        """
        Return the cached value for key, or fetch and cache it.

        Concurrent callers for the same key share one fetch. A caller that is
        cancelled while waiting does not cancel the fetch; it completes and
        fills the cache for everyone else.

        Args:
            key: Cache key of the logical request
            ttl: TTL for a freshly fetched value
            fetch: Coroutine function producing the value

        Returns:
            Cached or freshly fetched value
        """
        provider_id = self.get_provider_id()

        cached = self.cache_manager.get(key)
        if cached is not None:
            logger.debug("[%s] Using cached data for %s", provider_id, key)
            return cached

        task = self._inflight.get(key)
        if task is None or task.done():
            logger.debug("[%s] Cache miss for %s, fetching new data", provider_id, key)
            task = asyncio.ensure_future(self._fetch_and_store(key, ttl, fetch))
            self._inflight[key] = task
            task.add_done_callback(functools.partial(self._on_fetch_done, key))
        else:
            logger.debug("[%s] Joining in-flight fetch for %s", provider_id, key)

        return await asyncio.shield(task)

    async def _fetch_and_store(self, key: str, ttl: float,
                               fetch: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await fetch()
            self.cache_manager.set(key, value, ttl)
            return value
        finally:
            # Leave the in-flight map before the task completes, so no caller
            # can join a finished fetch
            if self._inflight.get(key) is asyncio.current_task():
                del self._inflight[key]

    def _on_fetch_done(self, key: str, task: asyncio.Future) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if task.cancelled():
            return
        # Retrieve the outcome so an error nobody waited for is still logged
        error = task.exception()
        if error is not None:
            logger.debug("[%s] Fetch for %s failed: %s", self.get_provider_id(), key, error)

    def inflight_count(self) -> int:
        """Number of fetches currently on their way."""
        return len(self._inflight)

    async def request_json(self, url: str, params: Optional[Mapping[str, str]] = None) -> Any:
        """
        Issue a GET with rate limiting, authentication and retries.

        Each attempt takes its own rate limiter slot and a fresh token.

        Args:
            url: URL to request
            params: Query parameters (api-version)

        Returns:
            Decoded JSON body

        Raises:
            TokenAcquisitionError: If no token could be obtained
            CatalogError: Typed error for the terminal failure
        """
        provider_id = self.get_provider_id()
        self.circuit_breaker.before_request()

        attempt = 0
        while True:
            await self.rate_limiter.acquire()
            token = await acquire_token(self.token_provider)

            try:
                response = await self.http_client.get(url, token, params,
                                                      timeout=self.request_timeout)
                if not 200 <= response.status_code < 300:
                    raise self.retry_policy.classify_status(
                        response.status_code,
                        response.headers,
                        self._response_excerpt(response)
                    )
                body = self._decode(response)
            except CatalogError as error:
                if self.retry_policy.should_retry(attempt, error):
                    delay = self.retry_policy.delay_for(
                        attempt, getattr(error, 'retry_after', None)
                    )
                    logger.warning(
                        "[%s] Attempt %d failed (%s), retrying in %.2fs",
                        provider_id, attempt + 1, error, delay
                    )
                    await asyncio.sleep(delay)
                    attempt += 1
                    continue

                if error.retryable:
                    error.mark_exhausted(attempt + 1)
                    logger.error("[%s] Giving up after %d attempts: %s",
                                 provider_id, attempt + 1, error)
                else:
                    logger.error("[%s] Request failed: %s", provider_id, error)
                self.circuit_breaker.record_failure(error)
                raise

            self.circuit_breaker.record_success()
            return body

    @staticmethod
    def _response_excerpt(response: requests.Response) -> str:
        try:
            return (response.text or '')[:MAX_ERROR_BODY]
        except (AttributeError, ValueError):
            return ''

    @staticmethod
    def _decode(response: requests.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(f"Response body is not valid JSON: {e}",
                             response.status_code) from e

    def clear_cache(self) -> None:
        """Drop every cached listing of this client."""
        self.cache_manager.clear()

    def get_stats(self) -> Dict[str, Any]:
        """Statistics of all infrastructure pieces."""
        return {
            'provider_id': self.get_provider_id(),
            'cache': self.cache_manager.get_stats(),
            'rate_limiter': self.rate_limiter.get_stats(),
            'http': self.http_client.get_stats(),
            'circuit_breaker': self.circuit_breaker.get_stats(),
            'inflight': self.inflight_count(),
        }

    def close(self) -> None:
        """Release the HTTP session."""
        self.http_client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()
