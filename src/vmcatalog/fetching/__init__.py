"""
vmcatalog Fetching Package

This package provides the infrastructure shared by the catalog clients,
including caching, rate limiting, retries, HTTP client management and
token handling.

Components:
- constants: Endpoints, API versions, timeouts, cache durations, etc.
- cache_manager: TTL cache with point and prefix invalidation
- rate_limiter: Async sliding window rate limiter
- retry_policy: Error classification and backoff
- circuit_breaker: Fail fast while the service keeps failing
- http_client: HTTP client with timeout and transport error handling
- token_provider: Bearer token suppliers
- base_fetcher: Request pipeline for all clients
"""

from .constants import (
    ARM_BASE_URL,
    COMPUTE_API_VERSION,
    DEFAULT_LOCATION,
    REQUEST_TIMEOUT,
    DEFAULT_RETRY_COUNT,
)

from .base_fetcher import BaseFetcher
from .cache_manager import CacheManager, CacheEntry, make_cache_key, subscription_scope
from .circuit_breaker import CircuitBreaker, CircuitState
from .http_client import HttpClientManager
from .rate_limiter import SlidingWindowRateLimiter
from .retry_policy import RetryPolicy, parse_retry_after
from .token_provider import (
    TokenProvider,
    StaticTokenProvider,
    EnvironmentTokenProvider,
    acquire_token,
)

__all__ = [
    'ARM_BASE_URL',
    'COMPUTE_API_VERSION',
    'DEFAULT_LOCATION',
    'REQUEST_TIMEOUT',
    'DEFAULT_RETRY_COUNT',
    'BaseFetcher',
    'CacheManager',
    'CacheEntry',
    'make_cache_key',
    'subscription_scope',
    'CircuitBreaker',
    'CircuitState',
    'HttpClientManager',
    'SlidingWindowRateLimiter',
    'RetryPolicy',
    'parse_retry_after',
    'TokenProvider',
    'StaticTokenProvider',
    'EnvironmentTokenProvider',
    'acquire_token',
]
