"""Shared fixtures for the vmcatalog tests.

The management API is replaced by FakeSession, a stand-in for
requests.Session that routes GET requests by URL suffix to canned responses
and records every call so tests can count network requests.
"""

import threading
import time
from unittest.mock import Mock

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from vmcatalog.catalog import CatalogClient, SubscriptionClient
from vmcatalog.fetching import (
    CacheManager,
    CircuitBreaker,
    HttpClientManager,
    RetryPolicy,
    SlidingWindowRateLimiter,
    StaticTokenProvider,
)


def make_response(status=200, body=None, headers=None, text=None):
    """Build a Mock that quacks like requests.Response."""
    response = Mock(spec=requests.Response)
    response.status_code = status
    response.ok = status < 400
    response.headers = CaseInsensitiveDict(headers or {})
    response.text = text if text is not None else ('' if body is None else str(body))
    if body is None:
        response.json.side_effect = ValueError("No JSON body")
    else:
        response.json.return_value = body
    return response


def names(*values):
    """ARM list body with one record per name."""
    return {'value': [{'name': value} for value in values]}


class FakeSession:
    """
    Minimal requests.Session replacement.

    routes maps a URL path suffix to a response, an exception instance, or a
    list of those consumed one per call (the last one repeats). The longest
    matching suffix wins.
    """

    def __init__(self, routes=None, delay=0.0):
        self.routes = dict(routes or {})
        self.delay = delay
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def get(self, url, headers=None, params=None, timeout=None):
        with self._lock:
            self.calls.append({'url': url, 'headers': headers,
                               'params': params, 'timeout': timeout})
            outcome = self._next_outcome(url)
        if self.delay:
            time.sleep(self.delay)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def _next_outcome(self, url):
        path = url.split('?', 1)[0]
        for suffix in sorted(self.routes, key=len, reverse=True):
            if path.endswith(suffix):
                outcome = self.routes[suffix]
                if isinstance(outcome, list):
                    return outcome.pop(0) if len(outcome) > 1 else outcome[0]
                return outcome
        return make_response(404, text=f'No route for {path}')

    def count(self, suffix=''):
        """Number of calls whose URL path ends with suffix."""
        return sum(1 for call in self.calls if call['url'].endswith(suffix))

    def close(self):
        self.closed = True


@pytest.fixture
def response():
    return make_response


@pytest.fixture
def listing():
    return names


@pytest.fixture
def fake_session():
    return FakeSession


def build_infrastructure(session, max_retries=3, max_requests=100, window_seconds=60.0,
                         failure_threshold=50, token='test-token'):
    return {
        'token_provider': StaticTokenProvider(token),
        'cache_manager': CacheManager(),
        'rate_limiter': SlidingWindowRateLimiter(max_requests, window_seconds),
        'retry_policy': RetryPolicy(max_retries=max_retries, base_delay=0.01,
                                    max_delay=0.05, jitter=False),
        'http_client': HttpClientManager(session=session, timeout=5),
        'circuit_breaker': CircuitBreaker(failure_threshold=failure_threshold),
        'request_timeout': 5,
    }


@pytest.fixture
def make_catalog_client():
    """Factory building a CatalogClient on top of a FakeSession."""
    def _make(session, **kwargs):
        infrastructure = build_infrastructure(
            session,
            **{key: kwargs.pop(key) for key in list(kwargs)
               if key in ('max_retries', 'max_requests', 'window_seconds',
                          'failure_threshold', 'token')}
        )
        infrastructure.update(kwargs)
        token_provider = infrastructure.pop('token_provider')
        return CatalogClient(token_provider, **infrastructure)
    return _make


@pytest.fixture
def make_subscription_client():
    """Factory building a SubscriptionClient on top of a FakeSession."""
    def _make(session, **kwargs):
        infrastructure = build_infrastructure(session)
        infrastructure.update(kwargs)
        token_provider = infrastructure.pop('token_provider')
        return SubscriptionClient(token_provider, **infrastructure)
    return _make
