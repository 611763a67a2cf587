"""Unit tests for fetching.cache_manager module"""

import pytest

from vmcatalog.fetching.cache_manager import (
    CacheManager,
    make_cache_key,
    subscription_scope,
)


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheManager(default_ttl=10, timer=clock)


class TestCacheKeys:
    """Test suite for cache key helpers"""

    def test_keys_are_deterministic(self):
        """Same parameters always produce the same key"""
        first = make_cache_key('offers', 'sub', 'Canonical', 'eastus')
        second = make_cache_key('offers', 'sub', 'Canonical', 'eastus')
        assert first == second
        assert first == 'sub/offers/Canonical/eastus'

    def test_keys_differ_by_kind_and_params(self):
        keys = {
            make_cache_key('publishers', 'sub', 'eastus'),
            make_cache_key('publishers', 'sub', 'westus'),
            make_cache_key('offers', 'sub', 'eastus'),
            make_cache_key('publishers', 'other', 'eastus'),
        }
        assert len(keys) == 4

    def test_separator_in_component_is_quoted(self):
        """A slash inside a component cannot forge another key"""
        assert make_cache_key('skus', 'sub', 'a/b', 'c') != make_cache_key('skus', 'sub', 'a', 'b/c')

    def test_subscription_scope(self):
        key = make_cache_key('publishers', 'sub-1', 'eastus')
        assert key.startswith(subscription_scope('sub-1'))
        assert not key.startswith(subscription_scope('sub'))


class TestCacheManager:
    """Test suite for CacheManager class"""

    def test_get_missing_key(self, cache):
        assert cache.get('missing') is None

    def test_set_and_get(self, cache):
        cache.set('key', ('a', 'b'))
        assert cache.get('key') == ('a', 'b')

    def test_set_replaces_existing_entry(self, cache):
        cache.set('key', 1)
        cache.set('key', 2)
        assert cache.get('key') == 2
        assert len(cache) == 1

    def test_expiry_at_ttl_boundary(self, cache, clock):
        """Entry is valid before expires_at and gone from expires_at on"""
        cache.set('key', 'value')

        clock.advance(9.5)
        assert cache.get('key') == 'value'

        clock.advance(0.5)
        assert cache.get('key') is None

    def test_per_entry_ttl(self, cache, clock):
        cache.set('short', 'value', ttl=1)
        cache.set('long', 'value', ttl=100)

        clock.advance(5)

        assert cache.get('short') is None
        assert cache.get('long') == 'value'

    def test_get_entry_exposes_expiry(self, cache, clock):
        cache.set('key', 'value', ttl=30)
        entry = cache.get_entry('key')
        assert entry.value == 'value'
        assert entry.expires_at == clock.now + 30

    def test_invalidate(self, cache):
        cache.set('key', 'value')
        cache.invalidate('key')
        assert cache.get('key') is None

    def test_invalidate_missing_key(self, cache):
        """Invalidating an unknown key is a no-op"""
        cache.invalidate('missing')
        assert len(cache) == 0

    def test_invalidate_by_prefix(self, cache):
        """Only entries of the given subscription are dropped"""
        cache.set(make_cache_key('publishers', 'sub1', 'eastus'), 'a')
        cache.set(make_cache_key('offers', 'sub1', 'Canonical', 'eastus'), 'b')
        cache.set(make_cache_key('publishers', 'sub10', 'eastus'), 'c')
        cache.set(make_cache_key('publishers', 'sub2', 'eastus'), 'd')

        removed = cache.invalidate_by_prefix(subscription_scope('sub1'))

        assert removed == 2
        assert cache.get(make_cache_key('publishers', 'sub1', 'eastus')) is None
        assert cache.get(make_cache_key('publishers', 'sub10', 'eastus')) == 'c'
        assert cache.get(make_cache_key('publishers', 'sub2', 'eastus')) == 'd'

    def test_invalidate_by_prefix_ignores_expired(self, cache, clock):
        cache.set(make_cache_key('publishers', 'sub1', 'eastus'), 'a', ttl=1)
        clock.advance(2)
        assert cache.invalidate_by_prefix(subscription_scope('sub1')) == 0

    def test_clear(self, cache):
        cache.set('a', 1)
        cache.set('b', 2)
        cache.clear()
        assert len(cache) == 0
        assert cache.get('a') is None

    def test_bounded_size(self, clock):
        cache = CacheManager(default_ttl=10, maxsize=3, timer=clock)
        for i in range(10):
            cache.set(f'key-{i}', i)
        assert len(cache) <= 3
        assert cache.get('key-9') == 9

    def test_stats(self, cache, clock):
        cache.set('key', 'value', ttl=1)
        cache.get('key')
        cache.get('missing')
        clock.advance(2)
        cache.get('key')

        stats = cache.get_stats()

        assert stats['hits'] == 1
        assert stats['misses'] == 2
        assert stats['stores'] == 1
        assert stats['expires'] == 1
        assert stats['cache_size'] == 0
        assert stats['hit_rate'] == pytest.approx(100 / 3)

    def test_reset_stats(self, cache):
        cache.get('missing')
        cache.reset_stats()
        assert cache.get_stats()['misses'] == 0
