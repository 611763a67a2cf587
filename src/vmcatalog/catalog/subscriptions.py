"""
Subscription and location lookups.

These calls feed the catalog client with the identifiers it needs: which
subscriptions the signed-in identity can see, and which locations each of
them offers.
"""

import logging
from typing import List, Optional

from ..errors import ParseError
from ..fetching.base_fetcher import BaseFetcher, extract_list
from ..fetching.cache_manager import make_cache_key
from ..fetching.constants import (
    KIND_LOCATIONS,
    KIND_SUBSCRIPTION,
    KIND_SUBSCRIPTIONS,
    LOCATIONS_API_VERSION,
    SUBSCRIPTIONS_API_VERSION,
    SUBSCRIPTIONS_CACHE_TTL,
)
from ..fetching.token_provider import TokenProvider
from .client import require
from .models import Location, Subscription

logger = logging.getLogger(__name__)


def _subscription_from_record(record) -> Subscription:
    if not isinstance(record, dict) or not record.get('subscriptionId'):
        raise ParseError(f"Invalid subscription record: {str(record)[:200]}")
    return Subscription(
        subscription_id=record['subscriptionId'],
        display_name=record.get('displayName') or record['subscriptionId'],
        state=record.get('state', ''),
        tenant_id=record.get('tenantId'),
    )


class SubscriptionClient(BaseFetcher):
    """Lists subscriptions and their locations through the shared pipeline."""

    def __init__(self, token_provider: TokenProvider,
                 cache_ttl: float = SUBSCRIPTIONS_CACHE_TTL, **kwargs):
        self.cache_ttl = cache_ttl
        super().__init__(token_provider, **kwargs)

    @classmethod
    def from_config(cls, config: Optional[dict], token_provider: TokenProvider,
                    **kwargs) -> 'SubscriptionClient':
        """Create a client from the 'catalog' section of the configuration."""
        config = config or {}
        cache_config = config.get('cache') or {}
        infrastructure = cls.infrastructure_from_config(config)
        infrastructure.update(kwargs)
        return cls(
            token_provider,
            cache_ttl=float(cache_config.get('subscriptions_ttl', SUBSCRIPTIONS_CACHE_TTL)),
            **infrastructure
        )

    def get_provider_id(self) -> str:
        return "subscriptions"

    async def list_subscriptions(self) -> List[Subscription]:
        """Get all subscriptions visible to the current token."""
        # Not scoped to a subscription, so the key starts with an empty component
        key = make_cache_key(KIND_SUBSCRIPTIONS, '')
        url = self.build_url('subscriptions')

        async def fetch():
            body = await self.request_json(url, {'api-version': SUBSCRIPTIONS_API_VERSION})
            return tuple(_subscription_from_record(record) for record in extract_list(body))

        return list(await self.fetch_cached(key, self.cache_ttl, fetch))

    async def get_subscription(self, subscription_id: str) -> Subscription:
        """Get the details of one subscription."""
        require(subscription_id, 'subscription_id', 'Subscription ID')
        key = make_cache_key(KIND_SUBSCRIPTION, subscription_id)
        url = self.build_url('subscriptions', subscription_id)

        async def fetch():
            body = await self.request_json(url, {'api-version': SUBSCRIPTIONS_API_VERSION})
            return _subscription_from_record(body)

        return await self.fetch_cached(key, self.cache_ttl, fetch)

    async def list_locations(self, subscription_id: str) -> List[Location]:
        """Get the locations available to a subscription."""
        require(subscription_id, 'subscription_id', 'Subscription ID')
        key = make_cache_key(KIND_LOCATIONS, subscription_id)
        url = self.build_url('subscriptions', subscription_id, 'locations')

        async def fetch():
            body = await self.request_json(url, {'api-version': LOCATIONS_API_VERSION})
            locations = []
            for record in extract_list(body):
                if not isinstance(record, dict) or not record.get('name'):
                    logger.debug("Skipping location record without a name: %r", record)
                    continue
                locations.append(Location(
                    name=record['name'],
                    display_name=record.get('displayName') or record['name'],
                    regional_display_name=record.get('regionalDisplayName'),
                ))
            return tuple(locations)

        return list(await self.fetch_cached(key, self.cache_ttl, fetch))
