"""
Catalog client for VM marketplace images.

Walks the publisher → offer → SKU → version hierarchy of the compute
management API. All operations are coroutines; results are cached per
request, so browsing back and forth costs no extra requests until the TTL
runs out.
"""

import asyncio
import logging
from typing import Any, List, Optional, Sequence

from ..errors import CatalogError, ClientRequestError, ValidationError
from ..fetching.base_fetcher import BaseFetcher, extract_list, extract_names
from ..fetching.cache_manager import make_cache_key, subscription_scope
from ..fetching.constants import (
    COMPUTE_API_VERSION,
    COMPUTE_PROVIDER,
    DEFAULT_LOCATION,
    FALLBACK_STATUS_CODES,
    KIND_OFFERS,
    KIND_PUBLISHERS,
    KIND_SKUS,
    KIND_VERSIONS,
    OFFERS_CACHE_TTL,
    PUBLISHERS_CACHE_TTL,
    SKUS_CACHE_TTL,
    VERSION_API_FALLBACKS,
    VERSIONS_CACHE_TTL,
)
from ..fetching.token_provider import TokenProvider
from .models import ImageReference, Offer, Publisher, SKU
from .versions import newest_version, sort_versions_desc

logger = logging.getLogger(__name__)


def require(value: Any, field: str, label: str) -> str:
    """
    Check that a required identifier is a non-blank string.

    Raises:
        ValidationError: If it is not
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'{label} is required', field=field)
    return value


class CatalogClient(BaseFetcher):
    """
    Client for the VM image catalog.

    Operations:
    - list_publishers(subscription_id, location)
    - list_offers(subscription_id, publisher, location)
    - list_skus(subscription_id, publisher, offer, location), each SKU with
      its versions loaded concurrently
    - list_versions(subscription_id, publisher, offer, sku, location)
    - clear_cache() / clear_cache_for_subscription(subscription_id)

    A SKU whose version listing fails is still returned, with no versions.
    Its versions are requested again on the next listing.
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        token_provider: TokenProvider,
        default_location: str = DEFAULT_LOCATION,
        publishers_ttl: float = PUBLISHERS_CACHE_TTL,
        offers_ttl: float = OFFERS_CACHE_TTL,
        skus_ttl: float = SKUS_CACHE_TTL,
        versions_ttl: float = VERSIONS_CACHE_TTL,
        version_api_versions: Sequence[str] = VERSION_API_FALLBACKS,
        **kwargs
    ):
        """
        Initialize the catalog client.

        Args:
            token_provider: Supplier of bearer tokens
            default_location: Location used when a call names none
            publishers_ttl: Cache TTL for publisher listings in seconds
            offers_ttl: Cache TTL for offer listings in seconds
            skus_ttl: Cache TTL for SKU listings in seconds
            versions_ttl: Cache TTL for version listings in seconds
            version_api_versions: API versions tried in order for version
                listings when the service rejects one with 400/404
            **kwargs: Infrastructure passed on to BaseFetcher
        """
        if not version_api_versions:
            raise ValueError("version_api_versions must name at least one API version")

        self.default_location = require(default_location, 'default_location', 'Default location')
        self.publishers_ttl = publishers_ttl
        self.offers_ttl = offers_ttl
        self.skus_ttl = skus_ttl
        self.versions_ttl = versions_ttl
        self.version_api_versions = tuple(version_api_versions)
        super().__init__(token_provider, **kwargs)

    @classmethod
    def from_config(cls, config: Optional[dict], token_provider: TokenProvider,
                    **kwargs) -> 'CatalogClient':
        """
        Create a client from the 'catalog' section of the configuration.

        Args:
            config: The 'catalog' section (may be None or empty)
            token_provider: Supplier of bearer tokens
            **kwargs: Shared infrastructure overriding the configured one

        Returns:
            Configured CatalogClient
        """
        config = config or {}
        cache_config = config.get('cache') or {}
        infrastructure = cls.infrastructure_from_config(config)
        infrastructure.update(kwargs)

        return cls(
            token_provider,
            default_location=config.get('location', DEFAULT_LOCATION),
            publishers_ttl=float(cache_config.get('publishers_ttl', PUBLISHERS_CACHE_TTL)),
            offers_ttl=float(cache_config.get('offers_ttl', OFFERS_CACHE_TTL)),
            skus_ttl=float(cache_config.get('skus_ttl', SKUS_CACHE_TTL)),
            versions_ttl=float(cache_config.get('versions_ttl', VERSIONS_CACHE_TTL)),
            **infrastructure
        )

    def get_provider_id(self) -> str:
        return "catalog"

    def _location(self, location: Optional[str]) -> str:
        if location is None or not str(location).strip():
            return self.default_location
        return location

    def _compute_url(self, subscription_id: str, location: str, *segments: str) -> str:
        return self.build_url(
            'subscriptions', subscription_id,
            'providers', COMPUTE_PROVIDER,
            'locations', location,
            *segments
        )

    @staticmethod
    def _params(api_version: str = COMPUTE_API_VERSION) -> dict:
        return {'api-version': api_version}

    async def _list_names(self, url: str) -> tuple:
        body = await self.request_json(url, self._params())
        return tuple(extract_names(extract_list(body)))

    async def list_publishers(
        self,
        subscription_id: str,
        location: Optional[str] = None
    ) -> List[Publisher]:
        """
        Get all VM image publishers of a subscription in one location.

        Args:
            subscription_id: Subscription to query
            location: Azure location, defaults to the client default

        Returns:
            Publishers in service order

        Raises:
            ValidationError: If subscription_id is empty
            CatalogError: If the listing fails
        """
        require(subscription_id, 'subscription_id', 'Subscription ID')
        location = self._location(location)

        key = make_cache_key(KIND_PUBLISHERS, subscription_id, location)
        url = self._compute_url(subscription_id, location, 'publishers')

        async def fetch():
            names = await self._list_names(url)
            return tuple(Publisher.from_name(name, location) for name in names)

        return list(await self.fetch_cached(key, self.publishers_ttl, fetch))

    async def list_offers(
        self,
        subscription_id: str,
        publisher: str,
        location: Optional[str] = None
    ) -> List[Offer]:
        """Get all offers of a publisher."""
        require(subscription_id, 'subscription_id', 'Subscription ID')
        require(publisher, 'publisher', 'Publisher name')
        location = self._location(location)

        key = make_cache_key(KIND_OFFERS, subscription_id, publisher, location)
        url = self._compute_url(subscription_id, location, 'publishers', publisher,
                                'artifacttypes', 'vmimage', 'offers')

        async def fetch():
            names = await self._list_names(url)
            return tuple(Offer.from_name(name, publisher, location) for name in names)

        return list(await self.fetch_cached(key, self.offers_ttl, fetch))

    async def list_skus(
        self,
        subscription_id: str,
        publisher: str,
        offer: str,
        location: Optional[str] = None
    ) -> List[SKU]:
        """
        Get all SKUs of an offer, each with its versions newest first.

        Version listings run concurrently, one per SKU. A failed version
        listing leaves that SKU with no versions instead of failing the call.

        Raises:
            ValidationError: If an identifier is empty
            CatalogError: If the SKU listing itself fails
        """
        require(subscription_id, 'subscription_id', 'Subscription ID')
        require(publisher, 'publisher', 'Publisher name')
        require(offer, 'offer', 'Offer name')
        location = self._location(location)

        key = make_cache_key(KIND_SKUS, subscription_id, publisher, offer, location)
        url = self._compute_url(subscription_id, location, 'publishers', publisher,
                                'artifacttypes', 'vmimage', 'offers', offer, 'skus')

        async def fetch():
            return await self._list_names(url)

        names = await self.fetch_cached(key, self.skus_ttl, fetch)
        version_lists = await asyncio.gather(*(
            self._versions_or_empty(subscription_id, publisher, offer, name, location)
            for name in names
        ))

        return [
            SKU(
                name=name,
                display_name=name,
                publisher=publisher,
                offer=offer,
                location=location,
                versions=tuple(versions)
            )
            for name, versions in zip(names, version_lists)
        ]

    async def _versions_or_empty(self, subscription_id: str, publisher: str,
                                 offer: str, sku: str, location: str) -> List[str]:
        try:
            return await self.list_versions(subscription_id, publisher, offer, sku, location)
        except CatalogError as e:
            logger.warning(
                "[%s] Could not load versions for SKU %s/%s/%s: %s",
                self.get_provider_id(), publisher, offer, sku, e
            )
            return []

    async def list_versions(
        self,
        subscription_id: str,
        publisher: str,
        offer: str,
        sku: str,
        location: Optional[str] = None
    ) -> List[str]:
        """
        Get the image versions of a SKU, newest first.

        The pinned API version is tried first; older API versions are tried
        in turn while the service answers 400 or 404.
        """
        require(subscription_id, 'subscription_id', 'Subscription ID')
        require(publisher, 'publisher', 'Publisher name')
        require(offer, 'offer', 'Offer name')
        require(sku, 'sku', 'SKU name')
        location = self._location(location)

        key = make_cache_key(KIND_VERSIONS, subscription_id, publisher, offer, sku, location)
        url = self._compute_url(subscription_id, location, 'publishers', publisher,
                                'artifacttypes', 'vmimage', 'offers', offer,
                                'skus', sku, 'versions')

        async def fetch():
            last_error: Optional[ClientRequestError] = None
            for api_version in self.version_api_versions:
                try:
                    body = await self.request_json(url, self._params(api_version))
                except ClientRequestError as e:
                    if e.status_code not in FALLBACK_STATUS_CODES:
                        raise
                    logger.info("[%s] API version %s rejected for %s (HTTP %s)",
                                self.get_provider_id(), api_version, sku, e.status_code)
                    last_error = e
                    continue
                return tuple(sort_versions_desc(extract_names(extract_list(body))))
            raise last_error

        return list(await self.fetch_cached(key, self.versions_ttl, fetch))

    async def get_image_reference(
        self,
        subscription_id: str,
        publisher: str,
        offer: str,
        sku: str,
        version: Optional[str] = None,
        location: Optional[str] = None
    ) -> ImageReference:
        """
        Build the image reference for a SKU.

        Without a version the newest listed version is used.

        Raises:
            ValidationError: If an identifier is empty or the SKU lists no versions
        """
        require(subscription_id, 'subscription_id', 'Subscription ID')
        require(publisher, 'publisher', 'Publisher name')
        require(offer, 'offer', 'Offer name')
        require(sku, 'sku', 'SKU name')

        if version is None:
            versions = await self.list_versions(subscription_id, publisher, offer, sku, location)
            try:
                version = newest_version(versions)
            except ValueError as e:
                raise ValidationError(f'SKU {sku} has no versions', field='version') from e
        else:
            require(version, 'version', 'Version')

        return ImageReference(publisher=publisher, offer=offer, sku=sku, version=version)

    def clear_cache_for_subscription(self, subscription_id: str) -> int:
        """
        Drop every cached listing of one subscription.

        Returns:
            Number of removed entries
        """
        require(subscription_id, 'subscription_id', 'Subscription ID')
        removed = self.cache_manager.invalidate_by_prefix(subscription_scope(subscription_id))
        logger.info("[%s] Cleared %d cached listings for subscription %s",
                    self.get_provider_id(), removed, subscription_id)
        return removed
