from .__pkginfo__ import __version__

from .catalog import (
    CatalogClient,
    SubscriptionClient,
    Publisher,
    Offer,
    SKU,
    Subscription,
    Location,
    ImageReference,
)
from .errors import CatalogError, ValidationError
from .fetching import StaticTokenProvider, EnvironmentTokenProvider

__all__ = [
    '__version__',
    'CatalogClient',
    'SubscriptionClient',
    'Publisher',
    'Offer',
    'SKU',
    'Subscription',
    'Location',
    'ImageReference',
    'CatalogError',
    'ValidationError',
    'StaticTokenProvider',
    'EnvironmentTokenProvider',
]
