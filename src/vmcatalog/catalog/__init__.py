"""Catalog Module

This module provides the clients and display models of the VM image catalog:
- CatalogClient: publishers, offers, SKUs and versions
- SubscriptionClient: subscriptions and locations
- image_reference: infrastructure-as-code snippets for an image
"""

from .client import CatalogClient
from .subscriptions import SubscriptionClient
from .models import Publisher, Offer, SKU, Subscription, Location, ImageReference
from .versions import sort_versions_desc, compare_versions

__all__ = [
    'CatalogClient',
    'SubscriptionClient',
    'Publisher',
    'Offer',
    'SKU',
    'Subscription',
    'Location',
    'ImageReference',
    'sort_versions_desc',
    'compare_versions',
]
