"""Display models for the VM image catalog."""

from dataclasses import dataclass, field, asdict
from typing import Optional, Tuple


@dataclass(frozen=True)
class Publisher:
    """An image publisher available in one location."""
    name: str
    display_name: str
    location: str

    @classmethod
    def from_name(cls, name: str, location: str) -> 'Publisher':
        # The API has no separate display names for publishers
        return cls(name=name, display_name=name, location=location)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Offer:
    """An offer of one publisher. ``publisher`` is a back-reference by name."""
    name: str
    display_name: str
    publisher: str
    location: str

    @classmethod
    def from_name(cls, name: str, publisher: str, location: str) -> 'Offer':
        return cls(name=name, display_name=name, publisher=publisher, location=location)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SKU:
    """
    An image SKU with its versions.

    ``versions`` is sorted newest first. It is empty when the version
    listing for this SKU failed.
    """
    name: str
    display_name: str
    publisher: str
    offer: str
    location: str
    versions: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        data = asdict(self)
        data['versions'] = list(self.versions)
        return data


@dataclass(frozen=True)
class Subscription:
    subscription_id: str
    display_name: str
    state: str
    tenant_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Location:
    name: str
    display_name: str
    regional_display_name: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ImageReference:
    """The four coordinates that pin a marketplace image."""
    publisher: str
    offer: str
    sku: str
    version: str

    def to_dict(self) -> dict:
        return asdict(self)
