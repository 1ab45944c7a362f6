"""Domain ports (interfaces) for dependency inversion."""

from artshelf.domain.ports.discovery_provider import IDiscoveryProvider

__all__ = ["IDiscoveryProvider"]
