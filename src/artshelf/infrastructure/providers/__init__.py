"""Discovery provider implementations."""

from artshelf.config import Settings
from artshelf.domain.ports import IDiscoveryProvider

from .local_discovery_provider import LocalDiscoveryProvider
from .remote_discovery_provider import RemoteDiscoveryProvider


def create_discovery_provider(settings: Settings) -> IDiscoveryProvider:
    """Pick the discovery strategy configured in settings.scanner."""
    scanner = settings.scanner
    local = LocalDiscoveryProvider(max_depth=scanner.max_depth)
    if not scanner.use_remote_scanner:
        return local
    return RemoteDiscoveryProvider(
        base_url=scanner.remote_scanner_url,
        fallback=local,
        timeout=scanner.remote_timeout,
        max_attempts=scanner.remote_max_attempts,
        initial_delay=scanner.remote_initial_delay,
        max_delay=scanner.remote_max_delay,
    )


__all__ = [
    "LocalDiscoveryProvider",
    "RemoteDiscoveryProvider",
    "create_discovery_provider",
]
