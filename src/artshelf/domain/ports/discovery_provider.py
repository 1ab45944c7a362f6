"""Discovery Provider Port (Interface) for the ingestion pipeline.

This module defines the interface every sidecar discovery strategy implements.
Following Hexagonal Architecture (Ports & Adapters), this is a PORT in the
domain layer. Implementations live in the infrastructure layer:

- LocalDiscoveryProvider walks the filesystem under the scan root
- RemoteDiscoveryProvider asks a remote scanner service for the list

The scanner service only ever sees absolute paths of candidate sidecar files.
Id extraction, incremental filtering and de-duplication happen afterwards in
the application layer, so every provider stays dumb and swappable.
"""

from abc import ABC, abstractmethod
from pathlib import Path


class IDiscoveryProvider(ABC):
    """Interface for sidecar discovery implementations."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return a short name for logs.

        Example:
            return "local"
        """
        pass

    @abstractmethod
    async def discover(self, root: Path) -> list[Path]:
        """List sidecar files below root.

        Args:
            root: Absolute scan root

        Returns:
            Absolute paths of files named "<digits>-meta.txt" (case-insensitive),
            at most max_depth path components below root

        Raises:
            ScanRootNotFoundException: If root is missing or not a directory
        """
        pass
