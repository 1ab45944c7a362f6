"""Local filesystem discovery of sidecar files."""

import asyncio
import logging
import os
from pathlib import Path

from artshelf.domain.exceptions import ScanRootNotFoundException
from artshelf.domain.ports import IDiscoveryProvider
from artshelf.domain.value_objects.sidecar_metadata import (
    METADATA_FILENAME_SUFFIX,
)

logger = logging.getLogger(__name__)


class LocalDiscoveryProvider(IDiscoveryProvider):
    """Walks the scan root and collects `*-meta.txt` files.

    Hey future me - depth counts path components BELOW root, the file name included:
    with max_depth=4, "a/b/c/123-meta.txt" is found but "a/b/c/d/123-meta.txt" is not.
    Symlinked directories are followed (people symlink whole drives into the library),
    with a visited set on real paths so a link pointing back up can't loop forever.
    """

    def __init__(self, max_depth: int = 4) -> None:
        """Initialize provider.

        Args:
            max_depth: Maximum number of path components below root
        """
        self.max_depth = max_depth

    @property
    def provider_name(self) -> str:
        return "local"

    async def discover(self, root: Path) -> list[Path]:
        """List sidecar files below root (runs the walk in a worker thread)."""
        if not root.is_dir():
            raise ScanRootNotFoundException(root)
        return await asyncio.to_thread(self._walk, root.resolve())

    def _walk(self, root: Path) -> list[Path]:
        found: list[Path] = []
        visited: set[str] = set()
        suffix = METADATA_FILENAME_SUFFIX.lower()

        def on_error(error: OSError) -> None:
            logger.warning(f"Skipping unreadable directory {error.filename}: {error}")

        for dirpath, dirnames, filenames in os.walk(
            root, onerror=on_error, followlinks=True
        ):
            current = Path(dirpath)
            real = os.path.realpath(dirpath)
            if real in visited:
                dirnames[:] = []
                continue
            visited.add(real)

            depth = len(current.relative_to(root).parts)
            # Files here sit at depth + 1; don't descend where children would exceed the limit
            if depth + 1 >= self.max_depth:
                dirnames[:] = []
            if depth + 1 > self.max_depth:
                continue

            for filename in filenames:
                if filename.lower().endswith(suffix):
                    found.append(current / filename)

        found.sort()
        logger.debug(f"Local discovery found {len(found)} sidecar files under {root}")
        return found
