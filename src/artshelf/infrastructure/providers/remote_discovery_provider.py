"""Remote scanner delegate for sidecar discovery.

Hey future me - on NAS setups the library lives on a slow network share and a full
directory walk takes minutes. A small scanner service next to the disks keeps the file
list cached and answers GET /metadata-files with a JSON array of ROOT-RELATIVE paths:

    ["alice/123-meta.txt", "/bob/456-meta.txt", ...]

We resolve those against our own scan root (same share, different mount point). If the
service is down we retry with capped exponential backoff and then fall back to walking
the filesystem ourselves, a scan never fails just because the delegate is gone.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any

import httpx

from artshelf.domain.exceptions import RemoteDiscoveryError, ScanRootNotFoundException
from artshelf.domain.ports import IDiscoveryProvider

logger = logging.getLogger(__name__)


class RemoteDiscoveryProvider(IDiscoveryProvider):
    """Discovery via the remote scanner service with local fallback."""

    METADATA_FILES_ENDPOINT = "/metadata-files"

    def __init__(
        self,
        base_url: str,
        fallback: IDiscoveryProvider,
        timeout: float = 30.0,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        max_delay: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize provider.

        Args:
            base_url: Remote scanner base URL, e.g. "http://localhost:3000"
            fallback: Provider used once all remote attempts failed
            timeout: Per-request timeout in seconds
            max_attempts: Attempts before falling back
            initial_delay: Delay after the first failure; doubles per attempt
            max_delay: Cap for the backoff delay
            client: Optional shared client (tests inject one)
        """
        self.base_url = base_url.rstrip("/")
        self.fallback = fallback
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self._client = client

    @property
    def provider_name(self) -> str:
        return "remote"

    def _backoff_delay(self, attempt: int) -> float:
        """Delay after the given failed attempt: 1s, 2s, 4s... capped."""
        return min(self.initial_delay * (2 ** (attempt - 1)), self.max_delay)

    async def discover(self, root: Path) -> list[Path]:
        """Ask the remote scanner, fall back to the local walk on failure."""
        if not root.is_dir():
            raise ScanRootNotFoundException(root)

        try:
            relative_paths = await self.fetch_relative_paths()
        except RemoteDiscoveryError as e:
            logger.error(
                f"Remote scanner unavailable after {e.attempts} attempts, "
                f"falling back to {self.fallback.provider_name} discovery: {e.message}"
            )
            return await self.fallback.discover(root)

        paths = self._resolve_against_root(root.resolve(), relative_paths)
        logger.info(
            f"Remote scanner returned {len(relative_paths)} paths, "
            f"{len(paths)} usable under {root}"
        )
        return paths

    async def fetch_relative_paths(self) -> list[str]:
        """Fetch the raw path list, retrying with backoff.

        Returns:
            Root-relative paths as returned by the service

        Raises:
            RemoteDiscoveryError: When every attempt failed
        """
        url = f"{self.base_url}{self.METADATA_FILES_ENDPOINT}"
        last_error = "no attempt made"

        for attempt in range(1, self.max_attempts + 1):
            try:
                logger.info(
                    f"Calling remote scanner service (attempt {attempt}/{self.max_attempts}): {url}"
                )
                data = await self._get_json(url)
                if not isinstance(data, list) or not all(
                    isinstance(item, str) for item in data
                ):
                    raise ValueError("Remote scanner service returned invalid data format")
                return data
            except (httpx.HTTPError, ValueError) as e:
                last_error = str(e) or e.__class__.__name__
                logger.warning(
                    f"Remote scanner attempt {attempt}/{self.max_attempts} failed: {last_error}"
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self._backoff_delay(attempt))

        raise RemoteDiscoveryError(last_error, attempts=self.max_attempts)

    async def _get_json(self, url: str) -> Any:
        if self._client is not None:
            response = await self._client.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(url, headers={"Accept": "application/json"})
            response.raise_for_status()
            return response.json()

    def _resolve_against_root(self, root: Path, relative_paths: list[str]) -> list[Path]:
        resolved: list[Path] = []
        for raw in relative_paths:
            clean = raw.replace("\\", "/").lstrip("/")
            if not clean:
                continue
            candidate = Path(os.path.normpath(root / clean))
            if not candidate.is_relative_to(root):
                logger.warning(f"Ignoring remote path outside scan root: {raw}")
                continue
            resolved.append(candidate)
        return resolved
