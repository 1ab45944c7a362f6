# Hey future me - discovery is two steps on purpose:
# 1. a provider (local walk / remote delegate) lists candidate sidecar paths - dumb & swappable
# 2. this service turns paths into MetadataCandidates: id extraction, incremental filter,
#    duplicate detection. The caller-supplied path list goes through step 2 as well, so a
#    "scan these 20 files" request behaves exactly like a full scan restricted to them.
"""Turns discovered sidecar paths into ingestion candidates."""

import logging
from datetime import UTC, datetime
from pathlib import Path

from artshelf.application.services.scan_context import ScanContext
from artshelf.domain.entities import MetadataCandidate
from artshelf.domain.ports import IDiscoveryProvider
from artshelf.domain.value_objects.sidecar_metadata import (
    extract_artwork_id_from_filename,
)
from artshelf.infrastructure.persistence.database import Database
from artshelf.infrastructure.persistence.repositories import ArtworkRepository

logger = logging.getLogger(__name__)


class MetadataDiscoveryService:
    """Discovers sidecar files and filters them down to what needs ingesting."""

    def __init__(self, db: Database, provider: IDiscoveryProvider) -> None:
        """Initialize discovery service.

        Args:
            db: Database for the incremental existence check
            provider: Strategy that lists sidecar paths under the scan root
        """
        self.db = db
        self.provider = provider

    async def discover(self, ctx: ScanContext) -> list[MetadataCandidate]:
        """List candidates for this run.

        Uses ctx.options.metadata_relative_paths when non-empty, otherwise the provider.
        Updates ctx.result.total_artworks, skipped_artworks and errors.

        Raises:
            ScanRootNotFoundException: From the provider when the root is missing
        """
        if ctx.options.metadata_relative_paths:
            paths = self.resolve_relative_paths(
                ctx.scan_root, ctx.options.metadata_relative_paths
            )
            logger.info(f"Using {len(paths)} caller-supplied metadata paths")
        else:
            paths = await self.provider.discover(ctx.scan_root)
            logger.info(
                f"{self.provider.provider_name} discovery found {len(paths)} metadata files"
            )

        return await self.filter_candidates(ctx, paths)

    @staticmethod
    def resolve_relative_paths(root: Path, relative_paths: list[str]) -> list[Path]:
        """Resolve root-relative paths (leading "/" optional) to absolute paths."""
        resolved: list[Path] = []
        for raw in relative_paths:
            clean = raw.replace("\\", "/").lstrip("/")
            if not clean or ".." in clean.split("/"):
                logger.warning(f"Ignoring invalid metadata path: {raw!r}")
                continue
            resolved.append(root / clean)
        return resolved

    async def filter_candidates(
        self, ctx: ScanContext, paths: list[Path]
    ) -> list[MetadataCandidate]:
        """Apply id extraction, incremental filtering and de-duplication."""
        now = datetime.now(UTC)
        candidates: list[MetadataCandidate] = []

        for path in paths:
            external_id = extract_artwork_id_from_filename(path.name)
            if external_id is None:
                logger.warning(f"Skipping metadata file without numeric id: {path}")
                continue
            candidates.append(
                MetadataCandidate(path=path, external_id=external_id, discovered_at=now)
            )

        ctx.result.total_artworks = len(candidates)

        if not ctx.options.force_update and candidates:
            async with self.db.session_scope() as session:
                existing = await ArtworkRepository(session).get_existing_external_ids(
                    c.external_id for c in candidates
                )
            if existing:
                before = len(candidates)
                candidates = [c for c in candidates if c.external_id not in existing]
                ctx.result.skipped_artworks = before - len(candidates)
                logger.info(
                    f"Incremental scan: skipping {ctx.result.skipped_artworks} "
                    f"already ingested artworks"
                )

        return self._drop_duplicates(ctx, candidates)

    @staticmethod
    def _drop_duplicates(
        ctx: ScanContext, candidates: list[MetadataCandidate]
    ) -> list[MetadataCandidate]:
        first_seen: dict[str, MetadataCandidate] = {}
        unique: list[MetadataCandidate] = []

        for candidate in candidates:
            kept = first_seen.get(candidate.external_id)
            if kept is None:
                first_seen[candidate.external_id] = candidate
                unique.append(candidate)
                continue
            message = (
                f"Duplicate artworkId found: {candidate.external_id}\n"
                f" {kept.path} \n {candidate.path}"
            )
            ctx.result.add_error(message)
            logger.warning(
                f"Duplicate artwork id {candidate.external_id}: keeping {kept.path}, "
                f"dropping {candidate.path}"
            )

        return unique
