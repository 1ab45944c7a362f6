# Hey future me - this is the ingestion pipeline's front door! It crawls the library root for
# "<id>-meta.txt" sidecars, parses them, finds each artwork's media pages and writes
# artists/artworks/images/tags in batches.
# Key features:
# 1. STREAMING - discovery once up front, then parse+ingest batch by batch (memory = one batch)
# 2. INCREMENTAL by default - artworks whose external id is already stored are skipped
# 3. FORCE mode - wipes all artwork data first (app settings survive) and ingests everything
# 4. COOPERATIVE CANCEL - polled before discovery and at every batch boundary
# 5. TARGETED RESCAN - re-ingest one artwork in place after the user fixed its files
"""Library scanner service for ingesting sidecar-described artworks into the database."""

import asyncio
import contextvars
import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from artshelf.application.services.batch_ingestion_service import (
    BatchIngestionService,
    artwork_values,
    image_rows,
)
from artshelf.application.services.entity_resolver_service import (
    EntityResolverService,
)
from artshelf.application.services.media_collector_service import hydrate_artwork
from artshelf.application.services.metadata_discovery_service import (
    MetadataDiscoveryService,
)
from artshelf.application.services.scan_context import ScanContext
from artshelf.config import Settings
from artshelf.domain.entities import (
    HydratedArtwork,
    MetadataCandidate,
    ScanOptions,
    ScanPhase,
    ScanResult,
)
from artshelf.domain.exceptions import (
    DomainException,
    EntityNotFoundException,
    ScanCancelledException,
    ScanRootNotFoundException,
    SidecarNotFoundException,
    SidecarParseException,
    ValidationException,
)
from artshelf.domain.ports import IDiscoveryProvider
from artshelf.domain.value_objects.library_paths import (
    normalize_relative_dir,
    relative_dir_of_image_path,
)
from artshelf.domain.value_objects.sidecar_metadata import (
    ParseFailure,
    ParseFailureKind,
    metadata_filename_for,
)
from artshelf.infrastructure.observability.logging import set_correlation_id
from artshelf.infrastructure.persistence.database import Database
from artshelf.infrastructure.persistence.repositories import (
    AppSettingsRepository,
    ArtworkRepository,
    ImageRepository,
    reset_library,
)
from artshelf.infrastructure.persistence.retry import with_db_retry
from artshelf.infrastructure.providers import create_discovery_provider

logger = logging.getLogger(__name__)

# Progress bands per phase (percent)
COUNTING_START = 0.0
DISCOVERY_START = 10.0
SCANNING_START = 20.0
SCANNING_SPAN = 70.0
COMPLETE = 100.0


class LibraryScannerService:
    """Service for scanning the artwork library and ingesting it into the database.

    Hey future me - the service itself is stateless between runs. Everything a run needs
    (caches, counters, callbacks) lives in a ScanContext created per call, so the same
    instance can run scan() today and rescan_artwork() tomorrow without leaking state.
    It does NOT guard against two concurrent runs, that's LibraryScanWorker's job.
    """

    def __init__(
        self,
        db: Database,
        settings: Settings,
        discovery_provider: IDiscoveryProvider | None = None,
    ) -> None:
        """Initialize scanner service.

        Args:
            db: Database instance for creating sessions
            settings: Application settings (scanner tuning, fallback scan path)
            discovery_provider: Override the provider chosen from settings
        """
        self.db = db
        self.settings = settings
        provider = discovery_provider or create_discovery_provider(settings)
        self.discovery = MetadataDiscoveryService(db, provider)
        self.resolver = EntityResolverService(db)
        self.ingestion = BatchIngestionService(
            db, transaction_timeout=settings.scanner.transaction_timeout
        )
        self.batch_size = settings.scanner.effective_batch_size
        self.max_workers = settings.scanner.max_workers

    # =========================================================================
    # SCAN ROOT
    # =========================================================================

    async def get_scan_root(self, override: Path | None = None) -> Path:
        """Resolve the scan root: explicit override, persisted setting, configured default."""
        if override is not None:
            return Path(override).expanduser().resolve()

        async with self.db.session_scope() as session:
            stored = await AppSettingsRepository(session).get_value(
                AppSettingsRepository.SCAN_PATH_KEY
            )
        if stored:
            return Path(stored).expanduser().resolve()
        return Path(self.settings.storage.scan_path).expanduser().resolve()

    @with_db_retry(max_attempts=3)
    async def save_scan_root(self, path: Path) -> None:
        """Persist the scan root chosen by the user."""
        async with self.db.session_scope() as session:
            await AppSettingsRepository(session).set_value(
                AppSettingsRepository.SCAN_PATH_KEY, str(Path(path).expanduser())
            )

    # =========================================================================
    # FULL / INCREMENTAL SCAN
    # =========================================================================

    async def scan(self, options: ScanOptions | None = None) -> ScanResult:
        """Scan the library and ingest new artworks.

        This is the MAIN entry point! Call it from LibraryScanWorker or the scan script.

        Args:
            options: Run options (force mode, callbacks, explicit path list)

        Returns:
            ScanResult with counters and per-item errors. Fatal problems (missing root,
            unreachable database) are appended to errors, not raised.

        Raises:
            ScanCancelledException: When the cancel predicate fired; carries the partial result
        """
        options = options or ScanOptions()
        run_id = set_correlation_id(prefix="scan-")
        ctx = ScanContext(options=options, scan_root=Path("."))

        try:
            ctx.scan_root = await self.get_scan_root(options.scan_path)
            logger.info(
                f"Starting library scan {run_id} at {ctx.scan_root} "
                f"(force_update={options.force_update}, batch_size={self.batch_size})"
            )
            if not ctx.scan_root.is_dir():
                raise ScanRootNotFoundException(ctx.scan_root)

            if options.force_update:
                await self._reset_library(ctx)

            await ctx.raise_if_cancelled()
            await ctx.emit(
                ScanPhase.DISCOVERING, "Discovering metadata files", DISCOVERY_START
            )
            candidates = await self.discovery.discover(ctx)

            await ctx.emit(
                ScanPhase.SCANNING,
                f"Found {len(candidates)} artworks to process",
                SCANNING_START,
                current=0,
                total=len(candidates),
            )
            await self._process_candidates(ctx, candidates)

            await ctx.emit(
                ScanPhase.COMPLETE,
                "Scan complete",
                COMPLETE,
                current=len(candidates),
                total=len(candidates),
            )

        except ScanCancelledException:
            logger.info(f"Library scan {run_id} cancelled: {ctx.result.to_dict()}")
            raise
        except DomainException as e:
            logger.error(f"Library scan {run_id} failed: {e.message}")
            ctx.result.add_error(e.message)
        except Exception as e:
            logger.error(f"Library scan {run_id} failed: {e}", exc_info=True)
            ctx.result.add_error(f"Scan failed: {e}")

        result = ctx.finish()
        logger.info(
            f"Library scan {run_id} finished in {result.processing_time_ms}ms: "
            f"{result.new_artworks} new artworks, {result.new_images} images, "
            f"{result.new_artists} artists, {result.new_tags} tags, "
            f"{result.skipped_artworks} skipped, {len(result.errors)} errors"
        )
        return result

    async def _reset_library(self, ctx: ScanContext) -> None:
        await ctx.emit(ScanPhase.COUNTING, "Clearing existing library data", COUNTING_START)
        async with self.db.session_scope() as session:
            ctx.result.removed_artworks = await ArtworkRepository(session).count_all()
            await reset_library(session)
        logger.warning(
            f"Force update: removed {ctx.result.removed_artworks} artworks and all "
            "artists, tags and images"
        )
        await ctx.emit(
            ScanPhase.COUNTING,
            f"Removed {ctx.result.removed_artworks} artworks",
            DISCOVERY_START,
        )

    async def _process_candidates(
        self, ctx: ScanContext, candidates: list[MetadataCandidate]
    ) -> None:
        """Hydrate and ingest candidates batch by batch.

        Hey future me - hydration (file reads, directory listings) runs in a thread pool,
        one future per sidecar, gathered per batch so results keep discovery order. DB work
        stays serial on the event loop: resolve artists, resolve tags, ingest. A failing
        batch is reported and skipped, the next one starts with a clean transaction.
        """
        total = len(candidates)
        if total == 0:
            return

        loop = asyncio.get_running_loop()
        processed = 0
        batch_number = 0

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="artshelf-scan"
        ) as executor:
            for start in range(0, total, self.batch_size):
                chunk = candidates[start : start + self.batch_size]
                batch_number += 1

                await ctx.raise_if_cancelled()

                # Parse threads inherit the run's correlation id
                hydrated = await asyncio.gather(
                    *(
                        loop.run_in_executor(
                            executor,
                            contextvars.copy_context().run,
                            hydrate_artwork,
                            candidate.path,
                            candidate.external_id,
                        )
                        for candidate in chunk
                    )
                )
                batch = self._collect_batch(hydrated)

                try:
                    await self._ingest(ctx, batch)
                except Exception as e:
                    message = f"Failed to process batch {batch_number}: {e}"
                    logger.error(message, exc_info=True)
                    ctx.result.add_error(message)

                processed += len(chunk)
                await ctx.emit(
                    ScanPhase.SCANNING,
                    f"Processed {processed}/{total} artworks",
                    SCANNING_START + SCANNING_SPAN * processed / total,
                    current=processed,
                    total=total,
                )

    @staticmethod
    def _collect_batch(
        outcomes: Sequence[HydratedArtwork | ParseFailure],
    ) -> list[HydratedArtwork]:
        batch: list[HydratedArtwork] = []
        for outcome in outcomes:
            if isinstance(outcome, HydratedArtwork):
                batch.append(outcome)
            elif outcome.kind == ParseFailureKind.NOT_FOUND:
                logger.info(f"Metadata file disappeared before parsing: {outcome.path}")
            else:
                logger.warning(f"Skipping {outcome.path}: {outcome.message}")
        return batch

    async def _ingest(self, ctx: ScanContext, batch: list[HydratedArtwork]) -> None:
        if not batch:
            return
        records = [item.record for item in batch]
        await self.resolver.resolve_tags(ctx, records)
        await self.resolver.resolve_artists(ctx, records)
        await self.ingestion.ingest_batch(ctx, batch)

    # =========================================================================
    # TARGETED RESCAN
    # =========================================================================

    async def rescan_artwork(self, artwork_id: str, relative_dir: str) -> ScanResult:
        """Re-ingest one existing artwork from its directory, in place.

        Updates the artwork's fields, replaces ALL its images and resets image_count.
        Tags are left untouched. Never creates a new artwork row.

        Args:
            artwork_id: External id of the artwork ("123")
            relative_dir: Directory relative to the scan root holding "<id>-meta.txt"

        Returns:
            ScanResult with updated_artworks=1 and new_images = replaced image count

        Raises:
            ValidationException: If relative_dir contains ".."
            SidecarNotFoundException: If the sidecar file is missing
            SidecarParseException: If the sidecar is invalid or has no media
            EntityNotFoundException: If no artwork with this external id is stored
        """
        run_id = set_correlation_id(prefix="rescan-")
        clean_dir = normalize_relative_dir(relative_dir)
        scan_root = await self.get_scan_root()
        ctx = ScanContext(options=ScanOptions(), scan_root=scan_root)

        directory = scan_root / clean_dir if clean_dir else scan_root
        metadata_path = directory / metadata_filename_for(artwork_id)
        logger.info(f"Rescanning artwork {artwork_id} from {metadata_path} ({run_id})")

        if not metadata_path.is_file():
            raise SidecarNotFoundException(artwork_id, directory)

        outcome = await asyncio.to_thread(hydrate_artwork, metadata_path, artwork_id)
        if isinstance(outcome, ParseFailure):
            if outcome.kind == ParseFailureKind.NOT_FOUND:
                raise SidecarNotFoundException(artwork_id, directory)
            raise SidecarParseException(metadata_path, outcome.message)
        if outcome.external_id != artwork_id:
            raise SidecarParseException(
                metadata_path,
                f"ID field {outcome.external_id} does not match artwork {artwork_id}",
            )

        # Existence first: a rescan of an unknown artwork must not create its artist
        async with self.db.session_scope() as session:
            if await ArtworkRepository(session).get_by_external_id(artwork_id) is None:
                raise EntityNotFoundException("Artwork", artwork_id)

        await self.resolver.resolve_artists(ctx, [outcome.record])
        artist_id = ctx.artist_cache[outcome.record.user_id]

        async with self.db.session_scope() as session:
            artwork = await ArtworkRepository(session).get_by_external_id(artwork_id)
            if artwork is None:
                raise EntityNotFoundException("Artwork", artwork_id)

            for column, value in artwork_values(outcome, artist_id, scan_root).items():
                setattr(artwork, column, value)

            image_repo = ImageRepository(session)
            removed = await image_repo.delete_by_artwork(artwork.id)
            new_images = image_rows(outcome.media_files, artwork.id, scan_root)
            await image_repo.insert_ignore(new_images)

        ctx.result.total_artworks = 1
        ctx.result.updated_artworks = 1
        ctx.result.new_images = len(new_images)
        result = ctx.finish()
        logger.info(
            f"Rescanned artwork {artwork_id}: replaced {removed} images with "
            f"{len(new_images)} in {result.processing_time_ms}ms"
        )
        return result

    async def rescan_artwork_by_external_id(self, artwork_id: str) -> ScanResult:
        """Rescan an artwork, locating its directory from its first stored image.

        Raises:
            EntityNotFoundException: If the artwork doesn't exist
            ValidationException: If it has no images to locate the directory from
        """
        async with self.db.session_scope() as session:
            artwork = await ArtworkRepository(session).get_by_external_id(artwork_id)
            if artwork is None:
                raise EntityNotFoundException("Artwork", artwork_id)
            first_paths = await ImageRepository(session).get_first_paths([artwork.id])

        image_path = first_paths.get(artwork.id)
        if image_path is None:
            raise ValidationException(
                f"Artwork {artwork_id} has no images to locate its directory"
            )

        scan_root = await self.get_scan_root()
        relative_dir = relative_dir_of_image_path(image_path, scan_root)
        return await self.rescan_artwork(artwork_id, relative_dir)
