# Hey future me - artworks ingested before the meta_source column existed have it NULL,
# which breaks "rescan this artwork" from the UI (it needs to know where the sidecar is).
# This one-off backfill derives the sidecar location from the artwork's first image:
#   images.path "/alice/123_p0.jpg"  →  check "<root>/alice/123-meta.txt"  →  meta_source
# Artworks whose sidecar is gone are left NULL and skipped on the next page (keyset on id),
# so re-running it is harmless.
"""Backfill of artworks.meta_source from stored image paths."""

import asyncio
import logging
from pathlib import Path
from typing import Any

from artshelf.application.services.scan_context import maybe_await
from artshelf.domain.entities import CancelCheck, ProgressCallback, ScanPhase, ScanProgress
from artshelf.domain.exceptions import ScanCancelledException, ValidationException
from artshelf.domain.value_objects.library_paths import relative_dir_of_image_path
from artshelf.domain.value_objects.sidecar_metadata import metadata_filename_for
from artshelf.infrastructure.persistence.database import Database
from artshelf.infrastructure.persistence.repositories import (
    ArtworkRepository,
    ImageRepository,
)
from artshelf.infrastructure.persistence.retry import with_db_retry

logger = logging.getLogger(__name__)


class MetaSourceRefillService:
    """Fills artworks.meta_source for artworks ingested without it."""

    BATCH_SIZE = 50

    def __init__(self, db: Database, batch_size: int = BATCH_SIZE) -> None:
        """Initialize refill service.

        Args:
            db: Database instance
            batch_size: Artworks per page/transaction
        """
        self.db = db
        self.batch_size = batch_size

    async def refill(
        self,
        scan_root: Path,
        on_progress: ProgressCallback | None = None,
        check_cancelled: CancelCheck | None = None,
    ) -> dict[str, Any]:
        """Backfill meta_source for every artwork that still lacks it.

        Args:
            scan_root: Library root the stored image paths are relative to
            on_progress: Optional progress callback (sync or async)
            check_cancelled: Optional cancellation predicate, polled per batch

        Returns:
            {"updated_count": int, "total": int}

        Raises:
            ScanCancelledException: When cancelled (result is None, committed batches stay)
        """
        async with self.db.session_scope() as session:
            total = await ArtworkRepository(session).count_missing_meta_source()

        logger.info(f"Refilling meta_source for {total} artworks under {scan_root}")
        updated = 0
        processed = 0
        last_id = 0

        while True:
            if check_cancelled is not None and await maybe_await(check_cancelled()):
                logger.info(f"Meta source refill cancelled after {updated} updates")
                raise ScanCancelledException()

            async with self.db.session_scope() as session:
                page = await ArtworkRepository(session).list_missing_meta_source(
                    after_id=last_id, limit=self.batch_size
                )
                first_paths = await ImageRepository(session).get_first_paths(
                    artwork_id for artwork_id, _ in page
                )
            if not page:
                break
            last_id = page[-1][0]

            found = await asyncio.to_thread(
                self._locate_sidecars, scan_root, page, first_paths
            )
            if found:
                await self._apply(found)
            updated += len(found)
            processed += len(page)

            if on_progress is not None:
                await maybe_await(
                    on_progress(
                        ScanProgress(
                            phase=ScanPhase.SCANNING,
                            message=f"Refilled {updated} of {processed} checked artworks",
                            percentage=round(100.0 * processed / total, 1) if total else 100.0,
                            current=processed,
                            total=total,
                        )
                    )
                )

        logger.info(f"Meta source refill done: {updated}/{total} artworks updated")
        return {"updated_count": updated, "total": total}

    @staticmethod
    def _locate_sidecars(
        scan_root: Path,
        page: list[tuple[int, str]],
        first_paths: dict[int, str],
    ) -> dict[int, str]:
        found: dict[int, str] = {}
        for artwork_id, external_id in page:
            image_path = first_paths.get(artwork_id)
            if image_path is None:
                continue
            try:
                relative_dir = relative_dir_of_image_path(image_path, scan_root)
            except ValidationException:
                logger.warning(f"Ignoring suspicious image path {image_path!r}")
                continue
            meta_source = "/".join(
                part for part in (relative_dir, metadata_filename_for(external_id)) if part
            )
            if (scan_root / meta_source).is_file():
                found[artwork_id] = meta_source
        return found

    @with_db_retry(max_attempts=3)
    async def _apply(self, found: dict[int, str]) -> None:
        async with self.db.session_scope() as session:
            repo = ArtworkRepository(session)
            for artwork_id, meta_source in found.items():
                await repo.set_meta_source(artwork_id, meta_source)
