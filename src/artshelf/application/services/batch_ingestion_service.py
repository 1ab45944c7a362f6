"""Batched, transactional ingestion of hydrated artworks."""

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from artshelf.application.services.scan_context import ScanContext
from artshelf.domain.entities import HydratedArtwork, MediaFileRef
from artshelf.domain.value_objects.library_paths import to_image_path, to_meta_source
from artshelf.infrastructure.persistence.database import Database
from artshelf.infrastructure.persistence.repositories import (
    ArtworkRepository,
    ArtworkTagRepository,
    ImageRepository,
)

logger = logging.getLogger(__name__)


def artwork_values(
    item: HydratedArtwork, artist_id: int, scan_root: Path
) -> dict[str, Any]:
    """Column values of an artwork row, shared by insert and rescan update.

    Hey future me - source_date falls back to "now" when the sidecar has no usable Date.
    That's inherited behaviour (sorting by date puts such artworks first) and is kept
    on purpose until the UI can show "unknown date".
    """
    record = item.record
    description = record.description or ""
    return {
        "title": record.title,
        "description": description,
        "description_length": len(description),
        "artist_id": artist_id,
        "image_count": len(item.media_files),
        "meta_source": to_meta_source(item.metadata_path, scan_root),
        "source_url": record.source_url,
        "original_url": record.original_url,
        "thumbnail_url": record.thumbnail_url,
        "x_restrict": record.x_restrict,
        "is_ai_generated": bool(record.ai_generated),
        "size": record.size,
        "bookmark_count": record.bookmark_count,
        "source_date": record.source_date or datetime.now(UTC),
        "directory_created_at": item.directory_created_at,
    }


def image_rows(
    media_files: Sequence[MediaFileRef], artwork_id: int, scan_root: Path
) -> list[dict[str, Any]]:
    """Image rows for one artwork."""
    return [
        {
            "path": to_image_path(ref.path, scan_root),
            "size": ref.size,
            "sort_order": ref.sort_order,
            "artwork_id": artwork_id,
        }
        for ref in media_files
    ]


class BatchIngestionService:
    """Writes one batch of artworks (plus images and tag links) per transaction.

    Protocol per batch:
    1. find which external_ids already exist
    2. bulk insert-or-ignore the new artworks
    3. re-select by external_id to learn the generated ids
    4. bulk insert-or-ignore images and tag links of the artworks created in step 2

    Artists and tags must already be resolved into the ScanContext caches.
    """

    def __init__(self, db: Database, transaction_timeout: float = 30.0) -> None:
        """Initialize ingestion engine.

        Args:
            db: Database to write to
            transaction_timeout: Seconds one batch transaction may take
        """
        self.db = db
        self.transaction_timeout = transaction_timeout

    async def ingest_batch(self, ctx: ScanContext, batch: Sequence[HydratedArtwork]) -> None:
        """Ingest one batch atomically and update ctx.result counters.

        Raises:
            TimeoutError: If the transaction exceeds transaction_timeout (rolled back)
            SQLAlchemyError: On database failures (rolled back)
        """
        if not batch:
            return

        async with asyncio.timeout(self.transaction_timeout):
            async with self.db.session_scope() as session:
                new_artworks, new_images = await self._write_batch(session, ctx, batch)

        # Counters only move once the transaction committed
        ctx.result.new_artworks += new_artworks
        ctx.result.new_images += new_images

    async def _write_batch(
        self, session: AsyncSession, ctx: ScanContext, batch: Sequence[HydratedArtwork]
    ) -> tuple[int, int]:
        artwork_repo = ArtworkRepository(session)
        external_ids = [item.external_id for item in batch]
        existing = await artwork_repo.get_existing_external_ids(external_ids)

        rows: list[dict[str, Any]] = []
        pending: dict[str, HydratedArtwork] = {}
        for item in batch:
            if item.external_id in existing or item.external_id in pending:
                continue
            artist_id = ctx.artist_cache.get(item.record.user_id)
            if artist_id is None:
                logger.warning(
                    f"Skipping artwork {item.external_id}: artist {item.record.user_id} "
                    "could not be resolved"
                )
                continue
            values = artwork_values(item, artist_id, ctx.scan_root)
            values["external_id"] = item.external_id
            rows.append(values)
            pending[item.external_id] = item

        if not rows:
            return 0, 0

        await artwork_repo.insert_ignore(rows)
        ids = await artwork_repo.get_ids_by_external_ids(pending)

        images: list[dict[str, Any]] = []
        links: list[dict[str, Any]] = []
        for external_id, item in pending.items():
            artwork_id = ids.get(external_id)
            if artwork_id is None:
                continue
            images.extend(image_rows(item.media_files, artwork_id, ctx.scan_root))
            tag_ids = {
                ctx.tag_cache[tag] for tag in item.record.tags if tag in ctx.tag_cache
            }
            links.extend(
                {"artwork_id": artwork_id, "tag_id": tag_id} for tag_id in sorted(tag_ids)
            )

        await ImageRepository(session).insert_ignore(images)
        await ArtworkTagRepository(session).insert_ignore(links)

        created = sum(1 for external_id in pending if external_id in ids)
        logger.debug(
            f"Batch wrote {created} artworks, {len(images)} images, {len(links)} tag links"
        )
        return created, len(images)
