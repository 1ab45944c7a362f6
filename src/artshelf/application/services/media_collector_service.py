"""Parse + associate stage: sidecar file → HydratedArtwork.

Hey future me - everything in here is SYNCHRONOUS and runs in the scanner's thread pool.
No DB, no event loop, no shared mutable state. That's what lets the scanner hydrate a
whole batch in parallel while ingestion of the previous batch is the only async work.
"""

import logging
import os
from datetime import UTC, datetime
from pathlib import Path

from artshelf.domain.entities import HydratedArtwork, MediaFileRef
from artshelf.domain.value_objects.media_naming import parse_media_filename
from artshelf.domain.value_objects.sidecar_metadata import (
    ParseFailure,
    ParseFailureKind,
    extract_artwork_id_from_filename,
    parse_metadata_file,
)

logger = logging.getLogger(__name__)


def collect_media_files(directory: Path, external_id: str) -> list[MediaFileRef]:
    """Find the media pages of one artwork in its directory.

    Args:
        directory: Directory holding the sidecar
        external_id: Artwork id the files must belong to

    Returns:
        Media files sorted by page index (may be empty)

    Raises:
        OSError: If the directory itself cannot be listed
    """
    media: list[MediaFileRef] = []

    with os.scandir(directory) as entries:
        for entry in entries:
            page = parse_media_filename(entry.name, external_id)
            if page is None:
                continue
            try:
                if not entry.is_file():
                    continue
                size = entry.stat().st_size
            except OSError as e:
                # Deleted or moved between listing and stat
                logger.warning(f"Skipping media file {entry.path}: {e}")
                continue
            media.append(
                MediaFileRef(
                    path=Path(entry.path),
                    size=size,
                    sort_order=page,
                    external_id=external_id,
                )
            )

    media.sort(key=lambda ref: (ref.sort_order, ref.path.name))
    return media


def directory_created_at(directory: Path) -> datetime:
    """Creation time of a directory (birth time where the OS has one, else ctime)."""
    stat = directory.stat()
    timestamp = getattr(stat, "st_birthtime", None) or stat.st_ctime
    return datetime.fromtimestamp(timestamp, tz=UTC)


def hydrate_artwork(
    metadata_path: Path, artwork_id: str | None = None
) -> HydratedArtwork | ParseFailure:
    """Parse a sidecar and attach its media files.

    Never raises for per-item problems. The result is either a HydratedArtwork with at
    least one media file, or a ParseFailure describing why the item was dropped.

    Args:
        metadata_path: Absolute path of the "<id>-meta.txt" sidecar
        artwork_id: Id the media files are named after. Defaults to the id in the
            sidecar filename, NOT the ID field inside it (that one is only stored).
    """
    outcome = parse_metadata_file(metadata_path)
    if isinstance(outcome, ParseFailure):
        return outcome

    media_id = (
        artwork_id or extract_artwork_id_from_filename(metadata_path.name) or outcome.id
    )
    directory = metadata_path.parent
    try:
        media_files = collect_media_files(directory, media_id)
        created_at = directory_created_at(directory)
    except OSError as e:
        return ParseFailure(
            kind=ParseFailureKind.UNREADABLE,
            path=metadata_path,
            message=f"Cannot list media directory {directory}: {e}",
        )

    if not media_files:
        return ParseFailure(
            kind=ParseFailureKind.INVALID,
            path=metadata_path,
            message=f"No media files found for artwork {media_id} in {directory}",
        )

    return HydratedArtwork(
        record=outcome,
        media_files=media_files,
        directory=directory,
        metadata_path=metadata_path,
        directory_created_at=created_at,
    )
