# Hey future me - these are the transient shapes of ONE scan run. Nothing here is persisted
# directly: the ingestion engine maps HydratedArtwork onto ORM rows, and ScanResult is what
# the caller (worker, script) gets back at the end. Keep them plain dataclasses so they can
# cross the thread pool boundary without touching the DB session.
"""Scan run entities: options, progress, candidates and results."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from artshelf.domain.value_objects.sidecar_metadata import MetadataRecord


class ScanPhase(str, Enum):
    """Phase of a scan run, reported through progress events."""

    COUNTING = "counting"  # force mode only: wiping the domain tables
    DISCOVERING = "discovering"
    SCANNING = "scanning"
    COMPLETE = "complete"


@dataclass
class ScanProgress:
    """One progress event emitted to the caller."""

    phase: ScanPhase
    message: str
    percentage: float
    current: int | None = None
    total: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for job status payloads."""
        return {
            "phase": self.phase.value,
            "message": self.message,
            "percentage": self.percentage,
            "current": self.current,
            "total": self.total,
        }


# Both callbacks may be plain functions or coroutines; the orchestrator awaits
# the return value when it is awaitable.
ProgressCallback = Callable[[ScanProgress], Awaitable[None] | None]
CancelCheck = Callable[[], Awaitable[bool] | bool]


@dataclass
class ScanOptions:
    """Caller-supplied knobs for one scan run.

    Attributes:
        scan_path: Root to scan. None = persisted app setting, then configured default.
        force_update: Wipe all artwork data first and ingest everything again.
        on_progress: Receives ScanProgress events.
        check_cancelled: Polled before discovery and at each batch boundary.
        metadata_relative_paths: Explicit sidecar list (root-relative). Skips the walk
            unless empty.
    """

    scan_path: Path | None = None
    force_update: bool = False
    on_progress: ProgressCallback | None = None
    check_cancelled: CancelCheck | None = None
    metadata_relative_paths: list[str] | None = None


@dataclass
class ScanResult:
    """Counters and errors for one run (scan or rescan)."""

    total_artworks: int = 0
    new_artists: int = 0
    new_artworks: int = 0
    new_images: int = 0
    new_tags: int = 0
    skipped_artworks: int = 0
    removed_artworks: int = 0
    updated_artworks: int = 0
    errors: list[str] = field(default_factory=list)
    processing_time_ms: int = 0

    def add_error(self, message: str) -> None:
        """Record a user-visible partial failure."""
        self.errors.append(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for job results and logs."""
        return {
            "total_artworks": self.total_artworks,
            "new_artists": self.new_artists,
            "new_artworks": self.new_artworks,
            "new_images": self.new_images,
            "new_tags": self.new_tags,
            "skipped_artworks": self.skipped_artworks,
            "removed_artworks": self.removed_artworks,
            "updated_artworks": self.updated_artworks,
            "errors": list(self.errors),
            "processing_time_ms": self.processing_time_ms,
        }


@dataclass(frozen=True)
class MetadataCandidate:
    """A discovered sidecar file with a usable external id."""

    path: Path
    external_id: str
    discovered_at: datetime


@dataclass(frozen=True)
class MediaFileRef:
    """One media file belonging to an artwork."""

    path: Path
    size: int
    sort_order: int
    external_id: str


@dataclass
class HydratedArtwork:
    """Parsed metadata plus its media files, ready for ingestion."""

    record: MetadataRecord
    media_files: list[MediaFileRef]
    directory: Path
    metadata_path: Path
    directory_created_at: datetime

    @property
    def external_id(self) -> str:
        return self.record.id
