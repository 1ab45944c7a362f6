"""Domain entities."""

from artshelf.domain.entities.scan import (
    CancelCheck,
    HydratedArtwork,
    MediaFileRef,
    MetadataCandidate,
    ProgressCallback,
    ScanOptions,
    ScanPhase,
    ScanProgress,
    ScanResult,
)

__all__ = [
    "CancelCheck",
    "HydratedArtwork",
    "MediaFileRef",
    "MetadataCandidate",
    "ProgressCallback",
    "ScanOptions",
    "ScanPhase",
    "ScanProgress",
    "ScanResult",
]
