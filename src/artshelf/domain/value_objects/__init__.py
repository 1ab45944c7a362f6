"""Domain value objects."""

from artshelf.domain.value_objects.library_paths import (
    normalize_relative_dir,
    relative_dir_of_image_path,
    to_image_path,
    to_meta_source,
)
from artshelf.domain.value_objects.media_naming import (
    MEDIA_EXTENSIONS,
    is_media_file,
    parse_media_filename,
)
from artshelf.domain.value_objects.sidecar_metadata import (
    MetadataRecord,
    ParseFailure,
    ParseFailureKind,
    extract_artwork_id_from_filename,
    format_metadata,
    is_metadata_file,
    metadata_filename_for,
    parse_metadata_file,
    parse_metadata_text,
)

__all__ = [
    "MEDIA_EXTENSIONS",
    "MetadataRecord",
    "ParseFailure",
    "ParseFailureKind",
    "extract_artwork_id_from_filename",
    "format_metadata",
    "is_media_file",
    "is_metadata_file",
    "metadata_filename_for",
    "normalize_relative_dir",
    "parse_media_filename",
    "parse_metadata_file",
    "parse_metadata_text",
    "relative_dir_of_image_path",
    "to_image_path",
    "to_meta_source",
]
