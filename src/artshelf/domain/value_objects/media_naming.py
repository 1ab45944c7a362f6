"""Media filename conventions for artwork pages.

Hey future me - an artwork's media files sit next to its sidecar and are named either
"{id}.{ext}" (single page, page 0) or "{id}_p{N}.{ext}" (page N). The page index IS the
display order, so never sort by filename: "123_p10.jpg" < "123_p2.jpg" lexically!
"""

import re
from pathlib import Path

IMAGE_EXTENSIONS = frozenset(
    {
        ".jpg",
        ".jpeg",
        ".png",
        ".gif",
        ".webp",
        ".bmp",
        ".avif",
    }
)

VIDEO_EXTENSIONS = frozenset(
    {
        ".mp4",
        ".webm",
        ".mov",
        ".avi",
        ".mkv",
    }
)

MEDIA_EXTENSIONS = IMAGE_EXTENSIONS | VIDEO_EXTENSIONS

# Paged media filename
# Examples:
#   "123_p0.jpg" → id="123", page=0
#   "123_p12.PNG" → id="123", page=12
#   "123_master1200.jpg" → no match
PAGED_MEDIA_PATTERN = re.compile(r"^(?P<id>\d+)_p(?P<page>\d+)\.", re.IGNORECASE)


def is_media_file(filename: str) -> bool:
    """Check whether a filename has a supported media extension."""
    return Path(filename).suffix.lower() in MEDIA_EXTENSIONS


def parse_media_filename(filename: str, external_id: str) -> int | None:
    """Return the page index of a media file belonging to external_id.

    Args:
        filename: Bare filename, e.g. "123_p1.jpg"
        external_id: Artwork id the file must belong to

    Returns:
        Page index (0 for "{id}.{ext}"), or None if the file is not a page of this artwork
    """
    path = Path(filename)
    if path.suffix.lower() not in MEDIA_EXTENSIONS:
        return None

    if path.stem == external_id:
        return 0

    match = PAGED_MEDIA_PATTERN.match(filename)
    if not match or match.group("id") != external_id:
        return None
    return int(match.group("page"))
