"""Path conventions for values stored in the database.

Hey future me - two DIFFERENT conventions live side by side and both are load-bearing:

    images.path            "/alice/123_p0.jpg"     leading slash, root-relative
    artworks.meta_source   "alice/123-meta.txt"    no leading slash, root-relative

The image server and the web UI resolve image paths with the leading slash, and early
versions of the scanner stored ABSOLUTE image paths ("/mnt/art/alice/123_p0.jpg"). Every
helper that goes from a stored image path back to a directory must tolerate both.
"""

from pathlib import Path, PurePosixPath

from artshelf.domain.exceptions import ValidationException


def _relative_posix(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        # Outside root (symlinked drive resolved elsewhere): keep the full path
        return path.as_posix().lstrip("/")


def to_image_path(path: Path, root: Path) -> str:
    """Root-relative image path with leading slash, forward slashes only.

    Example:
        to_image_path(Path("/lib/alice/123_p0.jpg"), Path("/lib")) → "/alice/123_p0.jpg"
    """
    return "/" + _relative_posix(path, root).replace("\\", "/")


def to_meta_source(path: Path, root: Path) -> str:
    """Root-relative sidecar path without leading slash.

    Example:
        to_meta_source(Path("/lib/alice/123-meta.txt"), Path("/lib")) → "alice/123-meta.txt"
    """
    return _relative_posix(path, root).replace("\\", "/")


def normalize_relative_dir(relative_dir: str) -> str:
    """Clean a caller-supplied directory relative to the scan root.

    Leading slashes are dropped and backslashes become forward slashes.

    Raises:
        ValidationException: If the directory contains ".." segments
    """
    clean = relative_dir.replace("\\", "/").strip().lstrip("/")
    parts = [part for part in clean.split("/") if part not in ("", ".")]
    if ".." in parts:
        raise ValidationException(f"Invalid relative directory: {relative_dir}")
    return "/".join(parts)


def relative_dir_of_image_path(image_path: str, root: Path) -> str:
    """Directory (relative to root) that holds a stored image.

    Args:
        image_path: Value of images.path, relative ("/alice/1_p0.jpg") or legacy absolute
        root: Current scan root

    Returns:
        Relative directory without leading slash ("" for files directly in root)

    Raises:
        ValidationException: If the derived directory contains ".." segments
    """
    posix = image_path.replace("\\", "/")
    root_posix = root.as_posix().rstrip("/")

    if root_posix and (posix == root_posix or posix.startswith(root_posix + "/")):
        posix = posix[len(root_posix) :]

    parent = PurePosixPath("/" + posix.lstrip("/")).parent
    return normalize_relative_dir(str(parent))
