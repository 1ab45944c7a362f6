"""Tests for stored path conventions."""

from pathlib import Path

import pytest

from artshelf.domain.exceptions import ValidationException
from artshelf.domain.value_objects.library_paths import (
    normalize_relative_dir,
    relative_dir_of_image_path,
    to_image_path,
    to_meta_source,
)

ROOT = Path("/lib")


class TestStoredPaths:
    """Test the two root-relative conventions."""

    def test_image_path_has_leading_slash(self) -> None:
        """images.path keeps the leading slash."""
        assert to_image_path(ROOT / "alice" / "123_p0.jpg", ROOT) == "/alice/123_p0.jpg"

    def test_meta_source_has_no_leading_slash(self) -> None:
        """artworks.meta_source is relative without slash."""
        assert to_meta_source(ROOT / "alice" / "123-meta.txt", ROOT) == "alice/123-meta.txt"

    def test_file_directly_in_root(self) -> None:
        """Files in the root itself."""
        assert to_image_path(ROOT / "1.jpg", ROOT) == "/1.jpg"
        assert to_meta_source(ROOT / "1-meta.txt", ROOT) == "1-meta.txt"


class TestNormalizeRelativeDir:
    """Test caller-supplied directory cleanup."""

    def test_strips_slashes_and_dots(self) -> None:
        """Leading slash, backslashes and '.' segments are normalized."""
        assert normalize_relative_dir("/alice\\2024/./") == "alice/2024"

    def test_root_is_empty_string(self) -> None:
        """'/' and '' both mean the root."""
        assert normalize_relative_dir("/") == ""
        assert normalize_relative_dir("") == ""

    @pytest.mark.parametrize("value", ["..", "alice/../../etc", "..\\secret"])
    def test_parent_segments_rejected(self, value: str) -> None:
        """'..' can never escape the scan root."""
        with pytest.raises(ValidationException):
            normalize_relative_dir(value)


class TestRelativeDirOfImagePath:
    """Test deriving an artwork directory from a stored image path."""

    def test_relative_image_path(self) -> None:
        """Current convention."""
        assert relative_dir_of_image_path("/alice/2024/1_p0.jpg", ROOT) == "alice/2024"

    def test_legacy_absolute_image_path(self) -> None:
        """Absolute paths from old scans have the root stripped."""
        assert relative_dir_of_image_path("/lib/alice/1_p0.jpg", ROOT) == "alice"

    def test_image_in_root(self) -> None:
        """Images directly in the root give an empty directory."""
        assert relative_dir_of_image_path("/1_p0.jpg", ROOT) == ""

    def test_root_prefix_must_match_whole_segment(self) -> None:
        """'/library/...' is not under root '/lib'."""
        assert relative_dir_of_image_path("/library/1_p0.jpg", ROOT) == "library"
