"""Tests for artwork media filename conventions."""

import pytest

from artshelf.domain.value_objects.media_naming import is_media_file, parse_media_filename


class TestParseMediaFilename:
    """Test page index extraction."""

    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("123_p0.jpg", 0),
            ("123_p1.png", 1),
            ("123_p12.WEBP", 12),
            ("123.jpg", 0),
            ("123.MP4", 0),
        ],
    )
    def test_pages_of_artwork(self, filename: str, expected: int) -> None:
        """Paged and single-file names map to their display order."""
        assert parse_media_filename(filename, "123") == expected

    @pytest.mark.parametrize(
        "filename",
        [
            "1234_p0.jpg",  # different artwork sharing a prefix
            "12_p0.jpg",
            "123_p0.txt",  # not media
            "123-meta.txt",
            "123_master1200.jpg",
            "123_pX.jpg",
        ],
    )
    def test_foreign_or_unsupported_files(self, filename: str) -> None:
        """Files of other artworks or non-media files are not pages."""
        assert parse_media_filename(filename, "123") is None

    def test_page_order_is_numeric(self) -> None:
        """p10 sorts after p2 (lexical order would say otherwise)."""
        names = ["123_p10.jpg", "123_p2.jpg", "123_p0.jpg"]
        ordered = sorted(names, key=lambda n: parse_media_filename(n, "123") or 0)
        assert ordered == ["123_p0.jpg", "123_p2.jpg", "123_p10.jpg"]


class TestIsMediaFile:
    """Test extension whitelist."""

    def test_images_and_videos(self) -> None:
        """Both image and video extensions count as media."""
        assert is_media_file("a.JPEG")
        assert is_media_file("a.webm")

    def test_other_files(self) -> None:
        """Sidecars and archives are not media."""
        assert not is_media_file("123-meta.txt")
        assert not is_media_file("123.zip")
