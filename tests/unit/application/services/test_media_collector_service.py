"""Tests for the parse + associate stage."""

from collections.abc import Callable
from pathlib import Path

from artshelf.application.services.media_collector_service import (
    collect_media_files,
    hydrate_artwork,
)
from artshelf.domain.entities import HydratedArtwork
from artshelf.domain.value_objects.sidecar_metadata import ParseFailure, ParseFailureKind


class TestCollectMediaFiles:
    """Test media file association."""

    def test_pages_sorted_by_index(self, tmp_path: Path) -> None:
        """p10 comes after p2; files of other artworks are ignored."""
        for name, size in [("5_p10.jpg", 10), ("5_p2.png", 2), ("5_p0.jpg", 1), ("55_p0.jpg", 9)]:
            (tmp_path / name).write_bytes(b"x" * size)
        (tmp_path / "5-meta.txt").write_text("ID\n5\n")

        media = collect_media_files(tmp_path, "5")

        assert [ref.path.name for ref in media] == ["5_p0.jpg", "5_p2.png", "5_p10.jpg"]
        assert [ref.sort_order for ref in media] == [0, 2, 10]
        assert [ref.size for ref in media] == [1, 2, 10]
        assert all(ref.external_id == "5" for ref in media)

    def test_single_file_layout(self, tmp_path: Path) -> None:
        """'{id}.{ext}' is page 0."""
        (tmp_path / "5.mp4").write_bytes(b"xyz")

        media = collect_media_files(tmp_path, "5")

        assert len(media) == 1
        assert media[0].sort_order == 0
        assert media[0].size == 3

    def test_directories_named_like_media_are_skipped(self, tmp_path: Path) -> None:
        """Only regular files count."""
        (tmp_path / "5_p0.jpg").mkdir()

        assert collect_media_files(tmp_path, "5") == []


class TestHydrateArtwork:
    """Test sidecar → HydratedArtwork."""

    def test_hydrates_record_and_media(self, make_artwork: Callable[..., Path]) -> None:
        """Valid sidecar with pages produces a full item."""
        sidecar = make_artwork("123", page_sizes=(100, 200))

        outcome = hydrate_artwork(sidecar)

        assert isinstance(outcome, HydratedArtwork)
        assert outcome.external_id == "123"
        assert outcome.record.title == "Sunset"
        assert [ref.size for ref in outcome.media_files] == [100, 200]
        assert outcome.directory == sidecar.parent
        assert outcome.metadata_path == sidecar
        assert outcome.directory_created_at.tzinfo is not None

    def test_no_media_is_invalid(self, library_root: Path) -> None:
        """A sidecar without any pages is dropped."""
        sidecar = library_root / "7-meta.txt"
        sidecar.write_text("ID\n7\nUser\nA\nUserID\n1\nTitle\nT\n")

        outcome = hydrate_artwork(sidecar)

        assert isinstance(outcome, ParseFailure)
        assert outcome.kind == ParseFailureKind.INVALID
        assert "No media files" in outcome.message

    def test_invalid_sidecar_passes_failure_through(
        self, make_artwork: Callable[..., Path]
    ) -> None:
        """Parser failures are returned unchanged."""
        sidecar = make_artwork("8", content="ID\n8\nTitle\nOnly title\n")

        outcome = hydrate_artwork(sidecar)

        assert isinstance(outcome, ParseFailure)
        assert outcome.kind == ParseFailureKind.INVALID

    def test_vanished_sidecar_is_not_found(self, library_root: Path) -> None:
        """A file deleted after discovery is benign."""
        outcome = hydrate_artwork(library_root / "9-meta.txt")

        assert isinstance(outcome, ParseFailure)
        assert outcome.is_benign

    def test_media_matched_by_filename_id(self, make_artwork: Callable[..., Path]) -> None:
        """Pages are named after the sidecar filename, the ID field is only stored."""
        sidecar = make_artwork("5", content="ID\n6\n\nUser\nA\n\nUserID\n1\n\nTitle\nT\n")

        outcome = hydrate_artwork(sidecar)

        assert isinstance(outcome, HydratedArtwork)
        assert outcome.external_id == "6"
        assert [ref.path.name for ref in outcome.media_files] == ["5_p0.jpg"]
        assert all(ref.external_id == "5" for ref in outcome.media_files)
