"""Tests for LocalDiscoveryProvider."""

import os
from pathlib import Path

import pytest

from artshelf.domain.exceptions import ScanRootNotFoundException
from artshelf.infrastructure.providers import LocalDiscoveryProvider


def touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("ID\n1\n", encoding="utf-8")
    return path


class TestLocalDiscoveryProvider:
    """Test filesystem walking for sidecar files."""

    async def test_finds_sidecars_in_nested_directories(self, tmp_path: Path) -> None:
        """Sidecars at any allowed depth are found, other files ignored."""
        expected = [
            touch(tmp_path / "1-meta.txt"),
            touch(tmp_path / "alice" / "2-meta.txt"),
            touch(tmp_path / "alice" / "2024" / "3-meta.txt"),
        ]
        touch(tmp_path / "alice" / "notes.txt")

        found = await LocalDiscoveryProvider(max_depth=4).discover(tmp_path)

        assert sorted(found) == sorted(p.resolve() for p in expected)

    async def test_suffix_match_is_case_insensitive(self, tmp_path: Path) -> None:
        """Upper-case sidecar names are discovered."""
        path = touch(tmp_path / "a" / "5-META.TXT")

        found = await LocalDiscoveryProvider().discover(tmp_path)

        assert found == [path.resolve()]

    async def test_depth_limit_counts_filename(self, tmp_path: Path) -> None:
        """With max_depth=2, 'a/1-meta.txt' is found but 'a/b/2-meta.txt' is not."""
        shallow = touch(tmp_path / "a" / "1-meta.txt")
        touch(tmp_path / "a" / "b" / "2-meta.txt")

        found = await LocalDiscoveryProvider(max_depth=2).discover(tmp_path)

        assert found == [shallow.resolve()]

    async def test_default_depth_stops_at_four_components(self, tmp_path: Path) -> None:
        """'a/b/c/x-meta.txt' is in range, 'a/b/c/d/x-meta.txt' is not."""
        inside = touch(tmp_path / "a" / "b" / "c" / "1-meta.txt")
        touch(tmp_path / "a" / "b" / "c" / "d" / "2-meta.txt")

        found = await LocalDiscoveryProvider().discover(tmp_path)

        assert found == [inside.resolve()]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    async def test_symlink_loop_terminates(self, tmp_path: Path) -> None:
        """A link pointing back to the root doesn't recurse forever."""
        path = touch(tmp_path / "a" / "1-meta.txt")
        (tmp_path / "a" / "loop").symlink_to(tmp_path, target_is_directory=True)

        found = await LocalDiscoveryProvider(max_depth=10).discover(tmp_path)

        assert found == [path.resolve()]

    async def test_missing_root_raises(self, tmp_path: Path) -> None:
        """A missing root is fatal for discovery."""
        with pytest.raises(ScanRootNotFoundException):
            await LocalDiscoveryProvider().discover(tmp_path / "missing")

    def test_provider_name(self) -> None:
        """Provider identifies itself for logs."""
        assert LocalDiscoveryProvider().provider_name == "local"
