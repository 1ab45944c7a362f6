"""Tests for MetadataDiscoveryService."""

from pathlib import Path
from unittest.mock import AsyncMock

from artshelf.application.services.metadata_discovery_service import (
    MetadataDiscoveryService,
)
from artshelf.application.services.scan_context import ScanContext
from artshelf.domain.entities import ScanOptions
from artshelf.domain.ports import IDiscoveryProvider
from artshelf.infrastructure.persistence import (
    ArtistRepository,
    ArtworkRepository,
    Database,
)


def provider_returning(paths: list[Path]) -> AsyncMock:
    provider = AsyncMock(spec=IDiscoveryProvider)
    provider.provider_name = "stub"
    provider.discover = AsyncMock(return_value=paths)
    return provider


async def store_artwork(db: Database, external_id: str) -> None:
    async with db.session_scope() as session:
        await ArtistRepository(session).insert_ignore(
            [{"name": "Alice", "username": "Alice", "user_id": "1"}]
        )
        artist_id = (await ArtistRepository(session).get_ids_by_user_ids(["1"]))["1"]
        await ArtworkRepository(session).insert_ignore(
            [{"external_id": external_id, "title": "Old", "artist_id": artist_id}]
        )


class TestDiscover:
    """Test candidate filtering."""

    async def test_non_sidecar_names_are_dropped(self, db: Database, tmp_path: Path) -> None:
        """Files without a numeric id never become candidates."""
        service = MetadataDiscoveryService(
            db, provider_returning([tmp_path / "1-meta.txt", tmp_path / "x-meta.txt"])
        )
        ctx = ScanContext(options=ScanOptions(), scan_root=tmp_path)

        candidates = await service.discover(ctx)

        assert [c.external_id for c in candidates] == ["1"]
        assert ctx.result.total_artworks == 1

    async def test_incremental_skips_existing(self, db: Database, tmp_path: Path) -> None:
        """Already ingested ids are skipped and counted."""
        await store_artwork(db, "1")
        service = MetadataDiscoveryService(
            db, provider_returning([tmp_path / "1-meta.txt", tmp_path / "2-meta.txt"])
        )
        ctx = ScanContext(options=ScanOptions(), scan_root=tmp_path)

        candidates = await service.discover(ctx)

        assert [c.external_id for c in candidates] == ["2"]
        assert ctx.result.total_artworks == 2
        assert ctx.result.skipped_artworks == 1

    async def test_force_keeps_existing(self, db: Database, tmp_path: Path) -> None:
        """Force mode doesn't consult the database."""
        await store_artwork(db, "1")
        service = MetadataDiscoveryService(db, provider_returning([tmp_path / "1-meta.txt"]))
        ctx = ScanContext(options=ScanOptions(force_update=True), scan_root=tmp_path)

        candidates = await service.discover(ctx)

        assert [c.external_id for c in candidates] == ["1"]
        assert ctx.result.skipped_artworks == 0

    async def test_duplicates_reported_first_kept(self, db: Database, tmp_path: Path) -> None:
        """The first path wins, the duplicate is named in an error."""
        first = tmp_path / "a" / "999-meta.txt"
        second = tmp_path / "b" / "999-meta.txt"
        service = MetadataDiscoveryService(db, provider_returning([first, second]))
        ctx = ScanContext(options=ScanOptions(), scan_root=tmp_path)

        candidates = await service.discover(ctx)

        assert [c.path for c in candidates] == [first]
        assert len(ctx.result.errors) == 1
        assert "999" in ctx.result.errors[0]
        assert str(second) in ctx.result.errors[0]

    async def test_explicit_paths_bypass_provider(self, db: Database, tmp_path: Path) -> None:
        """Caller-supplied relative paths replace discovery."""
        provider = provider_returning([])
        service = MetadataDiscoveryService(db, provider)
        ctx = ScanContext(
            options=ScanOptions(
                metadata_relative_paths=["/a/1-meta.txt", "b\\2-meta.txt", "../x/3-meta.txt"]
            ),
            scan_root=tmp_path,
        )

        candidates = await service.discover(ctx)

        provider.discover.assert_not_awaited()
        assert [c.path for c in candidates] == [
            tmp_path / "a" / "1-meta.txt",
            tmp_path / "b" / "2-meta.txt",
        ]
