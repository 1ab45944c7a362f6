"""Tests for repositories and the insert-or-ignore helper (SQLite)."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from artshelf.infrastructure.persistence import (
    AppSettingsRepository,
    ArtistRepository,
    ArtworkModel,
    ArtworkRepository,
    Database,
    ImageRepository,
    TagModel,
    TagRepository,
    insert_or_ignore,
    reset_library,
    with_db_retry,
)
from artshelf.infrastructure.persistence.repositories import chunked
from artshelf.infrastructure.persistence.retry import is_lock_error


def artist_row(user_id: str, name: str = "Alice") -> dict[str, str]:
    return {"name": name, "username": name, "user_id": user_id, "bio": None}


def artwork_row(external_id: str, artist_id: int) -> dict[str, object]:
    return {"external_id": external_id, "title": f"Artwork {external_id}", "artist_id": artist_id}


class TestChunked:
    """Test slicing helper."""

    def test_chunks_with_remainder(self) -> None:
        """Last chunk holds the remainder."""
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]


class TestInsertOrIgnore:
    """Test dialect-aware ON CONFLICT DO NOTHING."""

    async def test_conflicting_rows_are_skipped(self, db: Database) -> None:
        """Existing natural keys keep their original values."""
        async with db.session_scope() as session:
            repo = ArtistRepository(session)
            await repo.insert_ignore([artist_row("1", "Alice")])
            await repo.insert_ignore([artist_row("1", "Renamed"), artist_row("2", "Bob")])

        async with db.session_scope() as session:
            repo = ArtistRepository(session)
            ids = await repo.get_ids_by_user_ids(["1", "2", "3"])
            assert set(ids) == {"1", "2"}
            assert await repo.count_all() == 2

    async def test_large_batches_are_chunked(self, db: Database) -> None:
        """More rows than SQLite's parameter limit still go through."""
        names = [f"tag{i}" for i in range(2500)]

        async with db.session_scope() as session:
            await insert_or_ignore(session, TagModel, [{"name": n} for n in names], ["name"])

        async with db.session_scope() as session:
            count = (await session.execute(select(func.count(TagModel.id)))).scalar_one()
            found = await TagRepository(session).get_ids_by_names(names)
        assert count == 2500
        assert len(found) == 2500

    async def test_empty_rows_is_noop(self, db: Database) -> None:
        """No statement for no rows."""
        async with db.session_scope() as session:
            await insert_or_ignore(session, TagModel, [], ["name"])


class TestArtworkRepository:
    """Test artwork lookups."""

    async def test_existing_external_ids(self, db: Database) -> None:
        """Only stored ids are reported."""
        async with db.session_scope() as session:
            await ArtistRepository(session).insert_ignore([artist_row("9")])
            artist_id = (await ArtistRepository(session).get_ids_by_user_ids(["9"]))["9"]
            await ArtworkRepository(session).insert_ignore(
                [artwork_row("100", artist_id), artwork_row("101", artist_id)]
            )

        async with db.session_scope() as session:
            existing = await ArtworkRepository(session).get_existing_external_ids(
                ["100", "101", "102"]
            )
        assert existing == {"100", "101"}

    async def test_missing_meta_source_paging(self, db: Database) -> None:
        """Keyset paging returns id-ordered pages without meta_source."""
        async with db.session_scope() as session:
            await ArtistRepository(session).insert_ignore([artist_row("9")])
            artist_id = (await ArtistRepository(session).get_ids_by_user_ids(["9"]))["9"]
            repo = ArtworkRepository(session)
            await repo.insert_ignore([artwork_row(str(i), artist_id) for i in range(1, 6)])
            ids = await repo.get_ids_by_external_ids(["1"])
            await repo.set_meta_source(ids["1"], "a/1-meta.txt")

        async with db.session_scope() as session:
            repo = ArtworkRepository(session)
            assert await repo.count_missing_meta_source() == 4
            first = await repo.list_missing_meta_source(after_id=0, limit=3)
            second = await repo.list_missing_meta_source(after_id=first[-1][0], limit=3)

        assert [external_id for _, external_id in first] == ["2", "3", "4"]
        assert [external_id for _, external_id in second] == ["5"]


class TestImageRepository:
    """Test image replacement helpers."""

    async def test_first_path_and_delete(self, db: Database) -> None:
        """Lowest sort_order wins, delete reports the removed count."""
        async with db.session_scope() as session:
            await ArtistRepository(session).insert_ignore([artist_row("9")])
            artist_id = (await ArtistRepository(session).get_ids_by_user_ids(["9"]))["9"]
            await ArtworkRepository(session).insert_ignore([artwork_row("7", artist_id)])
            artwork_id = (await ArtworkRepository(session).get_ids_by_external_ids(["7"]))["7"]
            await ImageRepository(session).insert_ignore(
                [
                    {"path": "/a/7_p1.jpg", "size": 2, "sort_order": 1, "artwork_id": artwork_id},
                    {"path": "/a/7_p0.jpg", "size": 1, "sort_order": 0, "artwork_id": artwork_id},
                ]
            )

        async with db.session_scope() as session:
            repo = ImageRepository(session)
            assert await repo.get_first_paths([artwork_id]) == {artwork_id: "/a/7_p0.jpg"}
            assert await repo.delete_by_artwork(artwork_id) == 2
            assert await repo.get_first_paths([artwork_id]) == {}


class TestResetLibrary:
    """Test the force-mode reset."""

    async def test_clears_library_but_keeps_settings(self, db: Database) -> None:
        """Artwork tables are emptied, app_settings survives."""
        async with db.session_scope() as session:
            await ArtistRepository(session).insert_ignore([artist_row("9")])
            artist_id = (await ArtistRepository(session).get_ids_by_user_ids(["9"]))["9"]
            await ArtworkRepository(session).insert_ignore([artwork_row("7", artist_id)])
            await TagRepository(session).insert_ignore([{"name": "sky"}])
            await AppSettingsRepository(session).set_value("scan_path", "/lib")

        async with db.session_scope() as session:
            await reset_library(session)

        async with db.session_scope() as session:
            artworks = (await session.execute(select(func.count(ArtworkModel.id)))).scalar_one()
            assert artworks == 0
            assert await ArtistRepository(session).count_all() == 0
            assert await AppSettingsRepository(session).get_value("scan_path") == "/lib"


class TestAppSettingsRepository:
    """Test key/value settings."""

    async def test_set_then_update(self, db: Database) -> None:
        """Second set overwrites the first."""
        async with db.session_scope() as session:
            repo = AppSettingsRepository(session)
            assert await repo.get_value("scan_path") is None
            await repo.set_value("scan_path", "/a")
            await repo.set_value("scan_path", "/b")

        async with db.session_scope() as session:
            assert await AppSettingsRepository(session).get_value("scan_path") == "/b"


class TestWithDbRetry:
    """Test lock retry decorator."""

    def test_is_lock_error(self) -> None:
        """Only lock/busy OperationalErrors are retryable."""
        locked = OperationalError("INSERT", {}, Exception("database is locked"))
        other = OperationalError("INSERT", {}, Exception("no such table: artworks"))

        assert is_lock_error(locked)
        assert not is_lock_error(other)
        assert not is_lock_error(ValueError("locked"))

    async def test_retries_lock_errors_then_succeeds(self) -> None:
        """Transient locks are retried."""
        locked = OperationalError("INSERT", {}, Exception("database is locked"))
        operation = AsyncMock(side_effect=[locked, locked, "ok"])

        @with_db_retry(max_attempts=3, initial_delay=0.0)
        async def write() -> str:
            return await operation()

        assert await write() == "ok"
        assert operation.await_count == 3

    async def test_gives_up_after_max_attempts(self) -> None:
        """The last lock error propagates."""
        locked = OperationalError("INSERT", {}, Exception("database is locked"))
        operation = AsyncMock(side_effect=locked)

        @with_db_retry(max_attempts=2, initial_delay=0.0)
        async def write() -> None:
            await operation()

        with pytest.raises(OperationalError):
            await write()
        assert operation.await_count == 2

    async def test_other_errors_not_retried(self) -> None:
        """Schema errors fail immediately."""
        error = OperationalError("SELECT", {}, Exception("no such table"))
        operation = AsyncMock(side_effect=error)

        @with_db_retry(max_attempts=3, initial_delay=0.0)
        async def read() -> None:
            await operation()

        with pytest.raises(OperationalError):
            await read()
        assert operation.await_count == 1
