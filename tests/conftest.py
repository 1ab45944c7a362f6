"""Shared fixtures: temporary SQLite database and a sidecar library builder."""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest

from artshelf.config import (
    DatabaseSettings,
    ScannerSettings,
    Settings,
    StorageSettings,
)
from artshelf.infrastructure.persistence.database import Database

# Hey future me - every integration test gets its OWN SQLite file under tmp_path, so tests
# can run in any order and a force reset in one test never touches another's data.
# batch_size=2 keeps batches tiny so multi-batch behaviour (cancel after batch k, batch
# failures) is exercised with a handful of files.


def sidecar_text(
    external_id: str,
    user: str = "Alice",
    user_id: str = "456",
    title: str = "Sunset",
    **extra: str,
) -> str:
    """Build sidecar content in the exporter layout.

    Extra keyword arguments become fields, e.g. Tags="#sky\\n#sea" or Bookmark="12".
    """
    fields = {"ID": external_id, "User": user, "UserID": user_id, "Title": title}
    fields.update(extra)
    return "\n\n".join(f"{name}\n{value}" for name, value in fields.items() if value) + "\n"


@pytest.fixture
def library_root(tmp_path: Path) -> Path:
    """Empty library root directory."""
    root = tmp_path / "library"
    root.mkdir()
    return root


@pytest.fixture
def make_artwork(library_root: Path) -> Callable[..., Path]:
    """Factory writing one artwork (sidecar + media pages) into the library.

    Returns the sidecar path. page_sizes gives one "{id}_p{N}.jpg" per entry with that
    many bytes; pass single_file=True for the "{id}.jpg" layout instead.
    """

    def _make(
        external_id: str,
        directory: str = "alice",
        page_sizes: tuple[int, ...] = (100,),
        single_file: bool = False,
        content: str | None = None,
        **fields: str,
    ) -> Path:
        folder = library_root / directory if directory else library_root
        folder.mkdir(parents=True, exist_ok=True)
        sidecar = folder / f"{external_id}-meta.txt"
        sidecar.write_text(
            content if content is not None else sidecar_text(external_id, **fields),
            encoding="utf-8",
        )
        if single_file:
            (folder / f"{external_id}.jpg").write_bytes(b"\0" * page_sizes[0])
        else:
            for page, size in enumerate(page_sizes):
                (folder / f"{external_id}_p{page}.jpg").write_bytes(b"\0" * size)
        return sidecar

    return _make


@pytest.fixture
def settings(tmp_path: Path, library_root: Path) -> Settings:
    """Settings pointing at a temp SQLite file and the temp library."""
    return Settings(
        database=DatabaseSettings(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"),
        storage=StorageSettings(scan_path=library_root),
        scanner=ScannerSettings(batch_size=2, max_workers=2),
    )


@pytest.fixture
async def db(settings: Settings) -> AsyncGenerator[Database, None]:
    """Database with all tables created, disposed after the test."""
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()
