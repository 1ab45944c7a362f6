"""Repository implementations for the artwork library."""

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import Any, TypeVar

from sqlalchemy import delete, func, select, text, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from artshelf.infrastructure.persistence.models import (
    AppSettingsModel,
    ArtistModel,
    ArtworkModel,
    ArtworkTagModel,
    Base,
    ImageModel,
    TagModel,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Hey future me - SQLite builds before 3.32 cap bound parameters at 999 per statement.
# Every bulk statement here is chunked so rows * columns (or the IN list) stays below it.
MAX_BOUND_PARAMETERS = 900
IN_CLAUSE_CHUNK = 500


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most size items."""
    for start in range(0, len(items), size):
        yield items[start : start + size]


# Listen up, this is the insert-or-ignore primitive the whole ingestion engine sits on.
# Rows that collide with an existing natural key (artists.user_id, tags.name,
# artworks.external_id, images(artwork_id, path), artwork_tags pk) are silently skipped,
# which is what makes a retried batch or a racing second writer harmless. Generated ids are
# NOT read back here - callers re-select by natural key afterwards.
async def insert_or_ignore(
    session: AsyncSession,
    model: type[Base],
    rows: Sequence[dict[str, Any]],
    conflict_columns: Sequence[str],
) -> None:
    """Bulk insert rows, skipping rows that violate a unique key.

    Args:
        session: Active session (caller owns the transaction)
        model: ORM model class to insert into
        rows: Column dicts, all with the same keys
        conflict_columns: Columns of the unique key to ignore conflicts on

    Raises:
        NotImplementedError: For dialects other than SQLite and PostgreSQL
    """
    if not rows:
        return

    dialect = session.get_bind().dialect.name
    if dialect == "sqlite":
        insert_fn: Any = sqlite.insert
    elif dialect == "postgresql":
        insert_fn = postgresql.insert
    else:
        raise NotImplementedError(f"insert_or_ignore is not supported on {dialect}")

    # Python-side column defaults (created_at...) are bound per row too, so size the
    # chunk by the table's column count, not just the keys the caller passed
    columns = max(len(rows[0]), len(model.__table__.columns))
    chunk_size = max(1, MAX_BOUND_PARAMETERS // columns)
    for chunk in chunked(rows, chunk_size):
        stmt = (
            insert_fn(model)
            .values(list(chunk))
            .on_conflict_do_nothing(index_elements=list(conflict_columns))
        )
        await session.execute(stmt)


class ArtistRepository:
    """Artist lookups and bulk creation keyed by user_id."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def get_ids_by_user_ids(self, user_ids: Iterable[str]) -> dict[str, int]:
        """Map user_id → artist id for the user_ids that exist."""
        wanted = sorted(set(user_ids))
        found: dict[str, int] = {}
        for chunk in chunked(wanted, IN_CLAUSE_CHUNK):
            stmt = select(ArtistModel.user_id, ArtistModel.id).where(
                ArtistModel.user_id.in_(chunk)
            )
            result = await self.session.execute(stmt)
            for user_id, artist_id in result.all():
                found[user_id] = artist_id
        return found

    async def insert_ignore(self, rows: Sequence[dict[str, Any]]) -> None:
        """Create artists, skipping user_ids that already exist."""
        await insert_or_ignore(self.session, ArtistModel, rows, ["user_id"])

    async def count_all(self) -> int:
        """Count all artists."""
        result = await self.session.execute(select(func.count(ArtistModel.id)))
        return result.scalar_one()


class TagRepository:
    """Tag lookups and bulk creation keyed by name."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def get_ids_by_names(self, names: Iterable[str]) -> dict[str, int]:
        """Map tag name → tag id for the names that exist."""
        wanted = sorted(set(names))
        found: dict[str, int] = {}
        for chunk in chunked(wanted, IN_CLAUSE_CHUNK):
            stmt = select(TagModel.name, TagModel.id).where(TagModel.name.in_(chunk))
            result = await self.session.execute(stmt)
            for name, tag_id in result.all():
                found[name] = tag_id
        return found

    async def insert_ignore(self, rows: Sequence[dict[str, Any]]) -> None:
        """Create tags, skipping names that already exist."""
        await insert_or_ignore(self.session, TagModel, rows, ["name"])


class ArtworkRepository:
    """Artwork queries keyed by external_id."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def get_ids_by_external_ids(
        self, external_ids: Iterable[str]
    ) -> dict[str, int]:
        """Map external_id → artwork id for the external_ids that exist."""
        wanted = sorted(set(external_ids))
        found: dict[str, int] = {}
        for chunk in chunked(wanted, IN_CLAUSE_CHUNK):
            stmt = select(ArtworkModel.external_id, ArtworkModel.id).where(
                ArtworkModel.external_id.in_(chunk)
            )
            result = await self.session.execute(stmt)
            for external_id, artwork_id in result.all():
                found[external_id] = artwork_id
        return found

    async def get_existing_external_ids(self, external_ids: Iterable[str]) -> set[str]:
        """Return the subset of external_ids already ingested."""
        return set(await self.get_ids_by_external_ids(external_ids))

    async def insert_ignore(self, rows: Sequence[dict[str, Any]]) -> None:
        """Create artworks, skipping external_ids that already exist."""
        await insert_or_ignore(self.session, ArtworkModel, rows, ["external_id"])

    async def get_by_external_id(self, external_id: str) -> ArtworkModel | None:
        """Get an artwork row by external id."""
        stmt = select(ArtworkModel).where(ArtworkModel.external_id == external_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_all(self) -> int:
        """Count all artworks."""
        result = await self.session.execute(select(func.count(ArtworkModel.id)))
        return result.scalar_one()

    async def count_missing_meta_source(self) -> int:
        """Count artworks with an external id but no meta_source yet."""
        stmt = select(func.count(ArtworkModel.id)).where(
            ArtworkModel.meta_source.is_(None),
            ArtworkModel.external_id.is_not(None),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def list_missing_meta_source(
        self, after_id: int, limit: int
    ) -> list[tuple[int, str]]:
        """Page through artworks missing meta_source (keyset on id).

        Returns:
            (artwork id, external_id) pairs ordered by id
        """
        stmt = (
            select(ArtworkModel.id, ArtworkModel.external_id)
            .where(
                ArtworkModel.meta_source.is_(None),
                ArtworkModel.external_id.is_not(None),
                ArtworkModel.id > after_id,
            )
            .order_by(ArtworkModel.id)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def set_meta_source(self, artwork_id: int, meta_source: str) -> None:
        """Update meta_source of one artwork."""
        await self.session.execute(
            update(ArtworkModel)
            .where(ArtworkModel.id == artwork_id)
            .values(meta_source=meta_source)
        )


class ImageRepository:
    """Image rows of artworks."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def insert_ignore(self, rows: Sequence[dict[str, Any]]) -> None:
        """Create images, skipping (artwork_id, path) pairs that already exist."""
        await insert_or_ignore(
            self.session, ImageModel, rows, ["artwork_id", "path"]
        )

    async def delete_by_artwork(self, artwork_id: int) -> int:
        """Delete all images of an artwork, returning the number removed."""
        result = await self.session.execute(
            delete(ImageModel).where(ImageModel.artwork_id == artwork_id)
        )
        return result.rowcount or 0

    async def get_first_paths(self, artwork_ids: Iterable[int]) -> dict[int, str]:
        """Map artwork id → path of its lowest sort_order image."""
        wanted = sorted(set(artwork_ids))
        paths: dict[int, str] = {}
        for chunk in chunked(wanted, IN_CLAUSE_CHUNK):
            stmt = (
                select(ImageModel.artwork_id, ImageModel.path)
                .where(ImageModel.artwork_id.in_(chunk))
                .order_by(ImageModel.artwork_id, ImageModel.sort_order, ImageModel.id)
            )
            result = await self.session.execute(stmt)
            for artwork_id, path in result.all():
                paths.setdefault(artwork_id, path)
        return paths


class ArtworkTagRepository:
    """Artwork ↔ tag association rows."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def insert_ignore(self, rows: Sequence[dict[str, Any]]) -> None:
        """Create tag links, skipping pairs that already exist."""
        await insert_or_ignore(
            self.session, ArtworkTagModel, rows, ["artwork_id", "tag_id"]
        )


# Hey future me - these are the artwork-domain tables in child → parent order.
# app_settings is deliberately NOT in here: a forced rescan must keep the scan path.
LIBRARY_TABLES: tuple[str, ...] = (
    ArtworkTagModel.__tablename__,
    ImageModel.__tablename__,
    ArtworkModel.__tablename__,
    ArtistModel.__tablename__,
    TagModel.__tablename__,
)


async def reset_library(session: AsyncSession) -> None:
    """Delete every artwork-domain row and restart id sequences.

    PostgreSQL gets a single TRUNCATE ... RESTART IDENTITY CASCADE. SQLite has no
    TRUNCATE, so tables are emptied child-first; rowid allocation restarts by itself
    once a table is empty.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        tables = ", ".join(f'"{name}"' for name in LIBRARY_TABLES)
        await session.execute(text(f"TRUNCATE TABLE {tables} RESTART IDENTITY CASCADE"))
        return

    for model in (ArtworkTagModel, ImageModel, ArtworkModel, ArtistModel, TagModel):
        await session.execute(delete(model))


class AppSettingsRepository:
    """Key/value runtime settings."""

    SCAN_PATH_KEY = "scan_path"

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def get_value(self, key: str) -> str | None:
        """Get a setting value, None if unset."""
        model = await self.session.get(AppSettingsModel, key)
        return model.value if model else None

    async def set_value(self, key: str, value: str | None) -> None:
        """Create or update a setting and flush it."""
        model = await self.session.get(AppSettingsModel, key)
        if model is None:
            self.session.add(AppSettingsModel(key=key, value=value))
        else:
            model.value = value
        await self.session.flush()
