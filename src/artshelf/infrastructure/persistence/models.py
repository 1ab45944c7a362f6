"""SQLAlchemy ORM models for ArtShelf."""

from datetime import UTC, datetime

import sqlalchemy as sa
from sqlalchemy import ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# Hey future me, utc_now() ensures ALL timestamps are UTC! Never use datetime.now() without
# timezone - that's a naive datetime and comparisons with aware ones blow up.
def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models.

    All models inherit from this to use the same metadata registry.
    """

    pass


# Hey future me - ids are INTEGER autoincrement, not UUIDs! The ingestion engine relies on
# the database generating them (insert-or-ignore, then re-select by natural key), and a full
# reset restarts the sequences so a freshly rebuilt library gets ids from 1 again.
# user_id is the natural key: it's the numeric author id from the sidecar "UserID" field.
class ArtistModel(Base):
    """SQLAlchemy model for an artwork author."""

    __tablename__ = "artists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_id: Mapped[str | None] = mapped_column(
        String(50), nullable=True, unique=True, index=True
    )
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    # Relationships
    artworks: Mapped[list["ArtworkModel"]] = relationship(
        "ArtworkModel", back_populates="artist"
    )


class TagModel(Base):
    """SQLAlchemy model for a tag, keyed by its exact name."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )


# Listen up, ArtworkModel is the CORE row - one per sidecar file. external_id is the numeric
# id from the sidecar's "ID" field and is the natural key for every dedup decision:
# incremental scans skip ids already here, rescans look the row up by it.
# meta_source is the sidecar path relative to the scan root WITHOUT a leading slash, while
# ImageModel.path keeps the leading slash (old rows were written like that, and the image
# server resolves them that way). Don't "fix" one to match the other!
class ArtworkModel(Base):
    """SQLAlchemy model for an artwork (one sidecar + its media pages)."""

    __tablename__ = "artworks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    external_id: Mapped[str | None] = mapped_column(
        String(50), nullable=True, unique=True, index=True
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    description_length: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    artist_id: Mapped[int | None] = mapped_column(
        ForeignKey("artists.id", ondelete="SET NULL"), nullable=True, index=True
    )
    # Kept in sync by the ingestion engine (insert + rescan), not by a trigger
    image_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    meta_source: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    source_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    original_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    x_restrict: Mapped[str | None] = mapped_column(String(20), nullable=True)
    is_ai_generated: Mapped[bool] = mapped_column(
        sa.Boolean(), nullable=False, default=False, server_default=sa.false()
    )
    size: Mapped[str | None] = mapped_column(String(50), nullable=True)
    bookmark_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source_date: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    directory_created_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    # Relationships
    artist: Mapped["ArtistModel | None"] = relationship(
        "ArtistModel", back_populates="artworks"
    )
    images: Mapped[list["ImageModel"]] = relationship(
        "ImageModel",
        back_populates="artwork",
        cascade="all, delete-orphan",
        order_by="ImageModel.sort_order",
    )

    __table_args__ = (
        Index("ix_artworks_source_date", "source_date"),
        Index("ix_artworks_meta_source_null", "meta_source"),
    )


class ImageModel(Base):
    """SQLAlchemy model for one media page of an artwork."""

    __tablename__ = "images"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Root-relative, forward slashes, leading "/" (e.g. "/alice/123_p0.jpg")
    path: Mapped[str] = mapped_column(String(1024), nullable=False)
    size: Mapped[int | None] = mapped_column(sa.BigInteger(), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    artwork_id: Mapped[int] = mapped_column(
        ForeignKey("artworks.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )

    artwork: Mapped["ArtworkModel"] = relationship(
        "ArtworkModel", back_populates="images"
    )

    __table_args__ = (
        sa.UniqueConstraint("artwork_id", "path", name="uq_images_artwork_path"),
        Index("ix_images_artwork_sort", "artwork_id", "sort_order"),
    )


class ArtworkTagModel(Base):
    """Association row between an artwork and a tag."""

    __tablename__ = "artwork_tags"

    artwork_id: Mapped[int] = mapped_column(
        ForeignKey("artworks.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[int] = mapped_column(
        ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True
    )


class AppSettingsModel(Base):
    """Dynamic application settings stored in DB.

    Key-value store for runtime configuration. Survives a forced full rescan.

    Example keys:
    - 'scan_path' (absolute scan root chosen in the settings UI)
    """

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
        server_default=func.now(),
    )
