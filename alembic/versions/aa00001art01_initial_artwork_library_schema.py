"""Initial artwork library schema.

Revision ID: aa00001art01
Revises:
Create Date: 2026-10-18

Hey future me - this creates the whole ingestion schema in one go:

- artists (natural key: user_id)
- tags (natural key: name)
- artworks (natural key: external_id) → artists, SET NULL on delete
- images → artworks, CASCADE, unique per (artwork_id, path)
- artwork_tags (composite PK) → artworks + tags, CASCADE
- app_settings (key/value, survives a forced rescan)

The unique indexes on the natural keys are what insert-or-ignore conflicts on.
Don't drop them or the scanner starts creating duplicates!
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "aa00001art01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create artwork library tables."""
    op.create_table(
        "artists",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("user_id", sa.String(50), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_artists_name", "artists", ["name"])
    op.create_index("ix_artists_user_id", "artists", ["user_id"], unique=True)

    op.create_table(
        "tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "artworks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("external_id", sa.String(50), nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "description_length", sa.Integer(), nullable=False, server_default="0"
        ),
        sa.Column(
            "artist_id",
            sa.Integer(),
            sa.ForeignKey("artists.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("image_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("meta_source", sa.String(1024), nullable=True),
        sa.Column("source_url", sa.String(1024), nullable=True),
        sa.Column("original_url", sa.String(1024), nullable=True),
        sa.Column("thumbnail_url", sa.String(1024), nullable=True),
        sa.Column("x_restrict", sa.String(20), nullable=True),
        sa.Column(
            "is_ai_generated", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("size", sa.String(50), nullable=True),
        sa.Column("bookmark_count", sa.Integer(), nullable=True),
        sa.Column("source_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("directory_created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_artworks_external_id", "artworks", ["external_id"], unique=True
    )
    op.create_index("ix_artworks_artist_id", "artworks", ["artist_id"])
    op.create_index("ix_artworks_source_date", "artworks", ["source_date"])
    op.create_index("ix_artworks_meta_source_null", "artworks", ["meta_source"])

    op.create_table(
        "images",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("path", sa.String(1024), nullable=False),
        sa.Column("size", sa.BigInteger(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column(
            "artwork_id",
            sa.Integer(),
            sa.ForeignKey("artworks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("artwork_id", "path", name="uq_images_artwork_path"),
    )
    op.create_index("ix_images_artwork_id", "images", ["artwork_id"])
    op.create_index("ix_images_artwork_sort", "images", ["artwork_id", "sort_order"])

    op.create_table(
        "artwork_tags",
        sa.Column(
            "artwork_id",
            sa.Integer(),
            sa.ForeignKey("artworks.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.Integer(),
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_artwork_tags_tag_id", "artwork_tags", ["tag_id"])

    op.create_table(
        "app_settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text(), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    """Drop artwork library tables (children first)."""
    op.drop_table("app_settings")
    op.drop_index("ix_artwork_tags_tag_id", table_name="artwork_tags")
    op.drop_table("artwork_tags")
    op.drop_index("ix_images_artwork_sort", table_name="images")
    op.drop_index("ix_images_artwork_id", table_name="images")
    op.drop_table("images")
    op.drop_index("ix_artworks_meta_source_null", table_name="artworks")
    op.drop_index("ix_artworks_source_date", table_name="artworks")
    op.drop_index("ix_artworks_artist_id", table_name="artworks")
    op.drop_index("ix_artworks_external_id", table_name="artworks")
    op.drop_table("artworks")
    op.drop_table("tags")
    op.drop_index("ix_artists_user_id", table_name="artists")
    op.drop_index("ix_artists_name", table_name="artists")
    op.drop_table("artists")
