"""Artist/tag resolution with a run-scoped cache."""

import logging
from collections.abc import Sequence

from artshelf.application.services.scan_context import ScanContext
from artshelf.domain.value_objects.sidecar_metadata import MetadataRecord
from artshelf.infrastructure.persistence.database import Database
from artshelf.infrastructure.persistence.repositories import (
    ArtistRepository,
    TagRepository,
)

logger = logging.getLogger(__name__)


def artist_bio(user_id: str) -> str:
    """Default bio for artists created by the scanner."""
    return f"Artist from external source (ID: {user_id})"


class EntityResolverService:
    """Resolves artist user_ids and tag names to row ids, creating what's missing.

    Hey future me - the query count is O(batches), NOT O(artworks):
    per batch, one IN lookup for keys missing from the cache, one bulk insert-or-ignore,
    one re-select. Each call runs in its OWN short transaction and the cache is only
    updated after that transaction committed, so a failed batch can never leave ids of
    rolled-back rows in the cache.
    """

    def __init__(self, db: Database) -> None:
        """Initialize resolver.

        Args:
            db: Database for short resolve transactions
        """
        self.db = db

    async def resolve_artists(
        self, ctx: ScanContext, records: Sequence[MetadataRecord]
    ) -> None:
        """Make sure every record's artist exists and is in ctx.artist_cache."""
        # First name wins when the same user_id shows up twice in a batch
        wanted: dict[str, MetadataRecord] = {}
        for record in records:
            if record.user_id not in ctx.artist_cache:
                wanted.setdefault(record.user_id, record)
        if not wanted:
            return

        async with self.db.session_scope() as session:
            repo = ArtistRepository(session)
            existing = await repo.get_ids_by_user_ids(wanted)
            missing = [uid for uid in wanted if uid not in existing]

            resolved = dict(existing)
            if missing:
                await repo.insert_ignore(
                    [
                        {
                            "name": wanted[uid].user,
                            "username": wanted[uid].user,
                            "user_id": uid,
                            "bio": artist_bio(uid),
                        }
                        for uid in missing
                    ]
                )
                resolved.update(await repo.get_ids_by_user_ids(missing))

        created = len(resolved) - len(existing)
        ctx.artist_cache.update(resolved)
        ctx.result.new_artists += created
        if created:
            logger.debug(f"Created {created} artists ({len(existing)} already existed)")

    async def resolve_tags(
        self, ctx: ScanContext, records: Sequence[MetadataRecord]
    ) -> None:
        """Make sure every tag of the records exists and is in ctx.tag_cache."""
        wanted = {
            tag for record in records for tag in record.tags if tag not in ctx.tag_cache
        }
        if not wanted:
            return

        async with self.db.session_scope() as session:
            repo = TagRepository(session)
            existing = await repo.get_ids_by_names(wanted)
            missing = sorted(wanted - existing.keys())

            resolved = dict(existing)
            if missing:
                await repo.insert_ignore([{"name": name} for name in missing])
                resolved.update(await repo.get_ids_by_names(missing))

        created = len(resolved) - len(existing)
        ctx.tag_cache.update(resolved)
        ctx.result.new_tags += created
        if created:
            logger.debug(f"Created {created} tags ({len(existing)} already existed)")
