"""Infrastructure persistence layer."""

from .database import Database
from .models import (
    AppSettingsModel,
    ArtistModel,
    ArtworkModel,
    ArtworkTagModel,
    Base,
    ImageModel,
    TagModel,
)
from .repositories import (
    AppSettingsRepository,
    ArtistRepository,
    ArtworkRepository,
    ArtworkTagRepository,
    ImageRepository,
    TagRepository,
    insert_or_ignore,
    reset_library,
)
from .retry import is_lock_error, with_db_retry

__all__ = [
    "AppSettingsModel",
    "AppSettingsRepository",
    "ArtistModel",
    "ArtistRepository",
    "ArtworkModel",
    "ArtworkRepository",
    "ArtworkTagModel",
    "ArtworkTagRepository",
    "Base",
    "Database",
    "ImageModel",
    "ImageRepository",
    "TagModel",
    "TagRepository",
    "insert_or_ignore",
    "is_lock_error",
    "reset_library",
    "with_db_retry",
]
