"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseModel):
    """Database connection settings."""

    url: str = Field(
        default="sqlite+aiosqlite:///./artshelf.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Log every SQL statement")
    pool_size: int = Field(default=5, ge=1)
    max_overflow: int = Field(default=10, ge=0)
    pool_timeout: int = Field(default=30, ge=1)
    pool_recycle: int = Field(default=3600, ge=-1)
    pool_pre_ping: bool = Field(default=True)
    # Hey future me - lock_timeout is how long a batch transaction waits for a row/table
    # lock before giving up. SQLite maps it to the busy timeout, PostgreSQL to the
    # lock_timeout server setting. 5s matches the old ingestion transaction's maxWait.
    lock_timeout: float = Field(default=5.0, gt=0)


class StorageSettings(BaseModel):
    """Filesystem locations."""

    # Fallback scan root when no scan_path is persisted in app_settings
    scan_path: Path = Field(default=Path("./library"))


class ScannerSettings(BaseModel):
    """Ingestion pipeline tuning."""

    low_resource_mode: bool = Field(
        default=False,
        description="Use tiny batches (development boxes, NAS with little RAM)",
    )
    batch_size: int | None = Field(
        default=None,
        ge=1,
        description="Artworks per ingestion transaction (None = 5 low-resource, 100 otherwise)",
    )
    max_depth: int = Field(default=4, ge=1, description="Max path components below root")
    max_workers: int = Field(default=8, ge=1, description="Parse/associate threads")
    transaction_timeout: float = Field(default=30.0, gt=0)
    use_remote_scanner: bool = Field(default=False)
    remote_scanner_url: str = Field(default="http://localhost:3000")
    remote_timeout: float = Field(default=30.0, gt=0)
    remote_max_attempts: int = Field(default=3, ge=1)
    remote_initial_delay: float = Field(default=1.0, ge=0)
    remote_max_delay: float = Field(default=5.0, ge=0)

    @field_validator("remote_scanner_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the remote URL so path joins stay predictable."""
        return v.rstrip("/")

    @property
    def effective_batch_size(self) -> int:
        """Batch size actually used by the ingestion engine."""
        if self.batch_size is not None:
            return self.batch_size
        return 5 if self.low_resource_mode else 100


class ObservabilitySettings(BaseModel):
    """Logging settings."""

    log_level: str = Field(default="INFO")
    log_json_format: bool = Field(default=False)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Reject unknown log levels early instead of silently defaulting."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level


# Hey future me - nested groups are set from env with a double underscore:
#   DATABASE__URL=postgresql+asyncpg://...  SCANNER__BATCH_SIZE=50
# The two legacy flags USE_REMOTE_SCANNER / REMOTE_SCANNER_URL are flat env vars in
# old deployments, so Settings lifts them into the scanner group (see below).
class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app_name: str = Field(default="artshelf")
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    scanner: ScannerSettings = Field(default_factory=ScannerSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    use_remote_scanner: bool | None = Field(default=None, exclude=True)
    remote_scanner_url: str | None = Field(default=None, exclude=True)

    def model_post_init(self, _context: object) -> None:
        """Apply flat legacy scanner flags on top of the nested group."""
        if self.use_remote_scanner is not None:
            self.scanner.use_remote_scanner = self.use_remote_scanner
        if self.remote_scanner_url is not None:
            self.scanner.remote_scanner_url = self.remote_scanner_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
