"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from artshelf.config import ObservabilitySettings, ScannerSettings, Settings


class TestScannerSettings:
    """Test scanner tuning knobs."""

    def test_default_batch_size(self) -> None:
        """Normal mode uses 100 per batch."""
        assert ScannerSettings().effective_batch_size == 100

    def test_low_resource_batch_size(self) -> None:
        """Low resource mode drops to 5 per batch."""
        assert ScannerSettings(low_resource_mode=True).effective_batch_size == 5

    def test_explicit_batch_size_wins(self) -> None:
        """An explicit batch size overrides both defaults."""
        assert ScannerSettings(batch_size=7, low_resource_mode=True).effective_batch_size == 7

    def test_remote_url_trailing_slash_stripped(self) -> None:
        """Endpoint joining never doubles the slash."""
        assert ScannerSettings(remote_scanner_url="http://nas:3000/").remote_scanner_url == (
            "http://nas:3000"
        )


class TestSettingsFromEnv:
    """Test environment loading."""

    def test_nested_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Groups are configured with the '__' delimiter."""
        monkeypatch.setenv("SCANNER__MAX_DEPTH", "6")
        monkeypatch.setenv("DATABASE__URL", "sqlite+aiosqlite:///./other.db")

        settings = Settings()

        assert settings.scanner.max_depth == 6
        assert settings.database.url == "sqlite+aiosqlite:///./other.db"

    def test_flat_legacy_remote_scanner_flags(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """USE_REMOTE_SCANNER / REMOTE_SCANNER_URL still work."""
        monkeypatch.setenv("USE_REMOTE_SCANNER", "true")
        monkeypatch.setenv("REMOTE_SCANNER_URL", "http://scanner:3000/")

        settings = Settings()

        assert settings.scanner.use_remote_scanner is True
        assert settings.scanner.remote_scanner_url == "http://scanner:3000"


class TestObservabilitySettings:
    """Test log level validation."""

    def test_log_level_normalized(self) -> None:
        """Lower-case levels are accepted."""
        assert ObservabilitySettings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        """Unknown levels are rejected."""
        with pytest.raises(ValidationError):
            ObservabilitySettings(log_level="LOUD")
