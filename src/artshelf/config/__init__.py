"""Configuration module for ArtShelf."""

from .settings import (
    DatabaseSettings,
    ObservabilitySettings,
    ScannerSettings,
    Settings,
    StorageSettings,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "ObservabilitySettings",
    "ScannerSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
]
