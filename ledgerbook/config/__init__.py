"""Configuration package."""

from ledgerbook.config.settings import (
    AppSettings,
    GeminiSettings,
    GoogleSheetsSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GeminiSettings",
    "GoogleSheetsSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
