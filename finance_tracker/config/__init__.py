"""Configuration package."""

from finance_tracker.config.settings import (
    AppSettings,
    FirebaseSettings,
    GoogleSheetsSettings,
    Settings,
    StoreBackend,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "FirebaseSettings",
    "GoogleSheetsSettings",
    "Settings",
    "StoreBackend",
    "get_settings",
    "validate_all_settings",
]
