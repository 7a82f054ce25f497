"""
Configuration Management for Controle Financeiro

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreBackend(str, Enum):
    """Which document store implementation backs the app."""
    FIRESTORE = "firestore"
    SHEETS = "sheets"
    MEMORY = "memory"


class FirebaseSettings(BaseSettings):
    """Firebase Authentication and Cloud Firestore configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    web_api_key: str = Field(
        ...,
        description="Firebase Web API key (Identity Toolkit REST API)"
    )
    credentials_path: str = Field(
        ...,
        description="Path to the Firebase service account JSON"
    )
    project_id: Optional[str] = Field(
        default=None,
        description="Firebase project ID (read from the credentials when omitted)"
    )

    # Collection names
    movements_collection: str = Field(
        default="movimentacoes",
        description="Collection holding movement documents"
    )
    users_collection: str = Field(
        default="users",
        description="Collection holding user profile documents"
    )

    request_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout for Identity Toolkit REST calls"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Firebase credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    movements_sheet_name: str = Field(
        default="Movimentacoes",
        description="Name of the sheet for movements"
    )
    users_sheet_name: str = Field(
        default="Usuarios",
        description="Name of the sheet for user profiles"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level"
    )

    store_backend: StoreBackend = Field(
        default=StoreBackend.FIRESTORE,
        description="Document store implementation"
    )

    # UI timings
    notification_seconds: float = Field(
        default=2.5,
        ge=0.0,
        description="How long the success notification stays on screen"
    )
    error_dismiss_seconds: float = Field(
        default=3.0,
        ge=0.0,
        description="How long authentication errors stay on screen"
    )

    # Session persistence (opt-in per browser at sign-in)
    session_cookie: str = Field(
        default="controle_financeiro_session",
        description="Browser cookie holding the encrypted session token"
    )
    session_max_age_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="How long a remembered session stays valid"
    )
    session_secret: Optional[str] = Field(
        default=None,
        description="Passphrase for the session token; persistence is off without it"
    )

    # Report layout (millimetres on an A4 page)
    report_page_break_y: float = Field(
        default=265.0,
        gt=20.0,
        le=290.0,
        description="Vertical offset after which the PDF starts a new page"
    )
    report_top_margin: float = Field(
        default=10.0,
        ge=5.0,
        le=50.0,
        description="Vertical offset where each PDF page starts"
    )

    @property
    def persistence_enabled(self) -> bool:
        """Session persistence needs a secret to encrypt with."""
        return bool(self.session_secret)


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def firebase(self) -> FirebaseSettings:
        return FirebaseSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every group that failed.
    """
    results = {}

    settings = get_settings()

    groups = {
        "firebase": lambda: settings.firebase,
        "google_sheets": lambda: settings.google_sheets,
        "app": lambda: settings.app,
    }

    for name, load in groups.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
