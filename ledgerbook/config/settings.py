"""
Configuration Management for Ledgerbook

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.

The Gemini API key is OPTIONAL. A missing key is not a startup failure:
the bookkeeping core works fully offline and the AI features report
themselves as unavailable instead.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key (risk analysis is unavailable without it)"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=4096,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )

    @property
    def is_configured(self) -> bool:
        """True when an API key is present."""
        return bool(self.api_key and self.api_key.strip())


class StorageSettings(BaseSettings):
    """Key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["local", "google_sheets", "memory"] = Field(
        default="local",
        description="Which storage backend to use"
    )
    data_dir: str = Field(
        default=".ledgerbook",
        description="Directory for the local JSON backend"
    )
    key_prefix: str = Field(
        default="",
        description="Prefix added to every storage key (e.g. 'shop1_')"
    )

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()


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
    state_sheet_name: str = Field(
        default="LedgerState",
        description="Name of the sheet holding the key-value records"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


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

    # Attribution for recorded transactions
    default_user: str = Field(
        default="Owner",
        min_length=1,
        description="Name recorded as the author of new transactions"
    )

    # Dashboard / analysis thresholds
    low_stock_threshold: int = Field(
        default=5,
        description="Products at or below this stock level are flagged"
    )
    risk_transaction_window: int = Field(
        default=50,
        ge=1,
        le=500,
        description="How many of the most recent transactions are sent for risk analysis"
    )
    chart_transaction_count: int = Field(
        default=10,
        ge=1,
        le=100,
        description="How many transactions the dashboard chart shows"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=1_000_000_000.0,
        description="Amounts above this are flagged for review (sanity check)"
    )

    # Audit trail
    audit_log_max_events: int = Field(
        default=500,
        ge=0,
        description="How many audit events are kept in storage (0 disables persistence)"
    )


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

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

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

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks and the Settings page.
    """
    results = {}

    settings = get_settings()

    try:
        gemini = settings.gemini
        results["gemini"] = gemini.is_configured
        if not gemini.is_configured:
            results["gemini_error"] = "GEMINI_API_KEY is not set"
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        storage = settings.storage
        results["storage"] = True
        results["storage_backend"] = storage.backend
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
