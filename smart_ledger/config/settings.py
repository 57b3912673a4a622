"""
Configuration Management for Smart Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini model configuration for the AI entry flow."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class StorageSettings(BaseSettings):
    """Key-value persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["auto", "local", "sheets", "memory"] = Field(
        default="auto",
        description="Backend to use; 'auto' detects Google Sheets, else local files"
    )
    data_dir: str = Field(
        default=".ledger_data",
        description="Directory for the local file backend"
    )

    # Collection keys
    transactions_key: str = Field(default="yy_transactions")
    budgets_key: str = Field(default="yy_budgets")
    prefs_key: str = Field(default="yy_prefs")
    audit_key: str = Field(default="yy_audit")

    audit_retention: int = Field(
        default=500,
        ge=0,
        description="How many audit events to keep in storage (0 disables)"
    )
    audit_max_chars: int = Field(
        default=40_000,
        gt=0,
        description="Upper bound on the stored audit trail's JSON length; must fit one Sheets cell"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets key-value backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        default="",
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        default="",
        description="ID of the Google Sheets spreadsheet to use"
    )
    kv_sheet_name: str = Field(
        default="LedgerStore",
        description="Name of the worksheet holding key/value rows"
    )

    @property
    def is_configured(self) -> bool:
        """True when both a spreadsheet and an existing credentials file are set."""
        return bool(
            self.spreadsheet_id
            and self.credentials_path
            and Path(self.credentials_path).exists()
        )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level for structured logs"
    )
    timezone: str = Field(
        default="Asia/Shanghai",
        description="Timezone used for calendar grouping in reports"
    )

    # Capture limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum image size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp,heic",
        description="Comma-separated list of supported image formats"
    )
    audio_mime_type: str = Field(
        default="audio/wav",
        description="Container format every recorded clip is tagged with"
    )

    # Dashboard
    recent_limit: int = Field(
        default=5,
        ge=1,
        description="How many transactions the dashboard lists"
    )
    trend_days: int = Field(
        default=7,
        ge=1,
        le=31,
        description="Window of the daily trend chart"
    )

    @field_validator('audio_mime_type')
    @classmethod
    def validate_audio_mime_type(cls, v: str) -> str:
        """Only audio container types make sense here."""
        if not v.lower().startswith("audio/"):
            raise ValueError(f"Not an audio MIME type: {v}")
        return v.lower()

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


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

    # Sub-settings are loaded lazily so a missing Gemini key
    # does not stop the manual ledger from working.

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
    Useful for the settings page.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.gemini
        results["gemini"] = True
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        sheets = settings.google_sheets
        results["google_sheets"] = sheets.is_configured
        if not sheets.is_configured:
            results["google_sheets_error"] = "Not configured (using local storage)"
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
