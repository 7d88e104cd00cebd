"""
Configuration Management for Freezer Inventory

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which backends a build is wired to and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local durable cache configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FREEZER_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".freezer",
        description="Directory holding the local document cache"
    )
    data_file_name: str = Field(
        default="freezer-data.json",
        description="File name of the serialized inventory document"
    )
    share_context_file_name: str = Field(
        default="share-context.json",
        description="File name of the device-local accepted share record"
    )

    @property
    def data_file_path(self) -> Path:
        """Full path of the inventory document."""
        return self.data_dir / self.data_file_name

    @property
    def share_context_path(self) -> Path:
        """Full path of the accepted share record."""
        return self.data_dir / self.share_context_file_name


class CloudSettings(BaseSettings):
    """Remote sync and sharing configuration (Google Sheets backend)."""

    model_config = SettingsConfigDict(
        env_prefix="FREEZER_CLOUD_",
        extra="ignore"
    )

    sharing_enabled: bool = Field(
        default=False,
        description="Wire the remote-synced repository and sharing service"
    )
    credentials_path: Optional[str] = Field(
        default=None,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: Optional[str] = Field(
        default=None,
        description="ID of the spreadsheet holding this device's own records"
    )

    # Worksheet names within a spreadsheet
    records_sheet_name: str = Field(
        default="FreezerRecords",
        description="Name of the sheet holding household records"
    )
    subscriptions_sheet_name: str = Field(
        default="Subscriptions",
        description="Name of the sheet holding change subscriptions"
    )
    shares_sheet_name: str = Field(
        default="Shares",
        description="Name of the sheet holding share links"
    )

    # Timeouts
    fetch_timeout_seconds: float = Field(
        default=2.0,
        gt=0.0,
        le=30.0,
        description="Upper bound for a blocking remote fetch"
    )
    push_timeout_seconds: float = Field(
        default=15.0,
        gt=0.0,
        le=120.0,
        description="Upper bound for one background push"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if v and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before enabling cloud sharing."
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
        description="Deployment name reported in the startup log"
    )
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG level regardless of log_level"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for structured logs"
    )

    # First-launch defaults
    default_threshold_months: int = Field(
        default=6,
        ge=1,
        le=60,
        description="Months before an item counts as overdue"
    )
    default_notification_hour: int = Field(
        default=9,
        ge=0,
        le=23,
        description="Preferred hour for the overdue reminder"
    )
    default_household_name: str = Field(
        default="Home Freezer",
        description="Name given to a newly created household"
    )
    default_user_name: str = Field(
        default="You",
        description="Display name of the first user on a new device"
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

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def cloud(self) -> CloudSettings:
        return CloudSettings()

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
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "cloud", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    # Cloud sharing needs both a credentials file and a spreadsheet
    if results.get("cloud"):
        cloud = settings.cloud
        if cloud.sharing_enabled:
            results["cloud_ready"] = bool(cloud.credentials_path and cloud.spreadsheet_id)
        else:
            results["cloud_ready"] = False

    return results
