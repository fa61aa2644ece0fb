"""
Configuration Management for the Club Dues Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Fee amounts, the reserved fee category and the storage backend are read
once and handed to the engine, so nothing in the core reaches for globals.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# SHA-256 of "admin123"
DEFAULT_ADMIN_PASSWORD_HASH = (
    "240be518fabd2724ddb6f04eeb1da5967448d7e831c08c8fa822809f74c720a9"
)


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
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
    members_sheet_name: str = Field(
        default="Members",
        description="Name of the sheet for members"
    )
    payments_sheet_name: str = Field(
        default="Payments",
        description="Name of the sheet for monthly payment records"
    )
    transactions_sheet_name: str = Field(
        default="Transactions",
        description="Name of the sheet for ledger transactions"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
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


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Model temperature (reports read better slightly warm)"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables (APP_ prefix) and .env file.
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
    club_name: str = Field(
        default="Silat Club",
        description="Club name used in report prompts and page titles"
    )

    # Dues
    monthly_fee: Decimal = Field(
        default=Decimal("30"),
        gt=0,
        description="Standard monthly membership fee"
    )
    session_target: Decimal = Field(
        default=Decimal("150"),
        ge=0,
        description="Cumulative fee target per member for one session"
    )
    fee_category: str = Field(
        default="Monthly Fee",
        min_length=1,
        description="Reserved transaction category for membership dues income"
    )
    currency_symbol: str = Field(
        default="RM",
        description="Currency prefix for display"
    )
    enforce_join_date: bool = Field(
        default=True,
        description="Reject marking months before a member's join month as paid"
    )

    # Persistence
    storage_backend: str = Field(
        default="local",
        pattern="^(local|google_sheets|memory)$",
        description="Where the ledger snapshot is persisted"
    )
    data_file: str = Field(
        default="data/club_ledger.json",
        description="Snapshot file for the local storage backend"
    )
    seed_example_members: bool = Field(
        default=True,
        description="Seed example members when no stored snapshot exists"
    )

    # Login gate (not a security mechanism)
    admin_username: str = Field(
        default="admin",
        description="Login username"
    )
    admin_password_hash: str = Field(
        default=DEFAULT_ADMIN_PASSWORD_HASH,
        min_length=64,
        max_length=64,
        description="SHA-256 hex digest of the login password"
    )

    @property
    def data_path(self) -> Path:
        """Snapshot file as a Path."""
        return Path(self.data_file)


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
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

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


def validate_all_settings(
    settings: Optional[Settings] = None,
) -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the ones that failed.
    """
    results = {}
    settings = settings or get_settings()

    for name in ("google_sheets", "gemini", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
