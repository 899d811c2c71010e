"""
Expense Tracker configuration.

Every value comes from the environment (or a local .env file) through
pydantic-settings, so a misconfigured deployment fails at startup with a
readable error instead of on the first store call.

Sections:
- GoogleSheetsSettings: only needed when STORAGE_BACKEND=google_sheets
- AppSettings: backend choice, identity provider, validation thresholds
"""

import warnings
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Where the hosted store lives and how to authenticate to it."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account JSON key file"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Key of the spreadsheet holding every worksheet below"
    )

    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Worksheet with one row per expense"
    )
    preferences_sheet_name: str = Field(
        default="Preferences",
        description="Worksheet with one row per user"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Append-only worksheet of audit events"
    )

    @field_validator('credentials_path')
    @classmethod
    def warn_missing_credentials(cls, v: str) -> str:
        # Secrets are often mounted after the settings are first read.
        if not Path(v).exists():
            warnings.warn(f"Service account file {v} does not exist yet.")
        return v


class AppSettings(BaseSettings):
    """
    Application-wide switches.

    Env var names match the field names (DEBUG_MODE, STORAGE_BACKEND, ...).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="development, staging or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG level"
    )

    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Where expenses and preferences are kept"
    )
    auth_provider: Optional[str] = Field(
        default=None,
        description="Streamlit OIDC provider name (None uses the default provider)"
    )

    max_title_length: int = Field(
        default=200,
        ge=1,
        le=1000,
        description="Longest accepted expense title"
    )
    max_expense_amount: float = Field(
        default=1000000.0,
        gt=0,
        description="Amounts above this are saved with a warning"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="Dates further ahead than this are saved with a warning"
    )


class Settings(BaseSettings):
    """
    Entry point for all configuration sections.

    Sections are built on access so a memory-only setup never needs
    Google credentials.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Shared Settings instance; get_settings.cache_clear() forces a reload."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Check that each configuration section loads.

    Returns:
        {section: ok} plus "<section>_error" for each section that failed.
        google_sheets is reported as failed when the memory backend is in
        use, with an explanatory error.
    """
    settings = get_settings()
    results: dict = {}

    for section in ("app", "google_sheets"):
        try:
            getattr(settings, section)
        except Exception as e:
            results[section] = False
            results[f"{section}_error"] = str(e)
        else:
            results[section] = True

    if results["app"] and settings.app.storage_backend == "memory":
        results["google_sheets"] = False
        results["google_sheets_error"] = "STORAGE_BACKEND is memory"

    return results
