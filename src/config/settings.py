"""
Configuration Management for the Obligation Engine

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All tunable thresholds are centralized here. Match scoring
weights are NOT configuration; they live as constants in the scorer.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Thresholds and windows used by the scheduling and matching engine."""

    model_config = SettingsConfigDict(
        env_prefix="OBLIGATIONS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Matching
    match_window_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Max days between transaction date and due date for a pairing"
    )
    suggestion_min_score: int = Field(
        default=150,
        ge=0,
        description="Minimum score for an automatic match suggestion"
    )

    # Projection
    upcoming_horizon_days: int = Field(
        default=30,
        ge=0,
        le=366,
        description="Look-ahead window for insufficient-funds warnings"
    )

    # Reconciliation
    reconciliation_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        gt=0,
        description="Differences strictly below this are not drift"
    )
    drift_major_amount: Decimal = Field(default=Decimal("200"), ge=0)
    drift_critical_amount: Decimal = Field(default=Decimal("500"), ge=0)
    drift_major_percent: Decimal = Field(default=Decimal("5"), ge=0)
    drift_critical_percent: Decimal = Field(default=Decimal("10"), ge=0)

    # Scheduling
    max_recurrence_interval: int = Field(
        default=365,
        ge=1,
        description="Largest accepted recurrence interval"
    )
    max_series_length: int = Field(
        default=120,
        ge=1,
        description="Largest number of obligations in one batch series"
    )
    default_preview_count: int = Field(
        default=5,
        ge=1,
        le=120,
        description="Due dates shown by a recurrence preview"
    )

    @field_validator('drift_critical_amount')
    @classmethod
    def critical_above_major(cls, v: Decimal, info) -> Decimal:
        major = info.data.get("drift_major_amount")
        if major is not None and v < major:
            raise ValueError("Critical drift amount cannot be below major drift amount")
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
    log_level: str = Field(
        default="INFO",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
        description="Level for the structured audit log"
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
    def engine(self) -> EngineSettings:
        return EngineSettings()

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

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.engine
        results["engine"] = True
    except Exception as e:
        results["engine"] = False
        results["engine_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
