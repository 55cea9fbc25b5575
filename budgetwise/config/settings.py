"""
Configuration Management for Budgetwise

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Calculators never read these settings directly. They receive a
UserContext built from them, so every calculation can be exercised
with an explicit configuration in tests.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CurrencySettings(BaseSettings):
    """Currency conversion configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETWISE_CURRENCY_",
        extra="ignore"
    )

    reference_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency every conversion is triangulated through"
    )
    freshness_window_days: int = Field(
        default=14,
        ge=0,
        le=365,
        description="Maximum day-distance for a stored rate to be reused"
    )
    money_decimal_places: int = Field(
        default=2,
        ge=0,
        le=6,
        description="Decimal places of converted money amounts"
    )
    rate_decimal_places: int = Field(
        default=6,
        ge=0,
        le=12,
        description="Decimal places of the derived direct exchange rate"
    )

    @field_validator('reference_currency')
    @classmethod
    def normalize_reference_currency(cls, v: str) -> str:
        return v.strip().upper()


class WalletSettings(BaseSettings):
    """Cash wallet ledger configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETWISE_WALLET_",
        extra="ignore"
    )

    prune_threshold: float = Field(
        default=0.01,
        ge=0.0,
        description="Balances at or below this amount are removed from the wallet"
    )
    max_write_attempts: int = Field(
        default=3,
        ge=1,
        le=20,
        description="Attempts for a wallet write before a version conflict is raised"
    )


class CategorizationSettings(BaseSettings):
    """Auto-categorization configuration."""

    model_config = SettingsConfigDict(
        env_prefix="BUDGETWISE_CATEGORIZATION_",
        extra="ignore"
    )

    default_priority: str = Field(
        default="wants",
        pattern="^(needs|wants|savings)$",
        description="Priority reported when no category matches"
    )
    uncategorized_label: str = Field(
        default="Uncategorized",
        min_length=1,
        description="Category name reported when no category matches"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="BUDGETWISE_",
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
        description="Minimum level for local structured logs"
    )

    # User defaults
    base_currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
        description="Currency transaction amounts are stored in"
    )
    goal_mode: str = Field(
        default="percentage",
        pattern="^(percentage|absolute)$",
        description="How budget goals size the system budgets"
    )
    fixed_lifestyle_mode: bool = Field(
        default=False,
        description="Size needs/wants on historical income and send the surplus to savings"
    )

    @field_validator('base_currency')
    @classmethod
    def normalize_base_currency(cls, v: str) -> str:
        return v.strip().upper()


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
    def currency(self) -> CurrencySettings:
        return CurrencySettings()

    @property
    def wallet(self) -> WalletSettings:
        return WalletSettings()

    @property
    def categorization(self) -> CategorizationSettings:
        return CategorizationSettings()

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


def validate_all_settings(settings: Optional[Settings] = None) -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an
    "<name>_error" entry for every section that failed.
    Useful for startup checks.
    """
    settings = settings or get_settings()
    results = {}

    for name in ("currency", "wallet", "categorization", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
