"""Configuration package."""

from budgetwise.config.settings import (
    AppSettings,
    CategorizationSettings,
    CurrencySettings,
    Settings,
    WalletSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CategorizationSettings",
    "CurrencySettings",
    "Settings",
    "WalletSettings",
    "get_settings",
    "validate_all_settings",
]
