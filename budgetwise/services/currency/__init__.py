"""Currency conversion services."""

from budgetwise.services.currency.converter import (
    CurrencyConverter,
    CurrencyError,
    RateUnavailableError,
)
from budgetwise.services.currency.rate_store import CurrencyRateStore

__all__ = [
    "CurrencyConverter",
    "CurrencyError",
    "CurrencyRateStore",
    "RateUnavailableError",
]
