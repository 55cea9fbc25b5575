"""
Currency Converter

Converts amounts between any two currencies by triangulating through
the reference currency:

    converted = amount * rate(from -> REF) * (1 / rate(to -> REF))

CRITICAL: Intermediate values keep full float precision. Only the
final amount (money places) and the direct rate (rate places) are
rounded, so chained conversions do not drift.
"""

from datetime import date
from typing import Optional

import structlog

from budgetwise.models.context import UserContext
from budgetwise.models.stats import ConversionResult
from budgetwise.services.currency.rate_store import CurrencyRateStore


logger = structlog.get_logger(__name__)


class CurrencyError(Exception):
    """Base exception for currency conversion."""
    pass


class RateUnavailableError(CurrencyError):
    """No fresh rate exists for a mandatory conversion."""

    def __init__(self, currencies: list[str], on_date: date):
        self.currencies = currencies
        self.on_date = on_date
        super().__init__(
            f"No fresh exchange rate for {', '.join(currencies)} on {on_date.isoformat()}"
        )


class CurrencyConverter:
    """
    Converts amounts using the snapshots of a CurrencyRateStore.

    Usage:
        converter = CurrencyConverter(store, UserContext(base_currency="GBP"))
        result = converter.convert(100, "EUR", "GBP", date(2024, 3, 1))
        if result.needs_refresh:
            ...  # fetch rates for result.missing_currencies, then retry
    """

    def __init__(
        self,
        rate_store: CurrencyRateStore,
        context: Optional[UserContext] = None,
    ):
        self._store = rate_store
        self._context = context or UserContext(
            reference_currency=rate_store.reference_currency,
            freshness_window_days=rate_store.freshness_window_days,
        )

    @property
    def context(self) -> UserContext:
        return self._context

    def convert(
        self,
        amount: float,
        from_currency: str,
        to_currency: str,
        on_date: date,
        mandatory: bool = False,
    ) -> ConversionResult:
        """
        Convert `amount` from one currency to another at `on_date`.

        Args:
            amount: Amount in from_currency
            from_currency: Source currency code
            to_currency: Target currency code
            on_date: Date whose rates apply
            mandatory: Raise instead of returning a soft failure

        Returns:
            ConversionResult; on a missing or stale rate
            `converted_amount` is None and `needs_refresh` is True

        Raises:
            RateUnavailableError: If mandatory and a rate is missing or stale
        """
        from_currency = from_currency.upper()
        to_currency = to_currency.upper()

        if from_currency == to_currency:
            return ConversionResult(converted_amount=amount, exchange_rate_used=1.0)

        from_rate = self._store.get_rate(from_currency, on_date)
        to_rate = self._store.get_rate(to_currency, on_date)

        missing = []
        if from_rate is None:
            missing.append(from_currency)
        if to_rate is None:
            missing.append(to_currency)

        if missing:
            logger.info(
                "exchange_rate_refresh_needed",
                currencies=missing,
                date=on_date.isoformat(),
                mandatory=mandatory,
            )
            if mandatory:
                raise RateUnavailableError(missing, on_date)
            return ConversionResult(needs_refresh=True, missing_currencies=missing)

        converted = amount * from_rate * (1 / to_rate)
        direct_rate = from_rate / to_rate

        return ConversionResult(
            converted_amount=self._context.round_money(converted),
            exchange_rate_used=self._context.round_rate(direct_rate),
        )

    def convert_to_base(
        self,
        amount: float,
        currency: str,
        on_date: date,
        is_paid: bool = False,
    ) -> ConversionResult:
        """
        Convert into the user's base currency.

        Paid amounts must convert: a paid expense without a fresh rate
        raises instead of being stored with a guessed amount.
        """
        return self.convert(
            amount,
            currency,
            self._context.base_currency,
            on_date,
            mandatory=is_paid,
        )
