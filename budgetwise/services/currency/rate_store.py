"""
Exchange Rate Store

Keeps dated snapshots of every currency against a single reference
currency and answers "what rate applies on this date?".

DESIGN DECISION: Lookups select the snapshot with the smallest
absolute day-distance from the requested date, not the latest one
before it. A rate fetched a few days after a transaction is closer
to the truth than one fetched weeks earlier.

A snapshot is only reused when it lies within the freshness window
(inclusive). Outside the window the caller must fetch new rates.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

import structlog

from budgetwise.models.context import UserContext
from budgetwise.models.ledger import ExchangeRate
from budgetwise.models.stats import RateLookup


logger = structlog.get_logger(__name__)

QUOTE_KEY_SEPARATOR = "_to_"


class CurrencyRateStore:
    """
    In-memory index of exchange-rate snapshots.

    Usage:
        store = CurrencyRateStore(reference_currency="USD")
        store.ingest_reference_quotes(date(2024, 3, 1), {"USD_to_EUR": 0.92})
        store.get_rate("EUR", date(2024, 3, 5))  # 1 EUR in USD
    """

    def __init__(
        self,
        rates: Iterable[ExchangeRate] = (),
        reference_currency: str = "USD",
        freshness_window_days: int = 14,
    ):
        self.reference_currency = reference_currency.upper()
        self.freshness_window_days = freshness_window_days
        # currency -> snapshot date -> rate
        self._snapshots: dict[str, dict[date, ExchangeRate]] = defaultdict(dict)

        for rate in rates:
            self.upsert(rate)

    @classmethod
    def from_context(
        cls,
        context: UserContext,
        rates: Iterable[ExchangeRate] = (),
    ) -> 'CurrencyRateStore':
        return cls(
            rates=rates,
            reference_currency=context.reference_currency,
            freshness_window_days=context.freshness_window_days,
        )

    def upsert(self, rate: ExchangeRate) -> ExchangeRate:
        """
        Store a snapshot, replacing any earlier one for the same
        (date, currency).

        Raises:
            ValueError: If the rate is not quoted against the reference currency
        """
        if rate.to_currency != self.reference_currency:
            raise ValueError(
                f"Rates must be quoted in {self.reference_currency}, got {rate.to_currency}"
            )
        self._snapshots[rate.from_currency][rate.date] = rate
        return rate

    add = upsert

    def ingest_reference_quotes(
        self,
        on_date: date,
        quotes: dict[str, float],
    ) -> list[ExchangeRate]:
        """
        Store quotes of the form {"USD_to_EUR": 0.92}.

        Each quote means 1 reference unit = X target units, so it is
        inverted into a "1 EUR = 1/X USD" snapshot. Keys that do not
        follow the "<REF>_to_<CCY>" format are logged and skipped.

        Raises:
            ValueError: If a well-formed quote is not positive
        """
        pending = []

        for key, value in quotes.items():
            parts = key.split(QUOTE_KEY_SEPARATOR)
            if len(parts) != 2 or parts[0].upper() != self.reference_currency:
                logger.warning("exchange_rate_key_skipped", key=key)
                continue

            target = parts[1].strip().upper()
            if value is None or float(value) <= 0:
                raise ValueError(f"Exchange rate for {key} must be positive, got {value}")

            if target == self.reference_currency:
                continue

            try:
                rate = ExchangeRate(
                    date=on_date,
                    from_currency=target,
                    to_currency=self.reference_currency,
                    rate=1 / float(value),
                )
            except ValueError:
                logger.warning("exchange_rate_key_skipped", key=key)
                continue

            pending.append(rate)

        # Nothing is stored until every quote has been checked
        stored = [self.upsert(rate) for rate in pending]

        logger.info(
            "exchange_rates_stored",
            date=on_date.isoformat(),
            currencies=[r.from_currency for r in stored],
        )
        return stored

    def currencies(self) -> list[str]:
        """Currencies with at least one snapshot."""
        return sorted(c for c, snaps in self._snapshots.items() if snaps)

    def find_closest(self, currency: str, on_date: date) -> Optional[RateLookup]:
        """
        Find the snapshot nearest to `on_date`, fresh or not.

        Ties between a snapshot before and one after the date go to
        the earlier snapshot. The reference currency always resolves
        to 1.0 at distance 0.
        """
        currency = currency.upper()

        if currency == self.reference_currency:
            return RateLookup(
                currency=currency,
                rate=1.0,
                snapshot_date=on_date,
                requested_date=on_date,
                distance_days=0,
                is_fresh=True,
            )

        snapshots = self._snapshots.get(currency)
        if not snapshots:
            return None

        best_date = min(
            snapshots,
            key=lambda d: (abs((d - on_date).days), d),
        )
        distance = abs((best_date - on_date).days)

        return RateLookup(
            currency=currency,
            rate=snapshots[best_date].rate,
            snapshot_date=best_date,
            requested_date=on_date,
            distance_days=distance,
            is_fresh=distance <= self.freshness_window_days,
        )

    def get_rate(self, currency: str, on_date: date) -> Optional[float]:
        """Rate of `currency` against the reference, or None if missing or stale."""
        lookup = self.find_closest(currency, on_date)
        if lookup is None or not lookup.is_fresh:
            return None
        return lookup.rate

    def is_fresh(self, currency: str, on_date: date) -> bool:
        return self.get_rate(currency, on_date) is not None
