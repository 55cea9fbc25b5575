"""
Cash Wallet Ledger

Tracks physical cash per currency and is the only code allowed to
change wallet balances.

DESIGN DECISION: Every mutation is one read-modify-write of the whole
balance map, saved with the version that was read. A concurrent
writer makes the save fail with VersionConflictError instead of
silently losing an update; the write is then retried on fresh state.

CRITICAL: Sufficiency is checked before anything is written. A
multi-currency change either applies completely or not at all, and
no balance ever goes negative.
"""

from typing import Optional

import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from budgetwise.audit.logger import LedgerEventLogger
from budgetwise.config import WalletSettings, get_settings
from budgetwise.models.ledger import (
    CashAllocation,
    CashTransactionType,
    CashWallet,
    CurrencyBalance,
    Transaction,
)
from budgetwise.services.storage import VersionConflictError, WalletStorageInterface
from budgetwise.validation import validate_cash_allocations


logger = structlog.get_logger(__name__)

BALANCE_DECIMAL_PLACES = 2


class WalletError(Exception):
    """Base exception for wallet operations."""
    pass


class InsufficientBalanceError(WalletError):
    """The wallet cannot cover a requested cash movement."""

    def __init__(self, shortfalls: list[dict]):
        self.shortfalls = shortfalls
        details = ", ".join(
            f"{s['currency']} (requested {s['requested']:.2f}, available {s['available']:.2f})"
            for s in shortfalls
        )
        super().__init__(f"Insufficient cash: {details}")


def cash_effect(transaction: Transaction) -> dict[str, float]:
    """
    Wallet change caused by a transaction, per currency.

    Uses the transaction's cash amount and currency, never its
    base-currency amount. Non-cash transactions have no effect.
    """
    if transaction.cash_transaction_type is None or not transaction.cash_currency:
        return {}

    amount = transaction.cash_amount or 0.0
    if transaction.cash_transaction_type == CashTransactionType.WITHDRAWAL_TO_WALLET:
        return {transaction.cash_currency: amount}
    if transaction.is_wallet_expense or (
        transaction.cash_transaction_type == CashTransactionType.DEPOSIT_FROM_WALLET_TO_BANK
    ):
        return {transaction.cash_currency: -amount}
    return {}


def invert_effect(deltas: dict[str, float]) -> dict[str, float]:
    return {currency: -delta for currency, delta in deltas.items()}


def net_effect(old: dict[str, float], new: dict[str, float]) -> dict[str, float]:
    """Delta that turns the `old` effect into the `new` one."""
    result = {}
    for currency in set(old) | set(new):
        delta = round(new.get(currency, 0.0) - old.get(currency, 0.0), BALANCE_DECIMAL_PLACES)
        if delta:
            result[currency] = delta
    return result


class CashWalletLedger:
    """
    Balance ledger of one user's cash wallet.

    Usage:
        ledger = CashWalletLedger(storage.wallets, user_id="u1")
        ledger.deposit("GBP", 100)
        ledger.withdraw("GBP", 40)
        ledger.balance("GBP")  # 60.0
    """

    def __init__(
        self,
        storage: WalletStorageInterface,
        user_id: str,
        settings: Optional[WalletSettings] = None,
        event_logger: Optional[LedgerEventLogger] = None,
    ):
        self._storage = storage
        self._user_id = user_id
        self._settings = settings or get_settings().wallet
        self._events = event_logger or LedgerEventLogger()

    @property
    def user_id(self) -> str:
        return self._user_id

    def wallet(self) -> CashWallet:
        """Current wallet, created empty on first access."""
        existing = self._storage.get_wallet(self._user_id)
        if existing is not None:
            return existing

        wallet = self._storage.get_or_create_wallet(self._user_id)
        self._events.log_wallet_created(wallet.id, self._user_id)
        return wallet

    def balance(self, currency: str) -> float:
        return self.wallet().balance_of(currency)

    def deposit(self, currency: str, amount: float) -> CashWallet:
        """
        Add cash to the wallet.

        Raises:
            ValueError: If amount is not positive
        """
        if amount <= 0:
            raise ValueError("Deposit amount must be positive")
        return self.apply_deltas({currency: amount})

    def withdraw(self, currency: str, amount: float) -> CashWallet:
        """
        Take cash out of the wallet.

        Raises:
            ValueError: If amount is not positive
            InsufficientBalanceError: If the wallet holds less than amount
        """
        if amount <= 0:
            raise ValueError("Withdrawal amount must be positive")
        return self.apply_deltas({currency: -amount})

    def adjust(self, currency: str, delta: float) -> CashWallet:
        """Apply a signed change to one currency."""
        return self.apply_deltas({currency: delta})

    def apply_deltas(self, deltas: dict[str, float]) -> CashWallet:
        """
        Apply signed changes to several currencies as one write.

        Args:
            deltas: {currency_code: signed amount}

        Returns:
            The stored wallet after the write

        Raises:
            InsufficientBalanceError: If any currency would go negative
                (nothing is written)
            VersionConflictError: If every attempt lost a write race
        """
        normalized: dict[str, float] = {}
        for currency, delta in deltas.items():
            code = currency.strip().upper()
            normalized[code] = normalized.get(code, 0.0) + delta
        normalized = {c: d for c, d in normalized.items() if d != 0}

        if not normalized:
            return self.wallet()

        retrying = Retrying(
            stop=stop_after_attempt(self._settings.max_write_attempts),
            wait=wait_exponential(multiplier=0.01, max=0.1),
            retry=retry_if_exception_type(VersionConflictError),
            before_sleep=self._on_conflict,
            reraise=True,
        )
        return retrying(self._write_once, normalized)

    def _on_conflict(self, retry_state) -> None:
        logger.warning(
            "wallet_write_conflict",
            user_id=self._user_id,
            attempt=retry_state.attempt_number,
        )
        wallet = self._storage.get_wallet(self._user_id)
        if wallet is not None:
            self._events.log_wallet_conflict(wallet.id, retry_state.attempt_number)

    def _write_once(self, deltas: dict[str, float]) -> CashWallet:
        wallet = self.wallet()

        requested = [
            CashAllocation(currency_code=currency, amount=-delta)
            for currency, delta in sorted(deltas.items())
            if delta < 0
        ]
        check = validate_cash_allocations(wallet, requested)
        if not check.valid:
            shortfalls = [s.model_dump() for s in check.errors]
            self._events.log_insufficient_balance(wallet.id, shortfalls)
            raise InsufficientBalanceError(shortfalls)

        balances = wallet.as_map()
        for currency, delta in deltas.items():
            balances[currency] = round(
                balances.get(currency, 0.0) + delta,
                BALANCE_DECIMAL_PLACES,
            )

        updated = wallet.model_copy(update={
            "balances": [
                CurrencyBalance(currency_code=currency, amount=amount)
                for currency, amount in sorted(balances.items())
                if amount > self._settings.prune_threshold
            ],
        })

        saved = self._storage.save_wallet(updated, expected_version=wallet.version)
        self._events.log_wallet_updated(saved.id, deltas, saved.as_map())
        return saved
