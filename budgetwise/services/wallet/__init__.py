"""Cash wallet services."""

from budgetwise.services.wallet.ledger import (
    CashWalletLedger,
    InsufficientBalanceError,
    WalletError,
    cash_effect,
    invert_effect,
    net_effect,
)

__all__ = [
    "CashWalletLedger",
    "InsufficientBalanceError",
    "WalletError",
    "cash_effect",
    "invert_effect",
    "net_effect",
]
