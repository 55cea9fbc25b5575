"""
In-Memory Storage Implementation

DESIGN DECISION: The engine ships with a process-local backend so the
flows can be embedded and tested without a database.

TRADEOFFS:
- Nothing survives the process (persistence is the host application's job)
- One lock per store serializes writes; reads return copies so callers
  can never mutate stored state by accident

The implementation follows the abstract interfaces, so a real database
backend can be swapped in without changing business logic.
"""

import threading
from datetime import date
from typing import Optional

from budgetwise.models.events import LedgerEvent
from budgetwise.models.ledger import (
    CashWallet,
    CustomBudget,
    CustomBudgetAllocation,
    CustomBudgetStatus,
    Transaction,
)
from budgetwise.services.storage.interface import (
    BudgetNotFoundError,
    BudgetStorageInterface,
    DuplicateError,
    EventSinkInterface,
    NotFoundError,
    TransactionNotFoundError,
    TransactionStorageInterface,
    VersionConflictError,
    WalletStorageInterface,
)


class InMemoryWalletStorage(WalletStorageInterface):
    """Cash wallets keyed by user id, with version-checked writes."""

    def __init__(self):
        self._wallets: dict[str, CashWallet] = {}
        self._lock = threading.Lock()

    def get_wallet(self, user_id: str) -> Optional[CashWallet]:
        with self._lock:
            wallet = self._wallets.get(user_id)
            return wallet.model_copy(deep=True) if wallet else None

    def create_wallet(self, wallet: CashWallet) -> CashWallet:
        with self._lock:
            if wallet.user_id in self._wallets:
                raise DuplicateError(f"Wallet already exists for user: {wallet.user_id}")
            self._wallets[wallet.user_id] = wallet.model_copy(deep=True)
            return wallet.model_copy(deep=True)

    def save_wallet(self, wallet: CashWallet, expected_version: int) -> CashWallet:
        with self._lock:
            current = self._wallets.get(wallet.user_id)
            if current is None:
                raise NotFoundError(f"Wallet not found for user: {wallet.user_id}")
            if current.version != expected_version:
                raise VersionConflictError(current.id, expected_version, current.version)

            stored = wallet.model_copy(
                update={"id": current.id, "version": current.version + 1},
                deep=True,
            )
            self._wallets[wallet.user_id] = stored
            return stored.model_copy(deep=True)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Transactions keyed by id."""

    def __init__(self):
        self._transactions: dict[str, Transaction] = {}
        self._lock = threading.Lock()

    def save_transaction(self, transaction: Transaction) -> Transaction:
        with self._lock:
            if transaction.id in self._transactions:
                raise DuplicateError(f"Transaction already exists: {transaction.id}")
            self._transactions[transaction.id] = transaction.model_copy(deep=True)
            return transaction

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        with self._lock:
            tx = self._transactions.get(transaction_id)
            return tx.model_copy(deep=True) if tx else None

    def update_transaction(self, transaction: Transaction) -> Transaction:
        with self._lock:
            if transaction.id not in self._transactions:
                raise TransactionNotFoundError(f"Transaction not found: {transaction.id}")
            self._transactions[transaction.id] = transaction.model_copy(deep=True)
            return transaction

    def delete_transaction(self, transaction_id: str) -> bool:
        with self._lock:
            return self._transactions.pop(transaction_id, None) is not None

    def list_transactions(
        self,
        custom_budget_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        with self._lock:
            transactions = [tx.model_copy(deep=True) for tx in self._transactions.values()]

        results = []
        for tx in transactions:
            if custom_budget_id and tx.custom_budget_id != custom_budget_id:
                continue
            if date_from and tx.date < date_from:
                continue
            if date_to and tx.date > date_to:
                continue
            results.append(tx)

        results.sort(key=lambda t: t.date)
        return results


class InMemoryBudgetStorage(BudgetStorageInterface):
    """Custom budgets and their category allocations."""

    def __init__(self):
        self._budgets: dict[str, CustomBudget] = {}
        self._allocations: dict[str, CustomBudgetAllocation] = {}
        self._lock = threading.Lock()

    def save_custom_budget(self, budget: CustomBudget) -> CustomBudget:
        with self._lock:
            if budget.id in self._budgets:
                raise DuplicateError(f"Custom budget already exists: {budget.id}")
            self._budgets[budget.id] = budget.model_copy(deep=True)
            return budget

    def get_custom_budget(self, budget_id: str) -> Optional[CustomBudget]:
        with self._lock:
            budget = self._budgets.get(budget_id)
            return budget.model_copy(deep=True) if budget else None

    def update_custom_budget(self, budget: CustomBudget) -> CustomBudget:
        with self._lock:
            if budget.id not in self._budgets:
                raise BudgetNotFoundError(f"Custom budget not found: {budget.id}")
            self._budgets[budget.id] = budget.model_copy(deep=True)
            return budget

    def list_custom_budgets(
        self,
        status: Optional[CustomBudgetStatus] = None,
    ) -> list[CustomBudget]:
        with self._lock:
            budgets = [b.model_copy(deep=True) for b in self._budgets.values()]
        if status is not None:
            budgets = [b for b in budgets if b.status == status]
        budgets.sort(key=lambda b: b.start_date)
        return budgets

    def save_allocation(
        self,
        allocation: CustomBudgetAllocation,
    ) -> CustomBudgetAllocation:
        with self._lock:
            if allocation.custom_budget_id not in self._budgets:
                raise BudgetNotFoundError(
                    f"Custom budget not found: {allocation.custom_budget_id}"
                )
            self._allocations[allocation.id] = allocation.model_copy(deep=True)
            return allocation

    def get_allocation(self, allocation_id: str) -> Optional[CustomBudgetAllocation]:
        with self._lock:
            alloc = self._allocations.get(allocation_id)
            return alloc.model_copy(deep=True) if alloc else None

    def delete_allocation(self, allocation_id: str) -> bool:
        with self._lock:
            return self._allocations.pop(allocation_id, None) is not None

    def list_allocations(self, custom_budget_id: str) -> list[CustomBudgetAllocation]:
        with self._lock:
            return [
                a.model_copy(deep=True)
                for a in self._allocations.values()
                if a.custom_budget_id == custom_budget_id
            ]


class InMemoryEventSink(EventSinkInterface):
    """Append-only list of ledger events."""

    def __init__(self):
        self._events: list[LedgerEvent] = []
        self._lock = threading.Lock()

    def append_event(self, event: LedgerEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[LedgerEvent]:
        with self._lock:
            return [
                e for e in self._events
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]

    def get_recent_events(self, limit: int = 100) -> list[LedgerEvent]:
        with self._lock:
            return list(reversed(self._events))[:limit]


class InMemoryStorage:
    """
    Bundle of in-memory stores, one per interface.

    Usage:
        storage = InMemoryStorage()
        ledger = CashWalletLedger(storage.wallets, user_id="u1")
    """

    def __init__(self):
        self.wallets = InMemoryWalletStorage()
        self.transactions = InMemoryTransactionStorage()
        self.budgets = InMemoryBudgetStorage()
        self.events = InMemoryEventSink()
