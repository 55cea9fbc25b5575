"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the reconciliation engine independent of any database
2. Use in-memory storage for testing and embedding
3. Add caching layers transparently

The interface is intentionally simple - we're not building a full ORM.
Just the operations the flows need for wallets, transactions and budgets.
"""

from abc import ABC, abstractmethod
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


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class BudgetNotFoundError(NotFoundError):
    """Referenced custom budget does not exist."""
    pass


class AllocationNotFoundError(NotFoundError):
    """Referenced category allocation does not exist."""
    pass


class TransactionNotFoundError(NotFoundError):
    """Referenced transaction does not exist."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class VersionConflictError(StorageError):
    """The stored record changed since it was read."""

    def __init__(self, entity_id: str, expected: int, actual: int):
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version conflict on {entity_id}: expected {expected}, found {actual}"
        )


class WalletStorageInterface(ABC):
    """
    Abstract interface for cash wallet storage.

    CRITICAL: Writes are guarded by the wallet's `version`.
    A write based on a stale read must fail, never overwrite.
    """

    @abstractmethod
    def get_wallet(self, user_id: str) -> Optional[CashWallet]:
        """
        Retrieve the wallet of a user.

        Returns:
            The wallet if found, None otherwise
        """
        pass

    @abstractmethod
    def create_wallet(self, wallet: CashWallet) -> CashWallet:
        """
        Insert a new wallet.

        Raises:
            DuplicateError: If the user already has a wallet
        """
        pass

    @abstractmethod
    def save_wallet(self, wallet: CashWallet, expected_version: int) -> CashWallet:
        """
        Replace the stored wallet if its version is still `expected_version`.

        Args:
            wallet: Wallet with the new balance map
            expected_version: Version the caller read before modifying

        Returns:
            The stored wallet, with its version incremented

        Raises:
            NotFoundError: If the wallet doesn't exist
            VersionConflictError: If another writer got there first
        """
        pass

    def get_or_create_wallet(self, user_id: str) -> CashWallet:
        """
        Return the user's wallet, creating an empty one on first use.

        Idempotent: if a concurrent caller creates the wallet between
        our read and our insert, the existing record is returned.
        """
        wallet = self.get_wallet(user_id)
        if wallet is not None:
            return wallet

        try:
            return self.create_wallet(CashWallet(user_id=user_id))
        except DuplicateError:
            wallet = self.get_wallet(user_id)
            if wallet is None:
                raise
            return wallet


class TransactionStorageInterface(ABC):
    """Abstract interface for transaction storage."""

    @abstractmethod
    def save_transaction(self, transaction: Transaction) -> Transaction:
        """
        Insert a new transaction.

        Raises:
            DuplicateError: If the id is already used
        """
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        pass

    @abstractmethod
    def update_transaction(self, transaction: Transaction) -> Transaction:
        """
        Replace an existing transaction.

        Raises:
            TransactionNotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction by ID.

        Returns:
            True if something was deleted
        """
        pass

    @abstractmethod
    def list_transactions(
        self,
        custom_budget_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """
        List transactions with optional filters.

        Args:
            custom_budget_id: Only transactions linked to this budget
            date_from: Only transactions dated on or after this date
            date_to: Only transactions dated on or before this date

        Returns:
            Matching transactions ordered by date
        """
        pass


class BudgetStorageInterface(ABC):
    """Abstract interface for custom budgets and their category allocations."""

    @abstractmethod
    def save_custom_budget(self, budget: CustomBudget) -> CustomBudget:
        """
        Insert a new custom budget.

        Raises:
            DuplicateError: If the id is already used
        """
        pass

    @abstractmethod
    def get_custom_budget(self, budget_id: str) -> Optional[CustomBudget]:
        pass

    @abstractmethod
    def update_custom_budget(self, budget: CustomBudget) -> CustomBudget:
        """
        Replace an existing custom budget.

        Raises:
            BudgetNotFoundError: If the budget doesn't exist
        """
        pass

    @abstractmethod
    def list_custom_budgets(
        self,
        status: Optional[CustomBudgetStatus] = None,
    ) -> list[CustomBudget]:
        pass

    @abstractmethod
    def save_allocation(
        self,
        allocation: CustomBudgetAllocation,
    ) -> CustomBudgetAllocation:
        """
        Insert or replace a category allocation.

        Raises:
            BudgetNotFoundError: If the owning budget doesn't exist
        """
        pass

    @abstractmethod
    def get_allocation(self, allocation_id: str) -> Optional[CustomBudgetAllocation]:
        pass

    @abstractmethod
    def delete_allocation(self, allocation_id: str) -> bool:
        pass

    @abstractmethod
    def list_allocations(self, custom_budget_id: str) -> list[CustomBudgetAllocation]:
        pass


class EventSinkInterface(ABC):
    """
    Abstract interface for ledger event storage.

    Event logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: LedgerEvent) -> bool:
        """
        Append a ledger event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[LedgerEvent]:
        """
        Get all events for a specific entity, in chronological order.
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[LedgerEvent]:
        """
        Get the most recent events (newest first).
        """
        pass
