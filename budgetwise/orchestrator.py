"""
Main Orchestrator for Budgetwise

This module ties together all the components and defines the
end-to-end flows for:
1. Transactions (convert -> check references -> move wallet cash -> save)
2. Custom budgets (create -> activate -> complete -> reactivate, allocations)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every check runs before the first write
- A transaction and its wallet movement succeed or fail together
- Every write is logged as a ledger event

This is the "glue" that keeps the wallet consistent with the
transactions that move cash in and out of it.
"""

from datetime import date
from typing import Iterable, Optional

import structlog

from budgetwise.audit import LedgerEventLogger
from budgetwise.calculations import AllocationTracker, BudgetStatsCalculator
from budgetwise.config import Settings, get_settings
from budgetwise.models.context import UserContext
from budgetwise.models.ledger import (
    CashAllocation,
    CashTransactionType,
    CustomBudget,
    CustomBudgetAllocation,
    CustomBudgetPatch,
    CustomBudgetStatus,
    ExchangeRate,
    Transaction,
    TransactionPatch,
    TransactionType,
    apply_patch,
)
from budgetwise.models.stats import AllocationStats, ValidationResult
from budgetwise.services.currency import CurrencyConverter, CurrencyRateStore
from budgetwise.services.storage import (
    AllocationNotFoundError,
    BudgetNotFoundError,
    BudgetStorageInterface,
    InMemoryStorage,
    TransactionNotFoundError,
    TransactionStorageInterface,
)
from budgetwise.services.wallet import (
    CashWalletLedger,
    InsufficientBalanceError,
    cash_effect,
    invert_effect,
    net_effect,
)
from budgetwise.validation import TransactionValidator, validate_cash_allocations


logger = structlog.get_logger(__name__)

# Patch fields that invalidate a stored exchange rate
CONVERSION_FIELDS = {"original_amount", "original_currency", "date"}


class TransactionFlow:
    """
    Orchestrates transaction writes.

    Flow:
    1. Convert → foreign amounts into base currency (mandatory when paid)
    2. Check → referenced custom budget exists
    3. Wallet → apply the cash effect (fails on insufficient cash)
    4. Save → persist; on failure the wallet effect is reversed

    The wallet is never left out of step with saved transactions.
    """

    def __init__(
        self,
        transactions: TransactionStorageInterface,
        budgets: BudgetStorageInterface,
        ledger: CashWalletLedger,
        converter: CurrencyConverter,
        event_logger: Optional[LedgerEventLogger] = None,
        validator: Optional[TransactionValidator] = None,
    ):
        self._transactions = transactions
        self._budgets = budgets
        self._ledger = ledger
        self._converter = converter
        self._events = event_logger or LedgerEventLogger()
        self._validator = validator or TransactionValidator()

    def _check_references(self, transaction: Transaction) -> None:
        if (
            transaction.custom_budget_id
            and self._budgets.get_custom_budget(transaction.custom_budget_id) is None
        ):
            raise BudgetNotFoundError(
                f"Custom budget not found: {transaction.custom_budget_id}"
            )

    def _convert(self, transaction: Transaction) -> Transaction:
        """
        Fill in the base-currency amount of a foreign-currency entry.

        Unpaid entries without a fresh rate keep their amount and are
        logged; paid ones raise RateUnavailableError.
        """
        if (
            not transaction.original_currency
            or transaction.original_amount is None
            or transaction.exchange_rate_used is not None
        ):
            return transaction

        result = self._converter.convert_to_base(
            transaction.original_amount,
            transaction.original_currency,
            transaction.paid_date or transaction.date,
            is_paid=transaction.is_paid,
        )
        if not result.succeeded:
            logger.info(
                "transaction_conversion_deferred",
                transaction_id=transaction.id,
                missing_currencies=result.missing_currencies,
            )
            return transaction

        return apply_patch(transaction, TransactionPatch(
            amount=result.converted_amount,
            exchange_rate_used=result.exchange_rate_used,
        ))

    def _apply_cash(self, deltas: dict[str, float]) -> None:
        if deltas:
            self._ledger.apply_deltas(deltas)

    def _revert_cash(self, deltas: dict[str, float]) -> None:
        if deltas:
            logger.warning("wallet_effect_reverted", deltas=deltas)
            self._ledger.apply_deltas(invert_effect(deltas))

    def validate(self, transaction: Transaction) -> ValidationResult:
        """Report issues without writing anything."""
        return self._validator.validate(
            transaction,
            self._budgets.list_custom_budgets(),
            self._ledger.wallet(),
        )

    def record(self, transaction: Transaction) -> Transaction:
        """
        Record a new transaction together with its wallet movement.

        Raises:
            BudgetNotFoundError: If the referenced custom budget doesn't exist
            RateUnavailableError: If a paid foreign amount can't be converted
            InsufficientBalanceError: If the wallet can't cover the cash
        """
        transaction = self._convert(transaction)
        self._check_references(transaction)

        effect = cash_effect(transaction)
        self._apply_cash(effect)

        try:
            saved = self._transactions.save_transaction(transaction)
        except Exception:
            self._revert_cash(effect)
            raise

        self._events.log_transaction_recorded(
            transaction_id=saved.id,
            title=saved.title,
            amount=saved.amount,
            cash_deltas=effect,
        )
        return saved

    def _cash_movement(
        self,
        currency: str,
        amount: float,
        on_date: date,
        title: str,
        transaction_type: TransactionType,
        cash_type: CashTransactionType,
    ) -> Transaction:
        if amount <= 0:
            raise ValueError("Cash amount must be positive")

        currency = currency.upper()
        conversion = self._converter.convert_to_base(amount, currency, on_date, is_paid=True)
        foreign = currency != self._converter.context.base_currency

        return self.record(Transaction(
            title=title,
            type=transaction_type,
            amount=conversion.converted_amount,
            original_amount=amount if foreign else None,
            original_currency=currency if foreign else None,
            exchange_rate_used=conversion.exchange_rate_used if foreign else None,
            date=on_date,
            is_paid=True,
            paid_date=on_date,
            is_cash_transaction=cash_type == CashTransactionType.DEPOSIT_FROM_WALLET_TO_BANK,
            cash_transaction_type=cash_type,
            cash_amount=amount,
            cash_currency=currency,
        ))

    def withdraw_to_wallet(
        self,
        currency: str,
        amount: float,
        on_date: date,
        title: str = "Cash withdrawal",
    ) -> Transaction:
        """Move cash from the bank into the wallet."""
        return self._cash_movement(
            currency,
            amount,
            on_date,
            title,
            TransactionType.EXPENSE,
            CashTransactionType.WITHDRAWAL_TO_WALLET,
        )

    def deposit_to_bank(
        self,
        currency: str,
        amount: float,
        on_date: date,
        title: str = "Cash deposit",
    ) -> Transaction:
        """
        Move cash from the wallet back into the bank.

        Raises:
            InsufficientBalanceError: If the wallet holds less than amount
        """
        return self._cash_movement(
            currency,
            amount,
            on_date,
            title,
            TransactionType.INCOME,
            CashTransactionType.DEPOSIT_FROM_WALLET_TO_BANK,
        )

    def update(self, transaction_id: str, patch: TransactionPatch) -> Transaction:
        """
        Apply a partial update; the wallet moves by the net cash difference.

        Raises:
            TransactionNotFoundError: If the transaction doesn't exist
            BudgetNotFoundError: If the new custom budget doesn't exist
            InsufficientBalanceError: If the wallet can't cover the difference
        """
        current = self._transactions.get_transaction(transaction_id)
        if current is None:
            raise TransactionNotFoundError(f"Transaction not found: {transaction_id}")

        changes = patch.model_dump(exclude_unset=True)
        updated = apply_patch(current, patch)

        if (
            CONVERSION_FIELDS & set(changes)
            and "exchange_rate_used" not in changes
            and "amount" not in changes
        ):
            updated = apply_patch(updated, TransactionPatch(exchange_rate_used=None))
        updated = self._convert(updated)
        self._check_references(updated)

        delta = net_effect(cash_effect(current), cash_effect(updated))
        self._apply_cash(delta)

        try:
            saved = self._transactions.update_transaction(updated)
        except Exception:
            self._revert_cash(delta)
            raise

        self._events.log_transaction_updated(
            transaction_id=saved.id,
            changed_fields=sorted(changes),
            cash_deltas=delta,
        )
        return saved

    def delete(self, transaction_id: str) -> bool:
        """
        Delete a transaction and reverse its wallet movement.

        Raises:
            TransactionNotFoundError: If the transaction doesn't exist
            InsufficientBalanceError: If reversing a withdrawal needs cash
                that was already spent
        """
        current = self._transactions.get_transaction(transaction_id)
        if current is None:
            raise TransactionNotFoundError(f"Transaction not found: {transaction_id}")

        reversal = invert_effect(cash_effect(current))
        self._apply_cash(reversal)

        try:
            deleted = self._transactions.delete_transaction(transaction_id)
        except Exception:
            self._revert_cash(reversal)
            raise

        self._events.log_transaction_deleted(transaction_id, reversal)
        return deleted


class CustomBudgetFlow:
    """
    Orchestrates the custom budget lifecycle.

    planned → active happens automatically (activate_due).
    active → completed is a user action; it freezes the budget to
    actual spend and keeps the plan for reactivation.
    """

    def __init__(
        self,
        budgets: BudgetStorageInterface,
        ledger: CashWalletLedger,
        event_logger: Optional[LedgerEventLogger] = None,
        calculator: Optional[BudgetStatsCalculator] = None,
        tracker: Optional[AllocationTracker] = None,
    ):
        self._budgets = budgets
        self._ledger = ledger
        self._events = event_logger or LedgerEventLogger()
        self._calculator = calculator or BudgetStatsCalculator()
        self._tracker = tracker or AllocationTracker()

    def _get_budget(self, budget_id: str) -> CustomBudget:
        budget = self._budgets.get_custom_budget(budget_id)
        if budget is None:
            raise BudgetNotFoundError(f"Custom budget not found: {budget_id}")
        return budget

    def _check_cash(self, allocations: list[CashAllocation]) -> None:
        if not allocations:
            return
        check = validate_cash_allocations(self._ledger.wallet(), allocations)
        if not check.valid:
            raise InsufficientBalanceError([s.model_dump() for s in check.errors])

    def _set_status(
        self,
        budget: CustomBudget,
        status: CustomBudgetStatus,
        details: Optional[dict] = None,
        **updates,
    ) -> CustomBudget:
        updated = budget.model_copy(update={"status": status, **updates})
        saved = self._budgets.update_custom_budget(updated)
        self._events.log_budget_status_changed(
            budget_id=saved.id,
            name=saved.name,
            status=status.value,
            previous_status=budget.status.value,
            details=details,
        )
        return saved

    def create(self, budget: CustomBudget, today: Optional[date] = None) -> CustomBudget:
        """
        Create a custom budget.

        A budget starting after `today` is saved as planned. Cash
        allocations are checked against the wallet but not deducted;
        cash leaves the wallet when it is spent.

        Raises:
            InsufficientBalanceError: If the wallet can't cover the cash plan
        """
        today = today or date.today()
        self._check_cash(budget.cash_allocations)

        if budget.status == CustomBudgetStatus.ACTIVE and budget.start_date > today:
            budget = budget.model_copy(update={"status": CustomBudgetStatus.PLANNED})

        saved = self._budgets.save_custom_budget(budget)
        self._events.log_budget_created(saved.id, saved.name, saved.status.value)
        return saved

    def update(self, budget_id: str, patch: CustomBudgetPatch) -> CustomBudget:
        """
        Apply a partial update to a budget.

        Raises:
            BudgetNotFoundError: If the budget doesn't exist
            InsufficientBalanceError: If a raised cash plan exceeds the wallet
        """
        current = self._get_budget(budget_id)
        updated = apply_patch(current, patch)

        changes = self._tracker.allocation_changes(
            current.cash_allocations,
            updated.cash_allocations,
        )
        if any(change.is_increase for change in changes):
            self._check_cash(updated.cash_allocations)

        saved = self._budgets.update_custom_budget(updated)
        logger.info(
            "custom_budget_updated",
            budget_id=saved.id,
            cash_changes=[c.model_dump() for c in changes],
        )
        return saved

    def activate_due(self, today: Optional[date] = None) -> list[CustomBudget]:
        """Activate every planned budget whose start date has been reached."""
        today = today or date.today()
        activated = []
        for budget in self._budgets.list_custom_budgets(status=CustomBudgetStatus.PLANNED):
            if budget.start_date <= today:
                activated.append(self._set_status(budget, CustomBudgetStatus.ACTIVE))
        return activated

    def complete(
        self,
        budget_id: str,
        transactions: Iterable[Transaction],
    ) -> CustomBudget:
        """
        Complete a budget, freezing its allocations to actual spend.

        Digital allocation becomes paid + unpaid digital spend; each
        cash allocation becomes that currency's cash spend. An existing
        plan snapshot is kept.

        Raises:
            BudgetNotFoundError: If the budget doesn't exist
        """
        budget = self._get_budget(budget_id)
        if budget.status == CustomBudgetStatus.COMPLETED:
            return budget

        stats = self._calculator.custom_budget_stats(budget, transactions)
        frozen_cash = [
            CashAllocation(currency_code=currency, amount=round(cash.spent, 2))
            for currency, cash in stats.cash_by_currency.items()
            if cash.spent > 0
        ]
        original_amount = (
            budget.original_allocated_amount
            if budget.original_allocated_amount is not None
            else budget.allocated_amount
        )
        original_cash = (
            budget.original_cash_allocations
            if budget.original_cash_allocations is not None
            else budget.cash_allocations
        )

        return self._set_status(
            budget,
            CustomBudgetStatus.COMPLETED,
            details={
                "original_allocated_amount": original_amount,
                "frozen_allocated_amount": round(stats.digital.spent, 2),
            },
            allocated_amount=round(stats.digital.spent, 2),
            cash_allocations=frozen_cash,
            original_allocated_amount=original_amount,
            original_cash_allocations=original_cash,
        )

    def reactivate(self, budget_id: str) -> CustomBudget:
        """
        Reopen a completed budget with its original plan.

        Raises:
            BudgetNotFoundError: If the budget doesn't exist
        """
        budget = self._get_budget(budget_id)
        if budget.status != CustomBudgetStatus.COMPLETED:
            return budget

        return self._set_status(
            budget,
            CustomBudgetStatus.ACTIVE,
            allocated_amount=(
                budget.original_allocated_amount
                if budget.original_allocated_amount is not None
                else budget.allocated_amount
            ),
            cash_allocations=(
                budget.original_cash_allocations
                if budget.original_cash_allocations is not None
                else budget.cash_allocations
            ),
            original_allocated_amount=None,
            original_cash_allocations=None,
        )

    def add_allocation(
        self,
        budget_id: str,
        category_id: str,
        amount: float,
    ) -> CustomBudgetAllocation:
        """
        Add a category sub-split to a budget.

        Raises:
            BudgetNotFoundError: If the budget doesn't exist
        """
        self._get_budget(budget_id)
        allocation = self._budgets.save_allocation(CustomBudgetAllocation(
            custom_budget_id=budget_id,
            category_id=category_id,
            allocated_amount=amount,
        ))
        self._events.log_allocation_saved(allocation.id, budget_id, category_id, amount)
        return allocation

    def update_allocation(
        self,
        allocation_id: str,
        amount: float,
        category_id: Optional[str] = None,
    ) -> CustomBudgetAllocation:
        """
        Change an allocation's amount (and optionally its category).

        Raises:
            AllocationNotFoundError: If the allocation doesn't exist
            BudgetNotFoundError: If its budget no longer exists
        """
        current = self._budgets.get_allocation(allocation_id)
        if current is None:
            raise AllocationNotFoundError(f"Allocation not found: {allocation_id}")
        self._get_budget(current.custom_budget_id)

        updated = CustomBudgetAllocation(
            id=current.id,
            custom_budget_id=current.custom_budget_id,
            category_id=category_id or current.category_id,
            allocated_amount=amount,
        )
        saved = self._budgets.save_allocation(updated)
        self._events.log_allocation_saved(
            saved.id,
            saved.custom_budget_id,
            saved.category_id,
            saved.allocated_amount,
        )
        return saved

    def remove_allocation(self, allocation_id: str) -> bool:
        """
        Raises:
            AllocationNotFoundError: If the allocation doesn't exist
        """
        current = self._budgets.get_allocation(allocation_id)
        if current is None:
            raise AllocationNotFoundError(f"Allocation not found: {allocation_id}")

        removed = self._budgets.delete_allocation(allocation_id)
        self._events.log_allocation_removed(allocation_id, current.custom_budget_id)
        return removed

    def allocation_stats(
        self,
        budget_id: str,
        transactions: Iterable[Transaction],
    ) -> AllocationStats:
        budget = self._get_budget(budget_id)
        return self._tracker.stats(
            budget,
            self._budgets.list_allocations(budget_id),
            transactions,
        )


def create_engine(
    user_id: str,
    rates: Iterable[ExchangeRate] = (),
    settings: Optional[Settings] = None,
    storage: Optional[InMemoryStorage] = None,
    **context_overrides,
) -> tuple[TransactionFlow, CustomBudgetFlow, InMemoryStorage]:
    """
    Factory function to wire all engine components.

    Args:
        user_id: Owner of the wallet
        rates: Exchange-rate snapshots to preload
        settings: Settings to use (defaults to get_settings())
        storage: Backend to use (defaults to a fresh InMemoryStorage)
        **context_overrides: UserContext fields, e.g. base_currency="GBP"

    Returns:
        (transaction_flow, custom_budget_flow, storage)
    """
    settings = settings or get_settings()
    storage = storage or InMemoryStorage()
    context = UserContext.from_settings(settings, **context_overrides)

    event_logger = LedgerEventLogger(storage.events)
    ledger = CashWalletLedger(
        storage.wallets,
        user_id,
        settings=settings.wallet,
        event_logger=event_logger,
    )
    converter = CurrencyConverter(CurrencyRateStore.from_context(context, rates), context)

    transaction_flow = TransactionFlow(
        transactions=storage.transactions,
        budgets=storage.budgets,
        ledger=ledger,
        converter=converter,
        event_logger=event_logger,
    )
    budget_flow = CustomBudgetFlow(
        budgets=storage.budgets,
        ledger=ledger,
        event_logger=event_logger,
        calculator=BudgetStatsCalculator(context),
    )

    return transaction_flow, budget_flow, storage
