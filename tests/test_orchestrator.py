"""
Integration tests for the transaction and custom budget flows.

All flows run against the in-memory storage backend.
"""

import pytest
from datetime import date

from budgetwise.calculations import BudgetStatsCalculator
from budgetwise.models.events import LedgerEventType
from budgetwise.models.ledger import (
    CashAllocation,
    CashTransactionType,
    CustomBudget,
    CustomBudgetPatch,
    CustomBudgetStatus,
    ExchangeRate,
    Transaction,
    TransactionPatch,
    TransactionType,
)
from budgetwise.orchestrator import create_engine
from budgetwise.services.currency import RateUnavailableError
from budgetwise.services.storage import (
    AllocationNotFoundError,
    BudgetNotFoundError,
    DuplicateError,
    TransactionNotFoundError,
)
from budgetwise.services.wallet import InsufficientBalanceError


DAY = date(2024, 3, 1)

RATES = [
    ExchangeRate(date=DAY, from_currency="EUR", to_currency="USD", rate=1.1),
    ExchangeRate(date=DAY, from_currency="GBP", to_currency="USD", rate=1.25),
]


def engine(base_currency: str = "USD"):
    return create_engine("u1", rates=RATES, base_currency=base_currency)


def wallet_expense(cash_amount: float, currency: str = "GBP", **kwargs) -> Transaction:
    values = {
        "title": "Market",
        "type": TransactionType.EXPENSE,
        "amount": cash_amount,
        "date": DAY,
        "is_cash_transaction": True,
        "cash_transaction_type": CashTransactionType.EXPENSE_FROM_WALLET,
        "cash_amount": cash_amount,
        "cash_currency": currency,
    }
    values.update(kwargs)
    return Transaction(**values)


def balance(storage, currency: str) -> float:
    wallet = storage.wallets.get_wallet("u1")
    return wallet.balance_of(currency) if wallet else 0.0


class TestTransactionFlow:
    """Tests for transaction writes and their wallet effects."""

    def test_withdraw_spend_delete_scenario(self):
        """Test GBP 0 -> 100 -> 60 -> 100."""
        transactions, _, storage = engine(base_currency="GBP")

        withdrawal = transactions.withdraw_to_wallet("GBP", 100, DAY)
        assert balance(storage, "GBP") == 100
        assert withdrawal.is_paid is True
        assert withdrawal.cash_transaction_type == CashTransactionType.WITHDRAWAL_TO_WALLET

        spent = transactions.record(wallet_expense(40))
        assert balance(storage, "GBP") == 60
        assert spent.is_paid is True
        assert spent.cash_amount == 40

        assert transactions.delete(spent.id) is True
        assert balance(storage, "GBP") == 100
        assert storage.transactions.get_transaction(spent.id) is None

    def test_foreign_withdrawal_converted_to_base(self):
        """Test a EUR withdrawal stores its base amount and original figures."""
        transactions, _, storage = engine()

        withdrawal = transactions.withdraw_to_wallet("eur", 50, DAY)

        assert withdrawal.amount == 55
        assert withdrawal.original_amount == 50
        assert withdrawal.original_currency == "EUR"
        assert withdrawal.exchange_rate_used == 1.1
        assert balance(storage, "EUR") == 50

    def test_withdrawal_without_rate_raises(self):
        """Test cash moves need a fresh rate."""
        transactions, _, storage = engine()
        with pytest.raises(RateUnavailableError):
            transactions.withdraw_to_wallet("JPY", 5000, DAY)
        assert balance(storage, "JPY") == 0

    def test_insufficient_cash_creates_nothing(self):
        """Test an overspend leaves both wallet and transactions untouched."""
        transactions, _, storage = engine()
        transactions.withdraw_to_wallet("GBP", 30, DAY)

        with pytest.raises(InsufficientBalanceError):
            transactions.record(wallet_expense(31))

        assert balance(storage, "GBP") == 30
        assert len(storage.transactions.list_transactions()) == 1

    def test_unknown_budget_rejected_before_cash_moves(self):
        """Test a dangling budget reference fails before any write."""
        transactions, _, storage = engine()
        transactions.withdraw_to_wallet("GBP", 50, DAY)

        with pytest.raises(BudgetNotFoundError):
            transactions.record(wallet_expense(10, custom_budget_id="gone"))

        assert balance(storage, "GBP") == 50

    def test_failed_save_reverts_wallet(self):
        """Test the wallet effect is reversed when saving fails."""
        transactions, _, storage = engine()
        transactions.withdraw_to_wallet("GBP", 100, DAY)
        expense = transactions.record(wallet_expense(10))

        with pytest.raises(DuplicateError):
            transactions.record(expense)

        assert balance(storage, "GBP") == 90

    def test_paid_foreign_expense_converted(self):
        """Test a paid EUR expense is stored in base currency."""
        transactions, _, _ = engine()
        saved = transactions.record(Transaction(
            title="Museum",
            type=TransactionType.EXPENSE,
            amount=0,
            original_amount=20,
            original_currency="EUR",
            date=DAY,
            is_paid=True,
            paid_date=DAY,
        ))
        assert saved.amount == 22
        assert saved.exchange_rate_used == 1.1

    def test_paid_expense_without_rate_raises(self):
        """Test a paid foreign expense is never stored at a guessed amount."""
        transactions, _, storage = engine()
        with pytest.raises(RateUnavailableError):
            transactions.record(Transaction(
                title="Sushi",
                type=TransactionType.EXPENSE,
                amount=0,
                original_amount=3000,
                original_currency="JPY",
                date=DAY,
                is_paid=True,
                paid_date=DAY,
            ))
        assert storage.transactions.list_transactions() == []

    def test_unpaid_expense_without_rate_deferred(self):
        """Test an unpaid foreign expense is saved without a rate."""
        transactions, _, _ = engine()
        saved = transactions.record(Transaction(
            title="Hotel deposit",
            type=TransactionType.EXPENSE,
            amount=0,
            original_amount=3000,
            original_currency="JPY",
            date=DAY,
        ))
        assert saved.exchange_rate_used is None
        assert transactions.validate(saved).warnings

    def test_update_applies_net_cash_delta(self):
        """Test lowering a wallet expense refunds the difference."""
        transactions, _, storage = engine()
        transactions.withdraw_to_wallet("GBP", 100, DAY)
        spent = transactions.record(wallet_expense(40))

        updated = transactions.update(spent.id, TransactionPatch(cash_amount=25, amount=25))

        assert updated.cash_amount == 25
        assert balance(storage, "GBP") == 75

    def test_update_switching_currency_moves_both(self):
        """Test changing the cash currency refunds one and charges the other."""
        transactions, _, storage = engine()
        transactions.withdraw_to_wallet("GBP", 100, DAY)
        transactions.withdraw_to_wallet("EUR", 100, DAY)
        spent = transactions.record(wallet_expense(40))

        transactions.update(spent.id, TransactionPatch(cash_currency="EUR", cash_amount=30))

        assert balance(storage, "GBP") == 100
        assert balance(storage, "EUR") == 70

    def test_update_beyond_balance_rejected(self):
        """Test an update that needs more cash than available fails cleanly."""
        transactions, _, storage = engine()
        transactions.withdraw_to_wallet("GBP", 50, DAY)
        spent = transactions.record(wallet_expense(40))

        with pytest.raises(InsufficientBalanceError):
            transactions.update(spent.id, TransactionPatch(cash_amount=60))

        assert balance(storage, "GBP") == 10
        assert storage.transactions.get_transaction(spent.id).cash_amount == 40

    def test_update_reconverts_foreign_amount(self):
        """Test changing the original amount refreshes the base amount."""
        transactions, _, _ = engine()
        saved = transactions.record(Transaction(
            title="Dinner",
            type=TransactionType.EXPENSE,
            amount=0,
            original_amount=100,
            original_currency="EUR",
            date=DAY,
        ))
        assert saved.amount == 110

        updated = transactions.update(saved.id, TransactionPatch(original_amount=200))
        assert updated.amount == 220
        assert updated.exchange_rate_used == 1.1

    def test_update_and_delete_missing(self):
        """Test unknown ids raise TransactionNotFoundError."""
        transactions, _, _ = engine()
        with pytest.raises(TransactionNotFoundError):
            transactions.update("missing", TransactionPatch(title="x"))
        with pytest.raises(TransactionNotFoundError):
            transactions.delete("missing")

    def test_deposit_to_bank(self):
        """Test moving cash back to the bank."""
        transactions, _, storage = engine()
        transactions.withdraw_to_wallet("GBP", 100, DAY)

        deposit = transactions.deposit_to_bank("GBP", 70, DAY)
        assert deposit.type == TransactionType.INCOME
        assert deposit.amount == 87.5
        assert balance(storage, "GBP") == 30

        with pytest.raises(InsufficientBalanceError):
            transactions.deposit_to_bank("GBP", 31, DAY)
        assert balance(storage, "GBP") == 30

    def test_writes_are_logged(self):
        """Test transaction and wallet writes produce ledger events."""
        transactions, _, storage = engine()
        withdrawal = transactions.withdraw_to_wallet("GBP", 10, DAY)

        events = storage.events.get_events_by_entity("transaction", withdrawal.id)
        assert [e.event_type for e in events] == [LedgerEventType.TRANSACTION_RECORDED]
        assert events[0].details["cash_deltas"] == {"GBP": 10}

        types = {e.event_type for e in storage.events.get_recent_events()}
        assert LedgerEventType.WALLET_CREATED in types
        assert LedgerEventType.WALLET_UPDATED in types


class TestCustomBudgetFlow:
    """Tests for the custom budget lifecycle and allocations."""

    def _budget(self, **kwargs) -> CustomBudget:
        values = {
            "name": "Lisbon",
            "allocated_amount": 500,
            "start_date": date(2024, 6, 1),
            "end_date": date(2024, 6, 10),
        }
        values.update(kwargs)
        return CustomBudget(**values)

    def test_create_checks_cash_plan(self):
        """Test a cash plan beyond the wallet is rejected and not saved."""
        transactions, budgets, storage = engine()
        transactions.withdraw_to_wallet("EUR", 100, DAY)
        plan = [
            CashAllocation(currency_code="EUR", amount=150),
            CashAllocation(currency_code="GBP", amount=10),
        ]

        with pytest.raises(InsufficientBalanceError) as exc_info:
            budgets.create(self._budget(cash_allocations=plan), today=date(2024, 6, 1))

        assert [s["currency"] for s in exc_info.value.shortfalls] == ["EUR", "GBP"]
        assert storage.budgets.list_custom_budgets() == []

    def test_create_does_not_deduct_cash(self):
        """Test cash stays in the wallet until it is spent."""
        transactions, budgets, storage = engine()
        transactions.withdraw_to_wallet("EUR", 100, DAY)

        budget = budgets.create(
            self._budget(cash_allocations=[CashAllocation(currency_code="EUR", amount=80)]),
            today=date(2024, 6, 1),
        )
        assert budget.status == CustomBudgetStatus.ACTIVE
        assert balance(storage, "EUR") == 100

    def test_future_budget_is_planned_then_activated(self):
        """Test planned -> active once the start date is reached."""
        _, budgets, storage = engine()
        budget = budgets.create(self._budget(), today=date(2024, 5, 20))
        assert budget.status == CustomBudgetStatus.PLANNED

        assert budgets.activate_due(date(2024, 5, 31)) == []
        activated = budgets.activate_due(date(2024, 6, 1))

        assert [b.id for b in activated] == [budget.id]
        assert storage.budgets.get_custom_budget(budget.id).status == CustomBudgetStatus.ACTIVE

    def test_complete_and_reactivate(self):
        """Test completion freezes to spend and reactivation restores the plan."""
        transactions, budgets, storage = engine()
        transactions.withdraw_to_wallet("EUR", 100, DAY)
        budget = budgets.create(
            self._budget(cash_allocations=[CashAllocation(currency_code="EUR", amount=100)]),
            today=date(2024, 6, 1),
        )
        spend = [
            Transaction(title="Hotel", type=TransactionType.EXPENSE, amount=120,
                        date=date(2024, 6, 2), is_paid=True, paid_date=date(2024, 6, 2),
                        custom_budget_id=budget.id),
            Transaction(title="Tour", type=TransactionType.EXPENSE, amount=30,
                        date=date(2024, 6, 5), custom_budget_id=budget.id),
            wallet_expense(40, "EUR", date=date(2024, 6, 3), custom_budget_id=budget.id),
        ]

        completed = budgets.complete(budget.id, spend)

        assert completed.status == CustomBudgetStatus.COMPLETED
        assert completed.allocated_amount == 150
        assert completed.cash_allocations == [CashAllocation(currency_code="EUR", amount=40)]
        assert completed.original_allocated_amount == 500
        assert completed.original_cash_allocations == [
            CashAllocation(currency_code="EUR", amount=100)
        ]

        reopened = budgets.reactivate(budget.id)

        assert reopened.status == CustomBudgetStatus.ACTIVE
        assert reopened.allocated_amount == 500
        assert reopened.cash_allocations == [CashAllocation(currency_code="EUR", amount=100)]
        assert reopened.original_allocated_amount is None

        events = storage.events.get_events_by_entity("custom_budget", budget.id)
        assert [e.event_type for e in events] == [
            LedgerEventType.BUDGET_CREATED,
            LedgerEventType.BUDGET_COMPLETED,
            LedgerEventType.BUDGET_REACTIVATED,
        ]

    def test_marking_paid_keeps_spend_in_budget(self):
        """Test an expense marked paid without a paid date still counts."""
        transactions, budgets, storage = engine()
        budget = budgets.create(self._budget(), today=date(2024, 6, 1))
        saved = transactions.record(Transaction(
            title="Hotel",
            type=TransactionType.EXPENSE,
            amount=300,
            date=date(2024, 6, 3),
            custom_budget_id=budget.id,
        ))

        paid = transactions.update(saved.id, TransactionPatch(is_paid=True))
        assert paid.paid_date == date(2024, 6, 3)

        stats = BudgetStatsCalculator().custom_budget_stats(
            storage.budgets.get_custom_budget(budget.id),
            [storage.transactions.get_transaction(saved.id)],
        )
        assert stats.digital.paid == 300
        assert stats.digital.unpaid == 0
        assert stats.digital.remaining == 200

    def test_recompleting_keeps_first_snapshot(self):
        """Test an existing plan snapshot is not overwritten."""
        _, budgets, storage = engine()
        budget = budgets.create(self._budget(), today=date(2024, 6, 1))
        stored = storage.budgets.get_custom_budget(budget.id)
        storage.budgets.update_custom_budget(
            stored.model_copy(update={"original_allocated_amount": 650})
        )

        completed = budgets.complete(budget.id, [])

        assert completed.allocated_amount == 0
        assert completed.original_allocated_amount == 650
        assert budgets.complete(budget.id, []).status == CustomBudgetStatus.COMPLETED

    def test_lifecycle_on_missing_budget(self):
        """Test unknown budget ids raise BudgetNotFoundError."""
        _, budgets, _ = engine()
        with pytest.raises(BudgetNotFoundError):
            budgets.complete("missing", [])
        with pytest.raises(BudgetNotFoundError):
            budgets.reactivate("missing")
        with pytest.raises(BudgetNotFoundError):
            budgets.update("missing", CustomBudgetPatch(name="x"))

    def test_update_raising_cash_plan_checked(self):
        """Test a larger cash plan is checked against the wallet."""
        transactions, budgets, _ = engine()
        transactions.withdraw_to_wallet("EUR", 100, DAY)
        budget = budgets.create(
            self._budget(cash_allocations=[CashAllocation(currency_code="EUR", amount=50)]),
            today=date(2024, 6, 1),
        )

        with pytest.raises(InsufficientBalanceError):
            budgets.update(budget.id, CustomBudgetPatch(
                cash_allocations=[CashAllocation(currency_code="EUR", amount=120)]
            ))

        updated = budgets.update(budget.id, CustomBudgetPatch(name="Porto", allocated_amount=700))
        assert updated.name == "Porto"
        assert updated.allocated_amount == 700

    def test_allocation_scenario(self):
        """Test 500 budget, 200 + 150 allocations, 300 unallocated spend."""
        _, budgets, storage = engine()
        budget = budgets.create(self._budget(), today=date(2024, 6, 1))
        paint = budgets.add_allocation(budget.id, "paint", 200)
        budgets.add_allocation(budget.id, "tools", 150)
        spend = [Transaction(
            title="Sofa",
            type=TransactionType.EXPENSE,
            amount=300,
            date=date(2024, 6, 4),
            custom_budget_id=budget.id,
        )]

        stats = budgets.allocation_stats(budget.id, spend)

        assert stats.unallocated == 150
        assert stats.unallocated_spent == 300
        assert stats.unallocated_remaining == -150

        budgets.update_allocation(paint.id, 250)
        assert budgets.allocation_stats(budget.id, spend).unallocated == 100

        assert budgets.remove_allocation(paint.id) is True
        assert len(storage.budgets.list_allocations(budget.id)) == 1

    def test_allocation_references_checked(self):
        """Test missing budgets and allocations raise before any write."""
        _, budgets, storage = engine()
        with pytest.raises(BudgetNotFoundError):
            budgets.add_allocation("missing", "paint", 100)
        with pytest.raises(AllocationNotFoundError):
            budgets.update_allocation("missing", 100)
        with pytest.raises(AllocationNotFoundError):
            budgets.remove_allocation("missing")
        assert storage.events.get_recent_events() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
