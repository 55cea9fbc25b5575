"""
Tests for transaction and cash allocation validation.
"""

import pytest
from datetime import date

from budgetwise.models.ledger import (
    CashAllocation,
    CashTransactionType,
    CashWallet,
    CurrencyBalance,
    CustomBudget,
    CustomBudgetStatus,
    Transaction,
    TransactionType,
)
from budgetwise.validation import TransactionValidator, validate_cash_allocations


WALLET = CashWallet(
    user_id="u1",
    balances=[
        CurrencyBalance(currency_code="EUR", amount=100),
        CurrencyBalance(currency_code="GBP", amount=20),
    ],
)

TRIP = CustomBudget(
    id="trip",
    name="Lisbon",
    allocated_amount=800,
    start_date=date(2024, 6, 1),
    end_date=date(2024, 6, 10),
)


def expense(**kwargs) -> Transaction:
    values = {
        "title": "Lunch",
        "type": TransactionType.EXPENSE,
        "amount": 25,
        "date": date(2024, 6, 3),
    }
    values.update(kwargs)
    return Transaction(**values)


def issue_types(result) -> list[str]:
    return [issue.issue_type for issue in result.issues]


class TestValidateCashAllocations:
    """Tests for wallet sufficiency checks."""

    def test_sufficient(self):
        """Test requests within the balance pass."""
        result = validate_cash_allocations(WALLET, [
            CashAllocation(currency_code="EUR", amount=100),
            CashAllocation(currency_code="GBP", amount=5),
        ])
        assert result.valid is True
        assert result.errors == []

    def test_shortfalls_listed_per_currency(self):
        """Test every short currency is reported."""
        result = validate_cash_allocations(WALLET, [
            CashAllocation(currency_code="EUR", amount=100.01),
            CashAllocation(currency_code="GBP", amount=5),
            CashAllocation(currency_code="JPY", amount=1000),
        ])
        assert result.valid is False
        assert [(e.currency, e.available) for e in result.errors] == [
            ("EUR", 100.0),
            ("JPY", 0.0),
        ]

    def test_repeated_currency_is_summed(self):
        """Test two requests in one currency are checked against one balance."""
        result = validate_cash_allocations(WALLET, [
            CashAllocation(currency_code="GBP", amount=12),
            CashAllocation(currency_code="GBP", amount=12),
        ])
        assert result.valid is False
        assert [(e.currency, e.requested, e.available) for e in result.errors] == [
            ("GBP", 24.0, 20.0),
        ]

    def test_missing_wallet_has_no_cash(self):
        """Test a user without a wallet cannot allocate cash."""
        result = validate_cash_allocations(None, [CashAllocation(currency_code="EUR", amount=1)])
        assert result.valid is False

    def test_empty_request_is_valid(self):
        """Test an empty cash plan needs no wallet."""
        assert validate_cash_allocations(None, []).valid is True


class TestTransactionValidator:
    """Tests for two-stage transaction validation."""

    def test_valid_transaction(self):
        """Test a plain expense passes."""
        validator = TransactionValidator()
        result = validator.validate(expense(custom_budget_id="trip"), [TRIP], WALLET)

        assert result.is_valid is True
        assert result.issues == []
        assert validator.get_user_friendly_summary(result) == "✅ All checks passed."

    def test_zero_amount_is_error(self):
        """Test a zero amount fails stage 1 and skips stage 2."""
        result = TransactionValidator().validate(expense(amount=0, custom_budget_id="gone"), [TRIP])

        assert result.is_valid is False
        assert issue_types(result) == ["invalid_value"]

    def test_unknown_budget_is_error(self):
        """Test a dangling budget reference fails."""
        result = TransactionValidator().validate(expense(custom_budget_id="gone"), [TRIP])
        assert result.is_valid is False
        assert issue_types(result) == ["unknown_reference"]

    def test_completed_budget_is_warning(self):
        """Test spending in a completed budget only warns."""
        closed = TRIP.model_copy(update={"status": CustomBudgetStatus.COMPLETED})
        result = TransactionValidator().validate(expense(custom_budget_id="trip"), [closed])

        assert result.is_valid is True
        assert issue_types(result) == ["closed_budget"]
        assert len(result.warnings) == 1

    def test_outside_budget_period_is_info(self):
        """Test an expense dated outside the budget is informational."""
        result = TransactionValidator().validate(
            expense(custom_budget_id="trip", date=date(2024, 7, 1)), [TRIP]
        )
        assert result.is_valid is True
        assert result.issues[0].severity == "info"

    def test_income_in_budget_warns(self):
        """Test income linked to a budget warns."""
        result = TransactionValidator().validate(
            expense(type=TransactionType.INCOME, custom_budget_id="trip"), [TRIP]
        )
        assert issue_types(result) == ["income_in_budget"]

    def test_missing_rate_warns(self):
        """Test a foreign amount without a rate warns."""
        result = TransactionValidator().validate(
            expense(original_amount=20, original_currency="EUR")
        )
        assert result.is_valid is True
        assert issue_types(result) == ["missing_exchange_rate"]

    def test_wallet_expense_beyond_balance(self):
        """Test a wallet expense larger than the balance fails."""
        validator = TransactionValidator()
        result = validator.validate(
            expense(
                is_cash_transaction=True,
                cash_transaction_type=CashTransactionType.EXPENSE_FROM_WALLET,
                cash_amount=30,
                cash_currency="GBP",
            ),
            wallet=WALLET,
        )

        assert result.is_valid is False
        assert issue_types(result) == ["insufficient_cash"]
        summary = validator.get_user_friendly_summary(result)
        assert "cannot be saved" in summary
        assert "Withdraw cash" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
