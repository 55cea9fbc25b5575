"""Validation package."""

from budgetwise.validation.validator import (
    TransactionValidator,
    validate_cash_allocations,
)

__all__ = ["TransactionValidator", "validate_cash_allocations"]
