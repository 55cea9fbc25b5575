"""
Transaction and Cash Allocation Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - RECORD VALIDATION:
- Amount sanity
- Currency conversion completeness
- Checks that need nothing but the transaction itself

STAGE 2 - CONTEXT VALIDATION:
- Referenced custom budget exists and is still open
- Wallet can cover a cash expense
- Checks that need budgets and the wallet

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can reject or ask the user.
"""

from typing import Iterable, Optional

from budgetwise.models.ledger import (
    CashAllocation,
    CashWallet,
    CustomBudget,
    CustomBudgetStatus,
    Transaction,
)
from budgetwise.models.stats import (
    CashAllocationValidation,
    CashShortfall,
    ValidationIssue,
    ValidationResult,
)


# Requested cash may exceed the balance by float noise only
CASH_TOLERANCE = 1e-9


def validate_cash_allocations(
    wallet: Optional[CashWallet],
    requested: Iterable[CashAllocation],
) -> CashAllocationValidation:
    """
    Check that the wallet holds enough cash for every requested allocation.

    A missing wallet has no cash in any currency.

    Returns:
        CashAllocationValidation listing one shortfall per currency
        whose requested total exceeds the available balance
    """
    totals: dict[str, float] = {}
    for allocation in requested:
        totals[allocation.currency_code] = (
            totals.get(allocation.currency_code, 0.0) + allocation.amount
        )

    errors = []

    for currency, amount in totals.items():
        available = wallet.balance_of(currency) if wallet else 0.0
        if amount - available > CASH_TOLERANCE:
            errors.append(CashShortfall(
                currency=currency,
                requested=round(amount, 2),
                available=available,
            ))

    return CashAllocationValidation(valid=not errors, errors=errors)


class TransactionValidator:
    """
    Validates a transaction before it is recorded.

    Stage 1: Record validation (no context needed)
    Stage 2: Context validation (budgets, wallet)
    """

    def _validate_record(self, transaction: Transaction) -> list[ValidationIssue]:
        """
        Stage 1: checks on the transaction alone.
        """
        issues = []

        if transaction.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount that was spent or received",
            ))

        if (
            transaction.original_currency
            and transaction.original_amount is not None
            and transaction.exchange_rate_used is None
        ):
            issues.append(ValidationIssue(
                field="exchange_rate_used",
                issue_type="missing_exchange_rate",
                message=(
                    f"Amount was entered in {transaction.original_currency} "
                    "but no exchange rate was applied"
                ),
                severity="warning",
                suggested_fix="Refresh exchange rates for the transaction date",
            ))

        return issues

    def _validate_context(
        self,
        transaction: Transaction,
        custom_budgets: Iterable[CustomBudget],
        wallet: Optional[CashWallet],
    ) -> list[ValidationIssue]:
        """
        Stage 2: checks against budgets and the wallet.
        """
        issues = []

        if transaction.custom_budget_id:
            budget = next(
                (b for b in custom_budgets if b.id == transaction.custom_budget_id),
                None,
            )

            if budget is None:
                issues.append(ValidationIssue(
                    field="custom_budget_id",
                    issue_type="unknown_reference",
                    message=f"Custom budget {transaction.custom_budget_id} does not exist",
                    severity="error",
                ))
            else:
                if budget.status == CustomBudgetStatus.COMPLETED:
                    issues.append(ValidationIssue(
                        field="custom_budget_id",
                        issue_type="closed_budget",
                        message=f"Custom budget '{budget.name}' is already completed",
                        severity="warning",
                        suggested_fix="Reactivate the budget or pick another one",
                    ))
                if transaction.is_income:
                    issues.append(ValidationIssue(
                        field="custom_budget_id",
                        issue_type="income_in_budget",
                        message="Income is never counted against a custom budget",
                        severity="warning",
                    ))
                elif not budget.start_date <= transaction.date <= budget.end_date:
                    issues.append(ValidationIssue(
                        field="date",
                        issue_type="outside_budget_period",
                        message=f"Date {transaction.date} is outside '{budget.name}'",
                        severity="info",
                    ))

        if transaction.is_wallet_expense:
            check = validate_cash_allocations(
                wallet,
                [CashAllocation(
                    currency_code=transaction.cash_currency,
                    amount=transaction.cash_amount,
                )],
            )
            for shortfall in check.errors:
                issues.append(ValidationIssue(
                    field="cash_amount",
                    issue_type="insufficient_cash",
                    message=(
                        f"Wallet holds {shortfall.available:.2f} {shortfall.currency}, "
                        f"{shortfall.requested:.2f} requested"
                    ),
                    severity="error",
                    suggested_fix="Withdraw cash to the wallet first",
                ))

        return issues

    def validate(
        self,
        transaction: Transaction,
        custom_budgets: Iterable[CustomBudget] = (),
        wallet: Optional[CashWallet] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation.

        Args:
            transaction: The transaction to validate
            custom_budgets: Budgets the transaction may reference
            wallet: Current cash wallet (for wallet expenses)

        Returns:
            ValidationResult with all issues found
        """
        issues = self._validate_record(transaction)

        # Only run stage 2 if stage 1 passes
        if not any(issue.severity == "error" for issue in issues):
            issues.extend(self._validate_context(
                transaction,
                list(custom_budgets),
                wallet,
            ))

        return ValidationResult(
            transaction_id=transaction.id,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ This transaction cannot be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines).strip()
