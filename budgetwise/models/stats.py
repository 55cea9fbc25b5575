"""
Result Models for Budgetwise

Every calculator returns one of these records instead of a loose dict.

CRITICAL: `remaining` and `percentage_used` are derived from
allocated/paid/unpaid in exactly one place (SpendFigures), so the
identity allocated - (paid + unpaid) == remaining always holds.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from budgetwise.models.ledger import FinancialPriority


# =============================================================================
# CURRENCY RESULTS
# =============================================================================

class RateLookup(BaseModel):
    """The stored snapshot nearest to a requested date."""

    currency: str
    rate: float = Field(..., gt=0, description="1 currency = rate reference units")
    snapshot_date: dt.date
    requested_date: dt.date
    distance_days: int = Field(..., ge=0)
    is_fresh: bool


class ConversionResult(BaseModel):
    """
    Outcome of a currency conversion.

    When a rate is missing or stale, `converted_amount` is None and
    `needs_refresh` tells the caller to fetch rates for
    `missing_currencies` and retry.
    """

    converted_amount: Optional[float] = None
    exchange_rate_used: Optional[float] = None
    needs_refresh: bool = False
    missing_currencies: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.converted_amount is not None


# =============================================================================
# BUDGET STATISTICS
# =============================================================================

class SpendFigures(BaseModel):
    """Allocated vs. paid/unpaid spend of one budget dimension."""

    allocated: float = 0.0
    paid: float = 0.0
    unpaid: float = 0.0

    @computed_field
    @property
    def spent(self) -> float:
        return self.paid + self.unpaid

    @computed_field
    @property
    def remaining(self) -> float:
        """Not clamped: negative means over budget."""
        return self.allocated - (self.paid + self.unpaid)

    @computed_field
    @property
    def percentage_used(self) -> float:
        if self.allocated <= 0:
            return 0.0
        return (self.paid + self.unpaid) / self.allocated * 100


class DigitalStats(SpendFigures):
    """Card/bank spend of a custom budget, in base currency."""


class CashCurrencyStats(SpendFigures):
    """Wallet cash spend of a custom budget in one currency."""

    currency_code: str


class CustomBudgetStats(BaseModel):
    """Digital and per-currency cash statistics of a custom budget."""

    budget_id: str
    window_start: dt.date
    window_end: dt.date
    digital: DigitalStats
    cash_by_currency: dict[str, CashCurrencyStats] = Field(default_factory=dict)
    transaction_count: int = 0

    def cash_stats_for(self, currency_code: str) -> CashCurrencyStats:
        """Cash figures for a currency; zeros when it was never allocated or spent."""
        currency_code = currency_code.upper()
        return self.cash_by_currency.get(
            currency_code,
            CashCurrencyStats(currency_code=currency_code),
        )


class WantsBreakdown(BaseModel):
    """Where a Wants system budget's spend comes from."""

    direct_paid: float = 0.0
    direct_unpaid: float = 0.0
    custom_paid: float = 0.0
    custom_unpaid: float = 0.0
    projected_custom_remaining: float = Field(
        default=0.0,
        ge=0,
        description="Unspent allocation of active custom budgets overlapping the window"
    )


class SystemBudgetStats(SpendFigures):
    """Statistics of a Needs, Wants or Savings system budget."""

    budget_id: str
    budget_type: FinancialPriority
    window_start: dt.date
    window_end: dt.date
    transaction_count: int = 0
    wants_breakdown: Optional[WantsBreakdown] = None


# =============================================================================
# ALLOCATION RESULTS
# =============================================================================

class CategorySpending(BaseModel):
    """Allocated vs. spent for one category of a custom budget."""

    category_id: str
    allocated: float = 0.0
    spent: float = 0.0

    @computed_field
    @property
    def remaining(self) -> float:
        return self.allocated - self.spent

    @computed_field
    @property
    def percentage_used(self) -> float:
        if self.allocated <= 0:
            return 0.0
        return self.spent / self.allocated * 100


class AllocationStats(BaseModel):
    """
    How a custom budget's digital allocation splits across categories.

    Spend that no category allocation covers lands in
    `unallocated_spent`, so it is never lost.
    """

    budget_id: str
    total_allocated: float = 0.0
    unallocated: float = 0.0
    unallocated_spent: float = 0.0
    category_spending: dict[str, CategorySpending] = Field(default_factory=dict)

    @computed_field
    @property
    def unallocated_remaining(self) -> float:
        return self.unallocated - self.unallocated_spent


class AllocationChange(BaseModel):
    """Per-currency change between two cash allocation plans."""

    currency_code: str
    amount: float = Field(..., ge=0)
    is_increase: bool


# =============================================================================
# CATEGORIZATION RESULT
# =============================================================================

class CategorizationResult(BaseModel):
    """Category suggested for a transaction description."""

    category_id: Optional[str] = None
    category_name: str
    priority: FinancialPriority
    matched_by: Optional[str] = Field(
        default=None,
        pattern="^(user_rule|keyword|pattern|category_name)$",
        description="Tier that produced the match; None when nothing matched"
    )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class CashShortfall(BaseModel):
    """A currency where the wallet cannot cover a requested amount."""

    currency: str
    requested: float
    available: float


class CashAllocationValidation(BaseModel):
    """Result of checking requested cash against the wallet."""

    valid: bool
    errors: list[CashShortfall] = Field(default_factory=list)


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'invalid_value', 'unknown_reference', 'insufficient_cash')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = None


class ValidationResult(BaseModel):
    """Result of validating a transaction before it is recorded."""

    transaction_id: str
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]
