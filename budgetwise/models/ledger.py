"""
Ledger Data Models for Budgetwise

These models define the strict schemas for every record the engine reads:
transactions, categories, budgets, allocations, the cash wallet,
budget goals, exchange-rate snapshots and categorization rules.

They are designed to:
1. State required vs. optional fields explicitly
2. Enforce record-level invariants at construction time
3. Be serializable for storage and logging
4. Accept partial updates only through typed patch objects

DESIGN DECISION: Money amounts are floats rounded at the conversion
and wallet boundaries, not Decimals. Intermediate sums are compared
with a floating tolerance by the calculators.
"""

import datetime as dt
from enum import Enum
from typing import Optional, TypeVar
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def new_id() -> str:
    """Generate a record identifier."""
    return uuid4().hex


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class FinancialPriority(str, Enum):
    """
    The three buckets of the needs/wants/savings budgeting model.

    Every category carries one of these. Transactions inherit it
    unless a custom budget overrides it (see PriorityResolver).
    """
    NEEDS = "needs"
    WANTS = "wants"
    SAVINGS = "savings"


class EffectivePriority(str, Enum):
    """Bucket a transaction is actually counted against."""
    NEEDS = "needs"
    WANTS = "wants"
    SAVINGS = "savings"
    INCOME = "income"
    UNCATEGORIZED = "uncategorized"


class CashTransactionType(str, Enum):
    """
    How a transaction moves physical cash.

    WITHDRAWAL_TO_WALLET: bank -> wallet (wallet grows)
    DEPOSIT_FROM_WALLET_TO_BANK: wallet -> bank (wallet shrinks)
    EXPENSE_FROM_WALLET: purchase paid with wallet cash (wallet shrinks)
    """
    WITHDRAWAL_TO_WALLET = "withdrawal_to_wallet"
    DEPOSIT_FROM_WALLET_TO_BANK = "deposit_from_wallet_to_bank"
    EXPENSE_FROM_WALLET = "expense_from_wallet"


class CustomBudgetStatus(str, Enum):
    """
    Custom budget lifecycle.

    planned -> active happens automatically once the start date is reached.
    active -> completed is a manual user action.
    """
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"


def _normalize_currency(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().upper()
    if len(value) != 3 or not value.isalpha():
        raise ValueError(f"Invalid currency code: {value!r}")
    return value


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense.

    `amount` is always in the user's base currency. When the user
    entered a foreign amount, `original_amount`, `original_currency`
    and `exchange_rate_used` keep what was typed in.

    CRITICAL: A wallet expense (cash expense_from_wallet) is paid by
    construction and is counted against the wallet, never against a
    budget's digital spend.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    title: str = Field(
        default="",
        max_length=200,
        description="Description shown to the user (used for categorization)"
    )
    type: TransactionType
    amount: float = Field(
        ...,
        ge=0,
        description="Amount in base currency"
    )
    original_amount: Optional[float] = Field(default=None, ge=0)
    original_currency: Optional[str] = None
    exchange_rate_used: Optional[float] = Field(default=None, gt=0)

    category_id: Optional[str] = None
    financial_priority: Optional[FinancialPriority] = None

    date: dt.date = Field(
        ...,
        description="Date the transaction was incurred"
    )
    is_paid: bool = False
    paid_date: Optional[dt.date] = None

    custom_budget_id: Optional[str] = None

    # Cash wallet linkage
    is_cash_transaction: bool = False
    cash_transaction_type: Optional[CashTransactionType] = None
    cash_amount: Optional[float] = Field(
        default=None,
        ge=0,
        description="Amount of physical cash moved, in cash_currency"
    )
    cash_currency: Optional[str] = None

    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator('original_currency', 'cash_currency')
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return _normalize_currency(v)

    @model_validator(mode='after')
    def validate_cash_fields(self) -> 'Transaction':
        """Validate cash linkage and payment state."""
        if self.is_cash_transaction and self.cash_transaction_type is None:
            raise ValueError("Cash transactions need a cash transaction type")

        if self.cash_transaction_type is not None:
            if not self.cash_amount or self.cash_amount <= 0:
                raise ValueError("Cash transactions need a positive cash amount")
            if self.cash_currency is None:
                raise ValueError("Cash transactions need a cash currency")

        if self.is_wallet_expense:
            if self.type != TransactionType.EXPENSE:
                raise ValueError("Wallet expenses must be of type expense")
            self.is_paid = True

        if self.is_paid and self.paid_date is None:
            self.paid_date = self.date

        if not self.is_paid and self.paid_date is not None:
            raise ValueError("Unpaid transactions cannot carry a paid date")

        return self

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def is_wallet_expense(self) -> bool:
        """Paid from the physical wallet rather than a bank account."""
        return (
            self.is_cash_transaction
            and self.cash_transaction_type == CashTransactionType.EXPENSE_FROM_WALLET
        )


# =============================================================================
# CATEGORY MODELS
# =============================================================================

class Category(BaseModel):
    """
    A user-owned spending category.

    Transactions reference categories by id only. `icon` is an opaque
    identifier resolved by the presentation layer.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=100)
    priority: Optional[FinancialPriority] = None
    color: str = Field(default="#94A3B8", max_length=20)
    icon: Optional[str] = Field(default=None, max_length=50)


class CategoryRule(BaseModel):
    """
    A user-defined auto-categorization rule.

    A rule matches when any keyword is contained in the uppercased
    description, or when its regular expression matches. Lower
    `priority` values are evaluated first.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    category_id: str
    keywords: list[str] = Field(default_factory=list)
    regex_pattern: Optional[str] = None
    priority: int = 0

    @field_validator('keywords')
    @classmethod
    def drop_blank_keywords(cls, v: list[str]) -> list[str]:
        return [kw.strip() for kw in v if kw and kw.strip()]

    @model_validator(mode='after')
    def require_matcher(self) -> 'CategoryRule':
        if not self.keywords and not self.regex_pattern:
            raise ValueError("A rule needs at least one keyword or a regex pattern")
        return self


# =============================================================================
# BUDGET MODELS
# =============================================================================

class SystemBudget(BaseModel):
    """One of the three always-present budgets of a period."""

    id: str = Field(default_factory=new_id)
    system_budget_type: FinancialPriority
    budget_amount: float = Field(default=0.0, ge=0)
    start_date: dt.date
    end_date: dt.date

    @model_validator(mode='after')
    def validate_period(self) -> 'SystemBudget':
        if self.end_date < self.start_date:
            raise ValueError("Budget end date cannot be before start date")
        return self


class CashAllocation(BaseModel):
    """Amount of wallet cash earmarked for a custom budget in one currency."""

    currency_code: str
    amount: float = Field(..., ge=0)

    @field_validator('currency_code')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return _normalize_currency(v)


class CustomBudget(BaseModel):
    """
    A user-created, time-boxed budget (e.g. a trip).

    `allocated_amount` is the digital (card/bank) allocation in base
    currency. `cash_allocations` hold per-currency wallet cash plans.
    On completion both are frozen to actual spend and the plan is kept
    in `original_allocated_amount` / `original_cash_allocations`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    allocated_amount: float = Field(default=0.0, ge=0)
    cash_allocations: list[CashAllocation] = Field(default_factory=list)
    start_date: dt.date
    end_date: dt.date
    status: CustomBudgetStatus = CustomBudgetStatus.ACTIVE
    original_allocated_amount: Optional[float] = Field(default=None, ge=0)
    original_cash_allocations: Optional[list[CashAllocation]] = None
    is_system_budget: bool = Field(
        default=False,
        description="True for records that mirror a system budget"
    )

    @model_validator(mode='after')
    def validate_budget(self) -> 'CustomBudget':
        if self.end_date < self.start_date:
            raise ValueError("Budget end date cannot be before start date")

        currencies = [alloc.currency_code for alloc in self.cash_allocations]
        if len(currencies) != len(set(currencies)):
            raise ValueError("Cash allocations must have one entry per currency")

        return self

    def cash_allocation_for(self, currency_code: str) -> float:
        """Allocated cash in a currency, 0 when there is no entry."""
        for alloc in self.cash_allocations:
            if alloc.currency_code == currency_code:
                return alloc.amount
        return 0.0

    def overlaps(self, start: dt.date, end: dt.date) -> bool:
        """Does the budget's own span intersect [start, end]?"""
        return self.start_date <= end and self.end_date >= start


class CustomBudgetAllocation(BaseModel):
    """A category sub-split of a custom budget's digital allocation."""

    id: str = Field(default_factory=new_id)
    custom_budget_id: str
    category_id: str
    allocated_amount: float = Field(..., ge=0)


class BudgetGoal(BaseModel):
    """
    A needs/wants/savings target (e.g. the 50/30/20 rule).

    Percentage goals size a system budget from monthly income;
    absolute goals size it with a flat amount.
    """

    priority: FinancialPriority
    target_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    target_amount: Optional[float] = Field(default=None, ge=0)
    is_absolute: bool = False


# =============================================================================
# CASH WALLET MODELS
# =============================================================================

class CurrencyBalance(BaseModel):
    """Balance of one currency in the wallet."""

    currency_code: str
    amount: float = Field(..., ge=0)

    @field_validator('currency_code')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return _normalize_currency(v)


class CashWallet(BaseModel):
    """
    The user's physical cash, held in several currencies at once.

    `version` is the optimistic concurrency token checked by the
    storage layer on every write.
    """

    id: str = Field(default_factory=new_id)
    user_id: str
    balances: list[CurrencyBalance] = Field(default_factory=list)
    version: int = Field(default=0, ge=0)

    def balance_of(self, currency_code: str) -> float:
        """Available amount in a currency, 0 when absent."""
        currency_code = currency_code.upper()
        for balance in self.balances:
            if balance.currency_code == currency_code:
                return balance.amount
        return 0.0

    def as_map(self) -> dict[str, float]:
        return {b.currency_code: b.amount for b in self.balances}


# =============================================================================
# EXCHANGE RATE MODEL
# =============================================================================

class ExchangeRate(BaseModel):
    """
    A dated rate snapshot.

    `rate` means: 1 unit of `from_currency` equals `rate` units of
    `to_currency`, which is always the reference currency.
    """

    id: str = Field(default_factory=new_id)
    date: dt.date
    from_currency: str
    to_currency: str
    rate: float = Field(..., gt=0)

    @field_validator('from_currency', 'to_currency')
    @classmethod
    def validate_currency(cls, v: str) -> str:
        return _normalize_currency(v)


# =============================================================================
# PATCH MODELS - typed partial updates
# =============================================================================

class TransactionPatch(BaseModel):
    """Fields a caller may change on an existing transaction."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    original_amount: Optional[float] = Field(default=None, ge=0)
    original_currency: Optional[str] = None
    exchange_rate_used: Optional[float] = Field(default=None, gt=0)
    category_id: Optional[str] = None
    financial_priority: Optional[FinancialPriority] = None
    date: Optional[dt.date] = None
    is_paid: Optional[bool] = None
    paid_date: Optional[dt.date] = None
    custom_budget_id: Optional[str] = None
    is_cash_transaction: Optional[bool] = None
    cash_transaction_type: Optional[CashTransactionType] = None
    cash_amount: Optional[float] = Field(default=None, ge=0)
    cash_currency: Optional[str] = None
    notes: Optional[str] = None


class CustomBudgetPatch(BaseModel):
    """Fields a caller may change on an existing custom budget."""
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: Optional[str] = None
    allocated_amount: Optional[float] = Field(default=None, ge=0)
    cash_allocations: Optional[list[CashAllocation]] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    status: Optional[CustomBudgetStatus] = None


ModelT = TypeVar("ModelT", bound=BaseModel)


def apply_patch(entity: ModelT, patch: BaseModel) -> ModelT:
    """
    Merge a patch into a record and re-validate the result.

    Only fields the caller explicitly set on the patch are applied
    (an explicit None clears an optional field). The original record
    is never mutated. Marking a transaction unpaid without giving a
    paid date clears the old paid date.

    Raises:
        pydantic.ValidationError: If the merged record is invalid
    """
    changes = patch.model_dump(exclude_unset=True)
    data = entity.model_dump()
    data.update(changes)

    if (
        isinstance(entity, Transaction)
        and changes.get("is_paid") is False
        and "paid_date" not in changes
    ):
        data["paid_date"] = None

    return type(entity).model_validate(data)
