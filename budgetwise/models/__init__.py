"""
Data Models Package

This package contains all Pydantic models used by the Budgetwise engine.
All data flowing through the engine must conform to these schemas.
"""

from budgetwise.models.ledger import (
    BudgetGoal,
    CashAllocation,
    CashTransactionType,
    CashWallet,
    Category,
    CategoryRule,
    CurrencyBalance,
    CustomBudget,
    CustomBudgetAllocation,
    CustomBudgetPatch,
    CustomBudgetStatus,
    EffectivePriority,
    ExchangeRate,
    FinancialPriority,
    SystemBudget,
    Transaction,
    TransactionPatch,
    TransactionType,
    apply_patch,
    new_id,
)
from budgetwise.models.stats import (
    AllocationChange,
    AllocationStats,
    CashAllocationValidation,
    CashCurrencyStats,
    CashShortfall,
    CategorizationResult,
    CategorySpending,
    ConversionResult,
    CustomBudgetStats,
    DigitalStats,
    RateLookup,
    SpendFigures,
    SystemBudgetStats,
    ValidationIssue,
    ValidationResult,
    WantsBreakdown,
)
from budgetwise.models.events import (
    LedgerEvent,
    LedgerEventBuilder,
    LedgerEventType,
    LedgerSeverity,
)
from budgetwise.models.context import UserContext

__all__ = [
    # Ledger models
    "BudgetGoal",
    "CashAllocation",
    "CashTransactionType",
    "CashWallet",
    "Category",
    "CategoryRule",
    "CurrencyBalance",
    "CustomBudget",
    "CustomBudgetAllocation",
    "CustomBudgetPatch",
    "CustomBudgetStatus",
    "EffectivePriority",
    "ExchangeRate",
    "FinancialPriority",
    "SystemBudget",
    "Transaction",
    "TransactionPatch",
    "TransactionType",
    "apply_patch",
    "new_id",
    # Result models
    "AllocationChange",
    "AllocationStats",
    "CashAllocationValidation",
    "CashCurrencyStats",
    "CashShortfall",
    "CategorizationResult",
    "CategorySpending",
    "ConversionResult",
    "CustomBudgetStats",
    "DigitalStats",
    "RateLookup",
    "SpendFigures",
    "SystemBudgetStats",
    "ValidationIssue",
    "ValidationResult",
    "WantsBreakdown",
    # Event models
    "LedgerEvent",
    "LedgerEventBuilder",
    "LedgerEventType",
    "LedgerSeverity",
    # Context
    "UserContext",
]
