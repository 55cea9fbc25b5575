"""
Budgetwise - Source Package

A reconciliation engine for personal budgets: transactions, a
multi-currency cash wallet, custom and system budgets.

DESIGN PRINCIPLES:
1. Check everything → then write
2. Fail early, fail visibly
3. No silent corrections (a paid amount is never converted at a guessed rate)
4. Every write to money is logged
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budgetwise Team"

from budgetwise.config import Settings, get_settings
from budgetwise.models import (
    CashWallet,
    Category,
    CategoryRule,
    CustomBudget,
    CustomBudgetStatus,
    FinancialPriority,
    SystemBudget,
    Transaction,
    TransactionType,
    UserContext,
)
from budgetwise.services.currency import CurrencyConverter, CurrencyRateStore
from budgetwise.services.wallet import CashWalletLedger
from budgetwise.validation import validate_cash_allocations
from budgetwise.calculations import (
    AllocationTracker,
    BudgetStatsCalculator,
    PriorityResolver,
    effective_priority,
)
from budgetwise.categorization import TransactionCategorizer
from budgetwise.orchestrator import CustomBudgetFlow, TransactionFlow, create_engine

__all__ = [
    # Records
    "CashWallet",
    "Category",
    "CategoryRule",
    "CustomBudget",
    "CustomBudgetStatus",
    "FinancialPriority",
    "SystemBudget",
    "Transaction",
    "TransactionType",
    "UserContext",
    # Calculation contracts
    "AllocationTracker",
    "BudgetStatsCalculator",
    "CashWalletLedger",
    "CurrencyConverter",
    "CurrencyRateStore",
    "PriorityResolver",
    "TransactionCategorizer",
    "effective_priority",
    "validate_cash_allocations",
    # Flows
    "CustomBudgetFlow",
    "TransactionFlow",
    "create_engine",
    # Configuration
    "Settings",
    "get_settings",
]
