"""
Deterministic calculations over ledger records.

Nothing in this package reads settings or storage; every input is
passed in explicitly.
"""

from budgetwise.calculations.allocations import AllocationTracker
from budgetwise.calculations.budget_stats import BudgetStatsCalculator
from budgetwise.calculations.dates import is_in_window, month_bounds
from budgetwise.calculations.goals import (
    build_system_budgets,
    rebalance_system_budgets,
    resolve_budget_limit,
)
from budgetwise.calculations.priority import PriorityResolver, effective_priority

__all__ = [
    "AllocationTracker",
    "BudgetStatsCalculator",
    "PriorityResolver",
    "build_system_budgets",
    "effective_priority",
    "is_in_window",
    "month_bounds",
    "rebalance_system_budgets",
    "resolve_budget_limit",
]
