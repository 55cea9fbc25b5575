"""
Allocation Tracking

Compares a custom budget's category sub-splits with what was
actually spent in each category.

IMPORTANT: Spend in a category without an allocation (or with no
category at all) is reported as unallocated spend, never dropped.
"""

from collections import defaultdict
from typing import Iterable

from budgetwise.calculations.dates import is_in_window
from budgetwise.models.ledger import (
    CashAllocation,
    CustomBudget,
    CustomBudgetAllocation,
    Transaction,
)
from budgetwise.models.stats import (
    AllocationChange,
    AllocationStats,
    CategorySpending,
)


# Rounded differences at or below this are treated as no change
CHANGE_EPSILON = 0.0001


class AllocationTracker:
    """
    Allocation-vs-spend tracking of custom budgets.

    Usage:
        tracker = AllocationTracker()
        stats = tracker.stats(budget, allocations, transactions)
        stats.unallocated_remaining
    """

    def stats(
        self,
        custom_budget: CustomBudget,
        allocations: Iterable[CustomBudgetAllocation],
        transactions: Iterable[Transaction],
    ) -> AllocationStats:
        """
        Per-category allocated/spent figures of a custom budget.

        Expenses are windowed by the budget's own span. Wallet
        expenses count at their base-currency amount.

        Raises:
            ValueError: If an allocation belongs to another budget
        """
        allocations = list(allocations)
        for allocation in allocations:
            if allocation.custom_budget_id != custom_budget.id:
                raise ValueError(
                    f"Allocation {allocation.id} belongs to budget "
                    f"{allocation.custom_budget_id}, not {custom_budget.id}"
                )

        allocated_by_category: dict[str, float] = defaultdict(float)
        for allocation in allocations:
            allocated_by_category[allocation.category_id] += allocation.allocated_amount

        spent_by_category: dict[str, float] = defaultdict(float)
        unallocated_spent = 0.0

        for t in transactions:
            if t.custom_budget_id != custom_budget.id or not t.is_expense:
                continue
            if not is_in_window(t, custom_budget.start_date, custom_budget.end_date):
                continue

            if t.category_id and t.category_id in allocated_by_category:
                spent_by_category[t.category_id] += t.amount
            else:
                unallocated_spent += t.amount

        total_allocated = sum(allocated_by_category.values())

        return AllocationStats(
            budget_id=custom_budget.id,
            total_allocated=total_allocated,
            unallocated=custom_budget.allocated_amount - total_allocated,
            unallocated_spent=unallocated_spent,
            category_spending={
                category_id: CategorySpending(
                    category_id=category_id,
                    allocated=allocated,
                    spent=spent_by_category.get(category_id, 0.0),
                )
                for category_id, allocated in allocated_by_category.items()
            },
        )

    def allocation_changes(
        self,
        old: Iterable[CashAllocation],
        new: Iterable[CashAllocation],
    ) -> list[AllocationChange]:
        """
        Per-currency differences between two cash allocation plans.

        Differences are rounded to 2 decimal places; currencies whose
        rounded difference is zero are left out.
        """
        old_map = {a.currency_code: a.amount for a in old}
        new_map = {a.currency_code: a.amount for a in new}

        changes = []
        for currency in sorted(set(old_map) | set(new_map)):
            difference = round(new_map.get(currency, 0.0) - old_map.get(currency, 0.0), 2)
            if abs(difference) > CHANGE_EPSILON:
                changes.append(AllocationChange(
                    currency_code=currency,
                    amount=abs(difference),
                    is_increase=difference > 0,
                ))

        return changes
