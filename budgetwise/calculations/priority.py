"""
Effective Priority Resolution

Decides which bucket (needs / wants / savings) a transaction counts
against.

Hierarchy, first hit wins:
1. Income is always 'income'
2. Linked to an actual custom budget -> 'wants'
3. The transaction's own financial_priority
4. Its category's priority
5. 'uncategorized'

CRITICAL: A "needs" category expense spent inside a custom budget
(e.g. groceries on a trip) is a 'wants' expense.
"""

from typing import Iterable, Optional

from budgetwise.models.ledger import (
    Category,
    CustomBudget,
    EffectivePriority,
    Transaction,
)


class PriorityResolver:
    """
    Resolves effective priorities against pre-indexed categories and budgets.

    Usage:
        resolver = PriorityResolver(categories, custom_budgets)
        resolver.effective_priority(transaction)
    """

    def __init__(
        self,
        categories: Iterable[Category] = (),
        custom_budgets: Iterable[CustomBudget] = (),
    ):
        self._categories = {c.id: c for c in categories}
        self._budgets = {b.id: b for b in custom_budgets}

    def is_actual_custom_budget(self, budget_id: Optional[str]) -> bool:
        """True when the id names an existing budget that is not a system mirror."""
        if not budget_id:
            return False
        budget = self._budgets.get(budget_id)
        return budget is not None and not budget.is_system_budget

    def category(self, category_id: Optional[str]) -> Optional[Category]:
        if not category_id:
            return None
        return self._categories.get(category_id)

    def effective_priority(self, transaction: Transaction) -> EffectivePriority:
        if transaction.is_income:
            return EffectivePriority.INCOME

        if self.is_actual_custom_budget(transaction.custom_budget_id):
            return EffectivePriority.WANTS

        if transaction.financial_priority is not None:
            return EffectivePriority(transaction.financial_priority.value)

        category = self.category(transaction.category_id)
        if category is not None and category.priority is not None:
            return EffectivePriority(category.priority.value)

        return EffectivePriority.UNCATEGORIZED


def effective_priority(
    transaction: Transaction,
    categories: Iterable[Category] = (),
    custom_budgets: Iterable[CustomBudget] = (),
) -> EffectivePriority:
    """One-off resolution without building a resolver first."""
    return PriorityResolver(categories, custom_budgets).effective_priority(transaction)
