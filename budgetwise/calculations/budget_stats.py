"""
Budget Statistics Calculator

DESIGN DECISION: Statistics are DETERMINISTIC and read-only.
They are recomputed from transactions on every call and never
raise for missing optional data (an unknown category is simply
uncategorized, an unknown currency has zero stats).

Two kinds of money are never mixed:
- digital: card/bank expenses, in base currency, counted against budgets
- cash: wallet expenses, per physical currency, counted against the wallet

CRITICAL: Every figure satisfies allocated - (paid + unpaid) == remaining.
"""

from collections import defaultdict
from datetime import date
from typing import Iterable, Optional

from budgetwise.calculations.dates import (
    is_in_window,
    month_bounds,
    resolve_window,
    shift_month,
)
from budgetwise.calculations.priority import PriorityResolver
from budgetwise.models.context import UserContext
from budgetwise.models.ledger import (
    Category,
    CustomBudget,
    CustomBudgetStatus,
    EffectivePriority,
    FinancialPriority,
    SystemBudget,
    Transaction,
)
from budgetwise.models.stats import (
    CashCurrencyStats,
    CustomBudgetStats,
    DigitalStats,
    SystemBudgetStats,
    WantsBreakdown,
)


class BudgetStatsCalculator:
    """
    Computes custom and system budget statistics.

    Usage:
        calc = BudgetStatsCalculator(context)
        stats = calc.custom_budget_stats(trip_budget, transactions)
        stats.digital.remaining
        stats.cash_stats_for("EUR").remaining
    """

    def __init__(self, context: Optional[UserContext] = None):
        self._context = context or UserContext()

    # =========================================================================
    # CUSTOM BUDGETS
    # =========================================================================

    def custom_budget_stats(
        self,
        budget: CustomBudget,
        transactions: Iterable[Transaction],
        window_start: Optional[date] = None,
        window_end: Optional[date] = None,
    ) -> CustomBudgetStats:
        """
        Digital and per-currency cash statistics of a custom budget.

        The window defaults to the budget's own span.
        """
        start, end = resolve_window(budget.start_date, budget.end_date, window_start, window_end)

        linked = [
            t for t in transactions
            if t.custom_budget_id == budget.id and is_in_window(t, start, end)
        ]

        digital_paid = 0.0
        digital_unpaid = 0.0
        cash_paid: dict[str, float] = defaultdict(float)
        cash_unpaid: dict[str, float] = defaultdict(float)

        for t in linked:
            if not t.is_expense:
                continue

            if t.is_wallet_expense:
                bucket = cash_paid if t.is_paid else cash_unpaid
                bucket[t.cash_currency] += t.cash_amount or 0.0
            elif t.is_paid:
                digital_paid += t.amount
            else:
                digital_unpaid += t.amount

        currencies = (
            {a.currency_code for a in budget.cash_allocations}
            | set(cash_paid)
            | set(cash_unpaid)
        )
        cash_by_currency = {
            currency: CashCurrencyStats(
                currency_code=currency,
                allocated=budget.cash_allocation_for(currency),
                paid=cash_paid.get(currency, 0.0),
                unpaid=cash_unpaid.get(currency, 0.0),
            )
            for currency in sorted(currencies)
        }

        return CustomBudgetStats(
            budget_id=budget.id,
            window_start=start,
            window_end=end,
            digital=DigitalStats(
                allocated=budget.allocated_amount,
                paid=digital_paid,
                unpaid=digital_unpaid,
            ),
            cash_by_currency=cash_by_currency,
            transaction_count=len(linked),
        )

    # =========================================================================
    # SYSTEM BUDGETS
    # =========================================================================

    def system_budget_stats(
        self,
        system_budget: SystemBudget,
        transactions: Iterable[Transaction],
        categories: Iterable[Category] = (),
        custom_budgets: Iterable[CustomBudget] = (),
        window_start: Optional[date] = None,
        window_end: Optional[date] = None,
    ) -> SystemBudgetStats:
        """
        Statistics of a Needs, Wants or Savings system budget.

        needs: direct expenses (outside custom budgets) resolving to needs.
        wants: direct wants, plus digital expenses of custom budgets,
            plus the unspent allocation of every active custom budget
            overlapping the window (counted as unpaid).
        savings: paid savings expenses only.

        Wallet expenses never count here.
        """
        transactions = list(transactions)
        custom_budgets = list(custom_budgets)
        start, end = resolve_window(
            system_budget.start_date,
            system_budget.end_date,
            window_start,
            window_end,
        )
        resolver = PriorityResolver(categories, custom_budgets)
        budget_type = system_budget.system_budget_type

        direct_paid = 0.0
        direct_unpaid = 0.0
        custom_paid = 0.0
        custom_unpaid = 0.0
        count = 0

        for t in transactions:
            if not t.is_expense or t.is_wallet_expense:
                continue
            if not is_in_window(t, start, end):
                continue

            if resolver.is_actual_custom_budget(t.custom_budget_id):
                if budget_type != FinancialPriority.WANTS:
                    continue
                if t.is_paid:
                    custom_paid += t.amount
                else:
                    custom_unpaid += t.amount
                count += 1
                continue

            if resolver.effective_priority(t).value != budget_type.value:
                continue
            if budget_type == FinancialPriority.SAVINGS and not t.is_paid:
                # Unpaid savings are not projected forward
                continue
            if t.is_paid:
                direct_paid += t.amount
            else:
                direct_unpaid += t.amount
            count += 1

        breakdown = None
        projected = 0.0

        if budget_type == FinancialPriority.WANTS:
            projected = self._projected_custom_remaining(
                transactions, custom_budgets, start, end
            )
            breakdown = WantsBreakdown(
                direct_paid=direct_paid,
                direct_unpaid=direct_unpaid,
                custom_paid=custom_paid,
                custom_unpaid=custom_unpaid,
                projected_custom_remaining=projected,
            )

        return SystemBudgetStats(
            budget_id=system_budget.id,
            budget_type=budget_type,
            window_start=start,
            window_end=end,
            allocated=system_budget.budget_amount,
            paid=direct_paid + custom_paid,
            unpaid=direct_unpaid + custom_unpaid + projected,
            transaction_count=count,
            wants_breakdown=breakdown,
        )

    def _projected_custom_remaining(
        self,
        transactions: list[Transaction],
        custom_budgets: list[CustomBudget],
        start: date,
        end: date,
    ) -> float:
        """
        Unspent digital allocation of active custom budgets overlapping [start, end].

        Measured over each budget's own span, so a trip running into
        next month still reserves its whole remainder now.
        """
        projected = 0.0
        for budget in custom_budgets:
            if budget.is_system_budget or budget.status != CustomBudgetStatus.ACTIVE:
                continue
            if not budget.overlaps(start, end):
                continue
            stats = self.custom_budget_stats(budget, transactions)
            projected += max(0.0, stats.digital.remaining)
        return projected

    # =========================================================================
    # INCOME AND CASH TOTALS
    # =========================================================================

    def monthly_income(
        self,
        transactions: Iterable[Transaction],
        start: date,
        end: date,
    ) -> float:
        """Income dated inside [start, end]."""
        return sum(
            t.amount for t in transactions
            if t.is_income and start <= t.date <= end
        )

    def historical_average_income(
        self,
        transactions: Iterable[Transaction],
        year: int,
        month: int,
        lookback: int = 3,
    ) -> float:
        """
        Average monthly income of the `lookback` months before year/month.

        Months without income count as zero.
        """
        if lookback <= 0:
            return 0.0

        transactions = list(transactions)
        total = 0.0
        for offset in range(1, lookback + 1):
            y, m = shift_month(year, month, -offset)
            month_start, month_end = month_bounds(y, m)
            total += self.monthly_income(transactions, month_start, month_end)

        return total / lookback

    def cash_expenses_by_currency(
        self,
        transactions: Iterable[Transaction],
        start: date,
        end: date,
    ) -> dict[str, float]:
        """Wallet expenses inside [start, end], summed per cash currency."""
        totals: dict[str, float] = defaultdict(float)
        for t in transactions:
            if t.is_wallet_expense and is_in_window(t, start, end):
                totals[t.cash_currency] += t.cash_amount or 0.0
        return {
            currency: self._context.round_money(amount)
            for currency, amount in sorted(totals.items())
        }

    def priority_totals(
        self,
        transactions: Iterable[Transaction],
        categories: Iterable[Category],
        custom_budgets: Iterable[CustomBudget],
        start: date,
        end: date,
    ) -> dict[str, float]:
        """
        Digital expense totals per effective priority inside [start, end].

        Includes 'uncategorized' so no spend disappears from the overview.
        """
        resolver = PriorityResolver(categories, custom_budgets)
        totals = {p.value: 0.0 for p in EffectivePriority if p != EffectivePriority.INCOME}
        for t in transactions:
            if not t.is_expense or t.is_wallet_expense:
                continue
            if is_in_window(t, start, end):
                totals[resolver.effective_priority(t).value] += t.amount
        return totals
