"""
System Budget Sizing

Turns the user's needs/wants/savings goals into budget amounts.

DESIGN DECISION: With fixed-lifestyle mode on, a raise does not
inflate spending. Needs and wants stay sized on the historical
average income and the whole surplus goes to savings.
"""

from datetime import date
from typing import Iterable, Optional

import structlog

from budgetwise.models.context import UserContext
from budgetwise.models.ledger import BudgetGoal, FinancialPriority, SystemBudget


logger = structlog.get_logger(__name__)

# Amount changes at or below this are not worth a write
REBALANCE_THRESHOLD = 0.01


def resolve_budget_limit(
    goal: Optional[BudgetGoal],
    monthly_income: float,
    context: UserContext,
    historical_average: float = 0.0,
) -> float:
    """
    Budget amount a goal yields for a month's income.

    Absolute goals (or absolute goal mode) return the flat target.
    Percentage goals return income * pct / 100, sized on the
    historical average in fixed-lifestyle mode when income exceeds it;
    the savings goal then also receives the overflow.
    """
    if goal is None:
        return 0.0

    if context.goal_mode == "absolute" or goal.is_absolute:
        return goal.target_amount or 0.0

    percentage = goal.target_percentage or 0.0

    if (
        context.fixed_lifestyle_mode
        and historical_average > 0
        and monthly_income > historical_average
    ):
        overflow = monthly_income - historical_average
        standard = historical_average * percentage / 100
        if goal.priority == FinancialPriority.SAVINGS:
            return standard + overflow
        return standard

    return monthly_income * percentage / 100


def _goals_by_priority(goals: Iterable[BudgetGoal]) -> dict[FinancialPriority, BudgetGoal]:
    return {goal.priority: goal for goal in goals}


def build_system_budgets(
    goals: Iterable[BudgetGoal],
    monthly_income: float,
    start: date,
    end: date,
    context: UserContext,
    historical_average: float = 0.0,
) -> list[SystemBudget]:
    """
    The three system budgets of a period, in needs/wants/savings order.

    A priority without a goal gets a zero budget.
    """
    by_priority = _goals_by_priority(goals)
    return [
        SystemBudget(
            system_budget_type=priority,
            budget_amount=context.round_money(resolve_budget_limit(
                by_priority.get(priority),
                monthly_income,
                context,
                historical_average,
            )),
            start_date=start,
            end_date=end,
        )
        for priority in FinancialPriority
    ]


def rebalance_system_budgets(
    budgets: Iterable[SystemBudget],
    goals: Iterable[BudgetGoal],
    monthly_income: float,
    context: UserContext,
    historical_average: float = 0.0,
    horizon: Optional[date] = None,
) -> list[SystemBudget]:
    """
    Re-size existing system budgets after a goal change.

    Budgets that ended before `horizon` are history and left alone.
    Only budgets whose amount moves by more than 0.01 are returned,
    as updated copies.
    """
    by_priority = _goals_by_priority(goals)
    changed = []

    for budget in budgets:
        if horizon is not None and budget.end_date < horizon:
            continue

        amount = context.round_money(resolve_budget_limit(
            by_priority.get(budget.system_budget_type),
            monthly_income,
            context,
            historical_average,
        ))
        if abs(amount - budget.budget_amount) > REBALANCE_THRESHOLD:
            changed.append(budget.model_copy(update={"budget_amount": amount}))

    logger.info(
        "system_budgets_rebalanced",
        changed=len(changed),
        monthly_income=monthly_income,
    )
    return changed
