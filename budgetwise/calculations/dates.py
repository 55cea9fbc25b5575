"""
Date-window helpers shared by the calculators.

A paid expense belongs to the period in which it was paid; an unpaid
one to the period in which it was incurred.
"""

import calendar
from datetime import date
from typing import Optional

from budgetwise.models.ledger import Transaction


def is_in_window(transaction: Transaction, start: date, end: date) -> bool:
    """
    Does the transaction fall inside [start, end] (inclusive)?

    Paid: its paid_date decides, falling back to date when missing.
    Unpaid: its date decides.
    Income: always windowed by date.
    """
    if transaction.is_income:
        return start <= transaction.date <= end

    if transaction.is_paid:
        return start <= (transaction.paid_date or transaction.date) <= end

    return start <= transaction.date <= end


def resolve_window(
    default_start: date,
    default_end: date,
    window_start: Optional[date] = None,
    window_end: Optional[date] = None,
) -> tuple[date, date]:
    """Fill missing window bounds from the budget's own span."""
    return window_start or default_start, window_end or default_end


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a calendar month (month is 1-12)."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """(year, month) moved by `offset` months, rolling over years."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1
