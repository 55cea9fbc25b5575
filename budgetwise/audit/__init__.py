"""Ledger event logging package."""

from budgetwise.audit.logger import LedgerEventLogger, configure_logging

__all__ = ["LedgerEventLogger", "configure_logging"]
