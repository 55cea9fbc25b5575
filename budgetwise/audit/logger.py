"""
Ledger Event Logger

DESIGN DECISION: Every write to the user's money is logged.
This provides:
1. Traceability of wallet balances
2. Debugging capability
3. A history the user can inspect

The event logger:
- Gracefully handles failures (a broken sink never fails a wallet write)
- Always writes a structured local log line, with or without a sink
"""

import logging
from typing import Optional

import structlog

from budgetwise.models.events import LedgerEvent, LedgerEventBuilder
from budgetwise.services.storage import EventSinkInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """
    Route structlog output through the stdlib root logger at `level`.

    Call once at application startup, e.g. with get_settings().app.log_level.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))


class LedgerEventLogger:
    """
    Central ledger event logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional event sink (for persistence and user visibility)
    """

    def __init__(self, sink: Optional[EventSinkInterface] = None):
        """
        Initialize the event logger.

        Args:
            sink: Storage backend for persistence.
                  If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger(__name__)

    def log(self, event: LedgerEvent) -> bool:
        """
        Log a ledger event.

        Always logs locally. Persists to the sink if available.

        Returns True if the sink write succeeded (or no sink configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("ledger_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("ledger_event", **log_dict)
        else:
            self._logger.info("ledger_event", **log_dict)

        if self._sink:
            try:
                return self._sink.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "event_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_wallet_created(self, wallet_id: str, user_id: str) -> None:
        self.log(LedgerEventBuilder.wallet_created(wallet_id, user_id))

    def log_wallet_updated(
        self,
        wallet_id: str,
        deltas: dict[str, float],
        balances: dict[str, float],
    ) -> None:
        """Log a committed wallet write."""
        self.log(LedgerEventBuilder.wallet_updated(wallet_id, deltas, balances))

    def log_wallet_conflict(self, wallet_id: str, attempt: int) -> None:
        self.log(LedgerEventBuilder.wallet_write_conflict(wallet_id, attempt))

    def log_insufficient_balance(self, wallet_id: str, shortfalls: list[dict]) -> None:
        """Log a rejected cash movement."""
        self.log(LedgerEventBuilder.insufficient_balance(wallet_id, shortfalls))

    def log_transaction_recorded(
        self,
        transaction_id: str,
        title: str,
        amount: float,
        cash_deltas: dict[str, float],
    ) -> None:
        self.log(LedgerEventBuilder.transaction_recorded(
            transaction_id=transaction_id,
            title=title,
            amount=amount,
            cash_deltas=cash_deltas,
        ))

    def log_transaction_updated(
        self,
        transaction_id: str,
        changed_fields: list[str],
        cash_deltas: dict[str, float],
    ) -> None:
        self.log(LedgerEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            changed_fields=changed_fields,
            cash_deltas=cash_deltas,
        ))

    def log_transaction_deleted(
        self,
        transaction_id: str,
        cash_deltas: dict[str, float],
    ) -> None:
        self.log(LedgerEventBuilder.transaction_deleted(transaction_id, cash_deltas))

    def log_budget_created(self, budget_id: str, name: str, status: str) -> None:
        self.log(LedgerEventBuilder.budget_created(budget_id, name, status))

    def log_budget_status_changed(
        self,
        budget_id: str,
        name: str,
        status: str,
        previous_status: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Log a custom budget lifecycle transition."""
        self.log(LedgerEventBuilder.budget_status_changed(
            budget_id=budget_id,
            name=name,
            status=status,
            previous_status=previous_status,
            details=details,
        ))

    def log_allocation_saved(
        self,
        allocation_id: str,
        budget_id: str,
        category_id: str,
        amount: float,
    ) -> None:
        self.log(LedgerEventBuilder.allocation_saved(
            allocation_id=allocation_id,
            budget_id=budget_id,
            category_id=category_id,
            amount=amount,
        ))

    def log_allocation_removed(self, allocation_id: str, budget_id: str) -> None:
        self.log(LedgerEventBuilder.allocation_removed(allocation_id, budget_id))
