"""
Ledger Event Models for Budgetwise

Wallet mutations and budget lifecycle changes are recorded as events.
This provides:
1. Traceability of every change to the user's cash
2. Debugging information when balances look wrong
3. A feed the presentation layer can show as history

DESIGN DECISION: Events are append-only. They describe what happened
and are never used to recompute balances.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LedgerEventType(str, Enum):
    """Types of events we record."""
    # Cash wallet
    WALLET_CREATED = "wallet_created"
    WALLET_UPDATED = "wallet_updated"
    WALLET_WRITE_CONFLICT = "wallet_write_conflict"
    INSUFFICIENT_BALANCE = "insufficient_balance"

    # Transactions
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Custom budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_ACTIVATED = "budget_activated"
    BUDGET_COMPLETED = "budget_completed"
    BUDGET_REACTIVATED = "budget_reactivated"
    ALLOCATION_SAVED = "allocation_saved"
    ALLOCATION_REMOVED = "allocation_removed"


class LedgerSeverity(str, Enum):
    """Severity level for ledger events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LedgerEvent(BaseModel):
    """
    A single ledger event.

    Every write performed by the flows creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: LedgerEventType
    severity: LedgerSeverity = LedgerSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'wallet', 'transaction', 'custom_budget')"
    )
    entity_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class LedgerEventBuilder:
    """
    Helper class to build ledger events with common patterns.

    Usage:
        event = LedgerEventBuilder.wallet_updated(wallet_id, deltas, balances)
        event = LedgerEventBuilder.budget_status_changed(budget_id, name, "completed")
    """

    @staticmethod
    def wallet_created(wallet_id: str, user_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.WALLET_CREATED,
            entity_type="wallet",
            entity_id=wallet_id,
            description=f"Cash wallet created for user {user_id}",
            details={"user_id": user_id},
        )

    @staticmethod
    def wallet_updated(
        wallet_id: str,
        deltas: dict[str, float],
        balances: dict[str, float],
    ) -> LedgerEvent:
        changed = ", ".join(f"{c} {d:+.2f}" for c, d in sorted(deltas.items()))
        return LedgerEvent(
            event_type=LedgerEventType.WALLET_UPDATED,
            entity_type="wallet",
            entity_id=wallet_id,
            description=f"Wallet updated: {changed}",
            details={"deltas": deltas, "balances": balances},
        )

    @staticmethod
    def wallet_write_conflict(wallet_id: str, attempt: int) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.WALLET_WRITE_CONFLICT,
            severity=LedgerSeverity.WARNING,
            entity_type="wallet",
            entity_id=wallet_id,
            description=f"Wallet write conflict on attempt {attempt}",
            details={"attempt": attempt},
        )

    @staticmethod
    def insufficient_balance(
        wallet_id: str,
        shortfalls: list[dict],
    ) -> LedgerEvent:
        currencies = ", ".join(s["currency"] for s in shortfalls)
        return LedgerEvent(
            event_type=LedgerEventType.INSUFFICIENT_BALANCE,
            severity=LedgerSeverity.WARNING,
            entity_type="wallet",
            entity_id=wallet_id,
            description=f"Insufficient cash in: {currencies}",
            details={"shortfalls": shortfalls},
        )

    @staticmethod
    def transaction_recorded(
        transaction_id: str,
        title: str,
        amount: float,
        cash_deltas: dict[str, float],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction recorded: {title or transaction_id}",
            details={"amount": amount, "cash_deltas": cash_deltas},
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        changed_fields: list[str],
        cash_deltas: dict[str, float],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Transaction updated: {', '.join(changed_fields) or 'no fields'}",
            details={"changed_fields": changed_fields, "cash_deltas": cash_deltas},
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        cash_deltas: dict[str, float],
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
            details={"cash_deltas": cash_deltas},
        )

    @staticmethod
    def budget_created(budget_id: str, name: str, status: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.BUDGET_CREATED,
            entity_type="custom_budget",
            entity_id=budget_id,
            description=f"Custom budget created: {name}",
            details={"status": status},
        )

    @staticmethod
    def budget_status_changed(
        budget_id: str,
        name: str,
        status: str,
        previous_status: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> LedgerEvent:
        if status == "completed":
            event_type = LedgerEventType.BUDGET_COMPLETED
        elif previous_status == "completed":
            event_type = LedgerEventType.BUDGET_REACTIVATED
        else:
            event_type = LedgerEventType.BUDGET_ACTIVATED
        return LedgerEvent(
            event_type=event_type,
            entity_type="custom_budget",
            entity_id=budget_id,
            description=f"Custom budget {name} is now {status}",
            details=details or {},
        )

    @staticmethod
    def allocation_saved(
        allocation_id: str,
        budget_id: str,
        category_id: str,
        amount: float,
    ) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.ALLOCATION_SAVED,
            entity_type="allocation",
            entity_id=allocation_id,
            description=f"Allocation of {amount:.2f} saved for category {category_id}",
            details={"custom_budget_id": budget_id, "category_id": category_id},
        )

    @staticmethod
    def allocation_removed(allocation_id: str, budget_id: str) -> LedgerEvent:
        return LedgerEvent(
            event_type=LedgerEventType.ALLOCATION_REMOVED,
            entity_type="allocation",
            entity_id=allocation_id,
            description="Allocation removed",
            details={"custom_budget_id": budget_id},
        )
