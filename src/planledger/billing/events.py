"""
Ledger event types and the append-only event log.

Every committed mutation appends one event row in the same transaction as
the mutation itself, and mirrors it to the structlog audit logger.
"""

from typing import Any

import structlog
from pydantic import Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from planledger.billing.models import LedgerEventTable
from planledger.domain import BaseModel
from planledger.logging import log_audit_event

logger = structlog.get_logger(__name__)


# ============================================================================
# Ledger Event Types
# ============================================================================


class LedgerEvents:
    """Ledger event type constants."""

    # Subscription lifecycle
    SUBSCRIPTION_PURCHASED = "subscription.purchased"
    SUBSCRIPTION_RENEWED = "subscription.renewed"
    SUBSCRIPTION_REFUNDED = "subscription.refunded"
    SUBSCRIPTION_UPGRADED = "subscription.upgraded"
    SUBSCRIPTION_DOWNGRADED = "subscription.downgraded"

    # Catalog
    PLAN_UPSERTED = "plan.upserted"

    # Administration
    ADMIN_TRANSFERRED = "admin.transferred"
    CONFIG_UPDATED = "config.updated"
    LEDGER_BOOTSTRAPPED = "ledger.bootstrapped"

    # Funds
    FUNDS_DEPOSITED = "funds.deposited"


class SubscriptionEvent(BaseModel):
    """One entry of the ledger audit trail."""

    event_id: int
    event_type: str
    tick: int
    actor: str
    account_id: str | None = None
    plan_name: str | None = None
    amount: int | None = None
    event_data: dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Event Log
# ============================================================================


class EventLog:
    """Append-only event trail bound to one database session."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def record(
        self,
        event_type: str,
        *,
        actor: str,
        tick: int,
        account_id: str | None = None,
        plan_name: str | None = None,
        amount: int | None = None,
        **event_data: Any,
    ) -> LedgerEventTable:
        """Append an event row and emit the matching audit log line."""
        row = LedgerEventTable(
            event_type=event_type,
            tick=tick,
            actor=actor,
            account_id=account_id,
            plan_name=plan_name,
            amount=amount,
            event_data=event_data,
        )
        self.db.add(row)
        self.db.flush()

        log_audit_event(
            event_type,
            actor=actor,
            account_id=account_id,
            tick=tick,
            plan_name=plan_name,
            amount=amount,
            **event_data,
        )
        return row

    def list_events(
        self, account_id: str | None = None, event_type: str | None = None
    ) -> list[SubscriptionEvent]:
        """Events in commit order, optionally filtered by account and type."""
        stmt = select(LedgerEventTable).order_by(LedgerEventTable.event_id)
        if account_id is not None:
            stmt = stmt.where(LedgerEventTable.account_id == account_id)
        if event_type is not None:
            stmt = stmt.where(LedgerEventTable.event_type == event_type)

        rows = self.db.execute(stmt).scalars().all()
        return [SubscriptionEvent.model_validate(row) for row in rows]
