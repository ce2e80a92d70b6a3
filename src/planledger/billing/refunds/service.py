"""
Refund ledger.

Append-only log of refund events keyed by (account, tick). A second refund
for the same account at the same tick overwrites the first.
"""

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from planledger.billing.models import LedgerRefundTable
from planledger.billing.refunds.models import RefundRecord

logger = structlog.get_logger(__name__)


class RefundLedger:
    """Write and query refund records."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def record_refund(self, account_id: str, timestamp: int, amount: int, reason: str) -> RefundRecord:
        record = RefundRecord(
            account_id=account_id,
            timestamp=timestamp,
            refund_amount=amount,
            reason=reason,
        )

        row = self.db.get(LedgerRefundTable, (account_id, timestamp))
        if row is None:
            row = LedgerRefundTable(account_id=account_id, timestamp=timestamp)
            self.db.add(row)
        else:
            logger.warning(
                "Overwriting refund recorded at the same tick",
                account_id=account_id,
                timestamp=timestamp,
                previous_amount=row.refund_amount,
            )
        row.refund_amount = record.refund_amount
        row.reason = record.reason
        self.db.flush()
        return record

    def get_refund(self, account_id: str, timestamp: int) -> RefundRecord | None:
        row = self.db.get(LedgerRefundTable, (account_id, timestamp))
        return RefundRecord.model_validate(row) if row is not None else None

    def list_refunds(self, account_id: str | None = None) -> list[RefundRecord]:
        """Refunds ordered by tick, optionally for one account."""
        stmt = select(LedgerRefundTable).order_by(
            LedgerRefundTable.timestamp, LedgerRefundTable.account_id
        )
        if account_id is not None:
            stmt = stmt.where(LedgerRefundTable.account_id == account_id)
        rows = self.db.execute(stmt).scalars().all()
        return [RefundRecord.model_validate(row) for row in rows]
