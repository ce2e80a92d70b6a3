"""Append-only refund log."""

from planledger.billing.refunds.models import RefundRecord
from planledger.billing.refunds.service import RefundLedger

__all__ = ["RefundLedger", "RefundRecord"]
