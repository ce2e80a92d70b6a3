"""Refund record model."""

from pydantic import Field

from planledger.billing.models import MAX_INTEGER, REASON_LENGTH
from planledger.domain import BaseModel


class RefundRecord(BaseModel):
    """A refund paid to an account at a given tick."""

    account_id: str = Field(min_length=1)
    timestamp: int = Field(ge=0, le=MAX_INTEGER)
    refund_amount: int = Field(ge=0, le=MAX_INTEGER)
    reason: str = Field("", max_length=REASON_LENGTH)
