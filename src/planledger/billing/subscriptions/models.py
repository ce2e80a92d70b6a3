"""
Subscription models.

One record per account. Termination is a flag (``active=False``), never a
deletion, so the record survives refunds and expiry.
"""

from enum import Enum

from pydantic import Field, model_validator

from planledger.billing.models import MAX_INTEGER
from planledger.domain import BaseModel


class SubscriptionState(str, Enum):
    """Lifecycle states of an account."""

    NONE = "none"  # no record, or record with active=False
    ACTIVE = "active"


class Subscription(BaseModel):
    """Subscription record for a single account."""

    account_id: str = Field(min_length=1)
    active: bool
    start_time: int = Field(ge=0, le=MAX_INTEGER)
    end_time: int = Field(ge=0, le=MAX_INTEGER)
    plan_name: str
    last_payment_amount: int = Field(
        ge=0, le=MAX_INTEGER, description="Basis for refund and proration math"
    )
    remaining_credit: int = Field(
        0, ge=0, le=MAX_INTEGER, description="Credit banked by a downgrade"
    )

    @model_validator(mode="after")
    def validate_window(self) -> "Subscription":
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self

    @property
    def state(self) -> SubscriptionState:
        return SubscriptionState.ACTIVE if self.active else SubscriptionState.NONE

    @property
    def length(self) -> int:
        return self.end_time - self.start_time

    def is_expired(self, now: int) -> bool:
        """Flagged active but past its end time (expiry is never swept)."""
        return self.active and now >= self.end_time
