"""Administrator configuration model."""

from pydantic import Field

from planledger.billing.models import MAX_INTEGER
from planledger.domain import BaseModel


class AdminConfig(BaseModel):
    """Process-wide administrator identity and billing parameters.

    Changes take effect for subsequent operations only; open subscriptions
    are not recomputed.
    """

    administrator: str = Field(min_length=1, description="Current administrator identity")
    base_subscription_cost: int = Field(ge=0, le=MAX_INTEGER)
    default_subscription_period: int = Field(gt=0, le=MAX_INTEGER)
    refund_period_limit: int = Field(
        ge=0, le=MAX_INTEGER, description="Ticks after purchase refunds are allowed"
    )
    plan_change_fee: int = Field(
        ge=0, le=MAX_INTEGER, description="Flat fee on upgrade and downgrade"
    )
