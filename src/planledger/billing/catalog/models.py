"""
Plan catalog models.

Covers the plan terms stored in the catalog and their validation rules.
"""

from pydantic import Field, field_validator

from planledger.billing.models import MAX_INTEGER, PLAN_NAME_LENGTH
from planledger.domain import BaseModel

MAX_FEATURES = 16
FEATURE_LENGTH = 64


class SubscriptionPlan(BaseModel):
    """Terms of a named service plan.

    Amounts are in the smallest currency unit; ``duration`` is in clock ticks.
    A strictly higher ``tier`` is a more privileged plan.
    """

    name: str = Field(min_length=1, max_length=PLAN_NAME_LENGTH, description="Unique plan key")
    cost: int = Field(
        ge=0, le=MAX_INTEGER, description="Price charged per subscription window"
    )
    duration: int = Field(
        gt=0, le=MAX_INTEGER, description="Length of one subscription window in ticks"
    )
    features: list[str] = Field(default_factory=list, max_length=MAX_FEATURES)
    tier: int = Field(
        ge=0, le=MAX_INTEGER, description="Ordinal rank used for upgrade/downgrade direction"
    )
    allows_refunds: bool = Field(False, description="Whether pro-rated refunds are offered")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if v != v.strip():
            raise ValueError("Plan name must not have surrounding whitespace")
        return v

    @field_validator("features")
    @classmethod
    def validate_features(cls, v: list[str]) -> list[str]:
        for feature in v:
            if not feature or len(feature) > FEATURE_LENGTH:
                raise ValueError(
                    f"Feature names must be 1-{FEATURE_LENGTH} characters, got {feature!r}"
                )
        return v

    def outranks(self, other: "SubscriptionPlan") -> bool:
        """True when this plan sits on a strictly higher tier than ``other``."""
        return self.tier > other.tier
