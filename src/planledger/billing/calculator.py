"""
Billing calculator.

Pure integer arithmetic for remaining time, pro-rated refunds and plan change
settlements. Nothing here touches storage or reads a clock: identical inputs
always give identical outputs. All divisions floor.
"""

from pydantic import Field

from planledger.billing.catalog.models import SubscriptionPlan
from planledger.billing.subscriptions.models import Subscription
from planledger.domain import BaseModel


class UpgradeSettlement(BaseModel):
    """Amounts owed when moving to a higher tier."""

    remaining_time: int = Field(ge=0)
    remaining_value: int = Field(ge=0, description="Unused value of the current window")
    raw_amount_due: int = Field(description="New plan cost minus remaining value, unclamped")
    amount_due: int = Field(ge=0, description="raw_amount_due clamped at zero")
    plan_change_fee: int = Field(ge=0)
    total_charge: int = Field(ge=0)


class DowngradeSettlement(BaseModel):
    """Credit banked and fee charged when moving to a lower tier."""

    remaining_time: int = Field(ge=0)
    remaining_value: int = Field(ge=0, description="Unused value of the current window")
    raw_credit: int = Field(description="Remaining value minus new plan cost, unclamped")
    credit: int = Field(ge=0, description="raw_credit clamped at zero")
    plan_change_fee: int = Field(ge=0)
    total_charge: int = Field(ge=0)


def is_expired(subscription: Subscription, now: int) -> bool:
    """Active record whose end time has passed."""
    return subscription.is_expired(now)


def remaining_time(subscription: Subscription, now: int) -> int:
    """Ticks left in the current window; 0 when inactive or expired."""
    if not subscription.active:
        return 0
    return max(0, subscription.end_time - now)


def refund_amount(
    subscription: Subscription,
    plan: SubscriptionPlan | None,
    now: int,
    refund_period_limit: int,
) -> int:
    """
    Linear proration of the unused part of the last payment.

    Returns 0 outside the refund window, for inactive or expired records, and
    for plans that do not allow refunds.

    Raises:
        ValueError: the subscription window has zero length
    """
    if not subscription.active:
        return 0
    if plan is not None and not plan.allows_refunds:
        return 0

    length = subscription.length
    if length <= 0:
        raise ValueError(f"Subscription window for {subscription.account_id!r} has zero length")

    elapsed = max(0, now - subscription.start_time)
    if elapsed > refund_period_limit or elapsed >= length:
        return 0

    return subscription.last_payment_amount * (length - elapsed) // length


def remaining_value(subscription: Subscription, current_plan: SubscriptionPlan, now: int) -> int:
    """Unused value of the current window, never more than was paid."""
    remaining = remaining_time(subscription, now)
    value = subscription.last_payment_amount * remaining // current_plan.duration
    return min(value, subscription.last_payment_amount)


def upgrade_settlement(
    subscription: Subscription,
    current_plan: SubscriptionPlan,
    new_plan: SubscriptionPlan,
    now: int,
    plan_change_fee: int,
) -> UpgradeSettlement:
    """Charge for an upgrade: new cost less unused value, plus the flat fee.

    A negative amount due (unused value exceeds the new cost) is clamped to
    zero; the surplus is not banked.
    """
    value = remaining_value(subscription, current_plan, now)
    raw_amount_due = new_plan.cost - value
    amount_due = max(0, raw_amount_due)
    return UpgradeSettlement(
        remaining_time=remaining_time(subscription, now),
        remaining_value=value,
        raw_amount_due=raw_amount_due,
        amount_due=amount_due,
        plan_change_fee=plan_change_fee,
        total_charge=amount_due + plan_change_fee,
    )


def downgrade_settlement(
    subscription: Subscription,
    current_plan: SubscriptionPlan,
    new_plan: SubscriptionPlan,
    now: int,
    plan_change_fee: int,
) -> DowngradeSettlement:
    """Credit for a downgrade: unused value less the new cost.

    Only the flat fee is charged. A negative credit (the account would owe)
    is clamped to zero and the shortfall is not collected.
    """
    value = remaining_value(subscription, current_plan, now)
    raw_credit = value - new_plan.cost
    return DowngradeSettlement(
        remaining_time=remaining_time(subscription, now),
        remaining_value=value,
        raw_credit=raw_credit,
        credit=max(0, raw_credit),
        plan_change_fee=plan_change_fee,
        total_charge=plan_change_fee,
    )


__all__ = [
    "UpgradeSettlement",
    "DowngradeSettlement",
    "is_expired",
    "remaining_time",
    "refund_amount",
    "remaining_value",
    "upgrade_settlement",
    "downgrade_settlement",
]
