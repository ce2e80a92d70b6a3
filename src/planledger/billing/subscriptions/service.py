"""
Subscription registry.

Owns the per-account lifecycle state machine:

    NONE   --purchase-->  ACTIVE
    ACTIVE --renew----->  ACTIVE   (window restarts at now)
    ACTIVE --upgrade--->  ACTIVE   (higher tier, prorated charge + fee)
    ACTIVE --downgrade->  ACTIVE   (lower tier, fee only, credit banked)
    ACTIVE --refund---->  NONE     (prorated refund, record flagged inactive)

Every method checks all preconditions before the transfer gateway is called,
and writes records only after the transfer succeeded. The caller owns the
transaction: a raised ``LedgerError`` means nothing may be committed.
"""

from dataclasses import dataclass

import structlog
from sqlalchemy.orm import Session

from planledger.billing import calculator
from planledger.billing.access.service import AccessControl
from planledger.billing.catalog.models import SubscriptionPlan
from planledger.billing.catalog.service import PlanCatalog
from planledger.billing.events import EventLog, LedgerEvents
from planledger.billing.exceptions import (
    AlreadySubscribedError,
    InvalidConfigurationError,
    InvalidPlanChangeError,
    InvalidRefundAmountError,
    NoActiveSubscriptionError,
    RefundPeriodExpiredError,
    SamePlanUpgradeError,
    SubscriptionExpiredError,
)
from planledger.billing.models import MAX_INTEGER, REASON_LENGTH, LedgerSubscriptionTable
from planledger.billing.refunds.models import RefundRecord
from planledger.billing.refunds.service import RefundLedger
from planledger.billing.subscriptions.models import Subscription
from planledger.billing.transfers.base import TransferGateway
from planledger.settings import PurchasePolicy, Settings, get_settings

logger = structlog.get_logger(__name__)


@dataclass
class _PlanChange:
    """Validated plan change, ready to settle."""

    row: LedgerSubscriptionTable
    subscription: Subscription
    current_plan: SubscriptionPlan
    new_plan: SubscriptionPlan


class SubscriptionRegistry:
    """
    Lifecycle operations for account subscriptions.

    Usage:
        registry = SubscriptionRegistry(db_session=session, transfer_gateway=gateway)
        subscription = registry.purchase("alice", "basic", now=1000)
    """

    def __init__(
        self,
        db_session: Session,
        transfer_gateway: TransferGateway,
        settings: Settings | None = None,
    ) -> None:
        self.db = db_session
        self.gateway = transfer_gateway
        self.settings = (settings or get_settings()).ledger
        self.catalog = PlanCatalog(db_session)
        self.access = AccessControl(db_session)
        self.refunds = RefundLedger(db_session)
        self.events = EventLog(db_session)

    @property
    def treasury(self) -> str:
        return self.settings.treasury_account

    # ========================================
    # Record helpers
    # ========================================

    def _get_row(self, account_id: str) -> LedgerSubscriptionTable | None:
        return self.db.get(LedgerSubscriptionTable, account_id)

    def _load_active(
        self, account_id: str, now: int
    ) -> tuple[LedgerSubscriptionTable, Subscription]:
        row = self._get_row(account_id)
        if row is None or not row.active:
            raise NoActiveSubscriptionError(account_id)

        subscription = Subscription.model_validate(row)
        if self.settings.enforce_expiry and subscription.is_expired(now):
            raise SubscriptionExpiredError(account_id, subscription.end_time, now)
        return row, subscription

    def _window_end(self, plan: SubscriptionPlan, now: int) -> int:
        if now > MAX_INTEGER - plan.duration:
            raise InvalidConfigurationError(
                f"Plan {plan.name!r} window starting at tick {now} ends past {MAX_INTEGER}",
                config_key="duration",
            )
        return now + plan.duration

    def _may_replace(self, row: LedgerSubscriptionTable, now: int) -> bool:
        if self.settings.purchase_policy == PurchasePolicy.STRICT:
            return False
        return not row.active or now >= row.end_time

    def _write(
        self,
        row: LedgerSubscriptionTable,
        *,
        active: bool,
        start_time: int,
        end_time: int,
        plan_name: str,
        last_payment_amount: int,
        remaining_credit: int,
    ) -> Subscription:
        row.active = active
        row.start_time = start_time
        row.end_time = end_time
        row.plan_name = plan_name
        row.last_payment_amount = last_payment_amount
        row.remaining_credit = remaining_credit
        self.db.flush()
        return Subscription.model_validate(row)

    # ========================================
    # Queries
    # ========================================

    def get_subscription(self, account_id: str) -> Subscription | None:
        row = self._get_row(account_id)
        return Subscription.model_validate(row) if row is not None else None

    def remaining_time(self, account_id: str, now: int) -> int:
        subscription = self.get_subscription(account_id)
        if subscription is None:
            return 0
        return calculator.remaining_time(subscription, now)

    def refund_amount(self, account_id: str, now: int) -> int:
        """Refund the account would receive at ``now``; 0 when none is possible."""
        subscription = self.get_subscription(account_id)
        if subscription is None or not subscription.active:
            return 0
        plan = self.catalog.get_plan(subscription.plan_name)
        if plan is None:
            return 0
        limit = self.access.get_config().refund_period_limit
        return calculator.refund_amount(subscription, plan, now, limit)

    def preview_upgrade(
        self, account_id: str, new_plan_name: str, now: int
    ) -> calculator.UpgradeSettlement:
        """Settlement an upgrade would charge, without changing anything."""
        change = self._validate_upgrade(account_id, new_plan_name, now)
        fee = self.access.get_config().plan_change_fee
        return calculator.upgrade_settlement(
            change.subscription, change.current_plan, change.new_plan, now, fee
        )

    def preview_downgrade(
        self, account_id: str, new_plan_name: str, now: int
    ) -> calculator.DowngradeSettlement:
        """Settlement a downgrade would produce, without changing anything."""
        change = self._validate_downgrade(account_id, new_plan_name, now)
        fee = self.access.get_config().plan_change_fee
        return calculator.downgrade_settlement(
            change.subscription, change.current_plan, change.new_plan, now, fee
        )

    # ========================================
    # Lifecycle transitions
    # ========================================

    def purchase(self, account_id: str, plan_name: str, now: int) -> Subscription:
        """
        Start a subscription on ``plan_name``.

        Raises:
            InvalidPlanTypeError: plan does not exist
            AlreadySubscribedError: a record blocks a new purchase
            InvalidConfigurationError: the new window would end past the tick limit
            InsufficientBalanceError: account cannot pay the plan cost
        """
        plan = self.catalog.require_plan(plan_name)

        row = self._get_row(account_id)
        if row is not None and not self._may_replace(row, now):
            raise AlreadySubscribedError(account_id, active=row.active)

        end_time = self._window_end(plan, now)
        self.gateway.transfer(plan.cost, account_id, self.treasury)

        if row is None:
            row = LedgerSubscriptionTable(account_id=account_id)
            self.db.add(row)

        subscription = self._write(
            row,
            active=True,
            start_time=now,
            end_time=end_time,
            plan_name=plan.name,
            last_payment_amount=plan.cost,
            remaining_credit=0,
        )

        self.events.record(
            LedgerEvents.SUBSCRIPTION_PURCHASED,
            actor=account_id,
            tick=now,
            account_id=account_id,
            plan_name=plan.name,
            amount=plan.cost,
            end_time=subscription.end_time,
        )
        logger.info(
            "Subscription purchased",
            account_id=account_id,
            plan_name=plan.name,
            amount=plan.cost,
            end_time=subscription.end_time,
        )
        return subscription

    def renew(self, account_id: str, now: int) -> Subscription:
        """
        Charge the current plan again and restart the window at ``now``.

        Remaining time is not carried over.

        Raises:
            NoActiveSubscriptionError: no active record
            SubscriptionExpiredError: record expired and expiry is enforced
            InvalidPlanTypeError: current plan no longer exists
            InsufficientBalanceError: account cannot pay the plan cost
        """
        row, subscription = self._load_active(account_id, now)
        plan = self.catalog.require_plan(subscription.plan_name)

        end_time = self._window_end(plan, now)
        self.gateway.transfer(plan.cost, account_id, self.treasury)

        renewed = self._write(
            row,
            active=True,
            start_time=now,
            end_time=end_time,
            plan_name=plan.name,
            last_payment_amount=plan.cost,
            remaining_credit=subscription.remaining_credit,
        )

        self.events.record(
            LedgerEvents.SUBSCRIPTION_RENEWED,
            actor=account_id,
            tick=now,
            account_id=account_id,
            plan_name=plan.name,
            amount=plan.cost,
            previous_end_time=subscription.end_time,
            end_time=renewed.end_time,
        )
        logger.info(
            "Subscription renewed",
            account_id=account_id,
            plan_name=plan.name,
            amount=plan.cost,
            end_time=renewed.end_time,
        )
        return renewed

    def request_refund(self, account_id: str, reason: str, now: int) -> RefundRecord:
        """
        Refund the unused part of the last payment and terminate.

        Raises:
            NoActiveSubscriptionError: no active record
            SubscriptionExpiredError: record expired and expiry is enforced
            InvalidConfigurationError: reason is too long
            InvalidPlanTypeError: current plan no longer exists
            InvalidRefundAmountError: plan disallows refunds, or the amount is zero
            RefundPeriodExpiredError: refund window has closed
            InsufficientBalanceError: treasury cannot pay the refund
        """
        row, subscription = self._load_active(account_id, now)
        if len(reason) > REASON_LENGTH:
            raise InvalidConfigurationError(
                f"Refund reason exceeds {REASON_LENGTH} characters", config_key="reason"
            )

        plan = self.catalog.require_plan(subscription.plan_name)
        if not plan.allows_refunds:
            raise InvalidRefundAmountError(
                f"Plan {plan.name!r} does not allow refunds", account_id
            )

        limit = self.access.get_config().refund_period_limit
        elapsed = now - subscription.start_time
        if elapsed > limit:
            raise RefundPeriodExpiredError(account_id, elapsed=elapsed, limit=limit)

        amount = calculator.refund_amount(subscription, plan, now, limit)
        if amount <= 0 or amount > subscription.last_payment_amount:
            raise InvalidRefundAmountError(
                f"Computed refund {amount} is not payable", account_id, amount=amount
            )

        self.gateway.transfer(amount, self.treasury, account_id)

        record = self.refunds.record_refund(account_id, now, amount, reason)
        self._write(
            row,
            active=False,
            start_time=subscription.start_time,
            end_time=now,
            plan_name=subscription.plan_name,
            last_payment_amount=0,
            remaining_credit=0,
        )

        self.events.record(
            LedgerEvents.SUBSCRIPTION_REFUNDED,
            actor=account_id,
            tick=now,
            account_id=account_id,
            plan_name=plan.name,
            amount=amount,
            reason=reason,
            elapsed=elapsed,
        )
        logger.info(
            "Subscription refunded",
            account_id=account_id,
            plan_name=plan.name,
            amount=amount,
            elapsed=elapsed,
        )
        return record

    def _validate_upgrade(self, account_id: str, new_plan_name: str, now: int) -> _PlanChange:
        row, subscription = self._load_active(account_id, now)
        new_plan = self.catalog.require_plan(new_plan_name)
        if new_plan.name == subscription.plan_name:
            raise SamePlanUpgradeError(account_id, new_plan.name)

        current_plan = self.catalog.require_plan(subscription.plan_name)
        if not new_plan.outranks(current_plan):
            raise InvalidPlanChangeError(
                f"Plan {new_plan.name!r} (tier {new_plan.tier}) is not above "
                f"{current_plan.name!r} (tier {current_plan.tier})",
                current_plan=current_plan.name,
                requested_plan=new_plan.name,
                direction="upgrade",
            )
        return _PlanChange(row, subscription, current_plan, new_plan)

    def _validate_downgrade(self, account_id: str, new_plan_name: str, now: int) -> _PlanChange:
        row, subscription = self._load_active(account_id, now)
        new_plan = self.catalog.require_plan(new_plan_name)
        current_plan = self.catalog.require_plan(subscription.plan_name)
        if not current_plan.outranks(new_plan):
            raise InvalidPlanChangeError(
                f"Plan {new_plan.name!r} (tier {new_plan.tier}) is not below "
                f"{current_plan.name!r} (tier {current_plan.tier})",
                current_plan=current_plan.name,
                requested_plan=new_plan.name,
                direction="downgrade",
            )
        return _PlanChange(row, subscription, current_plan, new_plan)

    def upgrade(self, account_id: str, new_plan_name: str, now: int) -> Subscription:
        """
        Move to a higher tier immediately.

        Charges the new plan cost less the unused value of the current
        window (clamped at zero), plus the plan change fee.

        Raises:
            NoActiveSubscriptionError: no active record
            SubscriptionExpiredError: record expired and expiry is enforced
            InvalidPlanTypeError: new or current plan does not exist
            SamePlanUpgradeError: new plan is the current plan
            InvalidPlanChangeError: new plan's tier is not higher
            InsufficientBalanceError: account cannot pay the charge
        """
        change = self._validate_upgrade(account_id, new_plan_name, now)
        fee = self.access.get_config().plan_change_fee
        settlement = calculator.upgrade_settlement(
            change.subscription, change.current_plan, change.new_plan, now, fee
        )
        if settlement.raw_amount_due < 0:
            logger.warning(
                "Upgrade amount due clamped to zero",
                account_id=account_id,
                raw_amount_due=settlement.raw_amount_due,
            )

        end_time = self._window_end(change.new_plan, now)
        self.gateway.transfer(settlement.total_charge, account_id, self.treasury)

        upgraded = self._write(
            change.row,
            active=True,
            start_time=now,
            end_time=end_time,
            plan_name=change.new_plan.name,
            last_payment_amount=change.new_plan.cost,
            remaining_credit=0,
        )

        self.events.record(
            LedgerEvents.SUBSCRIPTION_UPGRADED,
            actor=account_id,
            tick=now,
            account_id=account_id,
            plan_name=change.new_plan.name,
            amount=settlement.total_charge,
            previous_plan=change.current_plan.name,
            remaining_value=settlement.remaining_value,
            amount_due=settlement.amount_due,
            plan_change_fee=settlement.plan_change_fee,
        )
        logger.info(
            "Subscription upgraded",
            account_id=account_id,
            previous_plan=change.current_plan.name,
            plan_name=change.new_plan.name,
            total_charge=settlement.total_charge,
        )
        return upgraded

    def downgrade(self, account_id: str, new_plan_name: str, now: int) -> Subscription:
        """
        Move to a lower tier immediately.

        Charges only the plan change fee and banks the unused value of the
        current window less the new plan cost (clamped at zero) as credit.

        Raises:
            NoActiveSubscriptionError: no active record
            SubscriptionExpiredError: record expired and expiry is enforced
            InvalidPlanTypeError: new or current plan does not exist
            InvalidPlanChangeError: new plan's tier is not lower
            InsufficientBalanceError: account cannot pay the fee
        """
        change = self._validate_downgrade(account_id, new_plan_name, now)
        fee = self.access.get_config().plan_change_fee
        settlement = calculator.downgrade_settlement(
            change.subscription, change.current_plan, change.new_plan, now, fee
        )
        if settlement.raw_credit < 0:
            logger.warning(
                "Downgrade credit clamped to zero",
                account_id=account_id,
                raw_credit=settlement.raw_credit,
            )

        end_time = self._window_end(change.new_plan, now)
        self.gateway.transfer(settlement.total_charge, account_id, self.treasury)

        downgraded = self._write(
            change.row,
            active=True,
            start_time=now,
            end_time=end_time,
            plan_name=change.new_plan.name,
            last_payment_amount=change.new_plan.cost,
            remaining_credit=settlement.credit,
        )

        self.events.record(
            LedgerEvents.SUBSCRIPTION_DOWNGRADED,
            actor=account_id,
            tick=now,
            account_id=account_id,
            plan_name=change.new_plan.name,
            amount=settlement.total_charge,
            previous_plan=change.current_plan.name,
            remaining_value=settlement.remaining_value,
            credit=settlement.credit,
        )
        logger.info(
            "Subscription downgraded",
            account_id=account_id,
            previous_plan=change.current_plan.name,
            plan_name=change.new_plan.name,
            credit=settlement.credit,
        )
        return downgraded
