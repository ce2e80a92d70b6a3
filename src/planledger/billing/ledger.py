"""
Subscription ledger facade.

The public operation surface. Each call is one unit of work:

1. read ``now`` from the clock once,
2. open a database transaction,
3. run the service method (authorize, load, compute, transfer, write),
4. commit, or roll everything back on the first error.

Operations never raise ``LedgerError`` to the caller; they return an
``OperationResult`` carrying either the value or exactly one ``ErrorKind``.
"""

import threading
from collections.abc import Callable
from typing import TypeVar

import structlog
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from planledger.billing.access.models import AdminConfig
from planledger.billing.access.service import AccessControl
from planledger.billing.bootstrap import bootstrap_ledger
from planledger.billing.calculator import DowngradeSettlement, UpgradeSettlement
from planledger.billing.catalog.models import SubscriptionPlan
from planledger.billing.catalog.service import PlanCatalog
from planledger.billing.events import EventLog, LedgerEvents, SubscriptionEvent
from planledger.billing.exceptions import (
    InvalidConfigurationError,
    LedgerError,
    NotInitializedError,
)
from planledger.billing.models import ACCOUNT_ID_LENGTH
from planledger.billing.refunds.models import RefundRecord
from planledger.billing.refunds.service import RefundLedger
from planledger.billing.results import OperationResult
from planledger.billing.subscriptions.models import Subscription
from planledger.billing.subscriptions.service import SubscriptionRegistry
from planledger.billing.transfers.balances import BalanceTransferGateway
from planledger.billing.transfers.base import TransferGatewayFactory
from planledger.clock import Clock, ManualClock
from planledger.db import build_engine, create_all_tables, get_engine, make_session_factory
from planledger.settings import Settings, get_settings

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _require_identity(value: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip() or len(value) > ACCOUNT_ID_LENGTH:
        raise InvalidConfigurationError(
            f"{field} must be a non-empty string of at most {ACCOUNT_ID_LENGTH} characters",
            config_key=field,
        )
    return value


class SubscriptionLedger:
    """
    Subscription billing ledger.

    Usage:
        ledger = SubscriptionLedger.create("sqlite://", clock=ManualClock(1000))
        ledger.deposit("alice", 60_000_000)
        result = ledger.purchase("alice", "basic")
        assert result.ok and result.value.end_time == 1000 + 2_592_000
    """

    def __init__(
        self,
        engine: Engine | None = None,
        clock: Clock | None = None,
        settings: Settings | None = None,
        transfer_gateway_factory: TransferGatewayFactory | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.engine = engine or get_engine()
        self.clock = clock or ManualClock()
        self._session_factory = make_session_factory(self.engine)
        self._gateway_factory: TransferGatewayFactory = (
            transfer_gateway_factory or BalanceTransferGateway
        )
        # Operations are strictly sequential
        self._lock = threading.RLock()

    @classmethod
    def create(
        cls,
        url: str | None = None,
        *,
        clock: Clock | None = None,
        settings: Settings | None = None,
        transfer_gateway_factory: TransferGatewayFactory | None = None,
        bootstrap: bool = True,
    ) -> "SubscriptionLedger":
        """Build a ledger on ``url``, create its tables and bootstrap it."""
        engine = build_engine(url)
        create_all_tables(engine)
        ledger = cls(
            engine=engine,
            clock=clock,
            settings=settings,
            transfer_gateway_factory=transfer_gateway_factory,
        )
        if bootstrap:
            ledger.bootstrap().unwrap()
        return ledger

    # ========================================
    # Unit of work
    # ========================================

    def _execute(
        self,
        operation: str,
        work: Callable[[Session, int], T],
        *,
        require_initialized: bool = True,
    ) -> OperationResult[T]:
        with self._lock:
            now = self.clock.now()
            session = self._session_factory()
            try:
                with session.begin():
                    if require_initialized and not AccessControl(session).is_initialized():
                        raise NotInitializedError()
                    value = work(session, now)
            except LedgerError as exc:
                logger.warning(
                    "Ledger operation failed",
                    operation=operation,
                    error_code=exc.error_code,
                    error=exc.message,
                    context=exc.context,
                    tick=now,
                )
                return OperationResult.failure(exc)
            finally:
                session.close()

        return OperationResult.success(value)

    def _registry(self, session: Session) -> SubscriptionRegistry:
        return SubscriptionRegistry(
            db_session=session,
            transfer_gateway=self._gateway_factory(session),
            settings=self.settings,
        )

    def bootstrap(self) -> OperationResult[AdminConfig]:
        """Initialise admin configuration and baseline plans (idempotent)."""
        return self._execute(
            "bootstrap",
            lambda session, now: bootstrap_ledger(session, now, self.settings),
            require_initialized=False,
        )

    # ========================================
    # Plan catalog
    # ========================================

    def create_or_update_plan(
        self,
        caller: str,
        name: str,
        cost: int,
        duration: int,
        features: list[str] | None = None,
        tier: int = 0,
        allows_refunds: bool = False,
    ) -> OperationResult[SubscriptionPlan]:
        return self._execute(
            "create_or_update_plan",
            lambda session, now: PlanCatalog(session).create_or_update_plan(
                caller,
                name,
                cost,
                duration,
                features or [],
                tier,
                allows_refunds,
                now,
            ),
        )

    def get_plan(self, name: str) -> OperationResult[SubscriptionPlan | None]:
        return self._execute("get_plan", lambda session, now: PlanCatalog(session).get_plan(name))

    def list_plans(self) -> OperationResult[list[SubscriptionPlan]]:
        return self._execute("list_plans", lambda session, now: PlanCatalog(session).list_plans())

    # ========================================
    # Subscription lifecycle
    # ========================================

    def purchase(self, caller: str, plan_name: str) -> OperationResult[Subscription]:
        def work(session: Session, now: int) -> Subscription:
            _require_identity(caller, "account_id")
            return self._registry(session).purchase(caller, plan_name, now)

        return self._execute("purchase", work)

    def renew(self, caller: str) -> OperationResult[Subscription]:
        return self._execute(
            "renew", lambda session, now: self._registry(session).renew(caller, now)
        )

    def request_refund(self, caller: str, reason: str = "") -> OperationResult[RefundRecord]:
        return self._execute(
            "request_refund",
            lambda session, now: self._registry(session).request_refund(caller, reason, now),
        )

    def upgrade(self, caller: str, new_plan_name: str) -> OperationResult[Subscription]:
        return self._execute(
            "upgrade",
            lambda session, now: self._registry(session).upgrade(caller, new_plan_name, now),
        )

    def downgrade(self, caller: str, new_plan_name: str) -> OperationResult[Subscription]:
        return self._execute(
            "downgrade",
            lambda session, now: self._registry(session).downgrade(caller, new_plan_name, now),
        )

    def get_subscription(self, account_id: str) -> OperationResult[Subscription | None]:
        return self._execute(
            "get_subscription",
            lambda session, now: self._registry(session).get_subscription(account_id),
        )

    def remaining_time(self, account_id: str) -> OperationResult[int]:
        return self._execute(
            "remaining_time",
            lambda session, now: self._registry(session).remaining_time(account_id, now),
        )

    def refund_amount(self, account_id: str) -> OperationResult[int]:
        return self._execute(
            "refund_amount",
            lambda session, now: self._registry(session).refund_amount(account_id, now),
        )

    def preview_upgrade(
        self, account_id: str, new_plan_name: str
    ) -> OperationResult[UpgradeSettlement]:
        return self._execute(
            "preview_upgrade",
            lambda session, now: self._registry(session).preview_upgrade(
                account_id, new_plan_name, now
            ),
        )

    def preview_downgrade(
        self, account_id: str, new_plan_name: str
    ) -> OperationResult[DowngradeSettlement]:
        return self._execute(
            "preview_downgrade",
            lambda session, now: self._registry(session).preview_downgrade(
                account_id, new_plan_name, now
            ),
        )

    def list_refunds(self, account_id: str | None = None) -> OperationResult[list[RefundRecord]]:
        return self._execute(
            "list_refunds", lambda session, now: RefundLedger(session).list_refunds(account_id)
        )

    def list_events(
        self, account_id: str | None = None, event_type: str | None = None
    ) -> OperationResult[list[SubscriptionEvent]]:
        return self._execute(
            "list_events",
            lambda session, now: EventLog(session).list_events(account_id, event_type),
        )

    # ========================================
    # Administration
    # ========================================

    def is_administrator(self, caller: str) -> OperationResult[bool]:
        return self._execute(
            "is_administrator", lambda session, now: AccessControl(session).is_administrator(caller)
        )

    def get_admin_config(self) -> OperationResult[AdminConfig]:
        return self._execute(
            "get_admin_config", lambda session, now: AccessControl(session).get_config()
        )

    def transfer_admin_rights(self, caller: str, new_admin: str) -> OperationResult[AdminConfig]:
        return self._execute(
            "transfer_admin_rights",
            lambda session, now: AccessControl(session).transfer_admin_rights(
                caller, new_admin, now
            ),
        )

    def set_refund_period(self, caller: str, limit: int) -> OperationResult[AdminConfig]:
        return self._execute(
            "set_refund_period",
            lambda session, now: AccessControl(session).set_refund_period(caller, limit, now),
        )

    def set_plan_change_fee(self, caller: str, fee: int) -> OperationResult[AdminConfig]:
        return self._execute(
            "set_plan_change_fee",
            lambda session, now: AccessControl(session).set_plan_change_fee(caller, fee, now),
        )

    def set_base_subscription_cost(self, caller: str, cost: int) -> OperationResult[AdminConfig]:
        return self._execute(
            "set_base_subscription_cost",
            lambda session, now: AccessControl(session).set_base_subscription_cost(
                caller, cost, now
            ),
        )

    def set_default_subscription_period(
        self, caller: str, period: int
    ) -> OperationResult[AdminConfig]:
        return self._execute(
            "set_default_subscription_period",
            lambda session, now: AccessControl(session).set_default_subscription_period(
                caller, period, now
            ),
        )

    # ========================================
    # Funds (bundled balance table)
    # ========================================

    def deposit(self, account_id: str, amount: int) -> OperationResult[int]:
        """Fund ``account_id`` in the bundled balance table; returns the new balance."""

        def work(session: Session, now: int) -> int:
            _require_identity(account_id, "account_id")
            balance = BalanceTransferGateway(session).deposit(account_id, amount)
            EventLog(session).record(
                LedgerEvents.FUNDS_DEPOSITED,
                actor=account_id,
                tick=now,
                account_id=account_id,
                amount=amount,
            )
            return balance

        return self._execute("deposit", work)

    def balance_of(self, account_id: str) -> OperationResult[int]:
        return self._execute(
            "balance_of", lambda session, now: BalanceTransferGateway(session).balance_of(account_id)
        )

    def __repr__(self) -> str:
        return f"SubscriptionLedger(engine={self.engine.url!r}, clock={self.clock!r})"


__all__ = ["SubscriptionLedger"]
