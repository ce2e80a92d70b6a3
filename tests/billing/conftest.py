"""Shared fixtures for billing service tests running inside one session."""

import pytest
from ledger_values import START_TICK

from planledger.billing.bootstrap import bootstrap_ledger
from planledger.billing.catalog.models import SubscriptionPlan
from planledger.billing.subscriptions.models import Subscription
from planledger.billing.subscriptions.service import SubscriptionRegistry
from planledger.billing.transfers.balances import BalanceTransferGateway


@pytest.fixture
def bootstrapped_session(db_session, settings):
    """Session on a ledger with admin config and baseline plans."""
    bootstrap_ledger(db_session, START_TICK, settings)
    return db_session


@pytest.fixture
def gateway(bootstrapped_session) -> BalanceTransferGateway:
    return BalanceTransferGateway(bootstrapped_session)


@pytest.fixture
def registry(bootstrapped_session, gateway, settings) -> SubscriptionRegistry:
    return SubscriptionRegistry(
        db_session=bootstrapped_session,
        transfer_gateway=gateway,
        settings=settings,
    )


@pytest.fixture
def sample_plan() -> SubscriptionPlan:
    return SubscriptionPlan(
        name="basic",
        cost=50_000_000,
        duration=2_592_000,
        features=["standard-support"],
        tier=1,
        allows_refunds=True,
    )


@pytest.fixture
def premium_plan() -> SubscriptionPlan:
    return SubscriptionPlan(
        name="premium",
        cost=100_000_000,
        duration=2_592_000,
        features=["priority-support"],
        tier=2,
        allows_refunds=True,
    )


@pytest.fixture
def active_subscription() -> Subscription:
    """Basic subscription bought at the reference tick."""
    return Subscription(
        account_id="alice",
        active=True,
        start_time=START_TICK,
        end_time=START_TICK + 2_592_000,
        plan_name="basic",
        last_payment_amount=50_000_000,
    )
