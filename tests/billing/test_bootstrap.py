"""Tests for ledger bootstrap."""

import pytest
from ledger_values import ADMIN, BASIC_COST, CHANGE_FEE, PERIOD, REFUND_LIMIT, make_settings

from planledger.billing.access.models import AdminConfig
from planledger.billing.access.service import AccessControl
from planledger.billing.bootstrap import BASIC_TIER, PREMIUM_TIER, baseline_plans, bootstrap_ledger
from planledger.billing.catalog.models import SubscriptionPlan
from planledger.billing.catalog.service import PlanCatalog
from planledger.billing.events import EventLog, LedgerEvents

pytestmark = pytest.mark.integration


class TestBootstrap:
    """Idempotent initialisation of configuration and baseline plans."""

    def test_first_run(self, db_session, settings):
        config = bootstrap_ledger(db_session, 0, settings)

        assert config.administrator == ADMIN
        assert config.base_subscription_cost == BASIC_COST
        assert config.default_subscription_period == PERIOD
        assert config.refund_period_limit == REFUND_LIMIT
        assert config.plan_change_fee == CHANGE_FEE

        plans = PlanCatalog(db_session).list_plans()
        assert [(p.name, p.tier) for p in plans] == [
            ("basic", BASIC_TIER),
            ("premium", PREMIUM_TIER),
        ]
        assert plans[1].cost == 2 * plans[0].cost
        assert all(p.allows_refunds for p in plans)

        events = EventLog(db_session).list_events(event_type=LedgerEvents.LEDGER_BOOTSTRAPPED)
        assert len(events) == 1
        assert events[0].event_data == {"plans_created": ["basic", "premium"], "first_run": True}

    def test_second_run_changes_nothing(self, db_session, settings):
        bootstrap_ledger(db_session, 0, settings)
        AccessControl(db_session).set_plan_change_fee(ADMIN, 0, now=1)
        PlanCatalog(db_session).upsert(
            SubscriptionPlan(name="basic", cost=1, duration=1, tier=BASIC_TIER)
        )

        config = bootstrap_ledger(db_session, 2, settings)

        assert config.plan_change_fee == 0
        assert PlanCatalog(db_session).get_plan("basic").cost == 1
        events = EventLog(db_session).list_events(event_type=LedgerEvents.LEDGER_BOOTSTRAPPED)
        assert len(events) == 1

    def test_custom_plan_names(self, db_session):
        settings = make_settings(basic_plan_name="starter", premium_plan_name="pro")
        bootstrap_ledger(db_session, 0, settings)
        assert {p.name for p in PlanCatalog(db_session).list_plans()} == {"starter", "pro"}

    @pytest.mark.unit
    def test_baseline_priced_from_config(self, settings):
        plans = baseline_plans(
            AdminConfig(
                administrator=ADMIN,
                base_subscription_cost=7,
                default_subscription_period=11,
                refund_period_limit=0,
                plan_change_fee=0,
            ),
            settings,
        )
        assert [(p.cost, p.duration) for p in plans] == [(7, 11), (14, 11)]
