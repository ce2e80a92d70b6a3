"""
Ledger bootstrap.

Explicit, idempotent initialisation: writes the admin configuration and the
two baseline plans if they are missing. Running it again leaves existing
configuration and plans untouched.
"""

import structlog
from sqlalchemy.orm import Session

from planledger.billing.access.models import AdminConfig
from planledger.billing.access.service import AccessControl
from planledger.billing.catalog.models import SubscriptionPlan
from planledger.billing.catalog.service import PlanCatalog
from planledger.billing.events import EventLog, LedgerEvents
from planledger.settings import Settings, get_settings

logger = structlog.get_logger(__name__)

BASIC_TIER = 1
PREMIUM_TIER = 2


def baseline_plans(config: AdminConfig, settings: Settings | None = None) -> list[SubscriptionPlan]:
    """Low-tier and high-tier plans priced from the admin configuration."""
    ledger = (settings or get_settings()).ledger
    return [
        SubscriptionPlan(
            name=ledger.basic_plan_name,
            cost=config.base_subscription_cost,
            duration=config.default_subscription_period,
            features=list(ledger.basic_plan_features),
            tier=BASIC_TIER,
            allows_refunds=True,
        ),
        SubscriptionPlan(
            name=ledger.premium_plan_name,
            cost=config.base_subscription_cost * 2,
            duration=config.default_subscription_period,
            features=list(ledger.premium_plan_features),
            tier=PREMIUM_TIER,
            allows_refunds=True,
        ),
    ]


def bootstrap_ledger(db_session: Session, now: int, settings: Settings | None = None) -> AdminConfig:
    """Initialise admin configuration and baseline plans once."""
    settings = settings or get_settings()
    ledger = settings.ledger

    access = AccessControl(db_session)
    first_run = not access.is_initialized()
    config = access.initialize(
        AdminConfig(
            administrator=ledger.administrator,
            base_subscription_cost=ledger.base_subscription_cost,
            default_subscription_period=ledger.default_subscription_period,
            refund_period_limit=ledger.refund_period_limit,
            plan_change_fee=ledger.plan_change_fee,
        )
    )

    catalog = PlanCatalog(db_session)
    created = []
    for plan in baseline_plans(config, settings):
        if catalog.get_plan(plan.name) is None:
            catalog.upsert(plan)
            created.append(plan.name)

    if first_run or created:
        EventLog(db_session).record(
            LedgerEvents.LEDGER_BOOTSTRAPPED,
            actor=config.administrator,
            tick=now,
            plans_created=created,
            first_run=first_run,
        )
        logger.info("Ledger bootstrapped", administrator=config.administrator, plans=created)
    else:
        logger.debug("Ledger already bootstrapped")

    return config
