"""
Plan catalog service.

Plans are keyed by name and only ever inserted or overwritten; the catalog
never deletes an entry.
"""

import structlog
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from planledger.billing.access.service import AccessControl
from planledger.billing.catalog.models import SubscriptionPlan
from planledger.billing.events import EventLog, LedgerEvents
from planledger.billing.exceptions import InvalidPlanTypeError
from planledger.billing.models import LedgerPlanTable

logger = structlog.get_logger(__name__)


class PlanCatalog:
    """Read and administer the shared plan catalog."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_plan(self, name: str) -> SubscriptionPlan | None:
        """Return the plan called ``name``, or None when absent."""
        row = self.db.get(LedgerPlanTable, name)
        if row is None:
            return None
        return SubscriptionPlan.model_validate(row)

    def require_plan(self, name: str) -> SubscriptionPlan:
        """Return the plan called ``name`` or raise ``InvalidPlanTypeError``."""
        plan = self.get_plan(name)
        if plan is None:
            raise InvalidPlanTypeError(f"Plan {name!r} not found", plan_name=name)
        return plan

    def list_plans(self) -> list[SubscriptionPlan]:
        """All plans ordered by tier, then name."""
        stmt = select(LedgerPlanTable).order_by(LedgerPlanTable.tier, LedgerPlanTable.name)
        rows = self.db.execute(stmt).scalars().all()
        return [SubscriptionPlan.model_validate(row) for row in rows]

    def upsert(self, plan: SubscriptionPlan) -> SubscriptionPlan:
        """Insert or overwrite a plan without an authorization check."""
        row = self.db.get(LedgerPlanTable, plan.name)
        if row is None:
            row = LedgerPlanTable(name=plan.name)
            self.db.add(row)

        row.cost = plan.cost
        row.duration = plan.duration
        row.features = list(plan.features)
        row.tier = plan.tier
        row.allows_refunds = plan.allows_refunds
        self.db.flush()
        return plan

    def create_or_update_plan(
        self,
        caller: str,
        name: str,
        cost: int,
        duration: int,
        features: list[str],
        tier: int,
        allows_refunds: bool,
        now: int,
    ) -> SubscriptionPlan:
        """
        Insert or overwrite the plan keyed by ``name``.

        Administrator-only. Terms are validated before anything is written.

        Raises:
            UnauthorizedError: caller is not the administrator
            InvalidPlanTypeError: plan terms are out of range
        """
        AccessControl(self.db).require_administrator(caller, "create or update plans")

        try:
            plan = SubscriptionPlan(
                name=name,
                cost=cost,
                duration=duration,
                features=list(features),
                tier=tier,
                allows_refunds=allows_refunds,
            )
        except ValidationError as exc:
            fields = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
            raise InvalidPlanTypeError(
                f"Invalid terms for plan {name!r}: {', '.join(fields) or 'plan'}",
                plan_name=name,
            ) from exc

        existed = self.db.get(LedgerPlanTable, name) is not None
        self.upsert(plan)

        EventLog(self.db).record(
            LedgerEvents.PLAN_UPSERTED,
            actor=caller,
            tick=now,
            plan_name=plan.name,
            amount=plan.cost,
            created=not existed,
            tier=plan.tier,
            duration=plan.duration,
        )
        logger.info(
            "Plan updated" if existed else "Plan created",
            plan_name=plan.name,
            cost=plan.cost,
            tier=plan.tier,
        )
        return plan
