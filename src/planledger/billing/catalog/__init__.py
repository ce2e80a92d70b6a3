"""Shared catalog of subscription plans."""

from planledger.billing.catalog.models import SubscriptionPlan
from planledger.billing.catalog.service import PlanCatalog

__all__ = ["PlanCatalog", "SubscriptionPlan"]
