"""Per-account subscription records and their lifecycle."""

from planledger.billing.subscriptions.models import Subscription, SubscriptionState

__all__ = ["Subscription", "SubscriptionState"]
