"""
Billing ledger module.

Provides subscription billing capabilities including:
- Plan catalog management
- Subscription lifecycle (purchase, renew, refund, upgrade, downgrade)
- Pro-rated refund and plan change settlement
- Administrator access control
- Refund and event audit trails
"""

from planledger.billing.exceptions import (
    AlreadySubscribedError,
    ErrorKind,
    InsufficientBalanceError,
    InvalidConfigurationError,
    InvalidPlanChangeError,
    InvalidPlanTypeError,
    InvalidRefundAmountError,
    LedgerError,
    NoActiveSubscriptionError,
    NotInitializedError,
    RefundPeriodExpiredError,
    SamePlanUpgradeError,
    SubscriptionExpiredError,
    UnauthorizedError,
)
from planledger.billing.ledger import SubscriptionLedger
from planledger.billing.results import OperationResult

__all__ = [
    # Facade
    "SubscriptionLedger",
    "OperationResult",
    # Errors
    "ErrorKind",
    "LedgerError",
    "UnauthorizedError",
    "AlreadySubscribedError",
    "NoActiveSubscriptionError",
    "InsufficientBalanceError",
    "InvalidPlanTypeError",
    "SubscriptionExpiredError",
    "InvalidRefundAmountError",
    "SamePlanUpgradeError",
    "RefundPeriodExpiredError",
    "InvalidPlanChangeError",
    "InvalidConfigurationError",
    "NotInitializedError",
]
