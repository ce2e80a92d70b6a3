"""
Ledger exceptions.

Every failure a ledger operation can report is one ``ErrorKind``. Internally
each kind is raised as a ``LedgerError`` subclass carrying context and a
recovery hint; the public facade converts them into ``OperationResult``
failures so callers never see an exception from a mutating operation.
"""

from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of error kinds returned by ledger operations."""

    UNAUTHORIZED = "UNAUTHORIZED"
    ALREADY_SUBSCRIBED = "ALREADY_SUBSCRIBED"
    NO_ACTIVE_SUBSCRIPTION = "NO_ACTIVE_SUBSCRIPTION"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    INVALID_PLAN_TYPE = "INVALID_PLAN_TYPE"
    SUBSCRIPTION_EXPIRED = "SUBSCRIPTION_EXPIRED"
    INVALID_REFUND_AMOUNT = "INVALID_REFUND_AMOUNT"
    SAME_PLAN_UPGRADE = "SAME_PLAN_UPGRADE"
    REFUND_PERIOD_EXPIRED = "REFUND_PERIOD_EXPIRED"
    INVALID_PLAN_CHANGE = "INVALID_PLAN_CHANGE"
    INVALID_CONFIGURATION = "INVALID_CONFIGURATION"
    NOT_INITIALIZED = "NOT_INITIALIZED"


class LedgerError(Exception):
    """
    Base ledger error with enhanced context.

    Attributes:
        message: Human-readable error message
        kind: Error kind reported to callers
        context: Additional context data about the error
        recovery_hint: Suggested action to resolve the error
    """

    kind: ErrorKind = ErrorKind.INVALID_CONFIGURATION

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        recovery_hint: str | None = None,
    ):
        self.message = message
        self.context = context or {}
        self.recovery_hint = recovery_hint
        super().__init__(self.message)

    @property
    def error_code(self) -> str:
        return self.kind.value

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for structured results and logs."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
            "recovery_hint": self.recovery_hint,
        }


class UnauthorizedError(LedgerError):
    """Caller is not the administrator."""

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, caller: str, operation: str) -> None:
        super().__init__(
            f"Caller {caller!r} is not allowed to {operation}",
            context={"caller": caller, "operation": operation},
            recovery_hint="Only the current administrator may perform this operation",
        )


class AlreadySubscribedError(LedgerError):
    """Account already holds a subscription record."""

    kind = ErrorKind.ALREADY_SUBSCRIBED

    def __init__(self, account_id: str, active: bool) -> None:
        super().__init__(
            f"Account {account_id!r} already has a subscription record",
            context={"account_id": account_id, "active": active},
            recovery_hint="Renew, upgrade or downgrade the existing subscription instead",
        )


class NoActiveSubscriptionError(LedgerError):
    """Account has no active subscription."""

    kind = ErrorKind.NO_ACTIVE_SUBSCRIPTION

    def __init__(self, account_id: str) -> None:
        super().__init__(
            f"Account {account_id!r} has no active subscription",
            context={"account_id": account_id},
            recovery_hint="Purchase a plan first",
        )


class InsufficientBalanceError(LedgerError):
    """Transfer source cannot cover the amount."""

    kind = ErrorKind.INSUFFICIENT_BALANCE

    def __init__(self, account_id: str, required: int, available: int) -> None:
        super().__init__(
            f"Account {account_id!r} cannot cover {required} (balance {available})",
            context={"account_id": account_id, "required": required, "available": available},
            recovery_hint="Deposit funds and retry",
        )


class InvalidPlanTypeError(LedgerError):
    """Plan does not exist or its terms are invalid."""

    kind = ErrorKind.INVALID_PLAN_TYPE

    def __init__(self, message: str, plan_name: str | None = None) -> None:
        context = {}
        if plan_name is not None:
            context["plan_name"] = plan_name
        super().__init__(
            message,
            context=context,
            recovery_hint="Verify the plan name and ensure the plan exists in the catalog",
        )


class SubscriptionExpiredError(LedgerError):
    """Subscription is past its end time and expiry is enforced."""

    kind = ErrorKind.SUBSCRIPTION_EXPIRED

    def __init__(self, account_id: str, end_time: int, now: int) -> None:
        super().__init__(
            f"Subscription for {account_id!r} expired at tick {end_time}",
            context={"account_id": account_id, "end_time": end_time, "now": now},
            recovery_hint="Purchase a new subscription",
        )


class InvalidRefundAmountError(LedgerError):
    """Refund is not allowed or would be zero."""

    kind = ErrorKind.INVALID_REFUND_AMOUNT

    def __init__(self, message: str, account_id: str, amount: int | None = None) -> None:
        context: dict[str, Any] = {"account_id": account_id}
        if amount is not None:
            context["amount"] = amount
        super().__init__(message, context=context)


class SamePlanUpgradeError(LedgerError):
    """Upgrade target is the current plan."""

    kind = ErrorKind.SAME_PLAN_UPGRADE

    def __init__(self, account_id: str, plan_name: str) -> None:
        super().__init__(
            f"Account {account_id!r} is already on plan {plan_name!r}",
            context={"account_id": account_id, "plan_name": plan_name},
            recovery_hint="Use renew to extend the current plan",
        )


class RefundPeriodExpiredError(LedgerError):
    """Refund requested after the refund window closed."""

    kind = ErrorKind.REFUND_PERIOD_EXPIRED

    def __init__(self, account_id: str, elapsed: int, limit: int) -> None:
        super().__init__(
            f"Refund window closed for {account_id!r} ({elapsed} ticks elapsed, limit {limit})",
            context={"account_id": account_id, "elapsed": elapsed, "limit": limit},
        )


class InvalidPlanChangeError(LedgerError):
    """Plan change goes in the wrong tier direction."""

    kind = ErrorKind.INVALID_PLAN_CHANGE

    def __init__(
        self, message: str, current_plan: str, requested_plan: str, direction: str
    ) -> None:
        super().__init__(
            message,
            context={
                "current_plan": current_plan,
                "requested_plan": requested_plan,
                "direction": direction,
            },
            recovery_hint=f"A {direction} must move to a plan with a "
            f"{'higher' if direction == 'upgrade' else 'lower'} tier",
        )


class InvalidConfigurationError(LedgerError):
    """Administrator setting or plan term out of range."""

    kind = ErrorKind.INVALID_CONFIGURATION

    def __init__(self, message: str, config_key: str | None = None) -> None:
        context = {}
        if config_key:
            context["config_key"] = config_key
        super().__init__(message, context=context)


class NotInitializedError(LedgerError):
    """Ledger used before bootstrap."""

    kind = ErrorKind.NOT_INITIALIZED

    def __init__(self) -> None:
        super().__init__(
            "Ledger has not been bootstrapped",
            recovery_hint="Call bootstrap_ledger() before accepting operations",
        )


ERRORS_BY_KIND: dict[ErrorKind, type[LedgerError]] = {
    cls.kind: cls
    for cls in (
        UnauthorizedError,
        AlreadySubscribedError,
        NoActiveSubscriptionError,
        InsufficientBalanceError,
        InvalidPlanTypeError,
        SubscriptionExpiredError,
        InvalidRefundAmountError,
        SamePlanUpgradeError,
        RefundPeriodExpiredError,
        InvalidPlanChangeError,
        InvalidConfigurationError,
        NotInitializedError,
    )
}
