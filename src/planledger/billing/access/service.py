"""
Access control service.

Holds the administrator identity and the administrator-settable billing
parameters. The configuration is a single database row, so changes commit
with the operation that made them.
"""

import structlog
from pydantic import ValidationError
from sqlalchemy.orm import Session

from planledger.billing.access.models import AdminConfig
from planledger.billing.events import EventLog, LedgerEvents
from planledger.billing.exceptions import (
    InvalidConfigurationError,
    NotInitializedError,
    UnauthorizedError,
)
from planledger.billing.models import ACCOUNT_ID_LENGTH, MAX_INTEGER, LedgerAdminConfigTable

logger = structlog.get_logger(__name__)

# Settable parameters and their lower bounds
_SETTABLE_FIELDS: dict[str, int] = {
    "base_subscription_cost": 0,
    "default_subscription_period": 1,
    "refund_period_limit": 0,
    "plan_change_fee": 0,
}


class AccessControl:
    """Authorizes privileged operations against the stored administrator."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    # ========================================
    # Configuration access
    # ========================================

    def _get_row(self) -> LedgerAdminConfigTable:
        row = self.db.get(LedgerAdminConfigTable, LedgerAdminConfigTable.SINGLETON_ID)
        if row is None:
            raise NotInitializedError()
        return row

    def is_initialized(self) -> bool:
        return self.db.get(LedgerAdminConfigTable, LedgerAdminConfigTable.SINGLETON_ID) is not None

    def get_config(self) -> AdminConfig:
        """Current admin configuration."""
        return AdminConfig.model_validate(self._get_row())

    def initialize(self, config: AdminConfig) -> AdminConfig:
        """Write the configuration row if absent; an existing row is kept."""
        row = self.db.get(LedgerAdminConfigTable, LedgerAdminConfigTable.SINGLETON_ID)
        if row is not None:
            return AdminConfig.model_validate(row)

        row = LedgerAdminConfigTable(
            config_id=LedgerAdminConfigTable.SINGLETON_ID,
            **config.model_dump(),
        )
        self.db.add(row)
        self.db.flush()
        logger.info("Admin configuration initialized", administrator=config.administrator)
        return config

    # ========================================
    # Authorization
    # ========================================

    def is_administrator(self, caller: str) -> bool:
        """Pure predicate: is ``caller`` the current administrator."""
        return self._get_row().administrator == caller

    def require_administrator(self, caller: str, operation: str) -> None:
        if not self.is_administrator(caller):
            logger.warning("Unauthorized privileged call", caller=caller, operation=operation)
            raise UnauthorizedError(caller, operation)

    # ========================================
    # Administrator operations
    # ========================================

    def transfer_admin_rights(self, caller: str, new_admin: str, now: int) -> AdminConfig:
        """Hand administrator rights to ``new_admin``; effective immediately."""
        self.require_administrator(caller, "transfer admin rights")
        if not new_admin or not new_admin.strip() or len(new_admin) > ACCOUNT_ID_LENGTH:
            raise InvalidConfigurationError(
                f"New administrator identity must be 1-{ACCOUNT_ID_LENGTH} characters",
                config_key="administrator",
            )

        row = self._get_row()
        row.administrator = new_admin
        self.db.flush()

        EventLog(self.db).record(
            LedgerEvents.ADMIN_TRANSFERRED,
            actor=caller,
            tick=now,
            previous_admin=caller,
            new_admin=new_admin,
        )
        logger.info("Administrator rights transferred", previous=caller, new=new_admin)
        return AdminConfig.model_validate(row)

    def set_parameter(self, caller: str, key: str, value: int, now: int) -> AdminConfig:
        """Set one administrator-settable billing parameter."""
        self.require_administrator(caller, f"set {key}")
        if key not in _SETTABLE_FIELDS:
            raise InvalidConfigurationError(f"Unknown parameter {key!r}", config_key=key)

        row = self._get_row()
        config = AdminConfig.model_validate(row)
        try:
            setattr(config, key, value)
        except ValidationError as exc:
            raise InvalidConfigurationError(
                f"Invalid value {value!r} for {key}: "
                f"must be between {_SETTABLE_FIELDS[key]} and {MAX_INTEGER}",
                config_key=key,
            ) from exc
        value = getattr(config, key)

        previous = getattr(row, key)
        setattr(row, key, value)
        self.db.flush()

        EventLog(self.db).record(
            LedgerEvents.CONFIG_UPDATED,
            actor=caller,
            tick=now,
            key=key,
            previous=previous,
            value=value,
        )
        logger.info("Admin parameter updated", key=key, previous=previous, value=value)
        return AdminConfig.model_validate(row)

    def set_refund_period(self, caller: str, limit: int, now: int) -> AdminConfig:
        return self.set_parameter(caller, "refund_period_limit", limit, now)

    def set_plan_change_fee(self, caller: str, fee: int, now: int) -> AdminConfig:
        return self.set_parameter(caller, "plan_change_fee", fee, now)

    def set_base_subscription_cost(self, caller: str, cost: int, now: int) -> AdminConfig:
        return self.set_parameter(caller, "base_subscription_cost", cost, now)

    def set_default_subscription_period(self, caller: str, period: int, now: int) -> AdminConfig:
        return self.set_parameter(caller, "default_subscription_period", period, now)
