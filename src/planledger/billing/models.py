"""
Ledger database tables.

Three logical tables back the ledger (plans, subscriptions, refunds), plus
the single-row admin configuration, the account balances used by the bundled
transfer primitive, and the append-only event trail. Records are overwritten
by key and never deleted.
"""

from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from planledger.db import Base, TimestampMixin

PLAN_NAME_LENGTH = 32
ACCOUNT_ID_LENGTH = 64
REASON_LENGTH = 256

# Largest value a BigInteger column holds; amounts and ticks must stay below it
MAX_INTEGER = 2**63 - 1


class LedgerPlanTable(TimestampMixin, Base):
    """SQLAlchemy table for subscription plans."""

    __tablename__ = "ledger_plans"

    name: Mapped[str] = mapped_column(String(PLAN_NAME_LENGTH), primary_key=True)

    # Terms
    cost: Mapped[int] = mapped_column(BigInteger, nullable=False)
    duration: Mapped[int] = mapped_column(BigInteger, nullable=False)
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    tier: Mapped[int] = mapped_column(Integer, nullable=False)
    allows_refunds: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("cost >= 0", name="ck_ledger_plans_cost"),
        CheckConstraint("duration > 0", name="ck_ledger_plans_duration"),
        CheckConstraint("tier >= 0", name="ck_ledger_plans_tier"),
        Index("ix_ledger_plans_tier", "tier"),
    )


class LedgerSubscriptionTable(TimestampMixin, Base):
    """SQLAlchemy table for account subscriptions (one row per account)."""

    __tablename__ = "ledger_subscriptions"

    account_id: Mapped[str] = mapped_column(String(ACCOUNT_ID_LENGTH), primary_key=True)

    # Lifecycle
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_time: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end_time: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Plan reference (not a foreign key: plans may be overwritten later)
    plan_name: Mapped[str] = mapped_column(String(PLAN_NAME_LENGTH), nullable=False)

    # Money
    last_payment_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    remaining_credit: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("end_time >= start_time", name="ck_ledger_subscriptions_window"),
        CheckConstraint("last_payment_amount >= 0", name="ck_ledger_subscriptions_payment"),
        CheckConstraint("remaining_credit >= 0", name="ck_ledger_subscriptions_credit"),
        Index("ix_ledger_subscriptions_plan", "plan_name"),
        Index("ix_ledger_subscriptions_active", "active"),
    )


class LedgerRefundTable(TimestampMixin, Base):
    """SQLAlchemy table for refund events keyed by (account, tick)."""

    __tablename__ = "ledger_refunds"

    account_id: Mapped[str] = mapped_column(String(ACCOUNT_ID_LENGTH), primary_key=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, primary_key=True)

    refund_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reason: Mapped[str] = mapped_column(String(REASON_LENGTH), nullable=False, default="")

    __table_args__ = (CheckConstraint("refund_amount >= 0", name="ck_ledger_refunds_amount"),)


class LedgerAdminConfigTable(TimestampMixin, Base):
    """Single-row table holding the process-wide admin configuration."""

    __tablename__ = "ledger_admin_config"

    SINGLETON_ID = 1

    config_id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SINGLETON_ID)

    administrator: Mapped[str] = mapped_column(String(ACCOUNT_ID_LENGTH), nullable=False)
    base_subscription_cost: Mapped[int] = mapped_column(BigInteger, nullable=False)
    default_subscription_period: Mapped[int] = mapped_column(BigInteger, nullable=False)
    refund_period_limit: Mapped[int] = mapped_column(BigInteger, nullable=False)
    plan_change_fee: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        CheckConstraint("base_subscription_cost >= 0", name="ck_ledger_admin_base_cost"),
        CheckConstraint("default_subscription_period > 0", name="ck_ledger_admin_period"),
        CheckConstraint("refund_period_limit >= 0", name="ck_ledger_admin_refund_limit"),
        CheckConstraint("plan_change_fee >= 0", name="ck_ledger_admin_change_fee"),
    )


class LedgerBalanceTable(TimestampMixin, Base):
    """Account balances moved by the bundled transfer gateway."""

    __tablename__ = "ledger_balances"

    account_id: Mapped[str] = mapped_column(String(ACCOUNT_ID_LENGTH), primary_key=True)
    balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (CheckConstraint("balance >= 0", name="ck_ledger_balances_balance"),)


class LedgerEventTable(TimestampMixin, Base):
    """Append-only audit trail of ledger mutations."""

    __tablename__ = "ledger_events"

    event_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    tick: Mapped[int] = mapped_column(BigInteger, nullable=False)
    actor: Mapped[str] = mapped_column(String(ACCOUNT_ID_LENGTH), nullable=False)

    account_id: Mapped[str | None] = mapped_column(String(ACCOUNT_ID_LENGTH), nullable=True)
    plan_name: Mapped[str | None] = mapped_column(String(PLAN_NAME_LENGTH), nullable=True)
    amount: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    event_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_ledger_events_account", "account_id"),
        Index("ix_ledger_events_type", "event_type"),
        Index("ix_ledger_events_tick", "tick"),
    )


__all__ = [
    "LedgerPlanTable",
    "LedgerSubscriptionTable",
    "LedgerRefundTable",
    "LedgerAdminConfigTable",
    "LedgerBalanceTable",
    "LedgerEventTable",
]
