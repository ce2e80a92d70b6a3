"""
Global pytest configuration and fixtures for planledger tests.

Every test gets its own in-memory SQLite database; nothing touches disk.
"""

import os

import pytest

# Keep test runs independent of any local .env or shell configuration
os.environ.setdefault("PLANLEDGER_ENVIRONMENT", "test")
os.environ.setdefault("PLANLEDGER_OBSERVABILITY__LOG_FORMAT", "console")
os.environ.setdefault("PLANLEDGER_OBSERVABILITY__LOG_LEVEL", "WARNING")
os.environ.setdefault("PLANLEDGER_DATABASE__URL", "sqlite:///:memory:")

from ledger_values import START_TICK, make_settings  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from planledger.billing.ledger import SubscriptionLedger  # noqa: E402
from planledger.clock import ManualClock  # noqa: E402
from planledger.db import (  # noqa: E402
    build_engine,
    create_all_tables,
    drop_all_tables,
    make_session_factory,
)
from planledger.settings import Settings  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Reference ledger settings."""
    return make_settings()


@pytest.fixture
def clock() -> ManualClock:
    """Logical clock starting at the reference tick."""
    return ManualClock(start=START_TICK)


@pytest.fixture
def engine():
    """Fresh in-memory database with all ledger tables."""
    engine = build_engine("sqlite:///:memory:")
    create_all_tables(engine)
    yield engine
    drop_all_tables(engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Session:
    """Session with an open transaction, rolled back after the test."""
    session = make_session_factory(engine)()
    session.begin()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def ledger(engine, clock, settings) -> SubscriptionLedger:
    """Bootstrapped ledger on the test database."""
    ledger = SubscriptionLedger(engine=engine, clock=clock, settings=settings)
    ledger.bootstrap().unwrap()
    return ledger
