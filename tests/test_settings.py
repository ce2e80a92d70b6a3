"""Tests for settings and logging configuration."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from planledger import get_version
from planledger.logging import get_logger, log_audit_event
from planledger.settings import (
    Environment,
    PurchasePolicy,
    Settings,
    get_settings,
    reset_settings,
)

pytestmark = pytest.mark.unit


class TestSettings:
    """pydantic-settings configuration."""

    def test_ledger_defaults(self):
        ledger = Settings.LedgerSettings()
        assert ledger.administrator == "admin"
        assert ledger.treasury_account == "treasury"
        assert ledger.base_subscription_cost == 50_000_000
        assert ledger.default_subscription_period == 2_592_000
        assert ledger.refund_period_limit == 259_200
        assert ledger.plan_change_fee == 1_000_000
        assert ledger.purchase_policy is PurchasePolicy.STRICT
        assert ledger.enforce_expiry is False

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("PLANLEDGER_LEDGER__PLAN_CHANGE_FEE", "0")
        monkeypatch.setenv("PLANLEDGER_LEDGER__PURCHASE_POLICY", "reentrant")
        settings = Settings()
        assert settings.ledger.plan_change_fee == 0
        assert settings.ledger.purchase_policy is PurchasePolicy.REENTRANT

    def test_invalid_ledger_values_rejected(self):
        with pytest.raises(ValidationError):
            Settings.LedgerSettings(default_subscription_period=0)
        with pytest.raises(ValidationError):
            Settings.LedgerSettings(plan_change_fee=-1)

    def test_environment_is_case_insensitive(self):
        settings = Settings(environment="PRODUCTION")
        assert settings.environment is Environment.PRODUCTION
        assert not settings.is_testing

    def test_is_testing(self):
        assert Settings(testing=True).is_testing
        assert Settings(environment="test").is_testing

    def test_singleton_reset(self):
        first = get_settings()
        assert get_settings() is first
        reset_settings()
        try:
            assert get_settings() is not first
        finally:
            reset_settings()

    def test_version(self):
        assert get_version() == "1.0.0"


class TestLogging:
    """structlog wiring."""

    def test_get_logger(self):
        logger = get_logger("planledger.test")
        logger.info("hello", key="value")

    def test_audit_event_respects_toggle(self):
        disabled = Settings(observability=Settings.ObservabilitySettings(enable_audit_log=False))
        with (
            patch("planledger.logging.get_settings", return_value=disabled),
            patch("planledger.logging.get_audit_logger") as mock_logger,
        ):
            log_audit_event("subscription.purchased", actor="alice", tick=1)
        mock_logger.assert_not_called()

    def test_audit_event_fields(self):
        enabled = Settings(observability=Settings.ObservabilitySettings(enable_audit_log=True))
        with (
            patch("planledger.logging.get_settings", return_value=enabled),
            patch("planledger.logging.get_audit_logger") as mock_logger,
        ):
            log_audit_event("config.updated", actor="admin", tick=5, key="plan_change_fee")
        mock_logger.return_value.info.assert_called_once_with(
            "config.updated",
            audit_actor="admin",
            audit_account_id=None,
            audit_tick=5,
            key="plan_change_fee",
        )
