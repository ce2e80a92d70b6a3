"""Tests for ledger errors and the tagged operation result."""

import pytest

from planledger.billing.catalog.models import SubscriptionPlan
from planledger.billing.exceptions import (
    ERRORS_BY_KIND,
    ErrorKind,
    InsufficientBalanceError,
    InvalidPlanChangeError,
    LedgerError,
    NotInitializedError,
    UnauthorizedError,
)
from planledger.billing.results import OperationResult

pytestmark = pytest.mark.unit


class TestLedgerErrors:
    """Error hierarchy and serialization."""

    def test_every_kind_has_an_error_class(self):
        assert set(ERRORS_BY_KIND) == set(ErrorKind)

    def test_error_code_matches_kind(self):
        error = UnauthorizedError("mallory", "set plan change fee")
        assert error.kind is ErrorKind.UNAUTHORIZED
        assert error.error_code == "UNAUTHORIZED"
        assert isinstance(error, LedgerError)

    def test_to_dict(self):
        error = InsufficientBalanceError("alice", required=100, available=40)
        data = error.to_dict()
        assert data["error_code"] == "INSUFFICIENT_BALANCE"
        assert data["context"] == {"account_id": "alice", "required": 100, "available": 40}
        assert data["recovery_hint"] == "Deposit funds and retry"
        assert "alice" in data["message"]

    def test_plan_change_hint_names_direction(self):
        error = InvalidPlanChangeError(
            "bad", current_plan="premium", requested_plan="basic", direction="upgrade"
        )
        assert "higher" in error.recovery_hint
        assert error.context["direction"] == "upgrade"

    def test_not_initialized_has_no_context(self):
        error = NotInitializedError()
        assert error.context == {}
        assert error.kind is ErrorKind.NOT_INITIALIZED


class TestOperationResult:
    """Success and failure variants."""

    def test_success(self):
        result = OperationResult.success(42)
        assert result.ok
        assert result.value == 42
        assert result.error is None
        assert result.unwrap() == 42

    def test_failure_carries_one_kind(self):
        result = OperationResult.failure(UnauthorizedError("mallory", "transfer admin rights"))
        assert not result.ok
        assert result.value is None
        assert result.error is ErrorKind.UNAUTHORIZED
        assert result.context["caller"] == "mallory"

    def test_unwrap_failure_reraises(self):
        result = OperationResult.failure(NotInitializedError())
        with pytest.raises(NotInitializedError):
            result.unwrap()

    def test_to_dict_success_dumps_models(self):
        plan = SubscriptionPlan(name="basic", cost=1, duration=2, tier=1)
        data = OperationResult.success([plan]).to_dict()
        assert data["ok"] is True
        assert data["value"][0]["name"] == "basic"

    def test_to_dict_failure(self):
        data = OperationResult.failure(NotInitializedError()).to_dict()
        assert data == {
            "ok": False,
            "error": "NOT_INITIALIZED",
            "message": "Ledger has not been bootstrapped",
            "context": {},
        }

    def test_results_are_immutable(self):
        result = OperationResult.success(1)
        with pytest.raises(AttributeError):
            result.ok = False  # type: ignore[misc]
