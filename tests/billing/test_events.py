"""Tests for the ledger event log."""

from unittest.mock import patch

import pytest

from planledger.billing.events import EventLog, LedgerEvents

pytestmark = pytest.mark.integration


@pytest.fixture
def event_log(db_session) -> EventLog:
    return EventLog(db_session)


class TestEventLog:
    """Append-only audit trail."""

    def test_record_and_list(self, event_log):
        event_log.record(
            LedgerEvents.SUBSCRIPTION_PURCHASED,
            actor="alice",
            tick=1000,
            account_id="alice",
            plan_name="basic",
            amount=50,
            end_time=2000,
        )

        [event] = event_log.list_events()
        assert event.event_type == "subscription.purchased"
        assert event.actor == "alice"
        assert event.tick == 1000
        assert event.amount == 50
        assert event.event_data == {"end_time": 2000}

    def test_events_keep_insertion_order(self, event_log):
        for tick in (5, 3, 9):
            event_log.record(LedgerEvents.FUNDS_DEPOSITED, actor="a", tick=tick, account_id="a")
        events = event_log.list_events()
        assert [event.tick for event in events] == [5, 3, 9]
        assert events[0].event_id < events[1].event_id < events[2].event_id

    def test_filters(self, event_log):
        event_log.record(LedgerEvents.FUNDS_DEPOSITED, actor="a", tick=1, account_id="a")
        event_log.record(LedgerEvents.FUNDS_DEPOSITED, actor="b", tick=2, account_id="b")
        event_log.record(LedgerEvents.CONFIG_UPDATED, actor="admin", tick=3)

        assert [e.actor for e in event_log.list_events(account_id="b")] == ["b"]
        assert len(event_log.list_events(event_type=LedgerEvents.FUNDS_DEPOSITED)) == 2
        assert event_log.list_events(account_id="a", event_type=LedgerEvents.CONFIG_UPDATED) == []

    def test_record_emits_audit_log(self, event_log):
        with patch("planledger.billing.events.log_audit_event") as mock_audit:
            event_log.record(
                LedgerEvents.ADMIN_TRANSFERRED, actor="admin", tick=7, new_admin="carol"
            )

        mock_audit.assert_called_once_with(
            LedgerEvents.ADMIN_TRANSFERRED,
            actor="admin",
            account_id=None,
            tick=7,
            plan_name=None,
            amount=None,
            new_admin="carol",
        )
