"""Tests for ledger event value objects and the in-memory event log."""

import pytest

from escrow_kernel.domain.events import (
    EVENT_CLASSES,
    BidSubmitted,
    EventSubscriber,
    InMemoryEventLog,
    LedgerEventType,
    PlatformFeeUpdated,
    ProjectCancelled,
    ProjectCompleted,
    ProjectCreated,
    event_from_record,
)
from tests.support import CLIENT, FREELANCER, OWNER


class TestEventPayloads:
    def test_created_payload(self):
        ev = ProjectCreated(project_id=1, actor=CLIENT, title="Logo", budget=1000)
        assert ev.event_type is LedgerEventType.PROJECT_CREATED
        assert ev.client == CLIENT
        assert ev.payload() == {"title": "Logo", "budget": 1000}

    def test_bid_payload_is_empty(self):
        ev = BidSubmitted(project_id=1, actor=FREELANCER)
        assert ev.freelancer == FREELANCER
        assert ev.payload() == {}

    def test_completed_payload(self):
        ev = ProjectCompleted(
            project_id=1, actor=FREELANCER, payout_amount=950, fee_amount=50
        )
        assert ev.payload() == {"payout_amount": 950, "fee_amount": 50}

    def test_fee_update_has_no_project(self):
        ev = PlatformFeeUpdated(project_id=None, actor=OWNER, old_fee_pct=5, new_fee_pct=8)
        assert ev.project_id is None
        assert ev.payload() == {"old_fee_pct": 5, "new_fee_pct": 8}

    def test_events_are_frozen(self):
        ev = ProjectCancelled(project_id=1, actor=CLIENT, refund_amount=10)
        with pytest.raises(AttributeError):
            ev.refund_amount = 0


class TestEventFromRecord:
    def test_every_type_registered(self):
        assert set(EVENT_CLASSES) == set(LedgerEventType)

    def test_rebuilds_typed_event(self):
        original = ProjectCompleted(
            project_id=3, actor=FREELANCER, payout_amount=90, fee_amount=10
        )
        rebuilt = event_from_record(
            original.event_type.value, 3, FREELANCER, original.payload()
        )
        assert rebuilt == original

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            event_from_record("project_disputed", 1, CLIENT, {})


class TestInMemoryEventLog:
    def test_is_a_subscriber(self):
        assert isinstance(InMemoryEventLog(), EventSubscriber)

    def test_filters(self):
        log = InMemoryEventLog()
        log(ProjectCreated(project_id=1, actor=CLIENT, title="a", budget=1))
        log(BidSubmitted(project_id=1, actor=FREELANCER))
        log(ProjectCreated(project_id=2, actor=CLIENT, title="b", budget=2))

        assert len(log.of_type(ProjectCreated)) == 2
        assert [e.event_type for e in log.for_project(1)] == [
            LedgerEventType.PROJECT_CREATED,
            LedgerEventType.BID_SUBMITTED,
        ]
