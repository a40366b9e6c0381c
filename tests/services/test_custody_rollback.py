"""
Tests for custody failure handling in ProjectLedger.

A failed deposit, payout or refund must leave the ledger exactly as it was
before the call, with every custody leg that had already executed in the
same call reversed.

Covers:
- Deposit failure on creation
- Payout failure on completion (first and second leg)
- Refund failure on cancellation
- Failed compensation
- Retry after a transient custody failure
"""

import pytest

from escrow_kernel.domain.custody import CustodyOperation
from escrow_kernel.domain.project import ProjectStatus
from escrow_kernel.exceptions import CustodyFailure
from tests.support import CLIENT, FREELANCER, OWNER, FlakyCustody


@pytest.fixture
def flaky():
    return FlakyCustody()


@pytest.fixture
def flaky_ledger(make_ledger, flaky, event_log):
    return make_ledger(flaky, subscribers=[event_log])


def _submitted(ledger, deadline, budget=1000):
    project = ledger.create_project(CLIENT, "Logo", "Vector logo", deadline, budget)
    ledger.submit_bid(FREELANCER, project.id)
    ledger.assign_freelancer(CLIENT, project.id, FREELANCER)
    return ledger.submit_work(FREELANCER, project.id)


class TestDepositFailure:
    def test_no_project_recorded(self, flaky_ledger, flaky, deadline, event_log):
        flaky.fail_on = {CustodyOperation.DEPOSIT: {1}}

        with pytest.raises(CustodyFailure) as exc_info:
            flaky_ledger.create_project(CLIENT, "Logo", "Vector logo", deadline, 100)

        assert exc_info.value.operation == "deposit"
        assert exc_info.value.compensated is True
        assert flaky_ledger.get_total_projects() == 0
        assert flaky_ledger.get_client_projects(CLIENT) == []
        assert flaky.held == 0
        assert event_log.events == []

    def test_failed_creation_does_not_consume_id(self, flaky_ledger, flaky, deadline):
        flaky.fail_on = {CustodyOperation.DEPOSIT: {1}}
        with pytest.raises(CustodyFailure):
            flaky_ledger.create_project(CLIENT, "Logo", "Vector logo", deadline, 100)

        project = flaky_ledger.create_project(CLIENT, "Logo", "Vector logo", deadline, 100)
        assert project.id == 1
        assert flaky.held == 100


class TestPayoutFailure:
    def test_freelancer_payout_fails(self, flaky_ledger, flaky, deadline):
        project = _submitted(flaky_ledger, deadline)
        flaky.fail_on = {CustodyOperation.PAYOUT: {1}}

        with pytest.raises(CustodyFailure) as exc_info:
            flaky_ledger.complete_project(CLIENT, project.id)

        assert exc_info.value.recipient == FREELANCER
        stored = flaky_ledger.get_project(project.id)
        assert stored.status == ProjectStatus.SUBMITTED
        assert stored.funds_deposited is True
        assert flaky.held == 1000
        assert flaky.balance_of(FREELANCER) == 0

    def test_fee_payout_fails_reverses_freelancer_payout(
        self, flaky_ledger, flaky, deadline, event_log
    ):
        project = _submitted(flaky_ledger, deadline)
        flaky.fail_on = {CustodyOperation.PAYOUT: {2}}
        events_before = len(event_log.events)

        with pytest.raises(CustodyFailure) as exc_info:
            flaky_ledger.complete_project(CLIENT, project.id)

        assert exc_info.value.recipient == OWNER
        assert exc_info.value.compensated is True
        assert flaky_ledger.get_project(project.id).status == ProjectStatus.SUBMITTED
        assert flaky.balance_of(FREELANCER) == 0
        assert flaky.balance_of(OWNER) == 0
        assert flaky.held == 1000
        assert len(event_log.events) == events_before

    def test_retry_after_transient_failure(self, flaky_ledger, flaky, deadline):
        project = _submitted(flaky_ledger, deadline)
        flaky.fail_on = {CustodyOperation.PAYOUT: {1}}

        with pytest.raises(CustodyFailure):
            flaky_ledger.complete_project(CLIENT, project.id)
        result = flaky_ledger.complete_project(CLIENT, project.id)

        assert result.project.status == ProjectStatus.COMPLETED
        assert flaky.balance_of(FREELANCER) == 950
        assert flaky.balance_of(OWNER) == 50
        assert flaky.held == 0

    def test_failed_compensation_is_reported(
        self, flaky_ledger, flaky, deadline, captured_logs
    ):
        project = _submitted(flaky_ledger, deadline)
        flaky.fail_on = {CustodyOperation.PAYOUT: {2}}
        flaky.fail_reverse = True

        with pytest.raises(CustodyFailure) as exc_info:
            flaky_ledger.complete_project(CLIENT, project.id)

        assert exc_info.value.compensated is False
        # The ledger itself is still consistent: nothing was committed.
        assert flaky_ledger.get_project(project.id).status == ProjectStatus.SUBMITTED

        critical = [r for r in captured_logs() if r["level"] == "CRITICAL"]
        assert [r["message"] for r in critical] == ["custody_compensation_failed"]


class TestRefundFailure:
    def test_project_stays_open(self, flaky_ledger, flaky, deadline):
        project = flaky_ledger.create_project(CLIENT, "Logo", "Vector logo", deadline, 500)
        flaky.fail_on = {CustodyOperation.REFUND: {1}}

        with pytest.raises(CustodyFailure) as exc_info:
            flaky_ledger.cancel_project(CLIENT, project.id)

        assert exc_info.value.operation == "refund"
        stored = flaky_ledger.get_project(project.id)
        assert stored.status == ProjectStatus.OPEN
        assert stored.funds_deposited is True
        assert flaky.held == 500
        assert flaky.balance_of(CLIENT) == 0

        # Still a normal open project afterwards.
        flaky_ledger.submit_bid(FREELANCER, project.id)
        assert flaky_ledger.get_project_bids(project.id) == [FREELANCER]

    def test_other_projects_unaffected(self, flaky_ledger, flaky, deadline):
        first = flaky_ledger.create_project(CLIENT, "A", "first", deadline, 100)
        second = flaky_ledger.create_project(CLIENT, "B", "second", deadline, 200)
        flaky.fail_on = {CustodyOperation.REFUND: {1}}

        with pytest.raises(CustodyFailure):
            flaky_ledger.cancel_project(CLIENT, first.id)
        flaky_ledger.cancel_project(CLIENT, second.id)

        assert flaky_ledger.get_project(first.id).status == ProjectStatus.OPEN
        assert flaky_ledger.get_project(second.id).status == ProjectStatus.CANCELLED
        assert flaky.held == 100
        assert flaky.balance_of(CLIENT) == 200
