"""Tests for ProjectSelector read queries."""

import pytest

from escrow_kernel.domain.events import LedgerEventType
from escrow_kernel.domain.project import ProjectStatus
from escrow_kernel.exceptions import LedgerConfigurationError, ProjectNotFoundError
from escrow_kernel.selectors.project_selector import LedgerSettingsInfo, ProjectSelector
from tests.support import CLIENT, FREELANCER, OTHER_FREELANCER, OWNER


class TestProjectSelector:
    def test_empty_ledger(self, session):
        selector = ProjectSelector(session)
        assert selector.get_total_projects() == 0
        assert selector.find_settings() is None
        with pytest.raises(LedgerConfigurationError):
            selector.get_settings()

    def test_settings_after_open(self, session, ledger):
        assert ProjectSelector(session).get_settings() == LedgerSettingsInfo(
            owner=OWNER, platform_fee_pct=5
        )

    def test_reads_what_ledger_wrote(self, session, ledger, open_project):
        project = open_project(250)
        ledger.submit_bid(FREELANCER, project.id)
        ledger.submit_bid(OTHER_FREELANCER, project.id)
        ledger.assign_freelancer(CLIENT, project.id, OTHER_FREELANCER)

        selector = ProjectSelector(session)
        info = selector.get_project(project.id)
        assert info.status == ProjectStatus.ASSIGNED
        assert info.freelancer == OTHER_FREELANCER
        assert info.budget == 250
        assert selector.get_project_bids(project.id) == [FREELANCER, OTHER_FREELANCER]
        assert selector.get_client_projects(CLIENT) == [project.id]
        assert selector.get_freelancer_projects(OTHER_FREELANCER) == [project.id]
        assert selector.get_freelancer_projects(FREELANCER) == []

    def test_project_events_ordered(self, session, ledger, open_project):
        project = open_project()
        ledger.submit_bid(FREELANCER, project.id)
        ledger.update_platform_fee(OWNER, 7)
        ledger.cancel_project(CLIENT, project.id)

        events = ProjectSelector(session).get_project_events(project.id)
        assert [e.event_type for e in events] == [
            LedgerEventType.PROJECT_CREATED,
            LedgerEventType.BID_SUBMITTED,
            LedgerEventType.PROJECT_CANCELLED,
        ]

    def test_unknown_project(self, session, ledger):
        selector = ProjectSelector(session)
        with pytest.raises(ProjectNotFoundError):
            selector.get_project(1)
        with pytest.raises(ProjectNotFoundError):
            selector.get_project_events(1)

    def test_bool_id_is_not_project_one(self, session, open_project):
        open_project()
        selector = ProjectSelector(session)
        assert selector.get_project(1).id == 1
        with pytest.raises(ProjectNotFoundError):
            selector.get_project(True)
        with pytest.raises(ProjectNotFoundError):
            selector.get_project_events(True)
